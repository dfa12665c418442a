"""Prompts for document reading.

Company-specific prompts live in the ``companies`` table; these are the
built-in defaults used when a company has none configured.
"""

GLOBAL_SYSTEM_INSTRUCTIONS = """
REGRAS DE OURO (Siga rigorosamente):
- Use "ND" para qualquer dado não encontrado.
- RETORNE APENAS o dado extraído no formato especificado, nada mais.
- NUNCA inclua palavras proibidas no retorno: "Boleto", "Venda", "Comprovante", "Nota Fiscal", "Transferência", "Depósito", "Pagamento", "Pix", "Cartão" (e seus plurais ou variações em maiúsculas/minúsculas).
- O formato deve ser sempre: XX-XX DADO_1 DADO_2 VALOR (ou conforme especificado no prompt por empresa).
- Use ponto (.) como separador decimal para valores (ex: 1250.00).
- Datas devem ser convertidas para o formato "dia-mês" (XX-XX).
""".strip()

FINANCIAL_RECEIPT_PROMPT = """
Identifique o documento de RECEBIMENTO (ordem de serviço, comprovante de recebimento
ou comprovante de venda) e extraia:
1. DATA do recebimento
2. NÚMERO da venda ou ordem (se houver)
3. NOME do cliente que pagou
4. VALOR recebido

FORMATO DE RETORNO: XX-XX VENDA XXXX NOME_CLIENTE XXX,XX
EXEMPLO: 26-03 VENDA 1747 HELIO FILHO 1285,00
""".strip()

FINANCIAL_PAYMENT_PROMPT = """
Identifique o documento de PAGAMENTO (boleto pago, transferência, nota fiscal) e extraia:
1. DATA do pagamento
2. NOME do favorecido/fornecedor
3. DESCRIÇÃO curta do que foi pago
4. VALOR pago

FORMATO DE RETORNO: XX-XX FORNECEDOR DESCRICAO XXX,XX
EXEMPLO: 05-04 COPEL ENERGIA LOJA 412,37
""".strip()

DEFAULT_PROMPTS = {
    "financial-receipt": FINANCIAL_RECEIPT_PROMPT,
    "financial-payment": FINANCIAL_PAYMENT_PROMPT,
}

DEFAULT_ANALYSIS_TYPE = "financial-receipt"


def get_default_prompt(analysis_type: str) -> str:
    """Built-in prompt for an analysis type (receipt prompt for unknown types)."""
    return DEFAULT_PROMPTS.get(analysis_type, DEFAULT_PROMPTS[DEFAULT_ANALYSIS_TYPE])
