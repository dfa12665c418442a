"""Unit tests for DocumentAnalysisService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from leitordocs.domain.analysis import DocumentAnalysisService, renamed_file_name
from leitordocs.domain.audit.alerts import RAW_TEXT_NOT_FOUND_ALERT
from leitordocs.infrastructure.ai.prompts import FINANCIAL_PAYMENT_PROMPT, FINANCIAL_RECEIPT_PROMPT
from leitordocs.infrastructure.supabase.companies import CompanyPromptConfig
from leitordocs.infrastructure.supabase.credits import UserCredits
from leitordocs.shared.context import UserContext
from leitordocs.shared.exceptions import (
    AIServiceError,
    CompanyAccessDeniedError,
    CreditDebitError,
    CreditsUnavailableError,
    InsufficientCreditsError,
    UnsupportedFileTypeError,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n" + b"0" * 64
RECEIPT_LINE = "26-03 VENDA 1747 HELIO FILHO 1285.00"


async def _analyze(service: DocumentAnalysisService, user: UserContext, **kwargs):
    params = {"content": PNG_BYTES, "file_name": "recibo.png", "mime_type": "image/png"}
    params.update(kwargs)
    return await service.analyze(user, **params)


class TestSuccessfulAnalysis:
    """Test fresh analyses."""

    @pytest.mark.asyncio
    async def test_image_analysis(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_credits: MagicMock,
        mock_logs: MagicMock,
    ):
        vision_client.content = RECEIPT_LINE

        outcome = await _analyze(analysis_service, user_context, company="acme", batch_id="batch_1")

        assert outcome.analysis == RECEIPT_LINE
        assert outcome.suggested_file_name == "26-03 VENDA 1747 HELIO FILHO 1285.00.png"
        assert outcome.provider == "gemini"
        assert outcome.analysis_type == "financial-receipt"
        assert outcome.batch_id == "batch_1"
        assert not outcome.from_cache
        assert vision_client.calls[0]["kind"] == "image"
        assert vision_client.calls[0]["prompt"] == FINANCIAL_RECEIPT_PROMPT
        mock_credits.debit_credit.assert_awaited_once_with("user-1", 1)

        entry = mock_logs.log_analysis.await_args.args[1]
        assert entry.success
        assert entry.credits_debited == 1
        assert entry.company == "acme"

    @pytest.mark.asyncio
    async def test_pdf_uses_pdf_call(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
    ):
        await _analyze(
            analysis_service,
            user_context,
            content=PDF_BYTES,
            file_name="nota.pdf",
            mime_type="application/pdf",
            analysis_type="financial-payment",
        )

        assert vision_client.calls == [{"kind": "pdf", "prompt": FINANCIAL_PAYMENT_PROMPT}]

    @pytest.mark.asyncio
    async def test_company_prompt_and_pattern(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_companies: MagicMock,
    ):
        mock_companies.get_prompt_config.return_value = CompanyPromptConfig(
            receipt_prompt="Prompt da empresa",
            payment_prompt=None,
            naming_pattern="{{NOME}} {{VALOR}}",
        )
        vision_client.content = RECEIPT_LINE

        outcome = await _analyze(analysis_service, user_context, company="acme")

        assert vision_client.calls[0]["prompt"] == "Prompt da empresa"
        assert outcome.suggested_file_name == "HELIO FILHO 1285.00.png"

    @pytest.mark.asyncio
    async def test_default_company(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        mock_companies: MagicMock,
    ):
        await _analyze(analysis_service, user_context)

        mock_companies.get_prompt_config.assert_awaited_once_with("enia-marcia-joias")

    @pytest.mark.asyncio
    async def test_alerts_are_returned_and_logged(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_logs: MagicMock,
    ):
        vision_client.content = '{"cpf": "ND", "valor_total": "150.00"}'

        outcome = await _analyze(analysis_service, user_context)

        assert outcome.analysis == {"cpf": "ND", "valor_total": "150.00"}
        assert outcome.alerts == ['Campo "cpf" não encontrado']
        assert mock_logs.log_analysis.await_args.args[1].ai_alerts == outcome.alerts


class TestCache:
    """Test repeated submissions."""

    @pytest.mark.asyncio
    async def test_second_submission_is_free(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_credits: MagicMock,
        mock_logs: MagicMock,
    ):
        vision_client.content = "Valor total ND no recibo"
        first = await _analyze(analysis_service, user_context)

        second = await _analyze(analysis_service, user_context)

        assert second.from_cache
        assert second.analysis == first.analysis
        assert second.suggested_file_name == first.suggested_file_name
        assert second.alerts == [RAW_TEXT_NOT_FOUND_ALERT]
        assert len(vision_client.calls) == 1
        assert mock_credits.debit_credit.await_count == 1
        assert mock_logs.log_analysis.await_args.args[1].is_from_cache

    @pytest.mark.asyncio
    async def test_other_company_is_a_miss(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
    ):
        await _analyze(analysis_service, user_context, company="acme")
        await _analyze(analysis_service, user_context, company="outra")

        assert len(vision_client.calls) == 2


class TestRefusals:
    """Test requests refused before the provider is called."""

    @pytest.mark.asyncio
    async def test_no_credits(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_credits: MagicMock,
    ):
        mock_credits.get_user_credits.return_value = UserCredits(
            credits_used=2500, credits_limit=2500, credits_remaining=0, month_year="2026-10"
        )

        with pytest.raises(InsufficientCreditsError) as exc_info:
            await _analyze(analysis_service, user_context)

        assert exc_info.value.details == {"credits_remaining": 0, "credits_limit": 2500}
        assert vision_client.calls == []

    @pytest.mark.asyncio
    async def test_credits_unavailable(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_credits: MagicMock,
    ):
        mock_credits.get_user_credits.side_effect = CreditsUnavailableError()

        with pytest.raises(CreditsUnavailableError):
            await _analyze(analysis_service, user_context)

        assert vision_client.calls == []

    @pytest.mark.asyncio
    async def test_company_not_allowed(
        self,
        analysis_service: DocumentAnalysisService,
        vision_client,
    ):
        user = UserContext("user-2", "user", allowed_companies=("acme",))

        with pytest.raises(CompanyAccessDeniedError):
            await _analyze(analysis_service, user, company="outra")

        assert vision_client.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_file(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
    ):
        with pytest.raises(UnsupportedFileTypeError):
            await _analyze(analysis_service, user_context, file_name="a.txt", mime_type="text/plain")


class TestFailures:
    """Test failures after the provider was reached."""

    @pytest.mark.asyncio
    async def test_ai_error_is_logged_and_not_debited(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        vision_client,
        mock_credits: MagicMock,
        mock_logs: MagicMock,
    ):
        vision_client.analyze_image = AsyncMock(side_effect=AIServiceError("Provedor fora do ar"))

        with pytest.raises(AIServiceError):
            await _analyze(analysis_service, user_context)

        mock_credits.debit_credit.assert_not_awaited()
        entry = mock_logs.log_analysis.await_args.args[1]
        assert not entry.success
        assert entry.error_message == "Provedor fora do ar"

    @pytest.mark.asyncio
    async def test_debit_failure_discards_result(
        self,
        analysis_service: DocumentAnalysisService,
        user_context: UserContext,
        mock_credits: MagicMock,
        mock_logs: MagicMock,
    ):
        mock_credits.debit_credit.side_effect = CreditDebitError()

        with pytest.raises(CreditDebitError):
            await _analyze(analysis_service, user_context)

        assert analysis_service.store.get_stats()["size"] == 0
        assert not mock_logs.log_analysis.await_args.args[1].success


class TestRenamedFileName:
    def test_keeps_lowercased_extension(self):
        assert renamed_file_name("scan.JPG", RECEIPT_LINE, "financial-receipt") == f"{RECEIPT_LINE}.jpg"

    def test_missing_type_defaults_to_receipt(self):
        assert renamed_file_name("a.pdf", RECEIPT_LINE, "") == f"{RECEIPT_LINE}.pdf"
