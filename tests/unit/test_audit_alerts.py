"""Unit tests for audit alerts on AI extraction results."""

import pytest

from leitordocs.domain.audit.alerts import (
    EMPTY_RESPONSE_ALERT,
    LOW_QUALITY_ALERT,
    RAW_TEXT_NOT_FOUND_ALERT,
    SHORT_RESPONSE_ALERT,
    UNCERTAINTY_ALERT,
    detect_alerts,
)


class TestEmptyResponses:
    """Test empty provider replies."""

    @pytest.mark.parametrize("analysis", [None, "", False, 0, float("nan")])
    def test_empty_response(self, analysis):
        assert detect_alerts(analysis) == [EMPTY_RESPONSE_ALERT]

    @pytest.mark.parametrize("analysis", [{}, []])
    def test_empty_containers_are_a_reply(self, analysis):
        assert detect_alerts(analysis) == []


class TestTextResponses:
    """Test raw text replies (provider did not return JSON)."""

    def test_nd_in_text(self):
        assert RAW_TEXT_NOT_FOUND_ALERT in detect_alerts("Valor: ND")

    def test_short_text(self):
        assert detect_alerts("abc") == [SHORT_RESPONSE_ALERT]

    def test_short_text_with_nd(self):
        assert detect_alerts("ND") == [RAW_TEXT_NOT_FOUND_ALERT, SHORT_RESPONSE_ALERT]

    def test_text_skips_phrase_scan(self):
        assert detect_alerts("Imagem borrada, valor incerto") == []

    def test_clean_text(self):
        assert detect_alerts("Recibo 05-03 MARIA 150.00") == []


class TestFieldAlerts:
    """Test structured field checks."""

    def test_nd_field(self):
        alerts = detect_alerts({"nome": "João", "cpf": "ND", "valor": 100})

        assert alerts == ['Campo "cpf" não encontrado']

    @pytest.mark.parametrize("marker", ["N/D", "Não encontrado"])
    def test_other_not_found_markers(self, marker):
        assert detect_alerts({"endereco": marker}) == ['Campo "endereco" não encontrado']

    def test_not_found_match_is_exact(self):
        assert detect_alerts({"status": "nd", "obs": "ND parcial"}) == []

    @pytest.mark.parametrize("value", [0, 0.0, "0", "0,00", "0.00"])
    def test_zero_amount(self, value):
        alerts = detect_alerts({"valor_total": value})

        assert alerts == ['Campo "valor_total" está com valor zero']

    def test_zero_amount_key_is_case_insensitive(self):
        assert detect_alerts({"Total": "0,00"}) == ['Campo "Total" está com valor zero']

    def test_false_is_not_zero_amount(self):
        assert detect_alerts({"valor_pago": False}) == []

    def test_zero_outside_amount_fields(self):
        assert detect_alerts({"parcelas": 0}) == []

    def test_nested_objects_are_walked(self):
        alerts = detect_alerts({"a": {"b": {"c": "ND"}}})

        assert 'Campo "c" não encontrado' in alerts

    def test_deeply_nested_person(self):
        analysis = {"dados": {"pessoa": {"nome": "Maria", "rg": "ND"}}}

        assert detect_alerts(analysis) == ['Campo "rg" não encontrado']

    def test_lists_are_not_walked(self):
        assert detect_alerts({"itens": [{"valor": 0}, "ND"]}) == []

    def test_zero_heuristic_flags_legit_zero_subfields(self):
        alerts = detect_alerts({"valor_unitario": "0,00", "valor_total": "150.00"})

        assert alerts == ['Campo "valor_unitario" está com valor zero']


class TestPhraseAlerts:
    """Test low-confidence phrases in the serialized result."""

    def test_low_quality(self):
        alerts = detect_alerts({"observacao": "Imagem borrada, difícil leitura"})

        assert alerts == [LOW_QUALITY_ALERT]

    def test_non_ascii_phrase(self):
        assert detect_alerts({"obs": "Texto ILEGÍVEL"}) == [LOW_QUALITY_ALERT]

    def test_uncertainty(self):
        alerts = detect_alerts({"obs": "Valor provável de 150"})

        assert alerts == [UNCERTAINTY_ALERT]

    def test_phrase_group_reported_once(self):
        alerts = detect_alerts({"obs": "borrada e borrada", "nota": "baixa qualidade"})

        assert alerts == [LOW_QUALITY_ALERT]

    def test_phrase_in_key(self):
        assert detect_alerts({"possível erro": "sim"}) == [UNCERTAINTY_ALERT]


class TestCombinedAlerts:
    """Test ordering and de-duplication."""

    def test_field_alerts_before_phrase_alerts(self):
        alerts = detect_alerts({"cpf": "ND", "obs": "incerto"})

        assert alerts == ['Campo "cpf" não encontrado', UNCERTAINTY_ALERT]

    def test_duplicate_keys_in_nested_objects(self):
        alerts = detect_alerts({"cliente": {"cpf": "ND"}, "fornecedor": {"cpf": "ND"}})

        assert alerts == ['Campo "cpf" não encontrado']

    def test_clean_input(self):
        assert detect_alerts({"nome": "ok", "valor": 1500.5}) == []

    def test_idempotent(self):
        analysis = {"valor": "0.00", "obs": "borrada"}

        assert detect_alerts(analysis) == detect_alerts(analysis)
