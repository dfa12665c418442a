"""Unit tests for the AI provider factory and response parsing."""

import pytest

from leitordocs.config import Settings
from leitordocs.infrastructure.ai import AIServiceFactory, parse_analysis
from leitordocs.infrastructure.ai.anthropic_client import AnthropicVisionClient
from leitordocs.infrastructure.ai.openai_client import OpenAICompatibleClient
from leitordocs.infrastructure.ai.prompts import (
    FINANCIAL_PAYMENT_PROMPT,
    FINANCIAL_RECEIPT_PROMPT,
    get_default_prompt,
)
from leitordocs.shared.exceptions import AIServiceError


@pytest.fixture
def factory() -> AIServiceFactory:
    settings = Settings(
        gemini_api_key="gemini-key",
        anthropic_api_key="anthropic-key",
        default_ai_provider="gemini",
    )
    return AIServiceFactory(settings)


class TestProviderAvailability:
    """Test which providers are offered."""

    def test_available_providers_follow_api_keys(self, factory: AIServiceFactory):
        assert factory.available_providers() == ["gemini", "anthropic"]

    def test_unknown_provider(self, factory: AIServiceFactory):
        assert not factory.is_provider_available("mistral")


class TestGetService:
    """Test client construction and fallback."""

    def test_openai_compatible_provider(self, factory: AIServiceFactory):
        client = factory.get_service("gemini")

        assert isinstance(client, OpenAICompatibleClient)
        assert client.provider == "gemini"
        assert client.default_model == "gemini-2.0-flash"

    def test_anthropic_provider(self, factory: AIServiceFactory):
        assert isinstance(factory.get_service("anthropic"), AnthropicVisionClient)

    def test_clients_are_cached(self, factory: AIServiceFactory):
        assert factory.get_service("gemini") is factory.get_service("gemini")

    def test_unconfigured_provider_falls_back_to_default(self, factory: AIServiceFactory):
        assert factory.get_service("openai").provider == "gemini"

    def test_none_uses_default(self, factory: AIServiceFactory):
        assert factory.resolve_provider(None) == "gemini"

    def test_nothing_configured(self):
        factory = AIServiceFactory(Settings())

        with pytest.raises(AIServiceError):
            factory.get_service("gemini")


class TestDefaultProvider:
    """Test switching the default provider."""

    def test_switch_to_available(self, factory: AIServiceFactory):
        assert factory.set_default_provider("anthropic")
        assert factory.resolve_provider(None) == "anthropic"

    def test_reject_unavailable(self, factory: AIServiceFactory):
        assert not factory.set_default_provider("nexus")
        assert factory.default_provider == "gemini"

    @pytest.mark.asyncio
    async def test_close_clears_clients(self, factory: AIServiceFactory):
        first = factory.get_service("gemini")

        await factory.close()

        assert factory.get_service("gemini") is not first


class TestParseAnalysis:
    """Test provider reply parsing."""

    def test_plain_text(self):
        assert parse_analysis("  26-03 VENDA 1747 HELIO 1285,00 \n") == "26-03 VENDA 1747 HELIO 1285,00"

    def test_json_object(self):
        assert parse_analysis('{"valor": "0,00"}') == {"valor": "0,00"}

    def test_fenced_json(self):
        assert parse_analysis('```json\n{"cpf": "ND"}\n```') == {"cpf": "ND"}

    def test_broken_json_stays_text(self):
        assert parse_analysis('{"cpf": ') == '{"cpf":'

    def test_json_array_stays_text(self):
        assert parse_analysis('["a"]') == '["a"]'

    @pytest.mark.parametrize("content", [None, ""])
    def test_empty(self, content):
        assert parse_analysis(content) == content


class TestDefaultPrompts:
    def test_known_types(self):
        assert get_default_prompt("financial-receipt") == FINANCIAL_RECEIPT_PROMPT
        assert get_default_prompt("financial-payment") == FINANCIAL_PAYMENT_PROMPT

    def test_unknown_type_uses_receipt_prompt(self):
        assert get_default_prompt("contract") == FINANCIAL_RECEIPT_PROMPT
