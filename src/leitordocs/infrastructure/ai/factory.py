"""AI provider factory - returns the vision client for a provider name."""

from functools import lru_cache

from leitordocs.config import Settings, get_settings
from leitordocs.infrastructure.ai.anthropic_client import AnthropicVisionClient
from leitordocs.infrastructure.ai.base import VisionClient
from leitordocs.infrastructure.ai.cost_tracker import CostTracker
from leitordocs.infrastructure.ai.openai_client import OpenAICompatibleClient
from leitordocs.shared.exceptions import AIServiceError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

# Order is the order shown in the provider picker
PROVIDER_NAMES = ("gemini", "openai", "nexus", "anthropic")


class AIServiceFactory:
    """Builds and caches one vision client per configured provider.

    A provider is available when its API key is set. Requests for an unknown
    or unconfigured provider fall back to the default one.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.cost_tracker = cost_tracker or CostTracker()
        self.default_provider: str = self.settings.default_ai_provider
        self._clients: dict[str, VisionClient] = {}

    def _api_key(self, provider: str) -> str:
        return {
            "gemini": self.settings.gemini_api_key,
            "openai": self.settings.openai_api_key,
            "nexus": self.settings.openrouter_api_key,
            "anthropic": self.settings.anthropic_api_key,
        }.get(provider, "")

    def is_provider_available(self, provider: str) -> bool:
        return provider in PROVIDER_NAMES and bool(self._api_key(provider))

    def available_providers(self) -> list[str]:
        return [name for name in PROVIDER_NAMES if self.is_provider_available(name)]

    def _build(self, provider: str) -> VisionClient:
        s = self.settings
        if provider == "anthropic":
            return AnthropicVisionClient(
                api_key=s.anthropic_api_key,
                model=s.anthropic_model,
                max_tokens=s.ai_max_tokens,
                cost_tracker=self.cost_tracker,
            )

        model, base_url = {
            "gemini": (s.gemini_model, s.gemini_base_url),
            "openai": (s.openai_model, None),
            "nexus": (s.openrouter_model, s.openrouter_base_url),
        }[provider]
        return OpenAICompatibleClient(
            provider=provider,
            api_key=self._api_key(provider),
            model=model,
            base_url=base_url,
            max_tokens=s.ai_max_tokens,
            cost_tracker=self.cost_tracker,
        )

    def resolve_provider(self, provider: str | None) -> str:
        """Name of the provider that will actually serve the request."""
        requested = provider or self.default_provider
        if self.is_provider_available(requested):
            return requested

        if provider:
            logger.warning(
                "ai_provider_fallback",
                requested=provider,
                fallback=self.default_provider,
            )
        if self.is_provider_available(self.default_provider):
            return self.default_provider
        raise AIServiceError("Nenhum provedor de IA configurado")

    def get_service(self, provider: str | None = None) -> VisionClient:
        """Get the vision client for a provider, falling back to the default."""
        name = self.resolve_provider(provider)
        client = self._clients.get(name)
        if client is None:
            logger.info("ai_provider_initialized", provider=name)
            client = self._build(name)
            self._clients[name] = client
        return client

    def set_default_provider(self, provider: str) -> bool:
        """Change the default provider. Returns False if it is not available."""
        if not self.is_provider_available(provider):
            logger.warning(
                "ai_default_provider_rejected",
                provider=provider,
                available=self.available_providers(),
            )
            return False
        self.default_provider = provider
        logger.info("ai_default_provider_changed", provider=provider)
        return True

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


@lru_cache(maxsize=1)
def get_ai_factory() -> AIServiceFactory:
    """Get the process-wide provider factory."""
    return AIServiceFactory()


async def close_ai_factory() -> None:
    """Close and clear the shared factory (used at app shutdown)."""
    if get_ai_factory.cache_info().currsize:
        await get_ai_factory().close()
    get_ai_factory.cache_clear()
