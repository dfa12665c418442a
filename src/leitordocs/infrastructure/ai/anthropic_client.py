"""Anthropic Claude vision client."""

import base64
import time
from typing import Any

import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from leitordocs.infrastructure.ai.base import AIResponse
from leitordocs.infrastructure.ai.cost_tracker import CostTracker
from leitordocs.infrastructure.ai.prompts import GLOBAL_SYSTEM_INSTRUCTIONS
from leitordocs.shared.exceptions import AIRateLimitError, AIServiceError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

PROVIDER = "anthropic"


def map_anthropic_error(exc: Exception) -> AIServiceError:
    """Translate SDK exceptions into our error hierarchy."""
    if isinstance(exc, anthropic.RateLimitError):
        logger.warning("ai_rate_limited", provider=PROVIDER, error=str(exc))
        return AIRateLimitError("Serviço de IA sobrecarregado. Tente novamente mais tarde.")
    if isinstance(exc, anthropic.APIStatusError):
        logger.error("ai_api_error", provider=PROVIDER, status=exc.status_code, error=str(exc))
        return AIServiceError(f"Erro no serviço de IA ({PROVIDER}): {exc.status_code}")
    if isinstance(exc, anthropic.APIConnectionError):
        logger.error("ai_connection_error", provider=PROVIDER, error=str(exc))
        return AIServiceError(f"Falha de conexão com o serviço de IA ({PROVIDER})")
    logger.exception("ai_unexpected_error", provider=PROVIDER, error=str(exc))
    return AIServiceError(f"Erro inesperado de IA ({PROVIDER}): {exc}")


class AnthropicVisionClient:
    """Wrapper for the Anthropic Messages API with image and PDF blocks.

    Features:
    - Automatic cost tracking
    - Retry logic with exponential backoff
    - Structured logging
    """

    provider = PROVIDER

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        # Async client: the analysis endpoint must not block the event loop
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.default_model = model
        self.max_tokens = max_tokens
        self.cost_tracker = cost_tracker or CostTracker()

    @retry(
        retry=retry_if_exception_type(AIServiceError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def _complete(self, content: list[dict[str, Any]], action: str) -> AIResponse:
        model = self.default_model
        start_time = time.monotonic()

        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                temperature=0.1,
                system=GLOBAL_SYSTEM_INSTRUCTIONS,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            raise map_anthropic_error(e) from e

        latency_ms = (time.monotonic() - start_time) * 1000

        usage_record = self.cost_tracker.record(
            provider=PROVIDER,
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            action=action,
        )

        logger.debug(
            "ai_completion_success",
            provider=PROVIDER,
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=round(latency_ms, 2),
        )

        return AIResponse(
            content=response.content[0].text,
            provider=PROVIDER,
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=usage_record.total_tokens,
            cost_cents=usage_record.cost_cents,
            latency_ms=latency_ms,
        )

    async def analyze_image(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str,
        file_name: str = "",
    ) -> AIResponse:
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": mime_type,
                    "data": base64.b64encode(image_data).decode("ascii"),
                },
            },
            {"type": "text", "text": prompt},
        ]
        return await self._complete(content, action="image_analysis")

    async def analyze_pdf(
        self,
        pdf_data: bytes,
        prompt: str,
        file_name: str = "",
    ) -> AIResponse:
        content = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": base64.b64encode(pdf_data).decode("ascii"),
                },
            },
            {"type": "text", "text": prompt},
        ]
        return await self._complete(content, action="pdf_analysis")

    async def close(self) -> None:
        await self.client.close()
