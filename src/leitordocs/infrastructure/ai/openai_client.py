"""Vision client for OpenAI-compatible APIs (OpenAI, Gemini, OpenRouter)."""

import base64
import time
from typing import Any

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from leitordocs.infrastructure.ai.base import AIResponse
from leitordocs.infrastructure.ai.cost_tracker import CostTracker
from leitordocs.infrastructure.ai.prompts import GLOBAL_SYSTEM_INSTRUCTIONS
from leitordocs.shared.exceptions import AIRateLimitError, AIServiceError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


def map_openai_error(provider: str, exc: Exception) -> AIServiceError:
    """Translate SDK exceptions into our error hierarchy."""
    if isinstance(exc, openai.RateLimitError):
        logger.warning("ai_rate_limited", provider=provider, error=str(exc))
        return AIRateLimitError("Serviço de IA sobrecarregado. Tente novamente mais tarde.")
    if isinstance(exc, openai.APIStatusError):
        logger.error("ai_api_error", provider=provider, status=exc.status_code, error=str(exc))
        return AIServiceError(f"Erro no serviço de IA ({provider}): {exc.status_code}")
    if isinstance(exc, openai.APIConnectionError):
        logger.error("ai_connection_error", provider=provider, error=str(exc))
        return AIServiceError(f"Falha de conexão com o serviço de IA ({provider})")
    logger.exception("ai_unexpected_error", provider=provider, error=str(exc))
    return AIServiceError(f"Erro inesperado de IA ({provider}): {exc}")


class OpenAICompatibleClient:
    """Wrapper for chat-completions APIs that accept image input.

    Gemini and OpenRouter expose the same wire format as OpenAI, so one
    client covers the three providers; only key, base URL and model differ.
    """

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 1024,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        self.provider = provider
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.default_model = model
        self.max_tokens = max_tokens
        self.cost_tracker = cost_tracker or CostTracker()

    @retry(
        retry=retry_if_exception_type(AIServiceError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def _complete(
        self,
        content: list[dict[str, Any]],
        action: str,
    ) -> AIResponse:
        model = self.default_model
        start_time = time.monotonic()

        try:
            response = await self.client.chat.completions.create(
                model=model,
                max_tokens=self.max_tokens,
                temperature=0.1,
                messages=[
                    {"role": "system", "content": GLOBAL_SYSTEM_INSTRUCTIONS},
                    {"role": "user", "content": content},
                ],
            )
        except Exception as e:
            raise map_openai_error(self.provider, e) from e

        latency_ms = (time.monotonic() - start_time) * 1000
        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0

        usage_record = self.cost_tracker.record(
            provider=self.provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            action=action,
        )

        logger.debug(
            "ai_completion_success",
            provider=self.provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=round(latency_ms, 2),
        )

        return AIResponse(
            content=response.choices[0].message.content or "",
            provider=self.provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
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
        """Read a receipt image with the given prompt."""
        encoded = base64.b64encode(image_data).decode("ascii")
        content = [
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
            },
        ]
        return await self._complete(content, action="image_analysis")

    async def analyze_pdf(
        self,
        pdf_data: bytes,
        prompt: str,
        file_name: str = "",
    ) -> AIResponse:
        """Read a PDF document with the given prompt."""
        encoded = base64.b64encode(pdf_data).decode("ascii")
        content = [
            {"type": "text", "text": prompt},
            {
                "type": "file",
                "file": {
                    "filename": file_name or "documento.pdf",
                    "file_data": f"data:application/pdf;base64,{encoded}",
                },
            },
        ]
        return await self._complete(content, action="pdf_analysis")

    async def close(self) -> None:
        await self.client.close()
