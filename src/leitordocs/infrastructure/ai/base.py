"""Shared types for AI vision providers."""

import json
import re
from dataclasses import dataclass
from typing import Any, Protocol

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class AIResponse:
    """Response from an AI vision call."""

    content: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost_cents: float
    latency_ms: float


class VisionClient(Protocol):
    """Protocol for AI providers that read documents."""

    provider: str
    default_model: str

    async def analyze_image(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str,
        file_name: str = "",
    ) -> AIResponse: ...

    async def analyze_pdf(
        self,
        pdf_data: bytes,
        prompt: str,
        file_name: str = "",
    ) -> AIResponse: ...

    async def close(self) -> None: ...


def parse_analysis(content: str | None) -> Any:
    """Turn a provider reply into the analysis payload.

    Providers are asked for plain text or JSON. A JSON object (optionally in a
    markdown code fence) is returned parsed; anything else is returned as the
    stripped text.
    """
    if not content:
        return content
    text = _CODE_FENCE.sub("", content.strip()).strip()
    if text.startswith("{"):
        try:
            parsed = json.loads(text)
        except ValueError:
            return text
        if isinstance(parsed, dict):
            return parsed
    return text
