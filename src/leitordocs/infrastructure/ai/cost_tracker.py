"""AI cost tracking for billing and monitoring."""

from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime

from leitordocs.shared.context import get_optional_user_context
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


# AI pricing in USD per 1M tokens
MODEL_PRICING = {
    # Gemini
    "gemini-2.0-flash": {"input": 0.10, "output": 0.40},
    "gemini-1.5-flash": {"input": 0.075, "output": 0.30},
    "gemini-1.5-pro": {"input": 1.25, "output": 5.00},
    # OpenAI
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    # OpenRouter
    "google/gemini-2.0-flash-001": {"input": 0.10, "output": 0.40},
    # Anthropic
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 1.00, "output": 5.00},
}
DEFAULT_PRICING = {"input": 1.00, "output": 4.00}


@dataclass
class UsageRecord:
    """Record of AI usage for billing."""

    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost_cents: float
    action: str
    user_id: str | None
    timestamp: datetime


class CostTracker:
    """Tracks AI usage and costs per provider call."""

    def __init__(self) -> None:
        # Bounded history; the database log is the durable record
        self._buffer: deque[UsageRecord] = deque(maxlen=1_000)

    def calculate_cost(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> float:
        """Calculate cost in cents for token usage."""
        pricing = MODEL_PRICING.get(model)
        if not pricing:
            logger.warning("unknown_model_pricing", model=model)
            pricing = DEFAULT_PRICING

        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]

        return (input_cost + output_cost) * 100

    def record(
        self,
        provider: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        action: str,
    ) -> UsageRecord:
        """Record one provider call and return the usage record."""
        cost_cents = self.calculate_cost(model, input_tokens, output_tokens)

        ctx = get_optional_user_context()
        user_id = ctx.user_id if ctx else None

        record = UsageRecord(
            provider=provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cost_cents=cost_cents,
            action=action,
            user_id=user_id,
            timestamp=datetime.now(UTC),
        )

        logger.debug(
            "ai_usage_recorded",
            provider=provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_cents=round(cost_cents, 4),
            action=action,
        )

        self._buffer.append(record)

        return record

    def recent(self, limit: int = 50) -> list[UsageRecord]:
        """Most recent usage records, newest last."""
        return list(self._buffer)[-limit:]

    def total_cost_cents(self, provider: str | None = None) -> float:
        return sum(
            r.cost_cents for r in self._buffer if provider is None or r.provider == provider
        )
