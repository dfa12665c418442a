"""Monthly analysis credits, stored and debited atomically in Supabase."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from leitordocs.infrastructure.supabase.client import SupabaseRestClient
from leitordocs.shared.exceptions import (
    CreditDebitError,
    CreditsUnavailableError,
    SupabaseError,
)
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


class UserCredits(BaseModel):
    """A user's credits for the current month."""

    credits_used: int
    credits_limit: int
    credits_remaining: int
    month_year: str


class DebitResult(BaseModel):
    success: bool
    credits_used: int | None = None
    credits_limit: int | None = None
    credits_remaining: int | None = None


class CreditsService:
    """Reads and debits credits through the ``get_user_credits`` and
    ``debit_user_credit`` RPC functions.

    There is no fallback: when credits cannot be verified the caller must
    refuse the analysis.
    """

    def __init__(self, rest: SupabaseRestClient, default_limit: int = 2500) -> None:
        self.rest = rest
        self.default_limit = default_limit

    async def get_user_credits(self, user_id: str) -> UserCredits:
        """Get the user's credits for the current month.

        Raises:
            CreditsUnavailableError: If Supabase is not configured or fails
        """
        if not self.rest.is_configured or not user_id:
            raise CreditsUnavailableError()

        try:
            data: Any = await self.rest.rpc("get_user_credits", {"p_user_id": user_id})
        except SupabaseError as e:
            logger.error("credits_lookup_failed", error=e.message)
            raise CreditsUnavailableError() from e

        if not data:
            # No row yet for this month: the first debit creates it
            return UserCredits(
                credits_used=0,
                credits_limit=self.default_limit,
                credits_remaining=self.default_limit,
                month_year=datetime.now(UTC).strftime("%Y-%m"),
            )

        row = data[0] if isinstance(data, list) else data
        return UserCredits.model_validate(row)

    async def debit_credit(self, user_id: str, amount: int = 1) -> DebitResult:
        """Debit credits after a successful analysis.

        Raises:
            ValueError: If amount is not positive
            CreditDebitError: If the debit was refused or failed
        """
        if amount <= 0:
            raise ValueError("Quantidade deve ser maior que zero")
        if not self.rest.is_configured or not user_id:
            raise CreditDebitError()

        try:
            data: Any = await self.rest.rpc(
                "debit_user_credit", {"p_user_id": user_id, "p_amount": amount}
            )
        except SupabaseError as e:
            logger.error("credit_debit_failed", error=e.message)
            raise CreditDebitError() from e

        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict) or not row.get("success"):
            logger.error(
                "credit_debit_refused",
                error=row.get("error") if isinstance(row, dict) else None,
            )
            raise CreditDebitError()

        result = DebitResult.model_validate(row)
        logger.info("credit_debited", amount=amount, credits_remaining=result.credits_remaining)
        return result

    async def has_enough_credits(self, user_id: str, amount: int = 1) -> bool:
        try:
            credits = await self.get_user_credits(user_id)
        except CreditsUnavailableError:
            return False
        return credits.credits_remaining >= amount
