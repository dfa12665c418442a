"""Company prompt and naming-pattern lookup."""

from dataclasses import dataclass
from typing import Any

from leitordocs.infrastructure.supabase.client import SupabaseRestClient

TABLE = "companies"


@dataclass(frozen=True)
class CompanyPromptConfig:
    receipt_prompt: str | None
    payment_prompt: str | None
    naming_pattern: str | None

    def prompt_for(self, analysis_type: str) -> str | None:
        if analysis_type == "financial-payment":
            return self.payment_prompt
        return self.receipt_prompt


def _extract_pattern(embedded: Any) -> str | None:
    # PostgREST embeds a to-one relation as an object, to-many as a list
    if isinstance(embedded, list):
        embedded = embedded[0] if embedded else None
    if isinstance(embedded, dict):
        pattern = embedded.get("pattern")
        return pattern if isinstance(pattern, str) and pattern else None
    return None


class CompanyRepository:
    def __init__(self, rest: SupabaseRestClient) -> None:
        self.rest = rest

    async def get_prompt_config(self, company_id: str) -> CompanyPromptConfig | None:
        """Prompts and naming pattern of a company, or None if it does not exist."""
        rows = await self.rest.select(
            TABLE,
            {
                "select": "financial_receipt_prompt,financial_payment_prompt,naming_patterns(pattern)",
                "id": f"eq.{company_id}",
                "limit": "1",
            },
        )
        if not rows:
            return None

        row = rows[0]
        return CompanyPromptConfig(
            receipt_prompt=row.get("financial_receipt_prompt") or None,
            payment_prompt=row.get("financial_payment_prompt") or None,
            naming_pattern=_extract_pattern(row.get("naming_patterns")),
        )
