"""Persistence of analysis history in the ``analysis_logs`` table."""

import json
from dataclasses import dataclass, field
from typing import Any

from leitordocs.infrastructure.supabase.client import SupabaseRestClient
from leitordocs.shared.exceptions import SupabaseError
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

TABLE = "analysis_logs"


@dataclass
class AnalysisLogEntry:
    """One analysis attempt, successful or not."""

    analysis_type: str
    provider: str | None
    company: str | None
    file_name: str | None
    file_hash: str | None = None
    is_from_cache: bool = False
    processing_time_ms: int | None = None
    success: bool = True
    error_message: str | None = None
    credits_debited: int = 0
    raw_response: Any = None
    ai_alerts: list[str] = field(default_factory=list)


def normalize_raw_response(raw: Any) -> dict[str, Any] | list[Any] | None:
    """Store provider replies as JSONB; plain text is wrapped as ``{"raw": ...}``."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {"raw": raw}
        return parsed if isinstance(parsed, (dict, list)) else {"raw": raw}
    if isinstance(raw, (dict, list)):
        return raw
    return {"raw": str(raw)}


class AnalysisLogRepository:
    """Writes and reads analysis logs with the service-role client."""

    def __init__(self, rest: SupabaseRestClient) -> None:
        self.rest = rest

    async def log_analysis(self, user_id: str, entry: AnalysisLogEntry) -> dict[str, Any] | None:
        """Persist an analysis log. Best effort: failures are logged, never raised."""
        if not self.rest.is_configured or not user_id:
            logger.warning("analysis_log_skipped", reason="supabase_not_configured")
            return None

        row = {
            "user_id": user_id,
            "analysis_type": entry.analysis_type or "unknown",
            "provider": entry.provider,
            "company": entry.company,
            "file_name": entry.file_name,
            "file_hash": entry.file_hash,
            "is_from_cache": entry.is_from_cache,
            "processing_time_ms": entry.processing_time_ms,
            "success": entry.success,
            "error_message": entry.error_message,
            "credits_debited": entry.credits_debited,
            "raw_response": normalize_raw_response(entry.raw_response),
            "ai_alerts": [a for a in entry.ai_alerts if a and isinstance(a, str)],
        }

        try:
            return await self.rest.insert(TABLE, row)
        except SupabaseError as e:
            logger.warning("analysis_log_failed", error=e.message, success=entry.success)
            return None

    async def list_user_analyses(
        self,
        user_id: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        analysis_type: str | None = None,
        provider: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(limit),
            "offset": str(offset),
        }
        if start_date and end_date:
            params["and"] = f"(created_at.gte.{start_date},created_at.lte.{end_date})"
        elif start_date:
            params["created_at"] = f"gte.{start_date}"
        elif end_date:
            params["created_at"] = f"lte.{end_date}"
        if analysis_type:
            params["analysis_type"] = f"eq.{analysis_type}"
        if provider:
            params["provider"] = f"eq.{provider}"
        return await self.rest.select(TABLE, params)

    async def list_recent(
        self,
        *,
        start_date: str | None = None,
        limit: int = 1000,
    ) -> list[dict[str, Any]]:
        """Recent logs across all users, for dashboard aggregation."""
        params = {
            "select": "file_name,company,created_at,ai_alerts,success,provider",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if start_date:
            params["created_at"] = f"gte.{start_date}"
        return await self.rest.select(TABLE, params)
