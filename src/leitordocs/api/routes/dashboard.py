"""Admin dashboard endpoints."""

from datetime import date

from fastapi import APIRouter, Query, Request

from leitordocs.api.deps import AnalysisLogsDep
from leitordocs.api.middleware.auth import RequireAdmin
from leitordocs.api.ratelimit import RATE_LIMIT_DEFAULT, limiter
from leitordocs.api.schemas import AlertsResponse
from leitordocs.domain.audit import summarize_alerts

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/alerts", response_model=AlertsResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_alerts(
    request: Request,
    user: RequireAdmin,
    logs: AnalysisLogsDep,
    start_date: date | None = Query(None, alias="startDate"),
    recent: int = Query(5, ge=1, le=50),
) -> AlertsResponse:
    """Audit alerts raised on recent analyses, grouped by type."""
    _ = request, user
    rows = await logs.list_recent(start_date=start_date.isoformat() if start_date else None)
    return AlertsResponse(data=summarize_alerts(rows, recent_limit=recent))
