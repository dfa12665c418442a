"""Health check endpoints."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from leitordocs.api.ratelimit import RATE_LIMIT_HEALTH, limiter

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
@limiter.limit(RATE_LIMIT_HEALTH)
async def health_check(request: Request) -> HealthResponse:
    """Basic health check - always returns OK if service is running."""
    from leitordocs import __version__

    _ = request
    return HealthResponse(status="healthy", version=__version__)
