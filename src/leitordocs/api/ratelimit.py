"""Rate limiting configuration for API endpoints.

Uses slowapi with in-memory storage; each API process keeps its own counters.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


def _get_rate_limit_key(request: Request) -> str:
    """Get rate limit key based on user or IP.

    For authenticated requests, use user_id.
    For unauthenticated requests, use IP address.
    """
    # Set by the auth dependency
    if hasattr(request.state, "user") and request.state.user:
        return f"user:{request.state.user.id}"

    return get_remote_address(request)


def _create_limiter(storage_uri: str = "memory://") -> Limiter:
    return Limiter(
        key_func=_get_rate_limit_key,
        storage_uri=storage_uri,
        strategy="fixed-window",
    )


limiter = _create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for rate limit exceeded errors."""
    logger.warning(
        "rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        key=_get_rate_limit_key(request),
        limit=str(exc.detail),
    )

    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Muitas requisições. Aguarde um momento e tente novamente.",
            "detail": str(exc.detail),
            "retry_after": retry_after,
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(exc.detail).split("/")[0] if "/" in str(exc.detail) else "unknown",
        },
    )


# ----- Rate Limit Decorators -----
# Usage: @limiter.limit(RATE_LIMIT_ANALYZE)

RATE_LIMIT_DEFAULT = "100/minute"  # General API calls
RATE_LIMIT_AUTH = "5/minute"  # Token-sensitive endpoints
RATE_LIMIT_ANALYZE = "60/minute"  # AI analysis (expensive; batches send many)
RATE_LIMIT_HEALTH = "60/minute"  # Health checks
