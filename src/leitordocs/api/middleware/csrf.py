"""CSRF protection using the double-submit cookie pattern.

The browser keeps the token in a cookie readable by the frontend script, which
echoes it back in the ``x-csrf-token`` header. A cross-site form cannot read
the victim's cookie, so it cannot produce a matching header.
"""

import hmac
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

from leitordocs.config import Settings, get_settings
from leitordocs.observability.metrics import CSRF_REJECTIONS
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

CSRF_TOKEN_BYTES = 32
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CsrfCode(str, Enum):
    """Rejection reasons, returned to the client as ``code``."""

    MISSING = "CSRF_MISSING"
    INVALID = "CSRF_INVALID"
    ERROR = "CSRF_ERROR"


CSRF_MESSAGES = {
    CsrfCode.MISSING: "Token CSRF ausente",
    CsrfCode.INVALID: "Token CSRF inválido",
    CsrfCode.ERROR: "Erro na validação CSRF",
}


@dataclass(frozen=True)
class CsrfCheck:
    """Outcome of a CSRF validation. ``code`` is None when the request passes."""

    code: CsrfCode | None = None

    @property
    def passed(self) -> bool:
        return self.code is None


def generate_token() -> str:
    """Generate a cryptographically secure token (32 bytes, hex encoded)."""
    return secrets.token_hex(CSRF_TOKEN_BYTES)


def tokens_match(cookie_token: str, header_token: str) -> bool:
    """Constant-time comparison of the two token copies."""
    cookie_bytes = cookie_token.encode("utf-8")
    header_bytes = header_token.encode("utf-8")
    if len(cookie_bytes) != len(header_bytes):
        return False
    return hmac.compare_digest(cookie_bytes, header_bytes)


def check_tokens(
    method: str,
    cookie_token: str | None,
    header_token: str | None,
) -> CsrfCheck:
    """Validate a request's token pair.

    Safe methods always pass; only mutating verbs are protected.
    """
    if method.upper() in SAFE_METHODS:
        return CsrfCheck()

    if not cookie_token or not header_token:
        return CsrfCheck(CsrfCode.MISSING)

    try:
        if not tokens_match(cookie_token, header_token):
            return CsrfCheck(CsrfCode.INVALID)
    except Exception as e:
        logger.warning("csrf_compare_failed", error_type=type(e).__name__)
        return CsrfCheck(CsrfCode.ERROR)

    return CsrfCheck()


def validate(request: Request, settings: Settings | None = None) -> CsrfCheck:
    """Validate the CSRF cookie/header pair of an incoming request."""
    settings = settings or get_settings()
    return check_tokens(
        request.method,
        request.cookies.get(settings.csrf_cookie_name),
        request.headers.get(settings.csrf_header_name),
    )


def set_csrf_cookie(response: Response, token: str, settings: Settings) -> None:
    # httponly=False: the frontend must read the cookie to echo it in the header
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=token,
        max_age=settings.csrf_token_ttl_seconds,
        httponly=False,
        secure=settings.is_production,
        samesite="strict",
    )


def issue_token(
    request: Request,
    response: Response,
    settings: Settings | None = None,
) -> str:
    """Return the request's CSRF token, creating and setting the cookie if absent.

    An existing cookie token is reused, never rotated.
    """
    settings = settings or get_settings()
    token = request.cookies.get(settings.csrf_cookie_name)

    if not token:
        token = generate_token()
        set_csrf_cookie(response, token, settings)

    request.state.csrf_token = token
    return token


def csrf_error_response(code: CsrfCode) -> JSONResponse:
    """Build the 403 body for a rejected request."""
    return JSONResponse(
        status_code=403,
        content={
            "success": False,
            "error": CSRF_MESSAGES[code],
            "code": code.value,
        },
    )


def csrf_token_generator(request: Request, response: Response) -> str:
    """Dependency for GET routes that precede a state-changing form."""
    return issue_token(request, response)


CsrfTokenDep = Annotated[str, Depends(csrf_token_generator)]


def setup_csrf(app: FastAPI, settings: Settings) -> None:
    """Attach CSRF validation to every request of the app."""
    exempt_paths = settings.csrf_exempt_paths

    @app.middleware("http")
    async def csrf_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in exempt_paths:
            return await call_next(request)

        code = validate(request, settings).code
        if code is not None:
            # Never log token values
            logger.warning(
                "csrf_rejected",
                path=request.url.path,
                method=request.method,
                code=code.value,
            )
            CSRF_REJECTIONS.labels(code=code.value).inc()
            return csrf_error_response(code)

        return await call_next(request)
