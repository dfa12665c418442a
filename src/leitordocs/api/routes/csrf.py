"""CSRF token endpoint."""

from fastapi import APIRouter

from leitordocs.api.middleware.csrf import CsrfTokenDep
from leitordocs.api.schemas import CsrfTokenResponse

router = APIRouter(tags=["Security"])


@router.get("/csrf-token", response_model=CsrfTokenResponse)
async def get_csrf_token(token: CsrfTokenDep) -> CsrfTokenResponse:
    """Return the CSRF token, setting the cookie if the client has none yet.

    The frontend echoes the token in the ``x-csrf-token`` header on every
    state-changing request.
    """
    return CsrfTokenResponse(csrf_token=token)
