"""Provider selection and credits endpoints."""

from fastapi import APIRouter, HTTPException, Request

from leitordocs.api.deps import AIFactoryDep, CreditsDep
from leitordocs.api.middleware.auth import CurrentUser, RequireAdmin
from leitordocs.api.ratelimit import RATE_LIMIT_AUTH, RATE_LIMIT_DEFAULT, limiter
from leitordocs.api.schemas import (
    CreditsResponse,
    ProvidersData,
    ProvidersResponse,
    SetDefaultProviderRequest,
)
from leitordocs.infrastructure.ai.factory import AIServiceFactory
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["System"])


def _providers(factory: AIServiceFactory) -> ProvidersResponse:
    return ProvidersResponse(
        data=ProvidersData(
            providers=factory.available_providers(),
            default=factory.default_provider,
        )
    )


@router.get("/providers", response_model=ProvidersResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def list_providers(
    request: Request,
    user: CurrentUser,
    factory: AIFactoryDep,
) -> ProvidersResponse:
    """AI providers with a configured API key, and the current default."""
    _ = request, user
    return _providers(factory)


@router.post("/providers/default", response_model=ProvidersResponse)
@limiter.limit(RATE_LIMIT_AUTH)
async def set_default_provider(
    request: Request,
    body: SetDefaultProviderRequest,
    user: RequireAdmin,
    factory: AIFactoryDep,
) -> ProvidersResponse:
    _ = request
    if not factory.set_default_provider(body.provider):
        raise HTTPException(status_code=400, detail=f"Provedor não disponível: {body.provider}")
    logger.info("default_provider_set", user_id=user.id, provider=body.provider)
    return _providers(factory)


@router.get("/credits", response_model=CreditsResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_credits(
    request: Request,
    user: CurrentUser,
    credits: CreditsDep,
) -> CreditsResponse:
    """The caller's credits for the current month."""
    _ = request
    return CreditsResponse(data=await credits.get_user_credits(user.id))
