"""Authentication dependencies for FastAPI."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from leitordocs.config import Settings, get_settings
from leitordocs.infrastructure.auth.provider import AuthProvider, AuthUser
from leitordocs.shared.context import ADMIN_ROLES, set_user_context
from leitordocs.shared.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

# HTTP Bearer scheme
security = HTTPBearer(auto_error=False)


def build_auth_provider(settings: Settings) -> AuthProvider:
    """Build the configured auth provider.

    Set AUTH_PROVIDER env var to "dev" for local testing without Supabase.
    """
    if settings.auth_provider == "dev":
        from leitordocs.infrastructure.auth.dev import DevAuthProvider

        return DevAuthProvider()

    from leitordocs.infrastructure.auth.supabase import SupabaseAuthProvider

    return SupabaseAuthProvider(settings)


def get_auth_provider(request: Request) -> AuthProvider:
    """Get a cached auth provider instance (per FastAPI app)."""
    provider = getattr(request.app.state, "auth_provider", None)
    if provider is None:
        provider = build_auth_provider(get_settings())
        request.app.state.auth_provider = provider
    return provider


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_provider: Annotated[AuthProvider, Depends(get_auth_provider)],
) -> AuthUser:
    """Dependency to get the current authenticated user."""
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Token de autenticação não fornecido",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = await auth_provider.verify_token(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(
            status_code=401,
            detail="Token expirado. Faça login novamente.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except TokenInvalidError as e:
        logger.info("auth_token_invalid", path=request.url.path)
        raise HTTPException(
            status_code=401,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthenticationError as e:
        logger.warning("auth_failed", error=e.message, path=request.url.path)
        raise HTTPException(
            status_code=401,
            detail="Erro ao autenticar usuário",
            headers={"WWW-Authenticate": "Bearer"},
        )

    set_user_context(user.to_user_context())

    # Rate limiter keys on the authenticated user
    request.state.user = user

    logger.debug("user_authenticated", user_id=user.id, role=user.role)
    return user


def require_role(*roles: str) -> Callable[[AuthUser], Awaitable[AuthUser]]:
    """Dependency factory to require specific roles.

    Usage:
        @router.get("/dashboard/alerts")
        async def alerts(user: AuthUser = Depends(require_role("master"))):
            ...
    """

    async def check_role(
        user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if user.role not in roles:
            logger.warning("role_denied", user_id=user.id, role=user.role, required=roles)
            raise HTTPException(
                status_code=403,
                detail="Acesso negado. Apenas administradores podem acessar este recurso.",
            )
        return user

    return check_role


RequireAdmin = Annotated[AuthUser, Depends(require_role(*ADMIN_ROLES))]

# Type alias for authenticated user
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
