"""Supabase authentication provider implementation."""

from typing import Any

from jose import JWTError, jwt

from leitordocs.config import Settings, get_settings
from leitordocs.infrastructure.auth.provider import AuthProvider, AuthUser
from leitordocs.shared.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)


def _allowed_companies(metadata: dict[str, Any]) -> tuple[str, ...] | None:
    companies = metadata.get("allowed_companies")
    if companies is None:
        return None
    if isinstance(companies, str):
        companies = [companies]
    if not isinstance(companies, list):
        return None
    return tuple(c for c in companies if isinstance(c, str) and c)


class SupabaseAuthProvider(AuthProvider):
    """Supabase Auth implementation.

    Verifies the HS256 access tokens issued by Supabase. The role and company
    allow-list are read from ``app_metadata`` (set by admins), falling back to
    ``user_metadata``.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.jwt_secret = settings.supabase_jwt_secret

    async def verify_token(self, token: str) -> AuthUser:
        """Verify Supabase JWT and extract user info."""
        if not self.jwt_secret:
            raise AuthenticationError("Sistema de autenticação não configurado")

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token expirado")
        except JWTError as e:
            logger.warning("jwt_decode_failed", error=str(e))
            raise TokenInvalidError("Token inválido ou expirado")

        user_id = payload.get("sub")
        if not user_id:
            raise TokenInvalidError("Token sem identificação de usuário")

        app_metadata = payload.get("app_metadata") or {}
        user_metadata = payload.get("user_metadata") or {}
        role = app_metadata.get("role") or user_metadata.get("role") or "user"
        companies = _allowed_companies(app_metadata)
        if companies is None:
            companies = _allowed_companies(user_metadata)

        return AuthUser(
            id=user_id,
            email=payload.get("email", ""),
            role=role,
            allowed_companies=companies,
        )
