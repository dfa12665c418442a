"""Development authentication provider for local testing.

This provider bypasses real authentication and returns a fixed admin user.
NEVER use in production!
"""

from leitordocs.infrastructure.auth.provider import AuthProvider, AuthUser
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

DEV_USER_ID = "00000000-0000-0000-0000-000000000001"


class DevAuthProvider(AuthProvider):
    """Development auth provider that accepts any token."""

    def __init__(self, role: str = "master") -> None:
        self.role = role

    async def verify_token(self, token: str) -> AuthUser:
        """Accept any token and return a mock dev user."""
        logger.warning(
            "dev_auth_used",
            message="Using development auth - DO NOT USE IN PRODUCTION",
        )
        return AuthUser(id=DEV_USER_ID, email="dev@leitordocs.local", role=self.role)
