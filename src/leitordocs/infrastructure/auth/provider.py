"""Abstract authentication provider interface.

The rest of the application only sees ``AuthUser``; swapping Supabase for
another identity provider means writing one more ``AuthProvider``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leitordocs.shared.context import UserContext


@dataclass(frozen=True)
class AuthUser:
    """Authenticated user data from the auth provider."""

    id: str  # Supabase user UUID
    email: str
    role: str = "user"
    allowed_companies: tuple[str, ...] | None = None  # None: no restriction

    def to_user_context(self) -> "UserContext":
        """Convert to UserContext for request processing."""
        from leitordocs.shared.context import UserContext

        return UserContext(
            user_id=self.id,
            user_role=self.role,
            allowed_companies=self.allowed_companies,
        )


class AuthProvider(ABC):
    """Abstract authentication provider.

    Implementations:
    - SupabaseAuthProvider: Supabase Auth JWTs
    - DevAuthProvider: accepts any token, for local testing
    """

    @abstractmethod
    async def verify_token(self, token: str) -> AuthUser:
        """Verify a JWT token and return the authenticated user.

        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token is invalid
            AuthenticationError: For other auth failures
        """

    async def close(self) -> None:
        """Release provider resources."""
