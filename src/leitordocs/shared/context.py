"""Request context for the authenticated operator."""

from contextvars import ContextVar
from dataclasses import dataclass

ADMIN_ROLES = ("master", "admin")


@dataclass(frozen=True)
class UserContext:
    """Context for the current request's user."""

    user_id: str
    user_role: str
    allowed_companies: tuple[str, ...] | None = None

    def is_admin(self) -> bool:
        return self.user_role in ADMIN_ROLES

    def can_access_company(self, company: str) -> bool:
        """Admins see every company; operators only their allow-list (if any)."""
        if self.is_admin() or self.allowed_companies is None:
            return True
        return company in self.allowed_companies


# Context variable to hold user info for current request
_user_context: ContextVar[UserContext | None] = ContextVar("user_context", default=None)


def set_user_context(ctx: UserContext) -> None:
    """Set the user context for the current request."""
    _user_context.set(ctx)


def get_optional_user_context() -> UserContext | None:
    """Get the user context if available, None otherwise."""
    return _user_context.get()
