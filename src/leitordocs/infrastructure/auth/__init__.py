"""Authentication providers."""

from leitordocs.infrastructure.auth.provider import AuthProvider, AuthUser

__all__ = ["AuthProvider", "AuthUser"]
