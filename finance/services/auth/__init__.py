"""Authentication services package."""

from finance.services.auth.service import (
    AuthError,
    AuthServiceInterface,
    AuthSession,
    InMemoryAuthService,
    SupabaseAuthService,
)

__all__ = [
    "AuthError",
    "AuthServiceInterface",
    "AuthSession",
    "InMemoryAuthService",
    "SupabaseAuthService",
]
