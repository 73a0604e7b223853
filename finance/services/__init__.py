"""Services package."""

from finance.services.auth import (
    AuthError,
    AuthServiceInterface,
    AuthSession,
    InMemoryAuthService,
    SupabaseAuthService,
)
from finance.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseFinanceStorage,
)

__all__ = [
    # Auth services
    "AuthError",
    "AuthServiceInterface",
    "AuthSession",
    "InMemoryAuthService",
    "SupabaseAuthService",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "FinanceStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "SupabaseAuditStorage",
    "SupabaseClient",
    "SupabaseFinanceStorage",
]
