"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Supabase is the production backend; the in-memory backend has the same
semantics and backs the tests and the offline demo.
"""

from finance.services.storage.interface import (
    AUDIT_TABLE,
    TABLE_NAMES,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    table_for,
)
from finance.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)
from finance.services.storage.supabase_storage import (
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    "AUDIT_TABLE",
    "TABLE_NAMES",
    "table_for",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    # Supabase implementation
    "SupabaseAuditStorage",
    "SupabaseClient",
    "SupabaseFinanceStorage",
]
