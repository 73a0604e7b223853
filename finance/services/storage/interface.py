"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Talk to Supabase in production
2. Use in-memory storage for testing and offline demos
3. Keep business logic decoupled from the backend SDK

The interface is intentionally simple - we're not building a full ORM.
Row operations are generic over the record type; only the queries the
pages actually issue get their own method.

Every method takes the acting user's id and scopes the query to it,
on top of whatever row-level security the backend enforces.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, TypeVar
from uuid import UUID

from finance.models.records import (
    Category,
    CategoryType,
    CreditCard,
    MonthlyGoal,
    MonthlySettings,
    Record,
    Transaction,
    TransactionFilter,
    UserPreferences,
)
from finance.models.audit import AuditEntityType, AuditEvent


R = TypeVar("R", bound=Record)


# Backend table for each record type
TABLE_NAMES: dict[type[Record], str] = {
    Transaction: "transactions",
    Category: "categories",
    CreditCard: "cards",
    MonthlySettings: "user_monthly_settings",
    UserPreferences: "user_preferences",
    MonthlyGoal: "monthly_goals",
}

AUDIT_TABLE = "audit_log"


def table_for(model: type[Record]) -> str:
    """Table name for a record type."""
    try:
        return TABLE_NAMES[model]
    except KeyError:
        raise StorageError(f"No table mapped for {model.__name__}")


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the finance tables.

    Any storage implementation (Supabase, in-memory, ...)
    must implement these methods.
    """

    # -- generic row operations -------------------------------------------

    @abstractmethod
    async def insert(self, record: R) -> R:
        """
        Insert a new row.

        Returns:
            The row as stored (joined fields filled where applicable)

        Raises:
            DuplicateError: If a uniqueness rule is violated
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update(self, record: R) -> R:
        """
        Replace an existing row (matched by id and user_id).

        Raises:
            NotFoundError: If the row doesn't exist for this user
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, model: type[R], user_id: UUID, record_id: UUID) -> bool:
        """
        Delete a row.

        Returns:
            True if a row was deleted, False if nothing matched
        """
        pass

    @abstractmethod
    async def get(self, model: type[R], user_id: UUID, record_id: UUID) -> Optional[R]:
        """Fetch a single row by id, or None."""
        pass

    # -- queries ----------------------------------------------------------

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """
        List transactions, newest transaction_date first.

        Args:
            user_id: Owner
            filters: Equality filters (None fields are ignored)
            limit: Page size (None for all rows)
            offset: Rows to skip

        Returns:
            (page_of_transactions, exact_total_count)
        """
        pass

    @abstractmethod
    async def list_categories(
        self,
        user_id: UUID,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        """List categories ordered by name, optionally of a single type."""
        pass

    @abstractmethod
    async def list_cards(self, user_id: UUID) -> list[CreditCard]:
        """List cards ordered by name."""
        pass

    @abstractmethod
    async def get_monthly_settings(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> Optional[MonthlySettings]:
        """Settings row for one month, or None if it was never created."""
        pass

    @abstractmethod
    async def get_latest_monthly_settings(self, user_id: UUID) -> Optional[MonthlySettings]:
        """Most recently created settings row, or None."""
        pass

    @abstractmethod
    async def get_preferences(self, user_id: UUID) -> Optional[UserPreferences]:
        """The user's preferences row, or None."""
        pass

    @abstractmethod
    async def list_goals(self, user_id: UUID, month: int, year: int) -> list[MonthlyGoal]:
        """Goals for one month, oldest first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 500,
    ) -> list[AuditEvent]:
        """
        Get the user's most recent audit events.

        Returns:
            List of events (newest first)
        """
        pass

    @abstractmethod
    async def get_events_between(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[AuditEvent]:
        """
        Get every event with start <= changed_at < end.

        Returns:
            List of events (newest first)
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
