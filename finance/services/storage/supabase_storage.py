"""
Supabase Storage Implementation

DESIGN DECISION: Supabase is the backend because it gives us, in one
managed service:
1. A Postgres database with auto-generated REST access
2. Session-based auth
3. Row-level security, so a user only ever sees their own rows

TRADEOFFS:
- Aggregations happen in Python over the month's rows (they are small)
- No multi-row transactions (every write is a single-row call)
- The client is synchronous; async methods call it directly

The implementation follows the abstract interface, so pages and flows
never touch the SDK.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client, create_client
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance.config import SupabaseSettings, get_settings
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
from finance.services.storage.interface import (
    AUDIT_TABLE,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    R,
    StorageConnectionError,
    StorageError,
    table_for,
)


logger = structlog.get_logger(__name__)

# Postgres error code for unique_violation
UNIQUE_VIOLATION = "23505"

TRANSACTION_SELECT = "*, categories(name), cards(name)"

# Rows per request when reading a month of audit history
AUDIT_PAGE_SIZE = 1000

# Retries only cover the network; API errors are final.
retry_on_connection = retry(
    retry=retry_if_exception_type(StorageConnectionError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    reraise=True,
)


class SupabaseClient:
    """
    Thin wrapper around the Supabase SDK client.

    Handles lazy creation and exposes the pieces the storage and
    auth services need. One instance per user session: the SDK
    attaches the signed-in user's token to every later query.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def connect(self) -> Client:
        """Create the SDK client on first use."""
        if self._client is None:
            settings = self._settings or get_settings().supabase
            try:
                self._client = create_client(settings.url, settings.anon_key)
            except Exception as e:
                raise StorageConnectionError(f"Failed to create Supabase client: {e}")
        return self._client

    def table(self, name: str):
        """Query builder for a table."""
        return self.connect().table(name)

    @property
    def auth(self):
        return self.connect().auth


def execute(query, action: str):
    """
    Run a built query, translating SDK errors into storage errors.

    Returns the SDK response (with `.data` and `.count`).
    """
    try:
        return query.execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise DuplicateError(f"Failed to {action}: {e.message}")
        raise StorageError(f"Failed to {action}: {e.message}")
    except httpx.TransportError as e:
        raise StorageConnectionError(f"Failed to {action}: {e}")


def row_to_transaction(row: dict[str, Any]) -> Transaction:
    """Flatten the embedded categories(name)/cards(name) objects."""
    data = dict(row)
    category = data.pop("categories", None) or {}
    card = data.pop("cards", None) or {}
    data["category_name"] = category.get("name")
    data["card_name"] = card.get("name")
    return Transaction.model_validate(data)


def row_to_record(model: type[R], row: dict[str, Any]) -> R:
    if model is Transaction:
        return row_to_transaction(row)
    return model.model_validate(row)


class SupabaseFinanceStorage(FinanceStorageInterface):
    """
    Supabase implementation of the finance tables.

    Every query carries `eq("user_id", ...)`; row-level security
    enforces the same thing server side.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _select(self, model: type[Record], **kwargs):
        columns = TRANSACTION_SELECT if model is Transaction else "*"
        return self._client.table(table_for(model)).select(columns, **kwargs)

    @retry_on_connection
    async def insert(self, record: R) -> R:
        model = type(record)
        response = execute(
            self._client.table(table_for(model)).insert(record.to_row()),
            f"insert into {table_for(model)}",
        )
        if not response.data:
            raise StorageError(f"Insert into {table_for(model)} returned no row")
        if model is Transaction:
            # Re-read to pick up the joined category/card names
            stored = await self.get(Transaction, record.user_id, record.id)
            if stored is not None:
                return stored
        return row_to_record(model, response.data[0])

    @retry_on_connection
    async def update(self, record: R) -> R:
        model = type(record)
        row = record.to_row()
        row.pop("id")
        response = execute(
            self._client.table(table_for(model))
            .update(row)
            .eq("id", str(record.id))
            .eq("user_id", str(record.user_id)),
            f"update {table_for(model)}",
        )
        if not response.data:
            raise NotFoundError(f"{model.__name__} not found: {record.id}")
        if model is Transaction:
            stored = await self.get(Transaction, record.user_id, record.id)
            if stored is not None:
                return stored
        return row_to_record(model, response.data[0])

    @retry_on_connection
    async def delete(self, model: type[R], user_id: UUID, record_id: UUID) -> bool:
        response = execute(
            self._client.table(table_for(model))
            .delete()
            .eq("id", str(record_id))
            .eq("user_id", str(user_id)),
            f"delete from {table_for(model)}",
        )
        return bool(response.data)

    @retry_on_connection
    async def get(self, model: type[R], user_id: UUID, record_id: UUID) -> Optional[R]:
        response = execute(
            self._select(model)
            .eq("id", str(record_id))
            .eq("user_id", str(user_id))
            .limit(1),
            f"read {table_for(model)}",
        )
        if not response.data:
            return None
        return row_to_record(model, response.data[0])

    @retry_on_connection
    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        query = self._select(Transaction, count="exact").eq("user_id", str(user_id))
        for column, value in (filters or TransactionFilter()).as_eq_filters().items():
            query = query.eq(column, value)
        query = query.order("transaction_date", desc=True).order("created_at", desc=True)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)

        response = execute(query, "list transactions")
        transactions = [row_to_transaction(row) for row in response.data or []]
        total = response.count if response.count is not None else len(transactions)
        return transactions, total

    @retry_on_connection
    async def list_categories(
        self,
        user_id: UUID,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        query = self._select(Category).eq("user_id", str(user_id))
        if category_type is not None:
            query = query.eq("type", category_type.value)
        response = execute(query.order("name"), "list categories")
        return [Category.model_validate(row) for row in response.data or []]

    @retry_on_connection
    async def list_cards(self, user_id: UUID) -> list[CreditCard]:
        response = execute(
            self._select(CreditCard).eq("user_id", str(user_id)).order("name"),
            "list cards",
        )
        return [CreditCard.model_validate(row) for row in response.data or []]

    @retry_on_connection
    async def get_monthly_settings(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> Optional[MonthlySettings]:
        response = execute(
            self._select(MonthlySettings)
            .eq("user_id", str(user_id))
            .eq("month", month)
            .eq("year", year)
            .limit(1),
            "read monthly settings",
        )
        if not response.data:
            return None
        return MonthlySettings.model_validate(response.data[0])

    @retry_on_connection
    async def get_latest_monthly_settings(self, user_id: UUID) -> Optional[MonthlySettings]:
        response = execute(
            self._select(MonthlySettings)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(1),
            "read latest monthly settings",
        )
        if not response.data:
            return None
        return MonthlySettings.model_validate(response.data[0])

    @retry_on_connection
    async def get_preferences(self, user_id: UUID) -> Optional[UserPreferences]:
        response = execute(
            self._select(UserPreferences).eq("user_id", str(user_id)).limit(1),
            "read preferences",
        )
        if not response.data:
            return None
        return UserPreferences.model_validate(response.data[0])

    @retry_on_connection
    async def list_goals(self, user_id: UUID, month: int, year: int) -> list[MonthlyGoal]:
        response = execute(
            self._select(MonthlyGoal)
            .eq("user_id", str(user_id))
            .eq("month", month)
            .eq("year", year)
            .order("created_at"),
            "list goals",
        )
        return [MonthlyGoal.model_validate(row) for row in response.data or []]


class SupabaseAuditStorage(AuditStorageInterface):
    """
    Supabase implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            execute(self._client.table(AUDIT_TABLE).insert(event.to_row()), "append audit event")
            return True
        except StorageError as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.id))
            return False

    @retry_on_connection
    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 500,
    ) -> list[AuditEvent]:
        response = execute(
            self._client.table(AUDIT_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("changed_at", desc=True)
            .limit(limit),
            "read audit log",
        )
        return [AuditEvent.model_validate(row) for row in response.data or []]

    @retry_on_connection
    async def get_events_between(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[AuditEvent]:
        """Read the range in pages; the API caps rows per request."""
        events: list[AuditEvent] = []
        offset = 0
        while True:
            response = execute(
                self._client.table(AUDIT_TABLE)
                .select("*")
                .eq("user_id", str(user_id))
                .gte("changed_at", start.isoformat())
                .lt("changed_at", end.isoformat())
                .order("changed_at", desc=True)
                .range(offset, offset + AUDIT_PAGE_SIZE - 1),
                "read audit log",
            )
            rows = response.data or []
            events.extend(AuditEvent.model_validate(row) for row in rows)
            if len(rows) < AUDIT_PAGE_SIZE:
                return events
            offset += AUDIT_PAGE_SIZE

    @retry_on_connection
    async def get_events_by_entity(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        response = execute(
            self._client.table(AUDIT_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("entity_type", entity_type.value)
            .eq("entity_id", str(entity_id))
            .order("changed_at"),
            "read audit log",
        )
        return [AuditEvent.model_validate(row) for row in response.data or []]
