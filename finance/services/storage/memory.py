"""
In-Memory Storage Implementation

Same semantics as the Supabase backend, held in dicts:
- newest-first transaction listing with exact counts
- joined category/card names filled on read
- unique settings per (user, month, year) and preferences per user
- deleting a card or category unlinks its transactions (ON DELETE SET NULL)

Used by the tests and by the offline demo mode of the app.
"""

from datetime import datetime
from typing import Optional
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
from finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    R,
    table_for,
)


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Dict-backed finance tables, keyed by table name then row id."""

    def __init__(self):
        self._tables: dict[str, dict[UUID, Record]] = {}

    def _table(self, model: type[Record]) -> dict[UUID, Record]:
        return self._tables.setdefault(table_for(model), {})

    def _rows(self, model: type[R], user_id: UUID) -> list[R]:
        return [
            r.model_copy(deep=True)
            for r in self._table(model).values()
            if r.user_id == user_id
        ]

    def _join(self, transaction: Transaction) -> Transaction:
        categories = self._table(Category)
        cards = self._table(CreditCard)
        category = categories.get(transaction.category_id) if transaction.category_id else None
        card = cards.get(transaction.card_id) if transaction.card_id else None
        transaction.category_name = category.name if category else None
        transaction.card_name = card.name if card else None
        return transaction

    def _check_unique(self, record: Record) -> None:
        for existing in self._table(type(record)).values():
            if existing.id == record.id or existing.user_id != record.user_id:
                continue
            if isinstance(record, MonthlySettings) and (
                (existing.month, existing.year) == (record.month, record.year)
            ):
                raise DuplicateError(
                    f"Settings for {record.month}/{record.year} already exist"
                )
            if isinstance(record, UserPreferences):
                raise DuplicateError("Preferences already exist for this user")

    def _stored(self, record: R) -> R:
        copy = record.model_copy(deep=True)
        if isinstance(copy, Transaction):
            self._join(copy)
        return copy

    async def insert(self, record: R) -> R:
        table = self._table(type(record))
        if record.id in table:
            raise DuplicateError(f"{type(record).__name__} already exists: {record.id}")
        self._check_unique(record)
        table[record.id] = record.model_copy(deep=True)
        return self._stored(record)

    async def update(self, record: R) -> R:
        table = self._table(type(record))
        existing = table.get(record.id)
        if existing is None or existing.user_id != record.user_id:
            raise NotFoundError(f"{type(record).__name__} not found: {record.id}")
        self._check_unique(record)
        table[record.id] = record.model_copy(deep=True)
        return self._stored(record)

    async def delete(self, model: type[R], user_id: UUID, record_id: UUID) -> bool:
        table = self._table(model)
        existing = table.get(record_id)
        if existing is None or existing.user_id != user_id:
            return False
        del table[record_id]

        if model in (Category, CreditCard):
            column = "category_id" if model is Category else "card_id"
            for transaction in self._table(Transaction).values():
                if getattr(transaction, column) == record_id:
                    setattr(transaction, column, None)
        return True

    async def get(self, model: type[R], user_id: UUID, record_id: UUID) -> Optional[R]:
        existing = self._table(model).get(record_id)
        if existing is None or existing.user_id != user_id:
            return None
        return self._stored(existing)

    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        filters = filters or TransactionFilter()
        matching = [
            self._join(t) for t in self._rows(Transaction, user_id)
            if filters.matches(t)
        ]
        matching.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        total = len(matching)
        if limit is not None:
            matching = matching[offset:offset + limit]
        return matching, total

    async def list_categories(
        self,
        user_id: UUID,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        categories = [
            c for c in self._rows(Category, user_id)
            if category_type is None or c.type == category_type
        ]
        return sorted(categories, key=lambda c: c.name)

    async def list_cards(self, user_id: UUID) -> list[CreditCard]:
        return sorted(self._rows(CreditCard, user_id), key=lambda c: c.name)

    async def get_monthly_settings(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> Optional[MonthlySettings]:
        for settings in self._rows(MonthlySettings, user_id):
            if settings.month == month and settings.year == year:
                return settings
        return None

    async def get_latest_monthly_settings(self, user_id: UUID) -> Optional[MonthlySettings]:
        rows = self._rows(MonthlySettings, user_id)
        if not rows:
            return None
        return max(rows, key=lambda s: s.created_at)

    async def get_preferences(self, user_id: UUID) -> Optional[UserPreferences]:
        rows = self._rows(UserPreferences, user_id)
        return rows[0] if rows else None

    async def list_goals(self, user_id: UUID, month: int, year: int) -> list[MonthlyGoal]:
        goals = [
            g for g in self._rows(MonthlyGoal, user_id)
            if g.month == month and g.year == year
        ]
        return sorted(goals, key=lambda g: g.created_at)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 500,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.user_id == user_id]
        events.sort(key=lambda e: e.changed_at, reverse=True)
        return events[:limit]

    async def get_events_between(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.user_id == user_id and start <= e.changed_at < end
        ]
        return sorted(events, key=lambda e: e.changed_at, reverse=True)

    async def get_events_by_entity(
        self,
        user_id: UUID,
        entity_type: AuditEntityType,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.user_id == user_id
            and e.entity_type == entity_type
            and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.changed_at)
