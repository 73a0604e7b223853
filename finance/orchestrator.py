"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
flows behind every page:
1. Auth (sign up / sign in / sign out)
2. Transactions (validate → save → audit; month lists; filtered pages)
3. Month (settings created on first visit, totals, balance rule, notes, history)
4. Dashboard (income vs expenses, thermometer, category breakdown)
5. Cards, categories, settings and goals (CRUD + audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No transaction is written before it passes validation
- Every insert, update and delete is audited
- Every number shown is computed from the rows just read

Pages only talk to flows; flows only talk to the storage interface.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finance.audit import AuditLogger, configure_logging
from finance.config import AppSettings, get_settings
from finance.models.audit import AuditEntityType, AuditEvent
from finance.models.records import (
    Category,
    CategoryType,
    CreditCard,
    MonthlyGoal,
    MonthlySettings,
    Record,
    Transaction,
    TransactionFilter,
    TransactionPage,
    TransactionType,
    UserPreferences,
    ValidationResult,
)
from finance.models.summary import (
    BalanceRuleReport,
    CardInvoice,
    CategoryTotal,
    FinancialSummary,
    MonthSummary,
    ThermometerReading,
)
from finance.services.auth import (
    AuthServiceInterface,
    AuthSession,
    InMemoryAuthService,
    SupabaseAuthService,
)
from finance.services.storage import (
    DuplicateError,
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseFinanceStorage,
)
from finance.summaries import (
    balance_rule_report,
    card_invoices,
    expenses_by_category,
    financial_summary,
    summarize_month,
    thermometer,
)
from finance.validation import TransactionValidator


logger = structlog.get_logger(__name__)

ENTITY_TYPES: dict[type[Record], AuditEntityType] = {
    Transaction: AuditEntityType.TRANSACTION,
    Category: AuditEntityType.CATEGORY,
    CreditCard: AuditEntityType.CARD,
    MonthlySettings: AuditEntityType.MONTHLY_SETTINGS,
    UserPreferences: AuditEntityType.USER_PREFERENCES,
    MonthlyGoal: AuditEntityType.MONTHLY_GOAL,
}


class ValidationFailedError(Exception):
    """A write was blocked by error-level validation issues."""

    def __init__(self, result: ValidationResult, message: str):
        self.result = result
        super().__init__(message)


def revise(record: Record, **changes) -> Record:
    """Copy of a record with changes applied, validated again."""
    return type(record).model_validate({**record.model_dump(), **changes})


class AuditedFlow:
    """
    Base for flows that write rows.

    Every write goes through `_save` / `_delete`, which pick insert
    vs update and record the audit entry.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def _save(self, record: Record) -> Record:
        """Insert, or update when a row with this id already exists."""
        model = type(record)
        existing = await self._storage.get(model, record.user_id, record.id)

        if existing is None:
            saved = await self._storage.insert(record)
            if self._audit_logger:
                await self._audit_logger.log_created(
                    record.user_id, ENTITY_TYPES[model], record.id, saved.to_row()
                )
        else:
            saved = await self._storage.update(record)
            if self._audit_logger:
                await self._audit_logger.log_updated(
                    record.user_id,
                    ENTITY_TYPES[model],
                    record.id,
                    existing.to_row(),
                    saved.to_row(),
                )
        return saved

    async def _delete(self, model: type[Record], user_id: UUID, record_id: UUID) -> bool:
        existing = await self._storage.get(model, user_id, record_id)
        if existing is None:
            return False

        deleted = await self._storage.delete(model, user_id, record_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_deleted(
                user_id, ENTITY_TYPES[model], record_id, existing.to_row()
            )
        return deleted

    async def _month_transactions(
        self,
        user_id: UUID,
        month: int,
        year: int,
        transaction_type: Optional[TransactionType] = None,
        is_fixed: Optional[bool] = None,
    ) -> list[Transaction]:
        filters = TransactionFilter(
            month=month, year=year, type=transaction_type, is_fixed=is_fixed
        )
        transactions, _ = await self._storage.list_transactions(user_id, filters)
        return transactions


class AuthFlow:
    """Sign up, sign in and sign out."""

    def __init__(
        self,
        auth_service: AuthServiceInterface,
    ):
        self._auth = auth_service

    async def sign_up(self, email: str, password: str) -> AuthSession:
        return await self._auth.sign_up(email, password)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        return await self._auth.sign_in(email, password)

    async def sign_out(self) -> None:
        await self._auth.sign_out()

    async def current_session(self) -> Optional[AuthSession]:
        return await self._auth.current_session()


class TransactionFlow(AuditedFlow):
    """
    Orchestrates transaction writes and listings.

    Save flow:
    1. Validate → two-stage check (errors block, warnings pass through)
    2. Save → insert or update (month/year derived from the date)
    3. Audit → old and new row
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        super().__init__(storage, audit_logger, settings)
        self._validator = validator or TransactionValidator(storage, self._settings)

    async def validate(self, transaction: Transaction) -> tuple[ValidationResult, str]:
        """
        Validate a draft without saving it.

        Returns:
            (validation_result, user_message)
        """
        result = await self._validator.validate(transaction)
        return result, self._validator.get_user_friendly_summary(result)

    async def save_transaction(
        self,
        transaction: Transaction,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Validate and save (create or update) a transaction.

        Returns:
            (saved_transaction, validation_result) - the result carries
            any warnings to show next to the success message

        Raises:
            ValidationFailedError: If validation found errors
        """
        result, message = await self.validate(transaction)
        if not result.is_valid:
            logger.info(
                "transaction_rejected",
                transaction_id=str(transaction.id),
                errors=result.error_count,
            )
            raise ValidationFailedError(result, message)

        saved = await self._save(transaction)
        return saved, result

    async def delete_transaction(self, user_id: UUID, transaction_id: UUID) -> bool:
        return await self._delete(Transaction, user_id, transaction_id)

    async def list_month_transactions(
        self,
        user_id: UUID,
        month: int,
        year: int,
        transaction_type: Optional[TransactionType] = None,
        is_fixed: Optional[bool] = None,
    ) -> list[Transaction]:
        """One month's transactions, newest first, optionally of one type."""
        return await self._month_transactions(
            user_id, month, year, transaction_type, is_fixed
        )

    async def search_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> TransactionPage:
        """One page of filtered transactions with the exact total count."""
        page = max(1, page)
        page_size = page_size or self._settings.transactions_page_size
        items, total = await self._storage.list_transactions(
            user_id,
            filters,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return TransactionPage(
            items=items,
            total_count=total,
            page=page,
            page_size=page_size,
        )


class MonthFlow(AuditedFlow):
    """Everything the month page shows and edits."""

    def default_settings(self, user_id: UUID, month: int, year: int) -> MonthlySettings:
        """Unsaved settings row carrying the configured defaults."""
        percentages = {
            name: Decimal(str(value))
            for name, value in self._settings.default_percentages.items()
        }
        return MonthlySettings(
            user_id=user_id,
            month=month,
            year=year,
            initial_income=Decimal(str(self._settings.default_initial_income)),
            thermometer_status=thermometer(Decimal("1")).display,
            **percentages,
        )

    async def get_or_create_settings(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> MonthlySettings:
        """
        The month's settings row, created with defaults on first visit.

        Idempotent: a second call returns the same row.
        """
        existing = await self._storage.get_monthly_settings(user_id, month, year)
        if existing is not None:
            return existing

        try:
            return await self._save(self.default_settings(user_id, month, year))
        except DuplicateError:
            # Created by another session between the read and the insert
            existing = await self._storage.get_monthly_settings(user_id, month, year)
            if existing is None:
                raise
            return existing

    async def overview(self, user_id: UUID, month: int, year: int) -> MonthSummary:
        return summarize_month(await self._month_transactions(user_id, month, year))

    async def balance_report(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> BalanceRuleReport:
        """The month's balance rule against its actual totals."""
        settings = await self.get_or_create_settings(user_id, month, year)
        summary = await self.overview(user_id, month, year)
        return balance_rule_report(
            settings,
            summary,
            tolerance=Decimal(str(self._settings.over_budget_tolerance)),
        )

    async def sync_thermometer(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> ThermometerReading:
        """
        Thermometer for the month's balance; the stored label is
        rewritten when it changed.
        """
        reading = thermometer((await self.overview(user_id, month, year)).balance)
        settings = await self.get_or_create_settings(user_id, month, year)
        if settings.thermometer_status != reading.display:
            await self._save(revise(settings, thermometer_status=reading.display))
        return reading

    async def save_notes(
        self,
        user_id: UUID,
        month: int,
        year: int,
        notes: str,
    ) -> MonthlySettings:
        settings = await self.get_or_create_settings(user_id, month, year)
        return await self._save(revise(settings, notes=notes.strip() or None))

    async def audit_history(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> list[AuditEvent]:
        """Audit entries changed during the month, newest first."""
        if not self._audit_logger:
            return []
        return await self._audit_logger.month_history(user_id, month, year)


class DashboardFlow(AuditedFlow):
    """Read-only dashboard numbers for one month."""

    async def financial_summary(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> FinancialSummary:
        return financial_summary(await self._month_transactions(user_id, month, year))

    async def thermometer(self, user_id: UUID, month: int, year: int) -> ThermometerReading:
        """Dashboard thermometer (income - expenses)."""
        summary = await self.financial_summary(user_id, month, year)
        return thermometer(summary.balance)

    async def expense_breakdown(
        self,
        user_id: UUID,
        month: int,
        year: int,
    ) -> list[CategoryTotal]:
        expenses = await self._month_transactions(
            user_id, month, year, TransactionType.EXPENSE
        )
        return expenses_by_category(expenses)


class CardFlow(AuditedFlow):
    """Credit cards and their current invoices."""

    async def list_cards(self, user_id: UUID) -> list[CreditCard]:
        return await self._storage.list_cards(user_id)

    async def save_card(self, card: CreditCard) -> CreditCard:
        return await self._save(card)

    async def delete_card(self, user_id: UUID, card_id: UUID) -> bool:
        """Delete a card; its transactions stay, without a card."""
        return await self._delete(CreditCard, user_id, card_id)

    async def invoices(self, user_id: UUID, month: int, year: int) -> list[CardInvoice]:
        cards = await self.list_cards(user_id)
        expenses = await self._month_transactions(
            user_id, month, year, TransactionType.EXPENSE
        )
        return card_invoices(cards, expenses)


class CategoryFlow(AuditedFlow):
    """User categories."""

    async def list_categories(
        self,
        user_id: UUID,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        return await self._storage.list_categories(user_id, category_type)

    async def categories_for(
        self,
        user_id: UUID,
        transaction_type: TransactionType,
        is_fixed: bool = False,
    ) -> list[Category]:
        """Categories offered by the transaction form for a type."""
        return await self.list_categories(
            user_id, CategoryType.for_transaction(transaction_type, is_fixed)
        )

    async def save_category(self, category: Category) -> Category:
        return await self._save(category)

    async def delete_category(self, user_id: UUID, category_id: UUID) -> bool:
        """Delete a category; its transactions stay, uncategorized."""
        return await self._delete(Category, user_id, category_id)


class SettingsFlow(MonthFlow):
    """Balance rules and global preferences."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        super().__init__(storage, audit_logger, settings)
        self._validator = validator or TransactionValidator(storage, self._settings)

    async def load_balance_rules(self, user_id: UUID) -> MonthlySettings:
        """
        The rule the settings page edits: the current month's row,
        else the most recently created row, else the configured
        defaults for the current month.
        """
        today = date.today()
        current = await self._storage.get_monthly_settings(user_id, today.month, today.year)
        if current is not None:
            return current
        latest = await self._storage.get_latest_monthly_settings(user_id)
        if latest is not None:
            return latest
        return self.default_settings(user_id, today.month, today.year)

    async def save_balance_rules(
        self,
        user_id: UUID,
        initial_income: Decimal,
        needs: Decimal,
        wants: Decimal,
        savings: Decimal,
        investment: Decimal = Decimal("0"),
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> MonthlySettings:
        """
        Save a balance rule entered as percentages (50 == 50%).

        The rule is written to the given month's settings row
        (current month by default), creating it if needed.

        Raises:
            ValidationFailedError: If the percentages don't total 100
                or the income is negative
        """
        result = self._validator.validate_balance_rules(
            initial_income, needs, wants, savings, investment
        )
        if not result.is_valid:
            raise ValidationFailedError(
                result, self._validator.get_user_friendly_summary(result)
            )

        today = date.today()
        settings = await self.get_or_create_settings(
            user_id, month or today.month, year or today.year
        )
        return await self._save(revise(
            settings,
            initial_income=initial_income,
            needs_percentage=needs / 100,
            wants_percentage=wants / 100,
            savings_percentage=savings / 100,
            investment_percentage=investment / 100,
        ))

    async def load_preferences(self, user_id: UUID) -> UserPreferences:
        """Saved preferences, or unsaved defaults."""
        existing = await self._storage.get_preferences(user_id)
        if existing is not None:
            return existing
        return UserPreferences(user_id=user_id, currency=self._settings.default_currency)

    async def save_preferences(self, preferences: UserPreferences) -> UserPreferences:
        """Create or update the user's single preferences row."""
        existing = await self._storage.get_preferences(preferences.user_id)
        if existing is not None and existing.id != preferences.id:
            preferences = revise(preferences, id=existing.id)
        return await self._save(preferences)


class GoalFlow(AuditedFlow):
    """Monthly goals on the dashboard."""

    async def list_goals(self, user_id: UUID, month: int, year: int) -> list[MonthlyGoal]:
        return await self._storage.list_goals(user_id, month, year)

    async def add_goal(
        self,
        user_id: UUID,
        month: int,
        year: int,
        goal_name: str,
        target_amount: Decimal,
        current_amount: Decimal = Decimal("0"),
    ) -> MonthlyGoal:
        goal = MonthlyGoal(
            user_id=user_id,
            month=month,
            year=year,
            goal_name=goal_name,
            target_amount=target_amount,
            current_amount=current_amount,
        )
        return await self._save(goal)

    async def toggle_goal(self, user_id: UUID, goal_id: UUID) -> MonthlyGoal:
        """
        Flip a goal's completion flag.

        Raises:
            NotFoundError: If the goal doesn't exist for this user
        """
        goal = await self._storage.get(MonthlyGoal, user_id, goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        return await self._save(revise(goal, is_completed=not goal.is_completed))

    async def delete_goal(self, user_id: UUID, goal_id: UUID) -> bool:
        return await self._delete(MonthlyGoal, user_id, goal_id)


@dataclass
class AppComponents:
    """Everything a user session needs."""

    auth: AuthFlow
    transactions: TransactionFlow
    months: MonthFlow
    dashboard: DashboardFlow
    cards: CardFlow
    categories: CategoryFlow
    settings: SettingsFlow
    goals: GoalFlow
    audit: AuditLogger
    offline: bool = False


def create_app_components(
    use_storage: bool = True,
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Supabase.
                    Set to False for tests and the offline demo
                    (in-memory storage and auth).
        settings: Application settings (loaded from the environment if None)

    Returns:
        AppComponents; `offline` is True when in-memory backends are used
    """
    settings = settings or get_settings().app
    configure_logging(settings.log_level)

    offline = True
    if use_storage:
        try:
            client = SupabaseClient(get_settings().supabase)
            client.connect()
            storage = SupabaseFinanceStorage(client)
            audit_storage = SupabaseAuditStorage(client)
            auth_service = SupabaseAuthService(client)
            offline = False
        except Exception as e:
            # Supabase not configured - continue offline
            logger.warning("storage_not_configured", error=str(e))

    if offline:
        storage = InMemoryFinanceStorage()
        audit_storage = InMemoryAuditStorage()
        auth_service = InMemoryAuthService()

    audit_logger = AuditLogger(audit_storage)
    validator = TransactionValidator(storage, settings)

    return AppComponents(
        auth=AuthFlow(auth_service),
        transactions=TransactionFlow(storage, audit_logger, settings, validator),
        months=MonthFlow(storage, audit_logger, settings),
        dashboard=DashboardFlow(storage, audit_logger, settings),
        cards=CardFlow(storage, audit_logger, settings),
        categories=CategoryFlow(storage, audit_logger, settings),
        settings=SettingsFlow(storage, audit_logger, settings, validator),
        goals=GoalFlow(storage, audit_logger, settings),
        audit=audit_logger,
        offline=offline,
    )
