"""
Core Data Models for Finance Tracker

These models mirror the rows owned by the backend store:
transactions, categories, cards, monthly settings, preferences
and monthly goals. They are designed to:
1. Enforce type safety at runtime
2. Carry the few invariants the backend schema does not (percentages,
   month/year derived from the transaction date)
3. Be serializable for storage and logging

DESIGN DECISION: Money is Decimal end to end. The backend returns
numeric columns as JSON numbers; pydantic converts them on the way in
and `to_row()` sends them back as strings, which Postgres accepts.
"""

import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def month_name(month: int) -> str:
    """Full English name for a 1-based month number."""
    return MONTH_NAMES[month - 1]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """What a transaction does to the month's balance."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class CategoryType(str, Enum):
    """
    Category types.

    Expense categories are split into fixed and variable so the
    transaction form can offer only the categories that fit.
    """
    INCOME = "income"
    FIXED_EXPENSE = "fixed_expense"
    VARIABLE_EXPENSE = "variable_expense"
    INVESTMENT = "investment"

    @classmethod
    def for_transaction(cls, transaction_type: TransactionType, is_fixed: bool = False) -> "CategoryType":
        """Category type matching a transaction type (and fixed flag for expenses)."""
        if transaction_type == TransactionType.EXPENSE:
            return cls.FIXED_EXPENSE if is_fixed else cls.VARIABLE_EXPENSE
        return cls(transaction_type.value)

    @property
    def transaction_type(self) -> TransactionType:
        if self in (CategoryType.FIXED_EXPENSE, CategoryType.VARIABLE_EXPENSE):
            return TransactionType.EXPENSE
        return TransactionType(self.value)


class Currency(str, Enum):
    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


# =============================================================================
# ROW MODELS
# =============================================================================

class Record(BaseModel):
    """
    Base for every user-owned row.

    `to_row()` produces the JSON-safe payload for the backend;
    fields listed in `joined_fields` come from embedded selects
    and are never written back.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    joined_fields: ClassVar[frozenset[str]] = frozenset()

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude=set(self.joined_fields))


class Category(Record):
    """A user-defined category of a single type."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name"
    )
    type: CategoryType = Field(
        default=CategoryType.VARIABLE_EXPENSE,
        description="Category type"
    )


class CreditCard(Record):
    """
    A credit card expenses can be charged to.

    The current invoice is not stored; it is computed from the
    month's expenses on the card.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Card name"
    )
    credit_limit: Optional[Decimal] = Field(
        default=None,
        ge=0,
        decimal_places=2,
        description="Credit limit, if known"
    )
    last_invoice_date: Optional[date] = None


class Transaction(Record):
    """
    A single income, expense or investment entry.

    `month` and `year` are always derived from `transaction_date`
    so month pages and filters agree with the date the user entered.
    """

    joined_fields: ClassVar[frozenset[str]] = frozenset({"category_name", "card_name"})

    description: str = Field(
        default="",
        max_length=200,
        description="What the money was for"
    )
    # Signed: negative amounts are kept as entered and summed as-is.
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Amount"
    )
    type: TransactionType
    category_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    transaction_date: date = Field(default_factory=date.today)
    month: int = Field(default=0, ge=0, le=12)
    year: int = Field(default=0, ge=0)
    is_fixed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Joined from categories(name) / cards(name)
    category_name: Optional[str] = None
    card_name: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def reject_non_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        return v

    @model_validator(mode='after')
    def derive_period(self) -> 'Transaction':
        """Keep month/year in step with the date; is_fixed only for expenses."""
        self.month = self.transaction_date.month
        self.year = self.transaction_date.year
        if self.type != TransactionType.EXPENSE:
            self.is_fixed = False
        return self

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class MonthlySettings(Record):
    """
    Per-month balance rule and notes.

    Percentages are stored as fractions (0.5 == 50%) and must
    total exactly 100%.
    """

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    initial_income: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Base monthly income the rule is applied to"
    )
    needs_percentage: Decimal = Field(..., ge=0, le=1)
    wants_percentage: Decimal = Field(..., ge=0, le=1)
    savings_percentage: Decimal = Field(..., ge=0, le=1)
    investment_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    notes: Optional[str] = Field(
        default=None,
        max_length=5000,
        description="Free-form notes for the month"
    )
    thermometer_status: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total_percentage(self) -> Decimal:
        """Sum of the rule as a percentage (100 when valid)."""
        return (
            self.needs_percentage
            + self.wants_percentage
            + self.savings_percentage
            + self.investment_percentage
        ) * 100

    @model_validator(mode='after')
    def validate_total(self) -> 'MonthlySettings':
        if self.total_percentage != 100:
            raise ValueError(
                f"Balance rule percentages must total 100%, got {self.total_percentage.normalize():f}%"
            )
        return self


class UserPreferences(Record):
    """Global display preferences; one row per user."""

    currency: Currency = Currency.BRL
    default_year: int = Field(
        default_factory=lambda: date.today().year,
        ge=2000,
        le=2100,
    )
    theme: Theme = Theme.LIGHT


class MonthlyGoal(Record):
    """A savings/spending goal the user sets for one month."""

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    goal_name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    is_completed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def progress(self) -> float:
        """Fraction of the target reached, clamped to [0, 1]."""
        return max(0.0, min(1.0, float(self.current_amount / self.target_amount)))


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionFilter(BaseModel):
    """Filters for the transactions page. None means "any"."""

    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    type: Optional[TransactionType] = None
    category_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    is_fixed: Optional[bool] = None

    def matches(self, transaction: Transaction) -> bool:
        """Same semantics the backend applies with `eq()` filters."""
        checks = {
            "month": transaction.month,
            "year": transaction.year,
            "type": transaction.type,
            "category_id": transaction.category_id,
            "card_id": transaction.card_id,
            "is_fixed": transaction.is_fixed,
        }
        for name, value in checks.items():
            wanted = getattr(self, name)
            if wanted is not None and wanted != value:
                return False
        return True

    def as_eq_filters(self) -> dict[str, Any]:
        """Non-empty filters as column -> JSON value."""
        return {
            k: v for k, v in self.model_dump(mode="json").items()
            if v is not None
        }


class TransactionPage(BaseModel):
    """One page of transactions plus the exact total count."""

    items: list[Transaction] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_count / self.page_size))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required values, formats)
    Stage 2: Semantic validation (cross-field and sanity checks)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Writes are allowed when no stage produced an error."""
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        """Messages of non-blocking issues."""
        return [i.message for i in self.issues if i.severity == "warning"]
