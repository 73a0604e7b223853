"""
Computed Summary Models

Read-only results of the month's reductions. Nothing here is stored;
every value is recomputed from the transactions on each page load.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


ZERO = Decimal("0")


class MonthSummary(BaseModel):
    """Totals for one month, split the way the month page shows them."""

    income: Decimal = ZERO
    fixed_expenses: Decimal = ZERO
    variable_expenses: Decimal = ZERO
    investments: Decimal = ZERO
    transaction_count: int = 0

    @property
    def total_expenses(self) -> Decimal:
        return self.fixed_expenses + self.variable_expenses

    @property
    def total_outflow(self) -> Decimal:
        """Expenses plus investments."""
        return self.total_expenses + self.investments

    @property
    def balance(self) -> Decimal:
        return self.income - self.total_outflow


class FinancialSummary(BaseModel):
    """
    Dashboard totals.

    Unlike MonthSummary.balance, investments are left out here:
    balance is income minus expenses only.
    """

    income: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


class ThermometerStatus(str, Enum):
    IN_THE_BLUE = "in_the_blue"
    NEUTRAL = "neutral"
    IN_THE_RED = "in_the_red"


class ThermometerReading(BaseModel):
    """Qualitative status of a balance."""

    status: ThermometerStatus
    label: str
    emoji: str
    balance: Decimal

    @property
    def display(self) -> str:
        """Label as stored in user_monthly_settings.thermometer_status."""
        return f"{self.label} {self.emoji}"


class BudgetStatus(str, Enum):
    """Where an actual amount sits against its ideal."""
    ON_TRACK = "on_track"  # actual <= ideal
    WARNING = "warning"    # up to the tolerance above ideal
    OVER = "over"          # beyond the tolerance


class BalanceRuleBucket(str, Enum):
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class BalanceRuleLine(BaseModel):
    """One bucket of the balance rule."""

    bucket: BalanceRuleBucket
    percentage: Decimal = Field(..., description="Share of income as a fraction")
    ideal: Decimal
    actual: Decimal
    status: BudgetStatus

    @property
    def remaining(self) -> Decimal:
        """Ideal minus actual; negative when over."""
        return self.ideal - self.actual


class BalanceRuleReport(BaseModel):
    """The month's balance rule applied to its actual totals."""

    initial_income: Decimal
    lines: list[BalanceRuleLine] = Field(default_factory=list)
    total_outflow: Decimal = ZERO

    def line(self, bucket: BalanceRuleBucket) -> BalanceRuleLine:
        for line in self.lines:
            if line.bucket == bucket:
                return line
        raise KeyError(bucket)

    @property
    def is_on_track(self) -> bool:
        return all(line.status == BudgetStatus.ON_TRACK for line in self.lines)


class CategoryTotal(BaseModel):
    """Expense total for one category (chart slice)."""

    name: str
    total: Decimal
    share: float = Field(default=0.0, description="Fraction of the month's expenses")


class CardInvoice(BaseModel):
    """A card's current invoice: the month's expenses charged to it."""

    card_id: UUID
    name: str
    credit_limit: Optional[Decimal] = None
    current_invoice: Decimal = ZERO
    transaction_count: int = 0

    @property
    def available_credit(self) -> Optional[Decimal]:
        if self.credit_limit is None:
            return None
        return self.credit_limit - self.current_invoice

    @property
    def usage(self) -> Optional[float]:
        """Invoice as a fraction of the limit (None when no limit is set)."""
        if not self.credit_limit:
            return None
        return float(self.current_invoice / self.credit_limit)
