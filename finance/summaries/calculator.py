"""
Month Calculations

DESIGN DECISION: Every number the pages show is computed HERE, from
the rows storage returned, by plain reductions. Nothing is cached or
stored (except the thermometer label, which the month page writes
back for display).

All functions are pure: same rows in, same numbers out. Amounts are
summed with their sign, exactly as stored.
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from finance.models.records import (
    CreditCard,
    Currency,
    MonthlyGoal,
    MonthlySettings,
    Transaction,
    TransactionType,
)
from finance.models.summary import (
    ZERO,
    BalanceRuleBucket,
    BalanceRuleLine,
    BalanceRuleReport,
    BudgetStatus,
    CardInvoice,
    CategoryTotal,
    FinancialSummary,
    MonthSummary,
    ThermometerReading,
    ThermometerStatus,
)


UNCATEGORIZED = "Other"

DEFAULT_TOLERANCE = Decimal("0.10")

CURRENCY_FORMATS = {
    # symbol, thousands separator, decimal separator
    Currency.BRL: ("R$", ".", ","),
    Currency.USD: ("$", ",", "."),
    Currency.EUR: ("€", ".", ","),
}


def summarize_month(transactions: Iterable[Transaction]) -> MonthSummary:
    """
    Month page totals.

    balance = income - (fixed expenses + variable expenses + investments)
    """
    income = fixed = variable = investments = ZERO
    count = 0

    for t in transactions:
        count += 1
        if t.type == TransactionType.INCOME:
            income += t.amount
        elif t.type == TransactionType.INVESTMENT:
            investments += t.amount
        elif t.is_fixed:
            fixed += t.amount
        else:
            variable += t.amount

    return MonthSummary(
        income=income,
        fixed_expenses=fixed,
        variable_expenses=variable,
        investments=investments,
        transaction_count=count,
    )


def financial_summary(transactions: Iterable[Transaction]) -> FinancialSummary:
    """Dashboard totals: balance = income - expenses (investments left out)."""
    income = expenses = ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        elif t.type == TransactionType.EXPENSE:
            expenses += t.amount
    return FinancialSummary(income=income, expenses=expenses)


def thermometer(balance: Decimal) -> ThermometerReading:
    """Qualitative status: positive, exactly zero, or negative."""
    if balance > 0:
        return ThermometerReading(
            status=ThermometerStatus.IN_THE_BLUE,
            label="In the blue",
            emoji="🟢",
            balance=balance,
        )
    if balance == 0:
        return ThermometerReading(
            status=ThermometerStatus.NEUTRAL,
            label="Neutral",
            emoji="🟡",
            balance=balance,
        )
    return ThermometerReading(
        status=ThermometerStatus.IN_THE_RED,
        label="In the red",
        emoji="🔴",
        balance=balance,
    )


def budget_status(
    actual: Decimal,
    ideal: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> BudgetStatus:
    """on_track up to ideal, warning up to ideal * (1 + tolerance), over beyond."""
    if actual <= ideal:
        return BudgetStatus.ON_TRACK
    if actual <= ideal * (1 + tolerance):
        return BudgetStatus.WARNING
    return BudgetStatus.OVER


def balance_rule_report(
    settings: MonthlySettings,
    summary: MonthSummary,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> BalanceRuleReport:
    """
    Apply the month's balance rule to its actual totals.

    Ideal per bucket is initial_income * percentage. Actuals:
    needs = fixed expenses, wants = variable expenses,
    savings = 0 (no transaction type feeds it), investment = investments.
    """
    buckets = [
        (BalanceRuleBucket.NEEDS, settings.needs_percentage, summary.fixed_expenses),
        (BalanceRuleBucket.WANTS, settings.wants_percentage, summary.variable_expenses),
        (BalanceRuleBucket.SAVINGS, settings.savings_percentage, ZERO),
        (BalanceRuleBucket.INVESTMENT, settings.investment_percentage, summary.investments),
    ]

    lines = []
    for bucket, percentage, actual in buckets:
        ideal = settings.initial_income * percentage
        lines.append(BalanceRuleLine(
            bucket=bucket,
            percentage=percentage,
            ideal=ideal,
            actual=actual,
            status=budget_status(actual, ideal, tolerance),
        ))

    return BalanceRuleReport(
        initial_income=settings.initial_income,
        lines=lines,
        total_outflow=summary.total_outflow,
    )


def expenses_by_category(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """
    Expense totals grouped by category name, largest first.

    Expenses without a category (or whose category was deleted)
    are grouped under "Other".
    """
    groups: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        groups[t.category_name or UNCATEGORIZED] += t.amount

    grand_total = sum(groups.values(), ZERO)
    totals = [
        CategoryTotal(
            name=name,
            total=total,
            share=float(total / grand_total) if grand_total else 0.0,
        )
        for name, total in groups.items()
    ]
    return sorted(totals, key=lambda c: (-c.total, c.name))


def card_invoices(
    cards: Iterable[CreditCard],
    transactions: Iterable[Transaction],
) -> list[CardInvoice]:
    """Per card, the sum of the given expenses charged to it."""
    transactions = list(transactions)
    invoices = []
    for card in cards:
        charged = [
            t for t in transactions
            if t.type == TransactionType.EXPENSE and t.card_id == card.id
        ]
        invoices.append(CardInvoice(
            card_id=card.id,
            name=card.name,
            credit_limit=card.credit_limit,
            current_invoice=sum((t.amount for t in charged), ZERO),
            transaction_count=len(charged),
        ))
    return invoices


def goal_progress(goal: MonthlyGoal) -> float:
    """current / target, clamped to [0, 1]."""
    return goal.progress


def as_percent(fraction: Decimal) -> int:
    """Stored fraction -> whole percent for the settings inputs (0.2999 -> 30)."""
    return int((fraction * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount: Decimal, currency: Optional[Currency] = None) -> str:
    """Format an amount the way the pages display it (e.g. R$ 1.234,56)."""
    symbol, thousands, decimal_sep = CURRENCY_FORMATS[currency or Currency.BRL]
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,.2f}"
    body = grouped.replace(",", "\0").replace(".", decimal_sep).replace("\0", thousands)
    return f"{sign}{symbol} {body}"
