"""Month calculations package."""

from finance.summaries.calculator import (
    UNCATEGORIZED,
    as_percent,
    balance_rule_report,
    budget_status,
    card_invoices,
    expenses_by_category,
    financial_summary,
    format_money,
    goal_progress,
    summarize_month,
    thermometer,
)

__all__ = [
    "UNCATEGORIZED",
    "as_percent",
    "balance_rule_report",
    "budget_status",
    "card_invoices",
    "expenses_by_category",
    "financial_summary",
    "format_money",
    "goal_progress",
    "summarize_month",
    "thermometer",
]
