"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing between the backend and the pages conforms to these schemas.
"""

from finance.models.records import (
    MONTH_NAMES,
    Category,
    CategoryType,
    CreditCard,
    Currency,
    MonthlyGoal,
    MonthlySettings,
    Record,
    Theme,
    Transaction,
    TransactionFilter,
    TransactionPage,
    TransactionType,
    UserPreferences,
    ValidationIssue,
    ValidationResult,
    month_name,
)
from finance.models.summary import (
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
from finance.models.audit import (
    AuditAction,
    AuditEntityType,
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)

__all__ = [
    # Row models
    "MONTH_NAMES",
    "Category",
    "CategoryType",
    "CreditCard",
    "Currency",
    "MonthlyGoal",
    "MonthlySettings",
    "Record",
    "Theme",
    "Transaction",
    "TransactionFilter",
    "TransactionPage",
    "TransactionType",
    "UserPreferences",
    "ValidationIssue",
    "ValidationResult",
    "month_name",
    # Summary models
    "BalanceRuleBucket",
    "BalanceRuleLine",
    "BalanceRuleReport",
    "BudgetStatus",
    "CardInvoice",
    "CategoryTotal",
    "FinancialSummary",
    "MonthSummary",
    "ThermometerReading",
    "ThermometerStatus",
    # Audit models
    "AuditAction",
    "AuditEntityType",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditSeverity",
]
