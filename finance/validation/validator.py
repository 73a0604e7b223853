"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required values present
- Referenced category / card still exist
- Percentages within 0-100
- This catches stale form state and malformed input

STAGE 2 - SEMANTIC VALIDATION:
- Category type matches the transaction type
- Cards only on expenses
- Future date detection
- Absurd amount detection
- Balance rule totals 100%
- This catches logically impossible or suspicious data

Stage 2 only runs when stage 1 passed. Errors block the write;
warnings are shown to the user and the write goes ahead.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to review.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finance.config import AppSettings, get_settings
from finance.models.records import (
    Category,
    CategoryType,
    CreditCard,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from finance.services.storage import FinanceStorageInterface


def _has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


class TransactionValidator:
    """
    Validates transaction drafts and balance rules.

    Stage 1 resolves the referenced category and card through storage
    when a storage backend is given; without one, references are
    taken on trust.
    """

    def __init__(
        self,
        storage: Optional[FinanceStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app

    async def _resolve(
        self,
        transaction: Transaction,
    ) -> tuple[Optional[Category], Optional[CreditCard], list[ValidationIssue]]:
        """Load the referenced category/card; missing ones are stage 1 errors."""
        issues = []
        category = card = None

        if self._storage is None:
            return category, card, issues

        if transaction.category_id is not None:
            category = await self._storage.get(
                Category, transaction.user_id, transaction.category_id
            )
            if category is None:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="not_found",
                    message="The selected category no longer exists",
                    severity="error",
                    suggested_fix="Pick another category or leave it empty",
                ))

        if transaction.card_id is not None:
            card = await self._storage.get(
                CreditCard, transaction.user_id, transaction.card_id
            )
            if card is None:
                issues.append(ValidationIssue(
                    field="card_id",
                    issue_type="not_found",
                    message="The selected card no longer exists",
                    severity="error",
                    suggested_fix="Pick another card or leave it empty",
                ))

        return category, card, issues

    def _validate_schema(
        self,
        transaction: Transaction,
    ) -> list[ValidationIssue]:
        """
        Stage 1: Schema validation.

        Pydantic already guarantees types; this covers what the
        form can leave empty.
        """
        issues = []

        if not transaction.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is empty",
                severity="warning",
                suggested_fix="Add a short description so the entry is easy to find",
            ))

        return issues

    def _validate_semantic(
        self,
        transaction: Transaction,
        category: Optional[Category],
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Non-positive amounts
        - Category type vs transaction type
        - Card on a non-expense
        - Future dates
        - Absurd amounts
        """
        issues = []

        if transaction.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount}) is zero or negative",
                severity="warning",
                suggested_fix="Negative amounts are summed as entered; check the sign",
            ))

        if category is not None:
            if category.type.transaction_type != transaction.type:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="incompatible",
                    message=(
                        f"Category '{category.name}' is a {category.type.value} "
                        f"category and cannot be used for a {transaction.type.value}"
                    ),
                    severity="error",
                    suggested_fix="Pick a category of the matching type",
                ))
            elif transaction.is_expense and category.type != CategoryType.for_transaction(
                transaction.type, transaction.is_fixed
            ):
                issues.append(ValidationIssue(
                    field="is_fixed",
                    issue_type="inconsistent",
                    message=(
                        f"Category '{category.name}' is a {category.type.value} category "
                        f"but the expense is marked {'fixed' if transaction.is_fixed else 'variable'}"
                    ),
                    severity="warning",
                    suggested_fix="Check the fixed expense flag",
                ))

        if transaction.card_id is not None and transaction.type != TransactionType.EXPENSE:
            issues.append(ValidationIssue(
                field="card_id",
                issue_type="incompatible",
                message=f"Cards can only be attached to expenses, not to a {transaction.type.value}",
                severity="error",
                suggested_fix="Remove the card",
            ))

        max_future_date = date.today() + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.transaction_date > max_future_date:
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="future_date",
                message=f"Date ({transaction.transaction_date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if abs(transaction.amount) > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    async def validate(self, transaction: Transaction) -> ValidationResult:
        """
        Run the two-stage pipeline on a transaction draft.

        Returns:
            ValidationResult with all issues found
        """
        category, _card, issues = await self._resolve(transaction)
        issues.extend(self._validate_schema(transaction))
        schema_valid = not _has_errors(issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = self._validate_semantic(transaction, category)
            issues.extend(semantic_issues)
            semantic_valid = not _has_errors(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def validate_balance_rules(
        self,
        initial_income: Decimal,
        needs: Decimal,
        wants: Decimal,
        savings: Decimal,
        investment: Decimal = Decimal("0"),
    ) -> ValidationResult:
        """
        Validate a balance rule entered as percentages (50 == 50%).

        Stage 1 checks ranges, stage 2 checks the 100% total.
        """
        issues = []

        if initial_income < 0:
            issues.append(ValidationIssue(
                field="initial_income",
                issue_type="invalid_value",
                message="Base income cannot be negative",
                severity="error",
            ))

        percentages = {
            "needs_percentage": needs,
            "wants_percentage": wants,
            "savings_percentage": savings,
            "investment_percentage": investment,
        }
        for name, value in percentages.items():
            if not 0 <= value <= 100:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="invalid_value",
                    message=f"{name.split('_')[0].title()} must be between 0% and 100%",
                    severity="error",
                ))

        schema_valid = not _has_errors(issues)
        semantic_valid = False
        if schema_valid:
            total = sum(percentages.values(), Decimal("0"))
            semantic_valid = total == 100
            if not semantic_valid:
                issues.append(ValidationIssue(
                    field="percentages",
                    issue_type="invalid_total",
                    message=f"Percentages must total 100% (currently {total.normalize():f}%)",
                    severity="error",
                    suggested_fix="Adjust the buckets until they add up to 100%",
                ))

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the pages show above the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("❌ This can't be saved yet:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
