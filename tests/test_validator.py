"""Tests for the two-stage transaction and balance rule validation."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from finance.models.records import (
    Category,
    CategoryType,
    CreditCard,
    Transaction,
    TransactionType,
)
from finance.validation import TransactionValidator


@pytest.fixture
def validator(storage, app_settings):
    return TransactionValidator(storage, app_settings)


def draft(user_id, amount="50.00", type_=TransactionType.EXPENSE, **kwargs):
    kwargs.setdefault("description", "Groceries")
    kwargs.setdefault("transaction_date", date.today())
    return Transaction(user_id=user_id, amount=Decimal(amount), type=type_, **kwargs)


def issue_types(result):
    return {(i.field, i.issue_type, i.severity) for i in result.issues}


class TestTransactionValidation:
    def test_clean_transaction_passes(self, run, validator, user_id):
        result = run(validator.validate(draft(user_id)))
        assert result.is_valid
        assert result.issues == []

    def test_negative_amount_is_a_warning(self, run, validator, user_id):
        """Negative amounts are allowed (refunds) but flagged."""
        result = run(validator.validate(draft(user_id, amount="-20.00")))
        assert result.is_valid
        assert ("amount", "suspicious_value", "warning") in issue_types(result)

    def test_zero_amount_is_a_warning(self, run, validator, user_id):
        result = run(validator.validate(draft(user_id, amount="0")))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_empty_description_is_a_warning(self, run, validator, user_id):
        result = run(validator.validate(draft(user_id, description="")))
        assert result.is_valid
        assert ("description", "missing", "warning") in issue_types(result)

    def test_category_of_wrong_type_is_an_error(self, run, storage, validator, user_id):
        salary = run(storage.insert(
            Category(user_id=user_id, name="Salary", type=CategoryType.INCOME)
        ))
        result = run(validator.validate(draft(user_id, category_id=salary.id)))
        assert not result.is_valid
        assert result.schema_valid
        assert not result.semantic_valid
        assert ("category_id", "incompatible", "error") in issue_types(result)

    def test_fixed_flag_mismatch_is_a_warning(self, run, storage, validator, user_id):
        rent = run(storage.insert(
            Category(user_id=user_id, name="Rent", type=CategoryType.FIXED_EXPENSE)
        ))
        result = run(validator.validate(draft(user_id, category_id=rent.id, is_fixed=False)))
        assert result.is_valid
        assert ("is_fixed", "inconsistent", "warning") in issue_types(result)

    def test_matching_category_passes(self, run, storage, validator, user_id):
        rent = run(storage.insert(
            Category(user_id=user_id, name="Rent", type=CategoryType.FIXED_EXPENSE)
        ))
        result = run(validator.validate(draft(user_id, category_id=rent.id, is_fixed=True)))
        assert result.is_valid
        assert result.issues == []

    def test_card_on_income_is_an_error(self, run, storage, validator, user_id):
        card = run(storage.insert(CreditCard(user_id=user_id, name="Visa")))
        result = run(validator.validate(
            draft(user_id, type_=TransactionType.INCOME, card_id=card.id)
        ))
        assert not result.is_valid
        assert ("card_id", "incompatible", "error") in issue_types(result)

    def test_missing_category_stops_at_stage_one(self, run, validator, user_id):
        """A deleted category is a schema error; semantic checks don't run."""
        category = Category(user_id=user_id, name="Gone")
        result = run(validator.validate(
            draft(user_id, amount="-5.00", category_id=category.id)
        ))
        assert not result.schema_valid
        assert not result.semantic_valid
        assert issue_types(result) == {("category_id", "not_found", "error")}

    def test_other_users_card_is_not_found(self, run, storage, validator, user_id):
        card = run(storage.insert(CreditCard(user_id=uuid4(), name="Not mine")))
        result = run(validator.validate(draft(user_id, card_id=card.id)))
        assert ("card_id", "not_found", "error") in issue_types(result)

    def test_far_future_date_is_a_warning(self, run, validator, user_id):
        result = run(validator.validate(
            draft(user_id, transaction_date=date.today() + timedelta(days=60))
        ))
        assert result.is_valid
        assert ("transaction_date", "future_date", "warning") in issue_types(result)

    def test_near_future_date_passes(self, run, validator, user_id):
        result = run(validator.validate(
            draft(user_id, transaction_date=date.today() + timedelta(days=5))
        ))
        assert result.issues == []

    def test_absurd_amount_is_a_warning(self, run, validator, user_id):
        result = run(validator.validate(draft(user_id, amount="2000000.00")))
        assert result.is_valid
        assert ("amount", "suspicious_value", "warning") in issue_types(result)

    def test_without_storage_references_are_trusted(self, run, app_settings, user_id):
        validator = TransactionValidator(settings=app_settings)
        category = Category(user_id=user_id, name="Unknown")
        result = run(validator.validate(draft(user_id, category_id=category.id)))
        assert result.is_valid


class TestBalanceRuleValidation:
    def test_valid_rule(self, validator):
        result = validator.validate_balance_rules(
            Decimal("2000"), Decimal("50"), Decimal("20"), Decimal("30")
        )
        assert result.is_valid

    def test_total_must_be_100(self, validator):
        result = validator.validate_balance_rules(
            Decimal("2000"), Decimal("50"), Decimal("20"), Decimal("20")
        )
        assert result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].issue_type == "invalid_total"
        assert "90%" in result.issues[0].message

    def test_investment_counts_toward_total(self, validator):
        result = validator.validate_balance_rules(
            Decimal("2000"), Decimal("50"), Decimal("20"), Decimal("20"), Decimal("10")
        )
        assert result.is_valid

    def test_negative_income(self, validator):
        result = validator.validate_balance_rules(
            Decimal("-1"), Decimal("50"), Decimal("20"), Decimal("30")
        )
        assert not result.is_valid
        assert result.issues[0].field == "initial_income"

    def test_out_of_range_bucket(self, validator):
        result = validator.validate_balance_rules(
            Decimal("2000"), Decimal("120"), Decimal("-20"), Decimal("0")
        )
        assert not result.schema_valid
        assert {i.field for i in result.issues} == {"needs_percentage", "wants_percentage"}


class TestFriendlySummary:
    def test_all_passed(self, run, validator, user_id):
        result = run(validator.validate(draft(user_id)))
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_errors_and_warnings(self, validator):
        result = validator.validate_balance_rules(
            Decimal("2000"), Decimal("10"), Decimal("10"), Decimal("10")
        )
        summary = validator.get_user_friendly_summary(result)
        assert summary.startswith("❌")
        assert "30%" in summary
