"""
Integration tests for the flows.

Everything runs against the in-memory storage and auth backends
wired by create_app_components(use_storage=False).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finance.models.audit import AuditAction, AuditEntityType
from finance.models.records import (
    Category,
    CategoryType,
    CreditCard,
    Currency,
    Theme,
    Transaction,
    TransactionFilter,
    TransactionType,
    UserPreferences,
)
from finance.models.summary import BalanceRuleBucket, BudgetStatus, ThermometerStatus
from finance.orchestrator import ValidationFailedError, revise
from finance.services.auth import AuthError
from finance.services.storage import NotFoundError


def new_transaction(user_id, amount, type_=TransactionType.EXPENSE, day=10, **kwargs):
    kwargs.setdefault("description", "Entry")
    return Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        type=type_,
        transaction_date=date(2024, 3, day),
        **kwargs,
    )


def save(run, components, transaction):
    saved, _ = run(components.transactions.save_transaction(transaction))
    return saved


class TestFactory:
    def test_offline_components(self, components):
        assert components.offline is True
        assert components.audit is not None


class TestAuthFlow:
    def test_sign_up_then_sign_in(self, run, components):
        created = run(components.auth.sign_up("Ana@Example.com", "secret123"))
        assert created.email == "ana@example.com"

        run(components.auth.sign_out())
        assert run(components.auth.current_session()) is None

        session = run(components.auth.sign_in("ana@example.com", "secret123"))
        assert session.user_id == created.user_id
        assert run(components.auth.current_session()) == session

    def test_wrong_password(self, run, components):
        run(components.auth.sign_up("ana@example.com", "secret123"))
        with pytest.raises(AuthError):
            run(components.auth.sign_in("ana@example.com", "wrong-password"))

    def test_duplicate_sign_up(self, run, components):
        run(components.auth.sign_up("ana@example.com", "secret123"))
        with pytest.raises(AuthError):
            run(components.auth.sign_up("ana@example.com", "secret123"))

    def test_short_password(self, run, components):
        with pytest.raises(AuthError, match="at least"):
            run(components.auth.sign_up("ana@example.com", "123"))


class TestTransactionFlow:
    def test_save_creates_and_audits(self, run, components, user_id):
        saved = save(run, components, new_transaction(user_id, "42.00"))

        listed = run(components.transactions.list_month_transactions(user_id, 3, 2024))
        assert [t.id for t in listed] == [saved.id]

        history = run(components.audit.entity_history(
            user_id, AuditEntityType.TRANSACTION, saved.id
        ))
        assert [e.action for e in history] == [AuditAction.INSERT]
        assert history[0].new_value["amount"] == "42.00"

    def test_save_existing_updates_with_old_and_new(self, run, components, user_id):
        saved = save(run, components, new_transaction(user_id, "42.00"))
        edited = saved.model_copy(update={"amount": Decimal("50.00")})
        save(run, components, edited)

        listed = run(components.transactions.list_month_transactions(user_id, 3, 2024))
        assert len(listed) == 1
        assert listed[0].amount == Decimal("50.00")

        history = run(components.audit.entity_history(
            user_id, AuditEntityType.TRANSACTION, saved.id
        ))
        assert history[-1].action == AuditAction.UPDATE
        assert history[-1].old_value["amount"] == "42.00"
        assert history[-1].new_value["amount"] == "50.00"
        assert history[-1].changed_fields == ["amount"]

    def test_moving_the_date_moves_the_month(self, run, components, user_id):
        saved = save(run, components, new_transaction(user_id, "10.00"))
        moved = Transaction.model_validate(
            {**saved.model_dump(), "transaction_date": date(2024, 4, 2)}
        )
        save(run, components, moved)

        assert run(components.transactions.list_month_transactions(user_id, 3, 2024)) == []
        april = run(components.transactions.list_month_transactions(user_id, 4, 2024))
        assert april[0].month == 4

    def test_errors_block_the_write(self, run, components, user_id):
        salary = run(components.categories.save_category(
            Category(user_id=user_id, name="Salary", type=CategoryType.INCOME)
        ))
        with pytest.raises(ValidationFailedError) as exc_info:
            run(components.transactions.save_transaction(
                new_transaction(user_id, "10.00", category_id=salary.id)
            ))
        assert exc_info.value.result.has_errors
        assert run(components.transactions.list_month_transactions(user_id, 3, 2024)) == []

    def test_warnings_are_returned(self, run, components, user_id):
        _, result = run(components.transactions.save_transaction(
            new_transaction(user_id, "-15.00")
        ))
        assert result.is_valid
        assert result.warnings

    def test_delete_audits_old_value(self, run, components, user_id):
        saved = save(run, components, new_transaction(user_id, "42.00"))
        assert run(components.transactions.delete_transaction(user_id, saved.id)) is True
        assert run(components.transactions.delete_transaction(user_id, saved.id)) is False

        history = run(components.audit.entity_history(
            user_id, AuditEntityType.TRANSACTION, saved.id
        ))
        assert [e.action for e in history] == [AuditAction.INSERT, AuditAction.DELETE]
        assert history[-1].old_value["description"] == "Entry"

    def test_month_list_by_type_and_fixed_flag(self, run, components, user_id):
        save(run, components, new_transaction(user_id, "1000", TransactionType.INCOME))
        save(run, components, new_transaction(user_id, "500", is_fixed=True))
        save(run, components, new_transaction(user_id, "80"))

        fixed = run(components.transactions.list_month_transactions(
            user_id, 3, 2024, TransactionType.EXPENSE, is_fixed=True
        ))
        variable = run(components.transactions.list_month_transactions(
            user_id, 3, 2024, TransactionType.EXPENSE, is_fixed=False
        ))
        assert [t.amount for t in fixed] == [Decimal("500")]
        assert [t.amount for t in variable] == [Decimal("80")]

    def test_search_pagination(self, run, components, user_id):
        for day in range(1, 26):
            save(run, components, new_transaction(user_id, "10.00", day=day))

        page = run(components.transactions.search_transactions(
            user_id, TransactionFilter(month=3, year=2024), page=3
        ))
        assert page.total_count == 25
        assert page.page_size == 10
        assert page.total_pages == 3
        assert len(page.items) == 5
        assert not page.has_next
        assert page.items[0].transaction_date.day == 5

    def test_search_with_filters(self, run, components, user_id):
        card = run(components.cards.save_card(CreditCard(user_id=user_id, name="Visa")))
        save(run, components, new_transaction(user_id, "10.00", card_id=card.id))
        save(run, components, new_transaction(user_id, "20.00"))

        page = run(components.transactions.search_transactions(
            user_id, TransactionFilter(card_id=card.id)
        ))
        assert page.total_count == 1
        assert page.items[0].card_name == "Visa"


class TestMonthFlow:
    def test_settings_created_with_defaults(self, run, components, user_id):
        settings = run(components.months.get_or_create_settings(user_id, 3, 2024))
        assert settings.initial_income == Decimal("2000")
        assert settings.needs_percentage == Decimal("0.5")
        assert settings.wants_percentage == Decimal("0.2")
        assert settings.savings_percentage == Decimal("0.3")
        assert settings.investment_percentage == 0
        assert settings.thermometer_status == "In the blue 🟢"

    def test_get_or_create_is_idempotent(self, run, components, user_id):
        first = run(components.months.get_or_create_settings(user_id, 3, 2024))
        second = run(components.months.get_or_create_settings(user_id, 3, 2024))
        assert first.id == second.id

        history = run(components.audit.entity_history(
            user_id, AuditEntityType.MONTHLY_SETTINGS, first.id
        ))
        assert len(history) == 1

    def test_overview_with_negative_amount(self, run, components, user_id):
        """A negative entry still sums correctly into the balance."""
        save(run, components, new_transaction(user_id, "3000", TransactionType.INCOME))
        save(run, components, new_transaction(user_id, "1000", is_fixed=True))
        save(run, components, new_transaction(user_id, "-100"))
        save(run, components, new_transaction(user_id, "500", TransactionType.INVESTMENT))

        summary = run(components.months.overview(user_id, 3, 2024))
        assert summary.variable_expenses == Decimal("-100")
        assert summary.balance == Decimal("1600")

    def test_balance_report(self, run, components, user_id):
        save(run, components, new_transaction(user_id, "1050", is_fixed=True))
        save(run, components, new_transaction(user_id, "500"))

        report = run(components.months.balance_report(user_id, 3, 2024))
        assert report.line(BalanceRuleBucket.NEEDS).status == BudgetStatus.WARNING
        assert report.line(BalanceRuleBucket.WANTS).status == BudgetStatus.OVER
        assert report.line(BalanceRuleBucket.SAVINGS).status == BudgetStatus.ON_TRACK

    def test_sync_thermometer_rewrites_label(self, run, components, user_id):
        save(run, components, new_transaction(user_id, "100"))

        reading = run(components.months.sync_thermometer(user_id, 3, 2024))
        assert reading.status == ThermometerStatus.IN_THE_RED

        settings = run(components.months.get_or_create_settings(user_id, 3, 2024))
        assert settings.thermometer_status == "In the red 🔴"

    def test_save_notes(self, run, components, user_id):
        saved = run(components.months.save_notes(user_id, 3, 2024, "  Paid the car insurance  "))
        assert saved.notes == "Paid the car insurance"
        settings = run(components.months.get_or_create_settings(user_id, 3, 2024))
        assert settings.notes == "Paid the car insurance"

        cleared = run(components.months.save_notes(user_id, 3, 2024, "   "))
        assert cleared.notes is None

    def test_audit_history_is_newest_first(self, run, components, user_id):
        save(run, components, new_transaction(user_id, "10.00"))
        card = run(components.cards.save_card(CreditCard(user_id=user_id, name="Visa")))

        now = datetime.utcnow()
        history = run(components.months.audit_history(user_id, now.month, now.year))
        assert len(history) == 2
        assert history[0].entity_id == card.id

        previous_year = run(components.months.audit_history(user_id, now.month, now.year - 1))
        assert previous_year == []


class TestDashboardFlow:
    def test_summary_excludes_investments(self, run, components, user_id):
        save(run, components, new_transaction(user_id, "3000", TransactionType.INCOME))
        save(run, components, new_transaction(user_id, "1000", is_fixed=True))
        save(run, components, new_transaction(user_id, "3000", TransactionType.INVESTMENT))

        summary = run(components.dashboard.financial_summary(user_id, 3, 2024))
        assert summary.balance == Decimal("2000")

        reading = run(components.dashboard.thermometer(user_id, 3, 2024))
        assert reading.status == ThermometerStatus.IN_THE_BLUE

    def test_neutral_month(self, run, components, user_id):
        reading = run(components.dashboard.thermometer(user_id, 3, 2024))
        assert reading.status == ThermometerStatus.NEUTRAL

    def test_expense_breakdown(self, run, components, user_id):
        food = run(components.categories.save_category(Category(user_id=user_id, name="Food")))
        save(run, components, new_transaction(user_id, "30", category_id=food.id))
        save(run, components, new_transaction(user_id, "20", category_id=food.id))
        save(run, components, new_transaction(user_id, "70"))

        breakdown = run(components.dashboard.expense_breakdown(user_id, 3, 2024))
        assert [(c.name, c.total) for c in breakdown] == [
            ("Other", Decimal("70")),
            ("Food", Decimal("50")),
        ]


class TestCardAndCategoryFlows:
    def test_invoices(self, run, components, user_id):
        visa = run(components.cards.save_card(
            CreditCard(user_id=user_id, name="Visa", credit_limit=Decimal("1000"))
        ))
        save(run, components, new_transaction(user_id, "250", card_id=visa.id))
        save(run, components, new_transaction(user_id, "100", card_id=visa.id, day=1))

        invoices = run(components.cards.invoices(user_id, 3, 2024))
        assert invoices[0].current_invoice == Decimal("350")
        assert invoices[0].available_credit == Decimal("650")
        assert run(components.cards.invoices(user_id, 4, 2024))[0].current_invoice == 0

    def test_edit_card_is_audited(self, run, components, user_id):
        card = run(components.cards.save_card(CreditCard(user_id=user_id, name="Visa")))
        renamed = card.model_copy(update={"name": "Visa Gold"})
        run(components.cards.save_card(renamed))

        assert [c.name for c in run(components.cards.list_cards(user_id))] == ["Visa Gold"]
        history = run(components.audit.entity_history(user_id, AuditEntityType.CARD, card.id))
        assert [e.action for e in history] == [AuditAction.INSERT, AuditAction.UPDATE]

    def test_delete_card_keeps_transactions(self, run, components, user_id):
        card = run(components.cards.save_card(CreditCard(user_id=user_id, name="Visa")))
        saved = save(run, components, new_transaction(user_id, "10", card_id=card.id))

        assert run(components.cards.delete_card(user_id, card.id)) is True

        listed = run(components.transactions.list_month_transactions(user_id, 3, 2024))
        assert listed[0].id == saved.id
        assert listed[0].card_id is None

    def test_categories_for_transaction_type(self, run, components, user_id):
        for name, type_ in [
            ("Rent", CategoryType.FIXED_EXPENSE),
            ("Coffee", CategoryType.VARIABLE_EXPENSE),
            ("Salary", CategoryType.INCOME),
        ]:
            run(components.categories.save_category(Category(user_id=user_id, name=name, type=type_)))

        fixed = run(components.categories.categories_for(user_id, TransactionType.EXPENSE, True))
        income = run(components.categories.categories_for(user_id, TransactionType.INCOME))
        assert [c.name for c in fixed] == ["Rent"]
        assert [c.name for c in income] == ["Salary"]

    def test_delete_category(self, run, components, user_id):
        category = run(components.categories.save_category(Category(user_id=user_id, name="Food")))
        assert run(components.categories.delete_category(user_id, category.id)) is True
        assert run(components.categories.list_categories(user_id)) == []

    def test_edit_category_is_audited(self, run, components, user_id):
        category = run(components.categories.save_category(Category(user_id=user_id, name="Food")))
        run(components.categories.save_category(
            revise(category, name="Groceries", type=CategoryType.FIXED_EXPENSE)
        ))

        listed = run(components.categories.list_categories(user_id))
        assert [(c.id, c.name, c.type) for c in listed] == [
            (category.id, "Groceries", CategoryType.FIXED_EXPENSE)
        ]
        history = run(components.audit.entity_history(user_id, AuditEntityType.CATEGORY, category.id))
        assert [e.action for e in history] == [AuditAction.INSERT, AuditAction.UPDATE]
        assert history[-1].changed_fields == ["name", "type"]

    def test_blank_category_name_is_rejected_on_edit(self, run, components, user_id):
        category = run(components.categories.save_category(Category(user_id=user_id, name="Food")))
        with pytest.raises(ValueError):
            revise(category, name="   ")


class TestSettingsFlow:
    def test_load_defaults_when_nothing_saved(self, run, components, user_id):
        rules = run(components.settings.load_balance_rules(user_id))
        assert rules.total_percentage == 100
        assert rules.month == date.today().month

    def test_save_balance_rules(self, run, components, user_id):
        saved = run(components.settings.save_balance_rules(
            user_id, Decimal("3000"), Decimal("40"), Decimal("20"), Decimal("30"), Decimal("10"),
            month=3, year=2024,
        ))
        assert saved.needs_percentage == Decimal("0.4")
        assert saved.investment_percentage == Decimal("0.1")
        assert saved.initial_income == Decimal("3000")

        loaded = run(components.settings.load_balance_rules(user_id))
        assert loaded.id == saved.id

        month = run(components.months.get_or_create_settings(user_id, 3, 2024))
        assert month.wants_percentage == Decimal("0.2")

    def test_rules_must_total_100(self, run, components, user_id):
        with pytest.raises(ValidationFailedError, match="100%"):
            run(components.settings.save_balance_rules(
                user_id, Decimal("3000"), Decimal("40"), Decimal("20"), Decimal("30"),
            ))
        assert run(components.settings.load_balance_rules(user_id)).needs_percentage == Decimal("0.5")

    def test_latest_rules_are_loaded(self, run, components, user_id):
        run(components.months.get_or_create_settings(user_id, 1, 2024))
        later = run(components.settings.save_balance_rules(
            user_id, Decimal("2500"), Decimal("60"), Decimal("20"), Decimal("20"),
            month=2, year=2024,
        ))
        assert run(components.settings.load_balance_rules(user_id)).id == later.id

    def test_current_month_rule_wins_over_newer_months(self, run, components, user_id):
        """Visiting another month creates a newer default row; the saved rule still loads."""
        saved = run(components.settings.save_balance_rules(
            user_id, Decimal("4000"), Decimal("60"), Decimal("10"), Decimal("30"),
        ))
        today = date.today()
        next_month, next_year = (1, today.year + 1) if today.month == 12 else (today.month + 1, today.year)
        run(components.months.get_or_create_settings(user_id, next_month, next_year))

        loaded = run(components.settings.load_balance_rules(user_id))
        assert loaded.id == saved.id
        assert loaded.needs_percentage == Decimal("0.6")

    def test_preferences_single_row(self, run, components, user_id):
        defaults = run(components.settings.load_preferences(user_id))
        assert defaults.currency == Currency.BRL

        run(components.settings.save_preferences(
            UserPreferences(user_id=user_id, currency=Currency.USD)
        ))
        # A fresh object (new id) updates the same row
        run(components.settings.save_preferences(
            UserPreferences(user_id=user_id, currency=Currency.EUR, theme=Theme.DARK)
        ))

        loaded = run(components.settings.load_preferences(user_id))
        assert loaded.currency == Currency.EUR
        assert loaded.theme == Theme.DARK

        history = run(components.audit.entity_history(
            user_id, AuditEntityType.USER_PREFERENCES, loaded.id
        ))
        assert [e.action for e in history] == [AuditAction.INSERT, AuditAction.UPDATE]


class TestGoalFlow:
    def test_add_and_toggle(self, run, components, user_id):
        goal = run(components.goals.add_goal(
            user_id, 3, 2024, "Emergency fund", Decimal("1000"), Decimal("250")
        ))
        assert goal.progress == 0.25

        toggled = run(components.goals.toggle_goal(user_id, goal.id))
        assert toggled.is_completed is True
        again = run(components.goals.toggle_goal(user_id, goal.id))
        assert again.is_completed is False

        goals = run(components.goals.list_goals(user_id, 3, 2024))
        assert [g.goal_name for g in goals] == ["Emergency fund"]

    def test_toggle_missing_goal(self, run, components, user_id):
        with pytest.raises(NotFoundError):
            run(components.goals.toggle_goal(user_id, uuid4()))

    def test_invalid_goal(self, run, components, user_id):
        with pytest.raises(ValueError):
            run(components.goals.add_goal(user_id, 3, 2024, "Nothing", Decimal("0")))

    def test_delete_goal(self, run, components, user_id):
        goal = run(components.goals.add_goal(user_id, 3, 2024, "Trip", Decimal("500")))
        assert run(components.goals.delete_goal(user_id, goal.id)) is True
        assert run(components.goals.list_goals(user_id, 3, 2024)) == []
