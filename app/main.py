"""
Streamlit Frontend for Finance Tracker

This is the user interface for tracking a household's month:
income, fixed and variable expenses, investments, cards and goals.

DESIGN PRINCIPLES:
1. Every page reads fresh rows and recomputes its numbers
2. Every change is an explicit button press followed by a refresh
3. Backend errors become short messages, never a crash
4. Warnings are shown, errors block the save

Each browser session gets its own components (and its own Supabase
client), because the client carries the signed-in user's token.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import streamlit as st

from finance.config import validate_all_settings
from finance.models.records import (
    MONTH_NAMES,
    Category,
    CategoryType,
    CreditCard,
    Currency,
    Theme,
    Transaction,
    TransactionFilter,
    TransactionType,
    UserPreferences,
    month_name,
)
from finance.models.summary import BudgetStatus
from finance.orchestrator import (
    AppComponents,
    ValidationFailedError,
    create_app_components,
    revise,
)
from finance.services.auth import AuthError, AuthSession
from finance.summaries import as_percent, format_money, goal_progress


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .thermometer {
        padding: 20px;
        border-radius: 10px;
        margin: 10px 0;
        font-size: 1.5em;
        font-weight: bold;
    }
    .in_the_blue { background-color: #d4edda; border-left: 5px solid #28a745; }
    .neutral { background-color: #fff3cd; border-left: 5px solid #ffc107; }
    .in_the_red { background-color: #f8d7da; border-left: 5px solid #dc3545; }
</style>
""", unsafe_allow_html=True)

TYPE_LABELS = {
    TransactionType.INCOME: "Income",
    TransactionType.EXPENSE: "Expense",
    TransactionType.INVESTMENT: "Investment",
}

CATEGORY_TYPE_LABELS = {
    CategoryType.INCOME: "Income",
    CategoryType.FIXED_EXPENSE: "Fixed expense",
    CategoryType.VARIABLE_EXPENSE: "Variable expense",
    CategoryType.INVESTMENT: "Investment",
}

STATUS_ICONS = {
    BudgetStatus.ON_TRACK: "✅",
    BudgetStatus.WARNING: "⚠️",
    BudgetStatus.OVER: "❌",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> AppComponents:
    """Get or create this session's application components."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components(use_storage=True)
    return st.session_state.components


def to_money(value: float) -> Decimal:
    """number_input float -> 2-place Decimal."""
    return Decimal(str(round(value, 2)))


def money(amount: Decimal) -> str:
    return format_money(amount, st.session_state.get("currency", Currency.BRL))


def show_result(action: str, coro) -> Optional[object]:
    """
    Run a flow call, turning failures into a transient message.

    Returns the call's result, or None when it failed.
    """
    try:
        return run_async(coro)
    except ValidationFailedError as e:
        st.error(str(e))
    except (AuthError, ValueError) as e:
        st.error(f"Could not {action}: {e}")
    except Exception as e:
        st.error(f"Could not {action}. Please try again. ({e})")
    return None


def flash(message: str, level: str = "success"):
    """Queue a message for the next run; st.rerun() drops anything drawn now."""
    st.session_state.setdefault("flash", []).append((level, message))


def show_flash():
    for level, message in st.session_state.pop("flash", []):
        getattr(st, level)(message)


def main():
    """Main application entry point."""
    components = get_components()
    show_flash()

    if components.offline:
        st.sidebar.warning("Offline demo: data lives only in this browser session.")

    session: Optional[AuthSession] = st.session_state.get("auth_session")
    if session is None:
        render_login_page(components)
        return

    preferences = show_result(
        "load preferences", components.settings.load_preferences(session.user_id)
    )
    if preferences is not None:
        st.session_state.currency = preferences.currency

    # Sidebar navigation
    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.caption(session.email)
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🗓️ Month", "📋 Transactions", "💳 Cards", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    today = date.today()
    default_year = preferences.default_year if preferences else today.year
    month = st.sidebar.selectbox(
        "Month",
        options=list(range(1, 13)),
        index=today.month - 1,
        format_func=month_name,
    )
    year = st.sidebar.number_input(
        "Year", min_value=2000, max_value=2100, value=default_year, step=1
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Sign out"):
        show_result("sign out", components.auth.sign_out())
        st.session_state.pop("auth_session", None)
        st.rerun()

    user_id = session.user_id
    year = int(year)

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components, user_id, month, year)
    elif page == "🗓️ Month":
        render_month_page(components, user_id, month, year)
    elif page == "📋 Transactions":
        render_transactions_page(components, user_id)
    elif page == "💳 Cards":
        render_cards_page(components, user_id, month, year)
    elif page == "⚙️ Settings":
        render_settings_page(components, user_id)


def render_login_page(components: AppComponents):
    """Sign in / sign up."""
    st.title("💰 Finance Tracker")

    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            session = show_result("sign in", components.auth.sign_in(email, password))
            if session is not None:
                st.session_state.auth_session = session
                st.rerun()

    with sign_up_tab:
        with st.form("sign_up"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            session = show_result("create the account", components.auth.sign_up(email, password))
            if session is not None and session.access_token:
                st.session_state.auth_session = session
                st.rerun()
            elif session is not None:
                st.info("Account created. Check your email to confirm it, then sign in.")


def render_dashboard_page(components: AppComponents, user_id: UUID, month: int, year: int):
    """Income vs expenses, thermometer, category chart and goals."""
    st.title(f"📊 Dashboard - {month_name(month)} {year}")

    summary = show_result(
        "load the summary", components.dashboard.financial_summary(user_id, month, year)
    )
    if summary is None:
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(summary.income))
    col2.metric("Expenses", money(summary.expenses))
    col3.metric("Balance", money(summary.balance))

    reading = show_result(
        "load the thermometer", components.dashboard.thermometer(user_id, month, year)
    )
    if reading is None:
        return
    st.markdown(
        f'<div class="thermometer {reading.status.value}">{reading.display}</div>',
        unsafe_allow_html=True,
    )

    st.markdown("### Expenses by category")
    breakdown = show_result(
        "load the expense chart", components.dashboard.expense_breakdown(user_id, month, year)
    )
    if breakdown:
        st.bar_chart(
            [{"category": c.name, "total": float(c.total)} for c in breakdown],
            x="category",
            y="total",
        )
    elif breakdown is not None:
        st.info("No expenses this month yet.")

    render_goals(components, user_id, month, year)


def render_goals(components: AppComponents, user_id: UUID, month: int, year: int):
    st.markdown("### 🎯 Monthly goals")

    goals = show_result("load goals", components.goals.list_goals(user_id, month, year)) or []
    for goal in goals:
        col1, col2 = st.columns([4, 1])
        with col1:
            label = f"~~{goal.goal_name}~~" if goal.is_completed else goal.goal_name
            st.markdown(f"{label} - {money(goal.current_amount)} / {money(goal.target_amount)}")
            st.progress(goal_progress(goal))
        with col2:
            button = "Reopen" if goal.is_completed else "Done"
            if st.button(button, key=f"goal_{goal.id}"):
                if show_result("update the goal", components.goals.toggle_goal(user_id, goal.id)):
                    flash("Goal updated.")
                    st.rerun()

    with st.expander("➕ Add goal"):
        with st.form("add_goal", clear_on_submit=True):
            name = st.text_input("Goal")
            target = st.number_input("Target amount", min_value=0.0, step=50.0, format="%.2f")
            current = st.number_input("Saved so far", min_value=0.0, step=50.0, format="%.2f")
            submitted = st.form_submit_button("Add goal")
        if submitted:
            if not name.strip() or target <= 0:
                st.error("Please fill in the goal name and a valid target amount.")
            elif show_result(
                "add the goal",
                components.goals.add_goal(
                    user_id, month, year, name, to_money(target), to_money(current)
                ),
            ):
                flash("Goal added.")
                st.rerun()


def render_month_page(components: AppComponents, user_id: UUID, month: int, year: int):
    """Month overview, balance rule, transaction lists, notes and history."""
    st.title(f"🗓️ {month_name(month)} {year}")

    settings = show_result(
        "load the month settings",
        components.months.get_or_create_settings(user_id, month, year),
    )
    if settings is None:
        return

    summary = show_result("load the month", components.months.overview(user_id, month, year))
    reading = show_result(
        "update the thermometer", components.months.sync_thermometer(user_id, month, year)
    )
    if summary is None or reading is None:
        return

    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Income", money(summary.income))
    col2.metric("Fixed expenses", money(summary.fixed_expenses))
    col3.metric("Variable expenses", money(summary.variable_expenses))
    col4.metric("Investments", money(summary.investments))
    col5.metric("Balance", money(summary.balance))
    st.markdown(
        f'<div class="thermometer {reading.status.value}">{reading.display}</div>',
        unsafe_allow_html=True,
    )

    st.markdown("### ⚖️ Balance rule")
    report = show_result(
        "load the balance rule", components.months.balance_report(user_id, month, year)
    )
    if report is not None:
        st.caption(f"Base income: {money(report.initial_income)}")
        for line in report.lines:
            st.markdown(
                f"{STATUS_ICONS[line.status]} **{line.bucket.value.title()}** "
                f"({line.percentage * 100:.0f}%): {money(line.actual)} of {money(line.ideal)}"
            )
        st.caption(f"Total outflow: {money(report.total_outflow)}")

    sections = [
        ("💵 Income", TransactionType.INCOME, None),
        ("🏠 Fixed expenses", TransactionType.EXPENSE, True),
        ("🛒 Variable expenses", TransactionType.EXPENSE, False),
        ("📈 Investments", TransactionType.INVESTMENT, None),
    ]
    for title, transaction_type, is_fixed in sections:
        st.markdown(f"### {title}")
        render_transaction_list(components, user_id, month, year, transaction_type, is_fixed)

    st.markdown("### 📝 Notes")
    with st.form("notes"):
        notes = st.text_area("Notes for the month", value=settings.notes or "")
        if st.form_submit_button("Save notes"):
            if show_result("save notes", components.months.save_notes(user_id, month, year, notes)):
                st.success("Notes saved.")

    st.markdown("### 🕓 Change history")
    history = show_result(
        "load the change history", components.months.audit_history(user_id, month, year)
    ) or []
    if not history:
        st.caption("No changes recorded this month.")
    for event in history:
        st.markdown(f"`{event.changed_at:%d/%m/%Y %H:%M}` {event.description}")


def render_transaction_list(
    components: AppComponents,
    user_id: UUID,
    month: int,
    year: int,
    transaction_type: TransactionType,
    is_fixed: Optional[bool],
):
    key = f"{transaction_type.value}_{is_fixed}"
    transactions = show_result(
        "load transactions",
        components.transactions.list_month_transactions(
            user_id, month, year, transaction_type, is_fixed
        ),
    ) or []

    for t in transactions:
        render_transaction_row(components, user_id, t, month, year)

    with st.expander("➕ Add"):
        render_transaction_form(
            components, user_id, transaction_type, bool(is_fixed),
            month=month, year=year, key=f"add_{key}",
        )


def render_transaction_row(
    components: AppComponents,
    user_id: UUID,
    t: Transaction,
    month: int,
    year: int,
):
    """One transaction as an expander with its edit form and delete button."""
    with st.expander(
        f"{t.transaction_date:%d/%m/%Y} · {TYPE_LABELS[t.type]} · "
        f"{t.description or '-'} · {money(t.amount)}"
        + (f" · {t.category_name}" if t.category_name else "")
        + (f" · 💳 {t.card_name}" if t.card_name else "")
    ):
        render_transaction_form(
            components, user_id, t.type, t.is_fixed,
            month=month, year=year, existing=t, key=f"edit_{t.id}",
        )
        if st.button("🗑️ Delete", key=f"delete_{t.id}"):
            if show_result(
                "delete the transaction",
                components.transactions.delete_transaction(user_id, t.id),
            ):
                flash("Transaction deleted.")
                st.rerun()


def render_transaction_form(
    components: AppComponents,
    user_id: UUID,
    transaction_type: TransactionType,
    is_fixed: bool,
    month: int,
    year: int,
    existing: Optional[Transaction] = None,
    key: str = "transaction",
):
    """Create or edit a transaction of a fixed type."""
    categories = show_result(
        "load categories",
        components.categories.categories_for(user_id, transaction_type, is_fixed),
    ) or []
    cards = []
    if transaction_type == TransactionType.EXPENSE:
        cards = show_result("load cards", components.cards.list_cards(user_id)) or []
    category_ids = [None] + [c.id for c in categories]
    category_names = {c.id: c.name for c in categories}
    card_ids = [None] + [c.id for c in cards]
    card_names = {c.id: c.name for c in cards}

    default_date = date.today()
    if (default_date.month, default_date.year) != (month, year):
        default_date = date(year, month, 1)

    with st.form(key, clear_on_submit=existing is None):
        description = st.text_input(
            "Description", value=existing.description if existing else ""
        )
        amount = st.number_input(
            "Amount",
            value=float(existing.amount) if existing else 0.0,
            step=10.0,
            format="%.2f",
        )
        transaction_date = st.date_input(
            "Date", value=existing.transaction_date if existing else default_date
        )
        category_id = st.selectbox(
            "Category",
            options=category_ids,
            index=category_ids.index(existing.category_id)
            if existing and existing.category_id in category_ids else 0,
            format_func=lambda c: "No category" if c is None else category_names[c],
        )
        card_id = None
        if transaction_type == TransactionType.EXPENSE:
            card_id = st.selectbox(
                "Card",
                options=card_ids,
                index=card_ids.index(existing.card_id)
                if existing and existing.card_id in card_ids else 0,
                format_func=lambda c: "No card" if c is None else card_names[c],
            )
        submitted = st.form_submit_button("Save" if existing else "Add", type="primary")

    if not submitted:
        return

    fields = dict(
        user_id=user_id,
        description=description,
        amount=to_money(amount),
        type=transaction_type,
        category_id=category_id,
        card_id=card_id,
        transaction_date=transaction_date,
        is_fixed=is_fixed,
    )
    try:
        if existing:
            draft = Transaction(id=existing.id, created_at=existing.created_at, **fields)
        else:
            draft = Transaction(**fields)
    except ValueError as e:
        st.error(f"Invalid transaction: {e}")
        return

    saved = show_result("save the transaction", components.transactions.save_transaction(draft))
    if saved is not None:
        _, result = saved
        flash("Transaction saved.")
        for warning in result.warnings:
            flash(warning, "warning")
        st.rerun()


def render_transactions_page(components: AppComponents, user_id: UUID):
    """All transactions, filtered and paginated."""
    st.title("📋 Transactions")

    categories = show_result(
        "load categories", components.categories.list_categories(user_id)
    ) or []
    cards = show_result("load cards", components.cards.list_cards(user_id)) or []
    category_names = {c.id: c.name for c in categories}
    card_names = {c.id: c.name for c in cards}

    col1, col2, col3 = st.columns(3)
    with col1:
        month = st.selectbox(
            "Month", options=[None] + list(range(1, 13)),
            format_func=lambda m: "All months" if m is None else MONTH_NAMES[m - 1],
        )
        year = st.selectbox(
            "Year", options=[None] + list(range(date.today().year, 1999, -1)),
            format_func=lambda y: "All years" if y is None else str(y),
        )
    with col2:
        transaction_type = st.selectbox(
            "Type", options=[None] + list(TransactionType),
            format_func=lambda t: "All types" if t is None else TYPE_LABELS[t],
        )
        is_fixed = st.selectbox(
            "Fixed", options=[None, True, False],
            format_func=lambda f: {None: "Any", True: "Fixed only", False: "Not fixed"}[f],
        )
    with col3:
        category_id = st.selectbox(
            "Category", options=[None] + list(category_names),
            format_func=lambda c: "All categories" if c is None else category_names[c],
        )
        card_id = st.selectbox(
            "Card", options=[None] + list(card_names),
            format_func=lambda c: "All cards" if c is None else card_names[c],
        )

    filters = TransactionFilter(
        month=month,
        year=year,
        type=transaction_type,
        category_id=category_id,
        card_id=card_id,
        is_fixed=is_fixed,
    )

    # Back to the first page whenever the filters change
    if st.session_state.get("transaction_filters") != filters:
        st.session_state.transaction_filters = filters
        st.session_state.transaction_page = 1

    page = show_result(
        "load transactions",
        components.transactions.search_transactions(
            user_id, filters, page=st.session_state.transaction_page
        ),
    )
    if page is None:
        return

    with st.expander("➕ Add transaction"):
        new_type = st.selectbox(
            "Type", options=list(TransactionType), key="new_transaction_type",
            format_func=lambda t: TYPE_LABELS[t],
        )
        new_fixed = False
        if new_type == TransactionType.EXPENSE:
            new_fixed = st.checkbox("Fixed expense", key="new_transaction_fixed")
        today = date.today()
        render_transaction_form(
            components, user_id, new_type, new_fixed,
            month=today.month, year=today.year,
            key=f"add_transaction_{new_type.value}_{new_fixed}",
        )

    st.markdown("---")
    if not page.items:
        st.info("No transactions match these filters.")
    for t in page.items:
        render_transaction_row(components, user_id, t, t.month, t.year)

    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button("◀ Previous", disabled=not page.has_previous):
            st.session_state.transaction_page -= 1
            st.rerun()
    with col2:
        st.markdown(
            f"Page {page.page} of {page.total_pages} · {page.total_count} transactions"
        )
    with col3:
        if st.button("Next ▶", disabled=not page.has_next):
            st.session_state.transaction_page += 1
            st.rerun()


def render_cards_page(components: AppComponents, user_id: UUID, month: int, year: int):
    """Cards with the month's invoice."""
    st.title("💳 Cards")
    st.caption(f"Invoices for {month_name(month)} {year}")

    invoices = show_result("load cards", components.cards.invoices(user_id, month, year))
    cards = show_result("load cards", components.cards.list_cards(user_id)) or []
    by_id = {c.id: c for c in cards}

    for invoice in invoices or []:
        card = by_id.get(invoice.card_id)
        with st.expander(f"{invoice.name} · {money(invoice.current_invoice)}"):
            if invoice.credit_limit is not None:
                st.markdown(
                    f"Limit {money(invoice.credit_limit)} · "
                    f"available {money(invoice.available_credit)}"
                )
                if invoice.usage is not None:
                    st.progress(max(0.0, min(1.0, invoice.usage)))
            if card is None:
                continue
            render_card_form(components, user_id, existing=card, key=f"card_{card.id}")
            if st.button("🗑️ Delete card", key=f"delete_card_{card.id}"):
                if show_result("delete the card", components.cards.delete_card(user_id, card.id)):
                    flash("Card deleted.")
                    st.rerun()

    st.markdown("### ➕ New card")
    render_card_form(components, user_id, key="new_card")


def render_card_form(
    components: AppComponents,
    user_id: UUID,
    existing: Optional[CreditCard] = None,
    key: str = "card",
):
    with st.form(key, clear_on_submit=existing is None):
        name = st.text_input("Name", value=existing.name if existing else "")
        limit = st.number_input(
            "Credit limit (0 = not set)",
            min_value=0.0,
            value=float(existing.credit_limit or 0) if existing else 0.0,
            step=100.0,
            format="%.2f",
        )
        last_invoice = st.date_input(
            "Last invoice date",
            value=existing.last_invoice_date if existing else None,
        )
        submitted = st.form_submit_button("Save" if existing else "Add card")

    if not submitted:
        return
    if not name.strip():
        st.error("Card name is required.")
        return

    fields = dict(
        user_id=user_id,
        name=name,
        credit_limit=to_money(limit) if limit else None,
        last_invoice_date=last_invoice,
    )
    card = CreditCard(id=existing.id, **fields) if existing else CreditCard(**fields)
    if show_result("save the card", components.cards.save_card(card)):
        flash("Card saved.")
        st.rerun()


def render_settings_page(components: AppComponents, user_id: UUID):
    """Balance rules, categories, preferences and connection status."""
    st.title("⚙️ Settings")

    rules_tab, categories_tab, preferences_tab, status_tab = st.tabs(
        ["Balance rules", "Categories", "Preferences", "Connection"]
    )

    with rules_tab:
        render_balance_rules(components, user_id)
    with categories_tab:
        render_categories(components, user_id)
    with preferences_tab:
        render_preferences(components, user_id)
    with status_tab:
        render_connection_status(components)


def render_balance_rules(components: AppComponents, user_id: UUID):
    st.markdown("### ⚖️ Balance rule (50/20/30)")
    st.caption(
        "Split your base income into needs, wants, savings and investment. "
        "The total must be 100%. Saved to the current month."
    )

    rules = show_result("load the balance rule", components.settings.load_balance_rules(user_id))
    if rules is None:
        return

    with st.form("balance_rules"):
        income = st.number_input(
            "Base monthly income", min_value=0.0,
            value=float(rules.initial_income), step=100.0, format="%.2f",
        )
        col1, col2, col3, col4 = st.columns(4)
        needs = col1.number_input("Needs %", 0, 100, as_percent(rules.needs_percentage))
        wants = col2.number_input("Wants %", 0, 100, as_percent(rules.wants_percentage))
        savings = col3.number_input("Savings %", 0, 100, as_percent(rules.savings_percentage))
        investment = col4.number_input(
            "Investment %", 0, 100, as_percent(rules.investment_percentage)
        )
        total = needs + wants + savings + investment
        st.caption(f"Total: {total}%")
        submitted = st.form_submit_button("Save rule", type="primary")

    if submitted:
        saved = show_result(
            "save the balance rule",
            components.settings.save_balance_rules(
                user_id,
                to_money(income),
                Decimal(needs),
                Decimal(wants),
                Decimal(savings),
                Decimal(investment),
            ),
        )
        if saved is not None:
            st.success("Balance rule saved.")


def render_categories(components: AppComponents, user_id: UUID):
    st.markdown("### 🏷️ Categories")

    categories = show_result("load categories", components.categories.list_categories(user_id)) or []
    category_types = list(CategoryType)
    for category in categories:
        with st.expander(f"{category.name} · {CATEGORY_TYPE_LABELS[category.type]}"):
            with st.form(f"edit_category_{category.id}"):
                name = st.text_input("Name", value=category.name)
                category_type = st.selectbox(
                    "Type", options=category_types,
                    index=category_types.index(category.type),
                    format_func=lambda t: CATEGORY_TYPE_LABELS[t],
                )
                saved = st.form_submit_button("Save changes", type="primary")
            if saved:
                try:
                    updated = revise(category, name=name, type=category_type)
                except ValueError as e:
                    st.error(f"Invalid category: {e}")
                else:
                    if show_result(
                        "save the category",
                        components.categories.save_category(updated),
                    ):
                        flash("Category updated.")
                        st.rerun()

            if st.button("🗑️ Delete", key=f"delete_category_{category.id}"):
                if show_result(
                    "delete the category",
                    components.categories.delete_category(user_id, category.id),
                ):
                    flash("Category deleted.")
                    st.rerun()

    with st.form("new_category", clear_on_submit=True):
        name = st.text_input("Name")
        category_type = st.selectbox(
            "Type", options=list(CategoryType),
            format_func=lambda t: CATEGORY_TYPE_LABELS[t],
        )
        submitted = st.form_submit_button("Add category")
    if submitted:
        if not name.strip():
            st.error("Category name is required.")
        elif show_result(
            "save the category",
            components.categories.save_category(
                Category(user_id=user_id, name=name, type=category_type)
            ),
        ):
            flash("Category added.")
            st.rerun()


def render_preferences(components: AppComponents, user_id: UUID):
    st.markdown("### 🎛️ Preferences")

    preferences = show_result(
        "load preferences", components.settings.load_preferences(user_id)
    )
    if preferences is None:
        return

    with st.form("preferences"):
        currency = st.selectbox(
            "Currency", options=list(Currency),
            index=list(Currency).index(preferences.currency),
            format_func=lambda c: c.value,
        )
        default_year = st.number_input(
            "Default year", min_value=2000, max_value=2100,
            value=preferences.default_year, step=1,
        )
        theme = st.selectbox(
            "Theme", options=list(Theme),
            index=list(Theme).index(preferences.theme),
            format_func=lambda t: t.value.title(),
        )
        submitted = st.form_submit_button("Save preferences")

    if submitted:
        updated = UserPreferences(
            id=preferences.id,
            user_id=user_id,
            currency=currency,
            default_year=int(default_year),
            theme=theme,
        )
        if show_result("save preferences", components.settings.save_preferences(updated)):
            st.session_state.currency = currency
            st.success("Preferences saved.")


def render_connection_status(components: AppComponents):
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Supabase (storage and sign-in)", "supabase"),
        ("Application settings", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if components.offline:
        st.warning("Running offline: nothing is saved beyond this session.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Supabase "
        "project URL and anon key. See `.env.example` for the variables."
    )


if __name__ == "__main__":
    main()
