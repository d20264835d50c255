"""Budget Tracker - Streamlit entry point.

Renders the month filter, money inputs, both cutoff tables, presets and
the budget-health dashboard for one :class:`BudgetTrackerApp` session.
The key-value store is shared by every browser session through
``st.cache_resource``; each session keeps its own app in
``st.session_state``.
"""

from __future__ import annotations

import streamlit as st

from budget_tracker import visualization
from budget_tracker.app import BudgetTrackerApp, TableView, TrackerView
from budget_tracker.categorization import infer_category_type
from budget_tracker.config import ensure_data_directories
from budget_tracker.exceptions import BudgetTrackerError
from budget_tracker.formatting import format_currency, format_day_weekday, format_month_label, format_percent
from budget_tracker.logging_config import configure_logging
from budget_tracker.models import CATEGORY_TYPES
from budget_tracker.storage import SqliteKeyValueStore

TABLE_TITLES = {'first': "First Cutoff (1st - 15th)", 'second': "Second Cutoff (16th - end)"}
STATUS_ICONS = {'safe': '🟢', 'warning': '🟡', 'exact': '🔵', 'over': '🔴'}
SCALAR_LABELS = {'salary': "Salary", 'payroll_balance': "Payroll balance", 'cash_money': "Cash on hand"}


@st.cache_resource
def get_store() -> SqliteKeyValueStore:
    """One store per server process, shared by all sessions."""
    ensure_data_directories()
    return SqliteKeyValueStore()


def get_tracker() -> BudgetTrackerApp:
    if 'tracker' not in st.session_state:
        st.session_state.tracker = BudgetTrackerApp(get_store())
    return st.session_state.tracker


def _run(action, *args, success: str | None = None, **kwargs):
    """Run a tracker command, surfacing validation errors instead of crashing."""
    try:
        result = action(*args, **kwargs)
    except BudgetTrackerError as e:
        st.error(str(e))
        return None
    if success:
        st.toast(success)
    return result


def _ask_confirmation(container, state_key: str, message: str, action) -> None:
    """Show a confirm/cancel pair while ``state_key`` is set in the session.

    ``action`` receives the stored value and runs only on confirm.
    """
    pending = st.session_state.get(state_key)
    if pending is None:
        return
    container.warning(f"⚠️ {message}")
    col1, col2 = container.columns(2)
    with col1:
        if st.button("✅ Confirm", key=f"{state_key}_yes"):
            action(pending)
            st.session_state[state_key] = None
            st.rerun()
    with col2:
        if st.button("❌ Cancel", key=f"{state_key}_no"):
            st.session_state[state_key] = None
            st.rerun()


def main():
    """Main entry point for the budget tracker UI."""
    st.set_page_config(
        page_title="Budget Tracker",
        page_icon="💰",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    configure_logging()

    tracker = get_tracker()
    tracker.process_pending_events()
    view = tracker.view()

    _render_sidebar(tracker, view)

    st.title(f"💰 Budget Tracker - {format_month_label(view.filter_month)}")
    _render_total_summary(view)

    tab_tables, tab_dashboard = st.tabs(["📋 Cutoff Tables", "📊 Dashboard"])
    with tab_tables:
        for table in ('first', 'second'):
            _render_table(tracker, view.table(table))
    with tab_dashboard:
        _render_dashboard(tracker, view)


def _render_sidebar(tracker: BudgetTrackerApp, view: TrackerView) -> None:
    st.sidebar.header("📅 Month")
    options = [None] + view.months
    current = options.index(view.filter_month) if view.filter_month in options else 0
    choice = st.sidebar.selectbox("Show", options, index=current, format_func=format_month_label)
    if choice != view.filter_month:
        _run(tracker.set_filter, choice)
        st.rerun()

    dark_mode = st.sidebar.toggle("🌙 Dark mode", value=view.dark_mode)
    if dark_mode != view.dark_mode:
        tracker.toggle_dark_mode()
        st.rerun()

    st.sidebar.header("🧩 Presets")
    for slot, label in view.preset_labels.items():
        if st.sidebar.button(f"{slot}. {label}", key=f"preset_{slot}", use_container_width=True):
            st.session_state.confirm_preset = slot

    pending_slot = st.session_state.get('confirm_preset')
    _ask_confirmation(
        st.sidebar,
        'confirm_preset',
        f"Replace this month's categories with '{view.preset_labels.get(pending_slot)}'?",
        lambda slot: _run(tracker.apply_preset, slot, confirmed=True, success="Preset applied"),
    )

    with st.sidebar.expander("💾 Save current as preset"):
        slot = st.selectbox("Slot", list(view.preset_labels) or [1, 2, 3, 4, 5], key="save_slot")
        name = st.text_input("Name", key="save_name")
        if st.button("Save preset"):
            _run(tracker.save_current_as_preset, slot, name, success="Preset saved")
            st.rerun()
        if st.button("Reset slot to default"):
            st.session_state.confirm_reset = slot
    _ask_confirmation(
        st.sidebar,
        'confirm_reset',
        "Reset this preset slot to its factory categories?",
        lambda pending: _run(tracker.reset_preset_to_default, pending, confirmed=True, success="Preset reset"),
    )

    st.sidebar.header("📁 Data")
    st.sidebar.download_button(
        "⬇️ Export CSV",
        data=tracker.export_csv().encode('utf-8'),
        file_name=f"budget-tracker-{tracker.clock.today_iso()}.csv",
        mime="text/csv",
    )
    uploaded = st.sidebar.file_uploader("⬆️ Import CSV", type=["csv"])
    if uploaded is not None and st.sidebar.button("Import"):
        count = _run(tracker.import_csv, uploaded.getvalue())
        if count is not None:
            st.sidebar.success(f"✅ Imported {count} categories")
            st.rerun()

    if st.sidebar.button("🧹 Clear categories", help="Remove every category in the month shown"):
        st.session_state.confirm_clear = 'categories'
    if st.sidebar.button("🗑️ Clear all data", help="Delete every month, money input and preset"):
        st.session_state.confirm_clear = 'all'

    _ask_confirmation(
        st.sidebar,
        'confirm_clear',
        "This cannot be undone!",
        lambda scope: tracker.clear_all_data(confirmed=True) if scope == 'all' else tracker.clear_categories(confirmed=True),
    )


def _render_total_summary(view: TrackerView) -> None:
    summary = view.dashboard
    col1, col2, col3 = st.columns(3)
    col1.metric("Total available", format_currency(summary.total_available))
    col2.metric("Total spent", format_currency(summary.total_spent))
    col3.metric("Total spare", format_currency(summary.total_spare))


def _render_table(tracker: BudgetTrackerApp, table_view: TableView) -> None:
    table = table_view.table
    st.subheader(TABLE_TITLES[table])

    cols = st.columns(3)
    entered = {}
    for col, (series, label) in zip(cols, SCALAR_LABELS.items()):
        entered[series] = col.number_input(
            label, value=float(table_view.scalars[series]), step=100.0, key=f"{table}_{series}"
        )
    if entered != table_view.scalars:
        tracker.update_scalars(table, **entered)
        st.rerun()

    for index, item in enumerate(table_view.items):
        row = table_view.rows[item.id]
        paid = " ✅" if item.paid else ""
        header = (
            f"{STATUS_ICONS[row.status]} {item.category}{paid} - "
            f"{format_currency(row.spent)} / {format_currency(item.budget)} ({format_percent(row.percentage)})"
        )
        with st.expander(header):
            _render_item(tracker, table, item, index, len(table_view.items))

    if st.button("➕ Add category", key=f"add_{table}"):
        tracker.add_item(table)
        st.rerun()

    totals = table_view.totals
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Budget", format_currency(totals.total_budget))
    col2.metric("Spent", format_currency(totals.total_spent), format_percent(totals.percentage), delta_color="off")
    col3.metric("Available", format_currency(totals.total_available))
    col4.metric("Remaining", format_currency(totals.remaining))
    if totals.is_negative:
        st.warning("Spending exceeds the money available for this cutoff.")


def _render_item(tracker: BudgetTrackerApp, table: str, item, index: int, count: int) -> None:
    key = f"{table}_{item.id}"
    with st.form(f"edit_{key}"):
        col1, col2, col3, col4 = st.columns(4)
        category = col1.text_input("Category", value=item.category)
        date = col2.text_input("Date", value=item.date, help=format_day_weekday(item.date))
        budget = col3.number_input("Budget", value=float(item.budget), step=50.0)
        type_index = CATEGORY_TYPES.index(item.type) if item.type in CATEGORY_TYPES else 0
        category_type = col4.selectbox("Type", CATEGORY_TYPES, index=type_index)
        if st.form_submit_button("Save"):
            if category != item.category and category_type == item.type:
                category_type = infer_category_type(category)
            _run(tracker.edit_item, item.id, table, category, date, budget, category_type)
            st.rerun()

    for expense_index, expense in enumerate(item.expenses):
        col1, col2, col3, col4 = st.columns([4, 2, 2, 1])
        col1.write(expense.description)
        col2.write(format_day_weekday(expense.date))
        col3.write(format_currency(expense.amount))
        if col4.button("🗑️", key=f"del_exp_{key}_{expense_index}"):
            st.session_state[f"confirm_expense_{key}"] = expense_index
    _ask_confirmation(
        st,
        f"confirm_expense_{key}",
        "Delete this expense?",
        lambda pending: tracker.delete_expense(item.id, table, pending, confirmed=True),
    )

    with st.form(f"expense_{key}", clear_on_submit=True):
        col1, col2, col3 = st.columns([4, 2, 2])
        description = col1.text_input("Expense")
        expense_date = col2.date_input("Date", value=tracker.clock.today())
        amount = col3.number_input("Amount", min_value=0.0, step=10.0)
        if st.form_submit_button("Add expense"):
            _run(tracker.add_expense, item.id, table, description, expense_date.isoformat(), amount)
            st.rerun()

    col1, col2, col3, col4 = st.columns(4)
    if col1.button("Mark unpaid" if item.paid else "Mark paid", key=f"paid_{key}"):
        tracker.toggle_paid(item.id, table)
        st.rerun()
    if col2.button("⬆️", key=f"up_{key}", disabled=index == 0):
        tracker.move_up(item.id, table)
        st.rerun()
    if col3.button("⬇️", key=f"down_{key}", disabled=index == count - 1):
        tracker.move_down(item.id, table)
        st.rerun()
    if col4.button("Delete", key=f"delete_{key}"):
        st.session_state[f"confirm_delete_{key}"] = item.id
    _ask_confirmation(
        st,
        f"confirm_delete_{key}",
        f"Delete '{item.category}' and all of its expenses?",
        lambda pending: tracker.delete_item(pending, table, confirmed=True),
    )


def _render_dashboard(tracker: BudgetTrackerApp, view: TrackerView) -> None:
    summary = view.dashboard
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Savings rate", format_percent(summary.savings_rate))
    col2.metric("Essentials", format_percent(summary.essentials_ratio))
    col3.metric("Debt", format_percent(summary.debt_ratio))
    col4.metric("Budget accuracy", format_percent(summary.budget_accuracy))
    col5.metric("Last month rollover", format_currency(summary.rollover))

    for alert in summary.alerts:
        message = f"{alert.text}  \n{alert.suggestion}"
        if alert.kind == 'warn':
            st.warning(message)
        else:
            st.success(message)

    fig = visualization.create_allocation_chart(summary.allocation)
    st.plotly_chart(visualization.apply_theme(fig, view.dark_mode), use_container_width=True)
    st.dataframe(visualization.allocation_table(summary.allocation), hide_index=True)

    col1, col2 = st.columns(2)
    totals_fig = visualization.create_table_totals_chart(t.totals for t in view.tables.values())
    col1.plotly_chart(visualization.apply_theme(totals_fig, view.dark_mode), use_container_width=True)
    items = [item for t in view.tables.values() for item in t.items]
    pie = visualization.create_group_spending_pie(items)
    col2.plotly_chart(visualization.apply_theme(pie, view.dark_mode), use_container_width=True)

    category_fig = visualization.create_category_bar_chart(items)
    st.plotly_chart(visualization.apply_theme(category_fig, view.dark_mode), use_container_width=True)

    with st.expander("⚙️ Allocation targets and caps"):
        with st.form("allocation"):
            targets = {
                group: st.slider(f"{group.title()} target %", 0, 100, int(value), key=f"target_{group}")
                for group, value in tracker.allocation.targets.items()
            }
            caps = {
                group: st.slider(f"{group.title()} cap %", 0, 100, int(value), key=f"cap_{group}")
                for group, value in tracker.allocation.caps.items()
            }
            if st.form_submit_button("Save allocation"):
                tracker.update_allocation_config(targets=targets, caps=caps)
                st.rerun()


if __name__ == "__main__":
    main()
