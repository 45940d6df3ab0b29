"""
Streamlit Frontend for Vyaya

The screens a household uses every day: what's left in each funding
source, what the vehicle costs to run, who owes whom, and what happened
when.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions

Every save goes through the ledger flow, which refuses entries that
fail validation or that the funding source can't cover.
"""

import asyncio
from datetime import date, datetime

import streamlit as st
from pydantic import ValidationError

from vyaya.audit import create_correlation_id
from vyaya.models import (
    PLACEHOLDER,
    Category,
    EntryDirection,
    ExpenseForm,
    FuelStatus,
    HistoryItem,
    LoanDirection,
    LoanForm,
    OdometerForm,
    RecordKind,
    RepaymentForm,
)
from vyaya.config import get_settings
from vyaya.orchestrator import LedgerFlow, SaveOutcome, create_app_components


# Page configuration
st.set_page_config(
    page_title="Vyaya",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .history-date {
        font-weight: bold;
        color: #2c3e50;
        margin-top: 16px;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def show_outcome(outcome: SaveOutcome) -> None:
    """Show what happened to a submitted form."""
    if outcome.saved:
        st.success(f"✅ {outcome.message}")
        if outcome.validation and outcome.validation.warnings:
            for warning in outcome.validation.warnings:
                st.warning(warning)
    else:
        st.markdown(f"""
        <div class="error-box">
            <pre>{outcome.message}</pre>
        </div>
        """, unsafe_allow_html=True)
        if outcome.error and get_settings().app.debug_mode:
            st.caption(f"Debug: {outcome.error}")


def show_form_errors(error: ValidationError) -> None:
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "form"
        st.error(f"{field}: {err['msg']}")


def main():
    """Main application entry point."""
    ledger_flow, sheets_client = get_components()

    # Sidebar navigation
    st.sidebar.title("💰 Vyaya")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "💳 Wallet",
            "🚗 Vehicle",
            "➕ Add Entry",
            "🤝 Loans",
            "📜 History",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if sheets_client is None:
        st.sidebar.warning("Running without Google Sheets. Entries are kept in memory only.")

    if page == "💳 Wallet":
        render_wallet_page(ledger_flow)
    elif page == "🚗 Vehicle":
        render_vehicle_page(ledger_flow)
    elif page == "➕ Add Entry":
        render_entry_page(ledger_flow)
    elif page == "🤝 Loans":
        render_loans_page(ledger_flow)
    elif page == "📜 History":
        render_history_page(ledger_flow)
    elif page == "⚙️ Settings":
        render_settings_page(sheets_client is not None)


def render_wallet_page(ledger_flow: LedgerFlow):
    """Render the wallet dashboard."""
    st.title("💳 Wallet")

    stats = run_async(ledger_flow.dashboard(now=datetime.now()))
    balances = run_async(ledger_flow.source_balances())

    col1, col2, col3 = st.columns(3)
    col1.metric("Spent this month", money(stats.monthly_spend))
    col2.metric("Total income", money(stats.total_income))
    col3.metric("Total expense", money(stats.total_expense))

    col1, col2, col3 = st.columns(3)
    col1.metric("You owe", money(stats.owed_by_user))
    col2.metric("Owed to you", money(stats.owed_to_user))
    col3.metric("Net", money(stats.net_balance))

    st.markdown("### Funding sources")
    if balances:
        st.table([
            {"Source": source, "Balance": money(balance)}
            for source, balance in balances.items()
        ])
    else:
        st.info("No funding sources yet. Record some income to get started.")

    st.markdown("### Spending by category")
    if stats.category_totals:
        st.table([
            {"Category": category, "Total": money(total)}
            for category, total in stats.category_totals.items()
        ])

    st.markdown("### Spending by month")
    if stats.monthly_totals:
        st.table([
            {"Month": month, "Total": money(total)}
            for month, total in stats.monthly_totals.items()
        ])


def render_vehicle_page(ledger_flow: LedgerFlow):
    """Render the vehicle dashboard."""
    st.title("🚗 Vehicle")

    stats = run_async(ledger_flow.dashboard(now=datetime.now()))

    if stats.needs_more_data:
        st.info("Add one more odometer reading to see distance and mileage.")

    col1, col2, col3 = st.columns(3)
    col1.metric("Odometer", f"{stats.current_odometer} km")
    col2.metric("Distance", f"{stats.total_distance} km")
    col3.metric("Vehicle spend", money(stats.vehicle_spend))

    col1, col2, col3 = st.columns(3)
    col1.metric("Fuel", f"{stats.fuel_volume_total} L")
    cost = stats.cost_per_km_display
    col2.metric("Cost per km", cost if cost == PLACEHOLDER else money(stats.cost_per_km))
    mileage = stats.average_mileage_display
    col3.metric("Mileage", mileage if mileage == PLACEHOLDER else f"{mileage} km/L")


def render_entry_page(ledger_flow: LedgerFlow):
    """Render the expense/income and odometer entry forms."""
    st.title("➕ Add Entry")

    expense_tab, odometer_tab = st.tabs(["💸 Expense / Income", "📍 Odometer"])

    with expense_tab:
        direction = st.radio(
            "Type",
            options=list(EntryDirection),
            format_func=lambda d: d.value.title(),
            horizontal=True,
        )
        # Outside the form so the fuel fields can appear on change
        category = st.selectbox(
            "Category",
            options=list(Category),
            format_func=lambda c: c.value,
        )
        is_fuel = category == Category.FUEL

        with st.form("expense_form", clear_on_submit=True):
            entry_date = st.date_input("Date", value=date.today())
            amount = st.number_input("Amount", min_value=0.0, step=10.0, format="%.2f")
            source_label = (
                "Funding source" if direction == EntryDirection.EXPENSE
                else "Destination (leave empty to use the category)"
            )
            funding_source = st.text_input(source_label)
            note = st.text_input("Note")

            fuel_price = fuel_volume = linked_odometer = fuel_status = None
            if is_fuel:
                col1, col2 = st.columns(2)
                with col1:
                    fuel_price = st.number_input("Price per litre", min_value=0.0, step=0.5, value=None)
                    linked_odometer = st.number_input("Odometer at the pump", min_value=0.0, step=1.0, value=None)
                with col2:
                    fuel_volume = st.number_input("Litres", min_value=0.0, step=0.5, value=None)
                    fuel_status = st.selectbox(
                        "Tank status",
                        options=[None] + list(FuelStatus),
                        format_func=lambda s: "-" if s is None else s.value,
                    )

            submitted = st.form_submit_button("💾 Save", type="primary")

        if submitted:
            try:
                form = ExpenseForm(
                    date=entry_date,
                    amount=str(round(amount, 2)),
                    category=category,
                    direction=direction,
                    funding_source=funding_source or None,
                    note=note,
                    fuel_price=str(fuel_price) if fuel_price else None,
                    fuel_volume=str(fuel_volume) if fuel_volume else None,
                    linked_odometer=str(linked_odometer) if linked_odometer is not None else None,
                    fuel_status=fuel_status,
                )
            except ValidationError as e:
                show_form_errors(e)
            else:
                outcome = run_async(ledger_flow.save_expense(
                    form,
                    correlation_id=create_correlation_id(),
                ))
                show_outcome(outcome)
                if outcome.linked_odometer:
                    st.info(f"📍 Odometer reading {outcome.linked_odometer.odometer} km logged")

    with odometer_tab:
        with st.form("odometer_form", clear_on_submit=True):
            reading_date = st.date_input("Date", value=date.today())
            odometer = st.number_input("Odometer (km)", min_value=0.0, step=1.0)
            fuel_status = st.selectbox(
                "Tank status",
                options=list(FuelStatus),
                format_func=lambda s: s.value,
            )
            submitted = st.form_submit_button("💾 Save reading", type="primary")

        if submitted:
            form = OdometerForm(
                date=reading_date,
                odometer=str(odometer),
                fuel_status=fuel_status,
            )
            outcome = run_async(ledger_flow.save_odometer(
                form,
                correlation_id=create_correlation_id(),
            ))
            show_outcome(outcome)


def render_loans_page(ledger_flow: LedgerFlow):
    """Render the loan form and the open loans with their repayment forms."""
    st.title("🤝 Loans")

    with st.expander("➕ New loan", expanded=False):
        with st.form("loan_form", clear_on_submit=True):
            direction = st.radio(
                "Direction",
                options=list(LoanDirection),
                format_func=lambda d: "I borrowed" if d == LoanDirection.TAKEN else "I lent",
                horizontal=True,
            )
            counterparty = st.text_input("Person")
            principal = st.number_input("Amount", min_value=0.0, step=100.0, format="%.2f")
            loan_date = st.date_input("Date", value=date.today())
            due_date = st.date_input("Due date", value=None)
            funding_source = st.text_input("Funding source (required when lending)")
            note = st.text_input("Note")
            submitted = st.form_submit_button("💾 Save loan", type="primary")

        if submitted:
            try:
                form = LoanForm(
                    direction=direction,
                    counterparty_name=counterparty,
                    principal=str(round(principal, 2)),
                    date=loan_date,
                    due_date=due_date,
                    funding_source=funding_source or None,
                    note=note,
                )
            except ValidationError as e:
                show_form_errors(e)
            else:
                outcome = run_async(ledger_flow.save_loan(
                    form,
                    correlation_id=create_correlation_id(),
                ))
                show_outcome(outcome)

    st.markdown("### Open loans")
    loans = run_async(ledger_flow.open_loans())
    if not loans:
        st.info("No open loans.")
        return

    for loan in loans:
        who = "You owe" if loan.direction == LoanDirection.TAKEN else "Owes you"
        with st.expander(f"{loan.counterparty_name} · {who} {money(loan.remaining)}"):
            st.progress(
                float(loan.progress_percent) / 100,
                text=f"{loan.progress_percent}% repaid of {money(loan.principal)}",
            )
            if loan.due_date:
                st.caption(f"Due {loan.due_date.strftime('%d %B %Y')}")

            with st.form(f"repayment_{loan.id}", clear_on_submit=True):
                amount = st.number_input("Repayment", min_value=0.0, step=100.0, format="%.2f")
                repayment_date = st.date_input("Date", value=date.today())
                source = st.text_input("Funding source")
                submitted = st.form_submit_button("💾 Record repayment")

            if submitted:
                form = RepaymentForm(
                    amount=str(round(amount, 2)),
                    date=repayment_date,
                    funding_source=source or None,
                )
                outcome = run_async(ledger_flow.record_repayment(
                    loan.id,
                    form,
                    correlation_id=create_correlation_id(),
                ))
                show_outcome(outcome)


def describe(item: HistoryItem) -> str:
    """One-line description of a history item."""
    record = item.record
    if item.kind == RecordKind.EXPENSE:
        sign = "−" if record.is_expense else "+"
        text = f"{record.category.value} {sign}{money(record.amount)}"
        if record.note:
            text += f" · {record.note}"
        return text
    if item.kind == RecordKind.ODOMETER:
        status = f" ({record.fuel_status.value})" if record.fuel_status else ""
        return f"📍 {record.odometer} km{status} · +{item.trip_distance or 0} km"
    return (
        f"🤝 {record.direction.value.title()} {record.counterparty_name} "
        f"{money(record.principal)} · {record.status_label}"
    )


def render_history_page(ledger_flow: LedgerFlow):
    """Render the combined history with paging and CSV download."""
    st.title("📜 History")

    page_size = get_settings().app.history_page_size
    if "history_limit" not in st.session_state:
        st.session_state.history_limit = page_size

    csv_text = run_async(ledger_flow.export_csv(correlation_id=create_correlation_id()))
    st.download_button(
        "⬇️ Download CSV",
        data=csv_text,
        file_name=f"vyaya_history_{date.today().isoformat()}.csv",
        mime="text/csv",
    )

    page = run_async(ledger_flow.history(limit=st.session_state.history_limit))
    if page.total_count == 0:
        st.info("Nothing recorded yet.")
        return

    for heading, items in page.groups.items():
        st.markdown(f'<div class="history-date">{heading}</div>', unsafe_allow_html=True)
        for item in items:
            col1, col2 = st.columns([6, 1])
            col1.markdown(describe(item))
            if col2.button("🗑️", key=f"delete_{item.record.id}"):
                run_async(ledger_flow.delete_record(
                    item.kind,
                    item.record.id,
                    correlation_id=create_correlation_id(),
                ))
                st.rerun()

    st.caption(f"Showing {page.visible_count} of {page.total_count}")
    if page.has_more and st.button("Load more"):
        st.session_state.history_limit = page.next_limit(page_size)
        st.rerun()


def render_settings_page(storage_connected: bool):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from vyaya.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not storage_connected:
        st.warning("Entries are kept in memory and are lost when the app restarts.")

    st.markdown("---")
    st.markdown("### Configuration")
    settings = get_settings().app
    st.markdown(f"**Environment:** {settings.app_environment}")
    st.markdown(f"**Debug mode:** {'On' if settings.debug_mode else 'Off'}")
    st.markdown(f"**Currency:** {settings.currency_symbol}")
    st.markdown(f"**History page size:** {settings.history_page_size}")
    st.markdown(
        f"**Borrowed money credits its source:** "
        f"{'Yes' if settings.credit_taken_loans else 'No'}"
    )
    st.markdown(
        "To configure the application, create a `.env` file with "
        "`GOOGLE_SHEETS_CREDENTIALS_PATH` and `GOOGLE_SHEETS_SPREADSHEET_ID`."
    )


if __name__ == "__main__":
    main()
