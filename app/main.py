"""
Streamlit Frontend for WalletWise

The dashboard a user interacts with daily:
1. Balance and transaction history
2. Add an expense / quick deposit
3. AI forecast of the next months
4. Chat about their own spending

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions: the AI never changes the balance

All async work runs on one background event loop, so the per-account
ledger locks are shared by every browser session.
"""

import asyncio
import html
import threading
from uuid import UUID

import streamlit as st

from walletwise.audit import create_correlation_id
from walletwise.config import get_settings, validate_all_settings
from walletwise.ledger import AccountNotFoundError
from walletwise.models import (
    ChatRole,
    ChatTurn,
    ErrorKind,
    TransactionCategory,
)
from walletwise.orchestrator import AdviceFlow, LedgerFlow, create_app_components
from walletwise.submission import (
    SubmissionInProgressError,
    SubmissionStatus,
    SubmissionTracker,
)


# Page configuration
st.set_page_config(
    page_title="WalletWise",
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
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


ERROR_MESSAGES = {
    ErrorKind.INSUFFICIENT_FUNDS: "Not enough balance for this expense.",
    ErrorKind.INVALID_AMOUNT: "Please enter an amount greater than zero.",
    ErrorKind.ACCOUNT_NOT_FOUND: "This account no longer exists.",
    ErrorKind.CONCURRENCY_CONFLICT: "The account was busy. Please try again.",
}


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One event loop for the whole server, running on a daemon thread."""
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, daemon=True).start()
    return loop


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount) -> str:
    return f"{get_settings().app.currency_symbol}{float(amount):,.2f}"


def main():
    """Main application entry point."""
    ledger_flow, advice_flow, _ = get_components()

    # Sidebar navigation
    st.sidebar.title("💰 WalletWise")
    st.sidebar.markdown("---")

    account_id = render_account_picker(ledger_flow)

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Dashboard", "📈 Forecast", "💬 Ask WalletWise", "⚙️ Settings"],
        index=0,
    )

    if page == "⚙️ Settings":
        render_settings_page()
        return

    if account_id is None:
        st.info("Open an account from the sidebar to get started.")
        return

    if page == "🏠 Dashboard":
        render_dashboard_page(ledger_flow, account_id)
    elif page == "📈 Forecast":
        render_forecast_page(advice_flow, account_id)
    elif page == "💬 Ask WalletWise":
        render_chat_page(advice_flow, account_id)


def render_account_picker(ledger_flow: LedgerFlow):
    """Select an existing account or open a new one. Returns the account ID."""
    accounts = run_async(ledger_flow.list_accounts())

    selected = None
    if accounts:
        names = {a.id: a.display_name for a in accounts}
        current = st.session_state.get("account_id")
        ids = list(names)
        selected = st.sidebar.selectbox(
            "Account",
            options=ids,
            index=ids.index(current) if current in names else 0,
            format_func=lambda x: names[x],
        )

    with st.sidebar.expander("➕ Open a new account"):
        display_name = st.text_input("Your name", key="new_account_name")
        if st.button("Open account") and display_name.strip():
            account = run_async(ledger_flow.open_account(display_name.strip()))
            st.session_state.account_id = account.id
            st.rerun()

    if selected is not None and selected != st.session_state.get("account_id"):
        # Chat history is per account
        st.session_state.chat_history = []
    st.session_state.account_id = selected
    return selected


def get_tracker() -> SubmissionTracker:
    if "expense_tracker" not in st.session_state:
        st.session_state.expense_tracker = SubmissionTracker(
            reset_seconds=get_settings().app.submission_reset_seconds,
        )
    return st.session_state.expense_tracker


def render_dashboard_page(ledger_flow: LedgerFlow, account_id: UUID):
    """Render balance, history, the expense form and the deposit button."""
    try:
        snapshot = run_async(ledger_flow.get_snapshot(account_id))
    except AccountNotFoundError:
        st.error("This account could not be found.")
        return

    st.title(f"🏠 Hello, {snapshot.account.display_name}")

    col1, col2 = st.columns([2, 1])
    with col1:
        st.markdown("Current balance")
        st.markdown(
            f'<div class="big-number">{money(snapshot.balance)}</div>',
            unsafe_allow_html=True,
        )
    with col2:
        deposit = get_settings().app.deposit_amount
        if st.button(f"💵 Deposit {money(deposit)}", type="primary"):
            outcome = run_async(ledger_flow.record_deposit(
                account_id,
                correlation_id=create_correlation_id(),
            ))
            if outcome.success:
                st.toast(f"Deposited. New balance {money(outcome.new_balance)}")
                st.rerun()
            else:
                st.error(ERROR_MESSAGES.get(outcome.error_kind, outcome.message))

    st.markdown("---")
    render_expense_form(ledger_flow, account_id)

    st.markdown("---")
    st.subheader("📋 Recent Transactions")
    if not snapshot.transactions:
        st.info("No transactions yet. Add a deposit or an expense above.")
    else:
        st.dataframe(
            [
                {
                    "Date": tx.transaction_date.isoformat(),
                    "Description": tx.counterparty,
                    "Category": tx.category.value,
                    "Amount": float(tx.signed_amount),
                }
                for tx in snapshot.transactions
            ],
            use_container_width=True,
            hide_index=True,
        )

    summary = run_async(ledger_flow.get_spending_summary(account_id))
    if summary.expenses_by_category:
        st.subheader("📊 Spending by Category")
        col1, col2 = st.columns(2)
        with col1:
            st.metric("Total income", money(summary.income_total))
            st.metric("Total expenses", money(summary.expense_total))
        with col2:
            st.bar_chart(
                {k: float(v) for k, v in summary.expenses_by_category.items()}
            )


def render_expense_form(ledger_flow: LedgerFlow, account_id: UUID):
    """Expense form guarded by the submission state machine."""
    st.subheader("➖ Add an Expense")
    tracker = get_tracker()

    if tracker.status is SubmissionStatus.SUCCESS:
        st.markdown("""
        <div class="success-box">
            <h4>✅ Expense added</h4>
        </div>
        """, unsafe_allow_html=True)

    with st.form("expense_form", clear_on_submit=True):
        col1, col2, col3 = st.columns([3, 2, 2])
        with col1:
            label = st.text_input("What was it for?", placeholder="e.g., Lunch")
        with col2:
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        with col3:
            category = st.selectbox(
                "Category",
                options=TransactionCategory.expense_categories(),
                format_func=lambda x: x.value,
            )
        submitted = st.form_submit_button(
            "Processing..." if tracker.is_busy else "Add Expense",
            disabled=tracker.is_busy,
        )

    if not submitted:
        return

    try:
        tracker.begin()
    except SubmissionInProgressError:
        st.warning("Please wait, your last expense is still being saved.")
        return

    try:
        outcome = run_async(ledger_flow.record_expense(
            account_id,
            amount=amount,
            counterparty=label,
            category=category,
            correlation_id=create_correlation_id(),
        ))
    except Exception as e:
        tracker.fail()
        st.error(f"Error saving expense: {str(e)}")
        return

    if outcome.success:
        tracker.succeed()
        st.rerun()
    else:
        tracker.fail()
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Expense not added</h4>
            <p>{html.escape(ERROR_MESSAGES.get(outcome.error_kind, outcome.message) or "")}</p>
        </div>
        """, unsafe_allow_html=True)


def render_forecast_page(advice_flow: AdviceFlow, account_id: UUID):
    """Render the AI forecast page."""
    st.title("📈 Forecast")
    st.markdown("See where your balance is heading over the next months.")

    if not st.button("🔮 Generate Forecast", type="primary"):
        return

    with st.spinner("Analysing your spending..."):
        try:
            report = run_async(advice_flow.generate_forecast(
                account_id,
                correlation_id=create_correlation_id(),
            ))
        except AccountNotFoundError:
            st.error("This account could not be found.")
            return

    if report.fallback_used:
        st.markdown("""
        <div class="warning-box">
            <h4>⚠️ AI analysis unavailable</h4>
            <p>Showing a flat projection of your current balance.</p>
        </div>
        """, unsafe_allow_html=True)

    # Model output is untrusted, keep it out of raw HTML
    st.subheader("📊 Analysis")
    st.info(report.analysis)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown(f"**💡 Tip:** {report.tip}")
    with col2:
        st.markdown(f"**🔮 Prediction:** {report.prediction}")

    st.line_chart(
        {"Balance": [point.balance for point in report.forecast]},
    )
    st.dataframe(
        [{"Month": p.month, "Balance": money(p.balance)} for p in report.forecast],
        use_container_width=True,
        hide_index=True,
    )


def render_chat_page(advice_flow: AdviceFlow, account_id: UUID):
    """Render the grounded chat page."""
    st.title("💬 Ask WalletWise")
    st.markdown("Ask about your own transactions, e.g. *How much did I spend on Food?*")

    if "chat_history" not in st.session_state:
        st.session_state.chat_history = []

    history: list[ChatTurn] = st.session_state.chat_history
    for turn in history:
        with st.chat_message(turn.role.value):
            st.markdown(turn.content)

    message = st.chat_input("Your question")
    if not message or not message.strip():
        return

    history.append(ChatTurn(role=ChatRole.USER, content=message))
    with st.chat_message(ChatRole.USER.value):
        st.markdown(message)

    with st.chat_message(ChatRole.ASSISTANT.value):
        with st.spinner("Looking up your records..."):
            try:
                reply = run_async(advice_flow.chat_turn(
                    account_id,
                    message,
                    correlation_id=create_correlation_id(),
                ))
            except AccountNotFoundError:
                st.error("This account could not be found.")
                return
        st.markdown(reply.reply)

    history.append(reply.to_turn())


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not status.get("google_sheets", False):
        st.warning(
            "Without Google Sheets, accounts are kept in memory and "
            "are lost when the app restarts."
        )

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
