"""
Streamlit Frontend for Expense Tracker

This is the form the household uses to log an expense, one question
per screen.

DESIGN PRINCIPLES:
1. One question per screen
2. The user can't move on until the current answer is complete
3. Clear error messages in simple language
4. Only two outcomes after submitting: "saved" or "please fix / try again"

All navigation rules live in ExpenseWizard; this page only renders the
current step and forwards clicks to it.
"""

import asyncio
from datetime import date

import streamlit as st

from expense_tracker.models.expense import (
    ALLOWED_RECEIPT_TYPES,
    ReceiptAttachment,
    SubmitOutcome,
    WizardStep,
)
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.storage import PersistenceFailure
from expense_tracker.wizard import ExpenseWizard, WizardBusyError


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="centered",
    initial_sidebar_state="expanded",
)

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
        return create_app_components()
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_external_sync=False, use_receipt_uploads=False)


def get_wizard(coordinator, audit_logger) -> ExpenseWizard:
    """One wizard per browser session."""
    if "wizard" not in st.session_state:
        st.session_state.wizard = ExpenseWizard(coordinator, audit_logger=audit_logger)
    return st.session_state.wizard


def main():
    """Main application entry point."""
    coordinator, primary_storage, audit_logger = get_components()

    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add Expense", "📊 View Expenses", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ Add Expense":
        render_wizard_page(get_wizard(coordinator, audit_logger))
    elif page == "📊 View Expenses":
        render_expenses_page(primary_storage)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_step_inputs(wizard: ExpenseWizard):
    """Render the input widgets for the current step and write them to the draft."""
    draft = wizard.draft
    step = wizard.current_step
    key = f"form{st.session_state.get('form_generation', 0)}_{int(step)}"

    if step == WizardStep.USER:
        users = wizard.validator.known_users
        choice = st.radio(
            "Select user",
            options=users,
            index=users.index(draft.user) if draft.user in users else None,
            key=key,
        )
        if choice and choice != draft.user:
            wizard.set_field("user", choice)

    elif step == WizardStep.CATEGORY:
        categories = wizard.validator.catalog.list_categories()
        choice = st.selectbox(
            "Category",
            options=categories,
            index=categories.index(draft.category) if draft.category in categories else None,
            placeholder="Select a category",
            key=key,
        )
        if choice and choice != draft.category:
            wizard.set_field("category", choice)

    elif step == WizardStep.SUB_CATEGORY:
        options = wizard.sub_category_options()
        choice = st.selectbox(
            "Sub-category",
            options=options,
            index=options.index(draft.sub_category) if draft.sub_category in options else None,
            placeholder="Select a sub-category",
            key=key,
        )
        if choice and choice != draft.sub_category:
            wizard.set_field("sub_category", choice)

    elif step == WizardStep.DESCRIPTION:
        text = st.text_area(
            "Description",
            value=draft.description,
            placeholder="What was this expense for?",
            key=key,
        )
        if text != draft.description:
            wizard.set_field("description", text)

    elif step == WizardStep.AMOUNT:
        text = st.text_input(
            "Amount ($)",
            value=draft.amount,
            placeholder="0.00",
            key=key,
        )
        if text != draft.amount:
            wizard.set_field("amount", text)

    elif step == WizardStep.DATE:
        picked = st.date_input(
            "Date",
            value=draft.date or date.today(),
            key=key,
        )
        if picked != draft.date:
            wizard.set_field("date", picked)

    elif step == WizardStep.RECEIPT:
        uploaded_file = st.file_uploader(
            "Receipt (optional)",
            type=["jpg", "jpeg", "png", "webp", "pdf"],
            help="A photo or PDF of the receipt",
            key=f"{key}_file",
        )
        if uploaded_file is not None and uploaded_file.type in ALLOWED_RECEIPT_TYPES:
            wizard.attach_receipt(ReceiptAttachment(
                filename=uploaded_file.name,
                content=uploaded_file.getvalue(),
                mime_type=uploaded_file.type,
            ))
        elif uploaded_file is None and wizard.attachment is not None:
            wizard.attach_receipt(None)

        notes = st.text_area(
            "Notes (optional)",
            value=draft.notes,
            placeholder="Add any notes about this expense...",
            key=f"{key}_notes",
        )
        if notes != draft.notes:
            wizard.set_field("notes", notes)


def new_form():
    """Fresh widget keys, so a reset wizard shows empty inputs."""
    st.session_state.form_generation = st.session_state.get("form_generation", 0) + 1


def render_wizard_page(wizard: ExpenseWizard):
    """Render the add-expense wizard."""
    st.title("➕ Add Expense")

    if "last_saved" in st.session_state:
        saved = st.session_state.pop("last_saved")
        st.markdown(f"""
        <div class="success-box">
            <h4>✅ {saved.message}</h4>
            <p><strong>Expense #</strong>{saved.expense_id}</p>
        </div>
        """, unsafe_allow_html=True)

    position = wizard.visible_steps().index(wizard.current_step) + 1
    st.progress(wizard.progress, text=f"Step {position} of {len(wizard.visible_steps())}")
    st.subheader(wizard.current_descriptor.title)

    try:
        render_step_inputs(wizard)
    except ValueError as e:
        st.error(str(e))
    except WizardBusyError as e:
        st.info(str(e))

    st.markdown("---")

    col1, col2 = st.columns(2)

    with col1:
        if wizard.current_step != wizard.first_step:
            if st.button("⬅️ Previous", disabled=wizard.is_submitting):
                wizard.retreat()
                st.rerun()

    with col2:
        if wizard.current_step != wizard.last_step:
            if st.button("Next ➡️", type="primary", disabled=wizard.is_submitting):
                result = wizard.advance()
                if result.moved:
                    st.rerun()
                elif result.message:
                    st.error(result.message)
        else:
            if st.button("✅ Submit", type="primary", disabled=wizard.is_submitting):
                with st.spinner("Saving your expense..."):
                    try:
                        result = run_async(wizard.submit())
                    except PersistenceFailure:
                        st.markdown("""
                        <div class="error-box">
                            <h4>❌ Could not save</h4>
                            <p>Please try again.</p>
                        </div>
                        """, unsafe_allow_html=True)
                        st.stop()

                if result.outcome == SubmitOutcome.SAVED:
                    st.session_state.last_saved = result
                    new_form()
                    st.rerun()
                elif result.outcome == SubmitOutcome.BUSY:
                    st.info(result.message)
                else:
                    st.error(result.message)

    if st.button("🗑️ Start Over", disabled=wizard.is_submitting):
        wizard.reset()
        new_form()
        st.rerun()


def render_expenses_page(primary_storage):
    """Render the saved expenses list."""
    st.title("📊 Your Expenses")

    expenses = run_async(primary_storage.list_expenses())
    if not expenses:
        st.info(
            "📋 Your expenses will appear here once you add them. "
            "Use the 'Add Expense' page to log your first one."
        )
        return

    st.dataframe(
        [
            {
                "ID": expense.id,
                "Date": expense.date.isoformat(),
                "User": expense.user,
                "Category": expense.category,
                "Sub-category": expense.sub_category,
                "Amount": expense.amount,
                "Description": expense.description,
                "Receipt": expense.receipt_url,
            }
            for expense in expenses
        ],
        hide_index=True,
    )


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from expense_tracker.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Cloudinary (Receipts)", "cloudinary"),
        ("Google Sheets (Mirror)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
