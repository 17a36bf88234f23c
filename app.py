import os

import streamlit as st
from dotenv import load_dotenv

load_dotenv()

from core.database import init_db

# Initialize database on first run
init_db()

st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# --- Password protection (for cloud deployment) ---
def _check_password() -> bool:
    """Return True if password is correct or not configured."""
    try:
        app_password = st.secrets["APP_PASSWORD"]
    except (KeyError, FileNotFoundError):
        return True  # no password configured, allow access

    if not app_password:
        return True

    if st.session_state.get("authenticated"):
        return True

    st.title("Expense Tracker")
    pwd = st.text_input("Enter password to continue", type="password", key="login_pwd")
    if st.button("Login", type="primary"):
        if pwd == app_password:
            st.session_state["authenticated"] = True
            st.rerun()
        else:
            st.error("Incorrect password.")
    return False

if not _check_password():
    st.stop()

USER_ID = os.getenv("EXPENSE_USER_ID", "default").strip() or "default"

st.sidebar.title("Expense Tracker")
st.sidebar.caption("Purchases, refunds and cashback from your inbox")

_PAGES = ["Email Sync", "Dashboard", "Transactions", "Subscriptions"]

# --- Restore navigation from URL on first load ---
if "nav_restored" not in st.session_state:
    st.session_state["nav_restored"] = True
    saved_page = st.query_params.get("page", "")
    if saved_page in _PAGES:
        st.session_state["app_page"] = saved_page

page = st.sidebar.radio("Navigate", _PAGES, key="app_page")

# Persist to URL
st.query_params.update({"page": page})

if page == "Email Sync":
    from views.email_sync import render
    render(USER_ID)
elif page == "Dashboard":
    from views.dashboard import render
    render(USER_ID)
elif page == "Transactions":
    from views.transactions import render
    render(USER_ID)
elif page == "Subscriptions":
    from views.subscriptions import render
    render(USER_ID)
