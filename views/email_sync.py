"""Email Sync page -- import purchases, refunds and cashback from Gmail."""

import json

import pandas as pd
import streamlit as st

from core.account import clear_gmail_token, has_gmail_token, save_gmail_token
from core.database import StoreConnectionError
from core.gmail_client import EmailConnectionError, MissingCredentialError
from core.importer import ImportSummary, import_for_user


def render(user_id: str):
    st.header("Email Sync")
    st.caption(
        "Scan your Gmail inbox for order confirmations, bank debit alerts, "
        "refunds and cashback. Re-running the import never creates duplicates."
    )

    _render_credential_config(user_id)

    st.divider()

    if st.button("Import from Gmail", type="primary", use_container_width=True):
        _run_import(user_id)

    summary = st.session_state.get("last_import_summary")
    if summary is not None:
        _render_summary(summary)


# ---------------------------------------------------------------------------
# Credential handling (token comes from the external OAuth flow)
# ---------------------------------------------------------------------------

def _render_credential_config(user_id: str):
    try:
        connected = has_gmail_token(user_id)
    except StoreConnectionError as e:
        st.error(f"Transaction database unavailable: {e}")
        return
    label = "Gmail Connection (connected)" if connected else "Gmail Connection (setup required)"

    with st.expander(label, expanded=not connected):
        st.info(
            "Paste the OAuth token JSON issued for the `gmail.readonly` scope "
            "(keys: `access_token`, optional `refresh_token`, `client_id`, `client_secret`)."
        )
        raw = st.text_area("Token JSON", key="gmail_token_json", height=120)

        col1, col2 = st.columns(2)
        with col1:
            if st.button("Save Token", key="save_gmail_token"):
                try:
                    token = json.loads(raw)
                except json.JSONDecodeError as e:
                    st.error(f"Not valid JSON: {e}")
                else:
                    save_gmail_token(user_id, token)
                    st.success("Token saved.")
                    st.rerun()
        with col2:
            if connected and st.button("Disconnect Gmail", key="clear_gmail_token"):
                clear_gmail_token(user_id)
                st.session_state.pop("last_import_summary", None)
                st.success("Stored token removed.")
                st.rerun()


# ---------------------------------------------------------------------------
# Import run
# ---------------------------------------------------------------------------

def _run_import(user_id: str):
    status_container = st.status("Importing from Gmail", expanded=True)
    progress_text = status_container.empty()

    def _on_progress(step: str, detail: str):
        progress_text.text(detail)

    try:
        summary = import_for_user(user_id, on_progress=_on_progress)
    except MissingCredentialError as e:
        status_container.update(label="Gmail not connected", state="error", expanded=False)
        st.error(str(e))
        return
    except EmailConnectionError as e:
        status_container.update(label="Connection failed", state="error", expanded=False)
        st.error(f"Connection error: {e}")
        return
    except StoreConnectionError as e:
        status_container.update(label="Database unavailable", state="error", expanded=False)
        st.error(str(e))
        return

    status_container.update(
        label=f"Imported {summary.imported} transaction(s)", state="complete", expanded=False,
    )
    st.session_state["last_import_summary"] = summary


def _render_summary(summary: ImportSummary):
    st.subheader("Last Import")

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Imported", summary.imported)
    m2.metric("Duplicates", summary.duplicates)
    m3.metric("Skipped", summary.skipped)
    m4.metric("Rejected", summary.rejected)
    if summary.failed:
        st.warning(f"{summary.failed} message(s) could not be processed. See the logs for details.")

    if summary.transactions:
        df = pd.DataFrame([
            {
                "Merchant": t.merchant,
                "Amount": f"₹{t.amount:,.2f}",
                "Type": t.type.capitalize(),
                "Reference": t.order_reference,
            }
            for t in summary.transactions
        ])
        df.index = range(1, len(df) + 1)
        st.dataframe(df, use_container_width=True)
    else:
        st.info("No new transactions in this run.")

    if summary.reasons:
        with st.expander("Why messages were skipped or rejected"):
            reasons = pd.DataFrame(
                sorted(summary.reasons.items(), key=lambda kv: -kv[1]),
                columns=["Reason", "Messages"],
            )
            st.dataframe(reasons, use_container_width=True, hide_index=True)
