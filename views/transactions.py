"""Transactions page -- filter by type, add manual entries, delete rows."""

from datetime import datetime

import streamlit as st

from core.database import (
    TRANSACTION_TYPES,
    add_manual_transaction,
    delete_transaction,
    get_transactions,
)


def render(user_id: str):
    st.header("Transactions")

    txn_type = st.radio(
        "Show",
        ["all", *TRANSACTION_TYPES],
        format_func=str.capitalize,
        horizontal=True,
        key="txn_type_filter",
    )

    txns = get_transactions(user_id, txn_type=txn_type)
    if not txns:
        st.info("No transactions to show.")
    else:
        st.caption(f"Showing {len(txns)} most recent")
        for txn in txns:
            _render_row(user_id, txn)

    st.divider()
    _render_manual_form(user_id)


def _render_row(user_id: str, txn: dict):
    col1, col2, col3, col4, col5 = st.columns([1.2, 3, 1.2, 1.5, 0.8])
    with col1:
        st.write(txn["transaction_date"][:10])
    with col2:
        label = txn["merchant_name"]
        if txn.get("is_manual"):
            label += " ✍️"
        st.write(label)
        if txn.get("order_id"):
            st.caption(txn["order_id"])
    with col3:
        st.write(txn["type"].capitalize())
    with col4:
        sign = "-" if txn["type"] == "expense" else "+"
        st.write(f"{sign}₹{txn['amount']:,.2f}")
    with col5:
        if st.button("Delete", key=f"del_txn_{txn['id']}"):
            delete_transaction(user_id, txn["id"])
            st.rerun()


def _render_manual_form(user_id: str):
    st.subheader("Add Transaction")
    with st.form("manual_txn", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            merchant = st.text_input("Merchant")
            amount = st.number_input("Amount (₹)", min_value=0.0, step=1.0)
        with col2:
            txn_type = st.selectbox("Type", TRANSACTION_TYPES, format_func=str.capitalize)
            date = st.date_input("Date", value=datetime.now())
        notes = st.text_input("Notes")

        if st.form_submit_button("Save", type="primary"):
            if not merchant or not amount:
                st.error("Merchant and amount are required.")
                return
            add_manual_transaction(
                user_id, merchant, amount, txn_type,
                datetime.combine(date, datetime.min.time()), notes,
            )
            st.success("Saved.")
            st.rerun()
