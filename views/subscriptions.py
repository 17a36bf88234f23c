"""Subscriptions page -- recurring charges and what they cost per month."""

from datetime import datetime

import streamlit as st

from core.database import (
    BILLING_CYCLES,
    add_subscription,
    delete_subscription,
    get_subscriptions,
)


def render(user_id: str):
    st.header("Subscriptions")

    data = get_subscriptions(user_id)
    subs = data["subscriptions"]

    col1, col2 = st.columns(2)
    col1.metric("Monthly Cost", f"₹{data['total_monthly']:,.2f}")
    col2.metric("Active Subscriptions", len(subs))

    if not subs:
        st.info("No subscriptions tracked yet.")
    for sub in subs:
        _render_row(user_id, sub)

    st.divider()
    _render_add_form(user_id)


def _render_row(user_id: str, sub: dict):
    col1, col2, col3, col4 = st.columns([3, 1.5, 1.5, 0.8])
    with col1:
        st.write(sub["service_name"])
    with col2:
        st.write(f"₹{sub['amount']:,.2f} / {sub['billing_cycle'].replace('ly', '')}")
    with col3:
        st.write(sub["next_billing_date"] or "-")
    with col4:
        if st.button("Delete", key=f"del_sub_{sub['id']}"):
            delete_subscription(user_id, sub["id"])
            st.rerun()


def _render_add_form(user_id: str):
    st.subheader("Add Subscription")
    with st.form("add_subscription", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Service")
            amount = st.number_input("Amount (₹)", min_value=0.0, step=1.0)
        with col2:
            cycle = st.selectbox("Billing cycle", BILLING_CYCLES, format_func=str.capitalize)
            next_date = st.date_input("Next billing date", value=datetime.now())

        if st.form_submit_button("Save", type="primary"):
            if not name or not amount:
                st.error("Service and amount are required.")
                return
            add_subscription(user_id, name, amount, cycle, next_date)
            st.success("Saved.")
            st.rerun()
