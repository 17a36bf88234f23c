"""Dashboard page -- totals per type, net spending, top merchants."""

import pandas as pd
import plotly.express as px
import streamlit as st

from core.database import get_merchant_summary, get_summary, get_transactions


def _fmt_inr(amount: float) -> str:
    """Format amount in Indian short form: ₹1.91L, ₹50K, ₹771."""
    if amount >= 1_00_000:
        return f"₹{amount / 1_00_000:.2f}L"
    if amount >= 1_000:
        return f"₹{amount / 1_000:.1f}K"
    return f"₹{amount:,.0f}"


def render(user_id: str):
    st.header("Dashboard")

    summary = get_summary(user_id)
    if not (summary["expense_count"] or summary["refund_count"] or summary["cashback_count"]):
        st.info("No data yet. Run an import from the Email Sync page to see your dashboard.")
        return

    # --- Summary cards ---
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Spent", _fmt_inr(summary["total_expense"]),
              help=f"{summary['expense_count']} purchase(s)")
    c2.metric("Refunded", _fmt_inr(summary["total_refund"]),
              help=f"{summary['refund_count']} refund(s)")
    c3.metric("Cashback", _fmt_inr(summary["total_cashback"]),
              help=f"{summary['cashback_count']} reward(s)")
    c4.metric("Net Spending", _fmt_inr(summary["net_spending"]),
              help="Spent minus refunds and cashback")

    st.divider()

    # --- Top merchants ---
    st.subheader("Top Merchants")
    merchants = get_merchant_summary(user_id)
    if merchants:
        df = pd.DataFrame(merchants)
        fig = px.bar(
            df.sort_values("total_expense"),
            x="total_expense",
            y="merchant_name",
            orientation="h",
            labels={"total_expense": "Amount (₹)", "merchant_name": ""},
            color_discrete_sequence=["#e74c3c"],
        )
        fig.update_layout(margin=dict(t=10, b=20, l=20, r=20), height=380)
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No purchases recorded yet.")

    # --- Recent activity ---
    st.subheader("Recent Activity")
    recent = get_transactions(user_id, limit=10)
    if recent:
        recent_df = pd.DataFrame(recent)[["transaction_date", "merchant_name", "type", "amount"]]
        recent_df["transaction_date"] = recent_df["transaction_date"].str[:10]
        recent_df["amount"] = recent_df["amount"].map(lambda x: f"₹{x:,.2f}")
        recent_df["type"] = recent_df["type"].str.capitalize()
        recent_df.columns = ["Date", "Merchant", "Type", "Amount"]
        recent_df.index = range(1, len(recent_df) + 1)
        st.dataframe(recent_df, use_container_width=True)
