"""
Tests for the SQLite store: idempotent import inserts, the read side used by
the dashboard, manual entries and the settings table.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from core import database
from core.account import clear_gmail_token, has_gmail_token, load_account, save_gmail_token
from core.database import (
    StoreConnectionError,
    add_manual_transaction,
    add_subscription,
    check_connection,
    delete_subscription,
    delete_transaction,
    get_merchant_summary,
    get_setting,
    get_subscriptions,
    get_summary,
    get_transactions,
    insert_if_absent,
    set_setting,
)
from core.gmail_client import MissingCredentialError


def _insert(user="u1", merchant="Swiggy", ref="OD1", amount="450", day=6, digest="h1", txn_type="expense"):
    return insert_if_absent(
        user, merchant, ref, Decimal(amount),
        datetime(2025, 1, day, 12, 0, tzinfo=timezone.utc), digest, txn_type,
    )


# ---------------------------------------------------------------------------
# insert_if_absent
# ---------------------------------------------------------------------------

class TestInsertIfAbsent:

    def test_first_insert_creates_row(self, temp_db):
        assert _insert() is True
        rows = get_transactions("u1")
        assert len(rows) == 1
        assert rows[0]["merchant_name"] == "Swiggy"
        assert rows[0]["order_id"] == "OD1"
        assert rows[0]["amount"] == 450.0
        assert rows[0]["type"] == "expense"
        assert rows[0]["is_manual"] == 0

    def test_same_hash_is_ignored(self, temp_db):
        assert _insert() is True
        assert _insert(ref="other-message") is False
        assert len(get_transactions("u1")) == 1

    def test_different_hash_inserted(self, temp_db):
        _insert(digest="h1")
        assert _insert(digest="h2") is True
        assert len(get_transactions("u1")) == 2


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

class TestReadSide:

    def test_transactions_newest_first(self, temp_db):
        _insert(digest="h1", day=3)
        _insert(digest="h2", day=9)
        rows = get_transactions("u1")
        assert [r["transaction_hash"] for r in rows] == ["h2", "h1"]

    def test_filter_by_type(self, temp_db):
        _insert(digest="h1", txn_type="expense")
        _insert(digest="h2", txn_type="refund")
        assert [r["type"] for r in get_transactions("u1", txn_type="refund")] == ["refund"]
        assert len(get_transactions("u1", txn_type="all")) == 2

    def test_other_users_hidden(self, temp_db):
        _insert(user="u1", digest="h1")
        _insert(user="u2", digest="h2")
        assert len(get_transactions("u1")) == 1

    def test_limit(self, temp_db):
        for i in range(5):
            _insert(digest=f"h{i}")
        assert len(get_transactions("u1", limit=3)) == 3

    def test_summary_net_spending(self, temp_db):
        _insert(digest="h1", amount="1000", txn_type="expense")
        _insert(digest="h2", amount="200", txn_type="refund")
        _insert(digest="h3", amount="50", txn_type="cashback")
        summary = get_summary("u1")
        assert summary["total_expense"] == 1000
        assert summary["total_refund"] == 200
        assert summary["total_cashback"] == 50
        assert summary["expense_count"] == 1
        assert summary["net_spending"] == 750

    def test_summary_empty(self, temp_db):
        summary = get_summary("nobody")
        assert summary["total_expense"] == 0
        assert summary["net_spending"] == 0

    def test_merchant_summary_orders_by_spend(self, temp_db):
        _insert(merchant="Swiggy", digest="h1", amount="300")
        _insert(merchant="Swiggy", digest="h2", amount="200")
        _insert(merchant="Amazon", digest="h3", amount="400")
        _insert(merchant="Amazon", digest="h4", amount="999", txn_type="refund")
        merchants = get_merchant_summary("u1")
        assert merchants[0] == {"merchant_name": "Swiggy", "total_expense": 500, "txn_count": 2}
        assert merchants[1]["merchant_name"] == "Amazon"
        assert merchants[1]["total_expense"] == 400


# ---------------------------------------------------------------------------
# Manual entries
# ---------------------------------------------------------------------------

class TestManualTransactions:

    def test_add_and_list(self, temp_db):
        txn_id = add_manual_transaction("u1", "Chai stall", 40, "expense", datetime(2025, 1, 6), "cash")
        rows = get_transactions("u1")
        assert rows[0]["id"] == txn_id
        assert rows[0]["is_manual"] == 1
        assert rows[0]["notes"] == "cash"

    def test_manual_rows_never_collide(self, temp_db):
        add_manual_transaction("u1", "Chai stall", 40)
        add_manual_transaction("u1", "Chai stall", 40)
        assert len(get_transactions("u1")) == 2

    def test_unknown_type_rejected(self, temp_db):
        with pytest.raises(ValueError):
            add_manual_transaction("u1", "Shop", 10, "transfer")

    def test_missing_merchant_rejected(self, temp_db):
        with pytest.raises(ValueError):
            add_manual_transaction("u1", "", 10)

    def test_delete_own_row(self, temp_db):
        txn_id = add_manual_transaction("u1", "Shop", 10)
        assert delete_transaction("u1", txn_id) is True
        assert get_transactions("u1") == []

    def test_delete_other_users_row_refused(self, temp_db):
        txn_id = add_manual_transaction("u1", "Shop", 10)
        assert delete_transaction("u2", txn_id) is False
        assert len(get_transactions("u1")) == 1


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class TestSubscriptions:

    def test_yearly_counts_a_twelfth(self, temp_db):
        add_subscription("u1", "Netflix", 649, "monthly", "2025-02-01")
        add_subscription("u1", "Prime", 1499, "yearly", "2025-06-15")
        data = get_subscriptions("u1")
        assert len(data["subscriptions"]) == 2
        assert data["total_monthly"] == round(649 + 1499 / 12, 2)

    def test_next_bill_first(self, temp_db):
        add_subscription("u1", "Later", 100, next_date="2025-09-01")
        add_subscription("u1", "Undated", 100)
        add_subscription("u1", "Sooner", 100, next_date=date(2025, 3, 1))
        names = [s["service_name"] for s in get_subscriptions("u1")["subscriptions"]]
        assert names == ["Sooner", "Later", "Undated"]

    def test_date_stored_as_day(self, temp_db):
        add_subscription("u1", "Spotify", 119, next_date=datetime(2025, 3, 1, 18, 30))
        sub = get_subscriptions("u1")["subscriptions"][0]
        assert sub["next_billing_date"] == "2025-03-01"
        assert sub["billing_cycle"] == "monthly"

    def test_empty(self, temp_db):
        assert get_subscriptions("u1") == {"subscriptions": [], "total_monthly": 0}

    @pytest.mark.parametrize("name, amount", [("", 100), ("Netflix", 0), ("Netflix", None)])
    def test_name_and_amount_required(self, temp_db, name, amount):
        with pytest.raises(ValueError):
            add_subscription("u1", name, amount)

    def test_unknown_cycle_rejected(self, temp_db):
        with pytest.raises(ValueError):
            add_subscription("u1", "Netflix", 649, "weekly")

    def test_delete_scoped_to_user(self, temp_db):
        sub_id = add_subscription("u1", "Netflix", 649)
        add_subscription("u2", "Netflix", 649)
        assert delete_subscription("u2", sub_id) is False
        assert delete_subscription("u1", sub_id) is True
        assert get_subscriptions("u1")["subscriptions"] == []
        assert len(get_subscriptions("u2")["subscriptions"]) == 1


# ---------------------------------------------------------------------------
# Connection / settings / account
# ---------------------------------------------------------------------------

class TestConnection:

    def test_check_connection_ok(self, temp_db):
        check_connection()

    def test_unusable_path_raises(self, tmp_path, monkeypatch):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        monkeypatch.setattr(database, "DB_PATH", str(blocker / "store.db"))
        with pytest.raises(StoreConnectionError):
            check_connection()


class TestSettingsAndAccount:

    def test_setting_roundtrip(self, temp_db):
        assert get_setting("k") is None
        set_setting("k", "v1")
        set_setting("k", "v2")
        assert get_setting("k") == "v2"

    def test_account_loaded_from_saved_token(self, temp_db):
        save_gmail_token("u1", {"access_token": "abc"})
        account = load_account("u1")
        assert account.user_id == "u1"
        assert account.token == {"access_token": "abc"}

    def test_missing_token(self, temp_db):
        with pytest.raises(MissingCredentialError):
            load_account("u1")

    def test_blank_user(self, temp_db):
        with pytest.raises(MissingCredentialError):
            load_account("  ")

    def test_corrupt_token(self, temp_db):
        set_setting("gmail_credentials:u1", "{not json")
        with pytest.raises(MissingCredentialError):
            load_account("u1")

    def test_cleared_token(self, temp_db):
        save_gmail_token("u1", {"access_token": "abc"})
        clear_gmail_token("u1")
        with pytest.raises(MissingCredentialError):
            load_account("u1")

    def test_has_gmail_token(self, temp_db):
        assert has_gmail_token("u1") is False
        save_gmail_token("u1", {"access_token": "abc"})
        assert has_gmail_token("u1") is True

    def test_has_gmail_token_unreachable_store(self, tmp_path, monkeypatch):
        monkeypatch.setattr(database, "DB_PATH", str(tmp_path / "missing" / "store.db"))
        with pytest.raises(StoreConnectionError):
            has_gmail_token("u1")
