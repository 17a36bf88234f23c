import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from core.classifier import TRANSACTION_TYPES

BILLING_CYCLES = ("monthly", "yearly")

DB_PATH = os.getenv(
    "EXPENSE_DB_PATH",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "expense_tracker.db"),
)


class StoreConnectionError(Exception):
    """Raised when the transaction database cannot be opened at all."""


@contextmanager
def get_connection():
    """Yield a SQLite connection with row_factory set."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Create tables if they don't exist."""
    os.makedirs(os.path.dirname(DB_PATH) or ".", exist_ok=True)

    with get_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                merchant_name TEXT NOT NULL,
                order_id TEXT,
                amount REAL NOT NULL,
                type TEXT NOT NULL CHECK (type IN ('expense', 'refund', 'cashback')),
                transaction_date TEXT NOT NULL,
                transaction_hash TEXT NOT NULL UNIQUE,
                notes TEXT,
                is_manual INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_transactions_user_date
            ON transactions (user_id, transaction_date)
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS subscriptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                service_name TEXT NOT NULL,
                amount REAL NOT NULL,
                billing_cycle TEXT NOT NULL DEFAULT 'monthly'
                    CHECK (billing_cycle IN ('monthly', 'yearly')),
                next_billing_date TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)


def check_connection() -> None:
    """Make sure the store is reachable before an import run starts."""
    try:
        init_db()
        with get_connection() as conn:
            conn.execute("SELECT 1").fetchone()
    except (sqlite3.Error, OSError) as e:
        raise StoreConnectionError(f"Cannot open transaction database at {DB_PATH}: {e}") from e


def _iso(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# ---------------------------------------------------------------------------
# Import path
# ---------------------------------------------------------------------------

def insert_if_absent(
    user_id,
    merchant: str,
    order_reference: Optional[str],
    amount: Decimal,
    transaction_date: datetime,
    dedupe_hash: str,
    txn_type: str,
) -> bool:
    """Insert one imported transaction unless its hash already exists.

    A single ``INSERT OR IGNORE`` against the unique ``transaction_hash``, so
    concurrent imports of the same transaction race to exactly one row.
    Returns True when a new row was created.
    """
    with get_connection() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO transactions
                (user_id, merchant_name, order_id, amount, transaction_date,
                 transaction_hash, type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (str(user_id), merchant, order_reference, float(amount),
             _iso(transaction_date), dedupe_hash, txn_type),
        )
    return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Read side (dashboard / transactions pages)
# ---------------------------------------------------------------------------

def get_transactions(
    user_id,
    txn_type: Optional[str] = None,
    limit: int = 100,
) -> list[dict]:
    """Newest-first transactions for a user, optionally filtered by type."""
    query = "SELECT * FROM transactions WHERE user_id = ?"
    params: list = [str(user_id)]

    if txn_type and txn_type != "all":
        query += " AND type = ?"
        params.append(txn_type)

    query += " ORDER BY transaction_date DESC, id DESC LIMIT ?"
    params.append(limit)

    with get_connection() as conn:
        rows = conn.execute(query, params).fetchall()
    return [dict(r) for r in rows]


def get_summary(user_id) -> dict:
    """Totals and counts per type, plus net spending after credits."""
    with get_connection() as conn:
        row = conn.execute(
            """
            SELECT
                COALESCE(SUM(CASE WHEN type = 'expense'  THEN amount ELSE 0 END), 0) AS total_expense,
                COALESCE(SUM(CASE WHEN type = 'refund'   THEN amount ELSE 0 END), 0) AS total_refund,
                COALESCE(SUM(CASE WHEN type = 'cashback' THEN amount ELSE 0 END), 0) AS total_cashback,
                COUNT(CASE WHEN type = 'expense'  THEN 1 END) AS expense_count,
                COUNT(CASE WHEN type = 'refund'   THEN 1 END) AS refund_count,
                COUNT(CASE WHEN type = 'cashback' THEN 1 END) AS cashback_count
            FROM transactions
            WHERE user_id = ?
            """,
            (str(user_id),),
        ).fetchone()

    summary = dict(row)
    summary["net_spending"] = (
        summary["total_expense"] - summary["total_refund"] - summary["total_cashback"]
    )
    return summary


def get_merchant_summary(user_id, limit: int = 10) -> list[dict]:
    """Top merchants by total expense."""
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT merchant_name, SUM(amount) AS total_expense, COUNT(*) AS txn_count
            FROM transactions
            WHERE user_id = ? AND type = 'expense'
            GROUP BY merchant_name
            ORDER BY total_expense DESC
            LIMIT ?
            """,
            (str(user_id), limit),
        ).fetchall()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Manual entries
# ---------------------------------------------------------------------------

def add_manual_transaction(
    user_id,
    merchant: str,
    amount: float,
    txn_type: str = "expense",
    date: Optional[datetime] = None,
    notes: str = "",
) -> int:
    """Insert a user-entered transaction. Returns the new row id.

    Manual rows get a random hash so they can never collide with (or block)
    an imported transaction.
    """
    if not merchant or not amount:
        raise ValueError("merchant and amount are required")
    if txn_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {txn_type!r}")

    with get_connection() as conn:
        cursor = conn.execute(
            """
            INSERT INTO transactions
                (user_id, merchant_name, amount, type, transaction_date,
                 transaction_hash, notes, is_manual)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1)
            """,
            (str(user_id), merchant, float(amount), txn_type,
             _iso(date or datetime.now()), f"manual-{uuid.uuid4().hex}", notes or ""),
        )
    return cursor.lastrowid


def delete_transaction(user_id, txn_id: int) -> bool:
    """Delete one of the user's transactions. Returns True if a row went away."""
    with get_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM transactions WHERE id = ? AND user_id = ?",
            (txn_id, str(user_id)),
        )
    return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Subscriptions (recurring charges the user tracks by hand)
# ---------------------------------------------------------------------------

def get_subscriptions(user_id) -> dict:
    """The user's subscriptions, next bill first, with the monthly cost.

    Yearly plans count for a twelfth of their price in ``total_monthly``.
    Subscriptions without a billing date are listed last.
    """
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT * FROM subscriptions
            WHERE user_id = ?
            ORDER BY next_billing_date IS NULL, next_billing_date ASC, id ASC
            """,
            (str(user_id),),
        ).fetchall()

    subscriptions = [dict(r) for r in rows]
    total_monthly = sum(
        s["amount"] / 12 if s["billing_cycle"] == "yearly" else s["amount"]
        for s in subscriptions
    )
    return {"subscriptions": subscriptions, "total_monthly": round(total_monthly, 2)}


def add_subscription(
    user_id,
    service_name: str,
    amount: float,
    cycle: str = "monthly",
    next_date=None,
) -> int:
    """Track a recurring charge. Returns the new row id."""
    if not service_name or not amount:
        raise ValueError("service name and amount are required")
    if cycle not in BILLING_CYCLES:
        raise ValueError(f"Unknown billing cycle: {cycle!r}")
    if isinstance(next_date, (date, datetime)):
        next_date = next_date.isoformat()[:10]

    with get_connection() as conn:
        cursor = conn.execute(
            """
            INSERT INTO subscriptions
                (user_id, service_name, amount, billing_cycle, next_billing_date)
            VALUES (?, ?, ?, ?, ?)
            """,
            (str(user_id), service_name, float(amount), cycle, next_date or None),
        )
    return cursor.lastrowid


def delete_subscription(user_id, sub_id: int) -> bool:
    with get_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM subscriptions WHERE id = ? AND user_id = ?",
            (sub_id, str(user_id)),
        )
    return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Settings helpers (key-value store for app configuration)
# ---------------------------------------------------------------------------

def get_setting(key: str) -> Optional[str]:
    """Retrieve a setting value by key. Returns None if not found."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        ).fetchone()
    return row["value"] if row else None


def set_setting(key: str, value: str) -> None:
    """Store a setting (insert or update)."""
    with get_connection() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, value),
        )


def delete_setting(key: str) -> None:
    """Remove a setting by key."""
    with get_connection() as conn:
        conn.execute("DELETE FROM settings WHERE key = ?", (key,))
