"""
Transaction identity for deduplication across repeated imports.

One order usually produces several mails (confirmation, invoice, receipt),
each with its own Gmail message id. The identity therefore never includes
the message id:

  - with a resolved order id:  user | order_id | type
  - without one:               user | merchant | YYYY-MM-DD | amount | type

The key is hashed with SHA-256 and the hex digest is what the store's unique
constraint is enforced on.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class DedupKey:
    hash: str
    order_reference: str


def format_amount(amount: Decimal) -> str:
    """Canonical text for an amount: ``Decimal("499.00")`` -> ``"499"``."""
    return format(Decimal(amount).normalize(), "f")


def day_key(when: datetime) -> str:
    """Calendar day (UTC) used in the composite key."""
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime("%Y-%m-%d")


def build_key_string(
    user_id,
    txn_type: str,
    order_id: Optional[str],
    merchant: str,
    amount: Decimal,
    when: datetime,
) -> str:
    if order_id:
        return f"{user_id}|{order_id}|{txn_type}"
    return f"{user_id}|{merchant}|{day_key(when)}|{format_amount(amount)}|{txn_type}"


def hash_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def build_dedup_key(
    user_id,
    txn_type: str,
    order_id: Optional[str],
    merchant: str,
    amount: Decimal,
    when: datetime,
    message_id: str,
) -> DedupKey:
    """Hash the natural key and pick the value stored as order reference.

    Without an order id the message id is stored for traceability only; it
    is not part of the hashed key.
    """
    key = build_key_string(user_id, txn_type, order_id, merchant, amount, when)
    return DedupKey(hash=hash_key(key), order_reference=order_id or message_id)
