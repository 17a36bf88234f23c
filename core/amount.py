"""
Amount resolution.

Receipts list many rupee figures (item prices, taxes, delivery fees, savings,
the total). The amount we want sits near a type-specific anchor phrase:
"Order Total" for purchases, "refund of" for refunds, "cashback of" for
rewards. Every amount within the anchor window goes into a pool; expenses
take the largest (the grand total dominates line items) and credit events
the smallest (a nearby order total must not be mistaken for the refund).
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from core.config import EngineConfig, load_config

logger = logging.getLogger(__name__)

_RUPEE_AMOUNT = re.compile(r"₹\s*([\d,]+\.?\d*)")


def _to_decimal(raw: str) -> Optional[Decimal]:
    cleaned = raw.replace(",", "").rstrip(".")
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def find_amounts(body: str, config: Optional[EngineConfig] = None) -> list[tuple[Decimal, int]]:
    """Return ``(amount, offset)`` for every in-bounds ``₹`` figure in ``body``."""
    config = config or load_config()
    found = []
    for match in _RUPEE_AMOUNT.finditer(body):
        value = _to_decimal(match.group(1))
        if value is None:
            continue
        if config.min_amount <= value <= config.max_amount:
            found.append((value, match.start()))
    return found


def resolve_amount(body: str, txn_type: str, config: Optional[EngineConfig] = None) -> Optional[Decimal]:
    """Pick the amount that best represents a ``txn_type`` transaction."""
    config = config or load_config()
    amounts = find_amounts(body, config)
    if not amounts:
        return None

    pick = max if txn_type == "expense" else min
    anchor = config.amount_anchors.get(txn_type)

    if anchor is not None:
        pool = []
        for anchor_match in anchor.finditer(body):
            for value, offset in amounts:
                if abs(offset - anchor_match.start()) <= config.anchor_window:
                    pool.append(value)
        if pool:
            return pick(pool)
        logger.debug("No %s anchor near any amount, using all amounts", txn_type)

    return pick(value for value, _ in amounts)
