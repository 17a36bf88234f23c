"""Order / booking / transaction reference extraction."""

from typing import Optional

from core.config import EngineConfig, load_config


def resolve_order_id(body: str, config: Optional[EngineConfig] = None) -> Optional[str]:
    """Return the first labelled reference found in ``body``, uppercased.

    Patterns are tried in priority order (order id, invoice, transaction,
    refund, reference, PNR, UPI ref, bare ``#TOKEN``) and the first one that
    matches anywhere wins. The Gmail message id is never used here: one order
    produces several mails with different message ids.
    """
    config = config or load_config()
    for pattern in config.order_id_patterns:
        match = pattern.search(body)
        if match and match.group(1):
            return match.group(1).strip().upper()
    return None
