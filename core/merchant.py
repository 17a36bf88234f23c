"""
Merchant name resolution from the ``From`` header.

    "Swiggy Support" <noreply@swiggy.in>   -> Swiggy
    alerts@hdfcbank.net                     -> Hdfcbank
    <orders@mail.zomato.com>                -> Zomato
"""

import re
from typing import Optional

from core.config import EngineConfig, load_config
from core.patterns import COMMON_TLDS, SENDER_ROLE_SUFFIX, SENDER_SUBDOMAIN_PREFIX

UNKNOWN_MERCHANT = "Unknown"

_DISPLAY_NAME = re.compile(r'^"?([^"<]{2,50}?)"?\s*<')
_DOMAIN = re.compile(r"@([\w.\-]+)")


def _from_display_name(sender: str, known: dict) -> Optional[str]:
    match = _DISPLAY_NAME.match(sender)
    if not match:
        return None

    name = SENDER_ROLE_SUFFIX.sub("", match.group(1).strip()).strip()
    key = re.sub(r"\s+", "", name.lower())
    if key in known:
        return known[key]
    if 2 <= len(name) <= 40:
        return name
    return None


def _from_domain(sender: str, known: dict) -> Optional[str]:
    match = _DOMAIN.search(sender)
    if not match:
        return None

    domain = SENDER_SUBDOMAIN_PREFIX.sub("", match.group(1).lower(), count=1)
    labels = [label for label in domain.split(".") if label and label not in COMMON_TLDS]
    raw = labels[0] if labels else domain.split(".")[0]
    if not raw:
        return None
    return known.get(raw) or raw[0].upper() + raw[1:]


def resolve_merchant(sender: str, config: Optional[EngineConfig] = None) -> str:
    """Best-effort display name for the counterparty of a message."""
    config = config or load_config()
    sender = (sender or "").strip()
    return (
        _from_display_name(sender, config.known_merchants)
        or _from_domain(sender, config.known_merchants)
        or UNKNOWN_MERCHANT
    )
