"""
Content extraction for Gmail API messages.

A message fetched with ``format=full`` carries a MIME tree of parts, each with
a ``mimeType`` and a base64url ``body.data``. This module flattens that tree
into one normalised plain-text string that every downstream regex can rely
on: no markup, no entities, a single ``₹`` currency marker and single spaces.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Literal entities that survive parsing (usually double-escaped templates)
_ENTITY_REPLACEMENTS = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&nbsp;", " "),
    ("&#8377;", "₹"),
    ("&#x20b9;", "₹"),
    ("&#X20B9;", "₹"),
)

# UTF-8 rupee sign read back as cp1252
_MOJIBAKE_RUPEE = "â‚¹"

# "Rs.499", "Rs 1,299.00", "INR 250" -> "₹499", "₹1,299.00", "₹250"
_CURRENCY_MARKER = re.compile(r"\b(?:rs\.?|inr)\s*(?=[\d.,]*\d)", re.IGNORECASE)

_WHITESPACE = re.compile(r"\s+")


@dataclass
class ExtractedContent:
    subject: str
    sender: str
    date: datetime
    body: str


# ---------------------------------------------------------------------------
# MIME tree traversal
# ---------------------------------------------------------------------------

def decode_body_data(data: str) -> str:
    """Decode a base64url part body. Gmail omits the ``=`` padding."""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        logger.debug("Undecodable part body: %s", e)
        return ""
    return raw.decode("utf-8", errors="replace")


def _gather(parts: list, plains: list[str], htmls: list[str]) -> None:
    for part in parts or []:
        mime_type = part.get("mimeType", "")
        data = (part.get("body") or {}).get("data")
        if data and mime_type == "text/plain":
            plains.append(decode_body_data(data))
        elif data and mime_type == "text/html":
            htmls.append(decode_body_data(data))
        if part.get("parts"):
            _gather(part["parts"], plains, htmls)


def raw_body_text(payload: dict) -> str:
    """Return the undecorated body text, preferring text/plain over text/html."""
    raw = ""
    if payload.get("parts"):
        plains: list[str] = []
        htmls: list[str] = []
        _gather(payload["parts"], plains, htmls)
        raw = "\n".join(plains) if plains else "\n".join(htmls)

    if not raw:
        raw = decode_body_data((payload.get("body") or {}).get("data", ""))
    return raw


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def _strip_markup(text: str) -> str:
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(separator=" ")


def normalize_text(text: str) -> str:
    """Strip markup, decode entities, canonicalise currency, collapse spaces."""
    if not text:
        return ""

    text = _strip_markup(text)
    for entity, char in _ENTITY_REPLACEMENTS:
        text = text.replace(entity, char)
    text = text.replace(_MOJIBAKE_RUPEE, "₹")
    text = _CURRENCY_MARKER.sub("₹", text)

    return _WHITESPACE.sub(" ", text).strip()


def extract_body(payload: dict) -> str:
    """Full pipeline: MIME tree -> normalised text ('' when nothing usable)."""
    return normalize_text(raw_body_text(payload))


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------

def get_header(headers: list[dict], name: str) -> str:
    """Case-insensitive header lookup; first occurrence wins."""
    wanted = name.lower()
    for header in headers or []:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value") or ""
    return ""


def internal_date(value) -> Optional[datetime]:
    """Gmail ``internalDate`` (epoch milliseconds, sent as a string) in UTC."""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.debug("Unusable internalDate: %r", value)
        return None


def parse_message_date(value: str, fallback: Optional[datetime] = None) -> datetime:
    """Parse an RFC 2822 Date header into an aware datetime.

    A missing or garbled header falls back to ``fallback`` (the mailbox's
    receive time, stable across runs) and only then to the current time, so
    the dedup day of a message without an order id never drifts.
    """
    if value:
        try:
            parsed = parsedate_to_datetime(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        except (TypeError, ValueError, IndexError):
            logger.debug("Unparseable Date header: %r", value)
    return fallback or datetime.now(timezone.utc)


def extract_content(message: dict) -> ExtractedContent:
    """Pull subject, sender, date and normalised body out of a raw message."""
    payload = message.get("payload") or {}
    headers = message.get("headers") or payload.get("headers") or []
    return ExtractedContent(
        subject=get_header(headers, "Subject"),
        sender=get_header(headers, "From"),
        date=parse_message_date(
            get_header(headers, "Date"),
            fallback=internal_date(message.get("internal_date") or message.get("internalDate")),
        ),
        body=extract_body(payload),
    )
