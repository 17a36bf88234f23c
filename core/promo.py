"""
Promotional / non-financial mail filter.

Two stages:
  1. ``check_headers`` runs on subject and sender before the body is even
     decoded. Hard-skip subjects (shipping, OTP, surveys...) are checked
     first, then marketing subjects and marketing sender addresses.
  2. ``is_promotional_body`` runs after extraction. A body is rejected only
     when a strong promotional phrase matches AND no strong transactional
     phrase does, so a real receipt that advertises the next offer survives.

Lists are kept narrow on purpose: anything ambiguous falls through to the
scoring classifier.
"""

from dataclasses import dataclass
from typing import Optional

from core import patterns

SKIP = "skip"
PROMO = "promo"


@dataclass(frozen=True)
class PromotionalPolicy:
    skip_patterns: tuple = patterns.SKIP_SUBJECT_PATTERNS
    promo_subject_patterns: tuple = patterns.PROMO_SUBJECT_PATTERNS
    promo_sender_patterns: tuple = patterns.PROMO_SENDER_PATTERNS
    strong_promo_body: tuple = patterns.STRONG_PROMO_BODY_PATTERNS
    strong_tx_body: tuple = patterns.STRONG_TX_BODY_PATTERNS

    def check_headers(self, subject: str, sender: str) -> Optional[str]:
        """Return ``"skip"``, ``"promo"`` or None (proceed)."""
        if any(p.search(subject) for p in self.skip_patterns):
            return SKIP
        if any(p.search(subject) for p in self.promo_subject_patterns):
            return PROMO
        if any(p.search(sender) for p in self.promo_sender_patterns):
            return PROMO
        return None

    def is_promotional_body(self, body: str) -> bool:
        if not any(p.search(body) for p in self.strong_promo_body):
            return False
        return not any(p.search(body) for p in self.strong_tx_body)
