"""
Engine configuration.

Thresholds, bounds and rule tables are bundled into one immutable
``EngineConfig`` that is built once per process by ``load_config()`` and
passed explicitly into every stage of the import pipeline. Tests build their
own config instead of patching module globals.
"""

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal
from functools import lru_cache
from types import MappingProxyType

from core import patterns
from core.promo import PromotionalPolicy

EXPENSE_THRESHOLD = 5
CREDIT_THRESHOLD = 7

MIN_AMOUNT = Decimal("1")
MAX_AMOUNT = Decimal("1000000")

# how far (in characters, either direction) an amount may sit from an anchor
ANCHOR_WINDOW = 300


@dataclass(frozen=True)
class ScoringRules:
    """Subject/body weighted tables for one transaction type."""

    subject: tuple
    body: tuple

    def score(self, subject: str, body: str) -> int:
        return (
            sum(rule.score(subject) for rule in self.subject)
            + sum(rule.score(body) for rule in self.body)
        )


@dataclass(frozen=True)
class EngineConfig:
    expense_threshold: int = EXPENSE_THRESHOLD
    credit_threshold: int = CREDIT_THRESHOLD
    min_amount: Decimal = MIN_AMOUNT
    max_amount: Decimal = MAX_AMOUNT
    anchor_window: int = ANCHOR_WINDOW
    max_workers: int = 1
    expense_rules: ScoringRules = field(default_factory=lambda: ScoringRules(
        patterns.EXPENSE_SUBJECT_RULES, patterns.EXPENSE_BODY_RULES))
    refund_rules: ScoringRules = field(default_factory=lambda: ScoringRules(
        patterns.REFUND_SUBJECT_RULES, patterns.REFUND_BODY_RULES))
    cashback_rules: ScoringRules = field(default_factory=lambda: ScoringRules(
        patterns.CASHBACK_SUBJECT_RULES, patterns.CASHBACK_BODY_RULES))
    amount_anchors: MappingProxyType = field(default_factory=lambda: MappingProxyType(patterns.AMOUNT_ANCHORS))
    order_id_patterns: tuple = patterns.ORDER_ID_PATTERNS
    known_merchants: MappingProxyType = field(default_factory=lambda: MappingProxyType(patterns.KNOWN_MERCHANTS))
    promo_policy: PromotionalPolicy = field(default_factory=PromotionalPolicy)
    search_queries: tuple = field(default_factory=patterns.all_search_queries)

    def with_overrides(self, **changes) -> "EngineConfig":
        return replace(self, **changes)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@lru_cache(maxsize=1)
def load_config() -> EngineConfig:
    """Build the process-wide config from the environment (cached)."""
    return EngineConfig(
        expense_threshold=_env_int("IMPORT_EXPENSE_THRESHOLD", EXPENSE_THRESHOLD),
        credit_threshold=_env_int("IMPORT_CREDIT_THRESHOLD", CREDIT_THRESHOLD),
        max_workers=max(1, _env_int("IMPORT_MAX_WORKERS", 1)),
    )

