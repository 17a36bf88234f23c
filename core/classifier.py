"""
Weighted-pattern classifier: expense vs refund vs cashback.

Each type has its own accumulator fed by a subject table and a body table.
Every rule in a table is evaluated and the weights are summed; negative
weights cancel signals that belong to a competing type (a refund mail quoting
"order confirmed", a receipt advertising cashback on the next order).

Credit events (refund, cashback) are checked first and need a higher
threshold plus a win over the expense score, because candidate mail was
already pre-selected by purchase-sounding search queries.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.config import EngineConfig, load_config

logger = logging.getLogger(__name__)

EXPENSE = "expense"
REFUND = "refund"
CASHBACK = "cashback"
TRANSACTION_TYPES = (EXPENSE, REFUND, CASHBACK)


@dataclass(frozen=True)
class Classification:
    type: str
    score: int


@dataclass(frozen=True)
class Scores:
    expense: int
    refund: int
    cashback: int


def score_message(subject: str, body: str, config: Optional[EngineConfig] = None) -> Scores:
    """Run all three accumulators and return the raw scores."""
    config = config or load_config()
    return Scores(
        expense=config.expense_rules.score(subject, body),
        refund=config.refund_rules.score(subject, body),
        cashback=config.cashback_rules.score(subject, body),
    )


def decide(scores: Scores, config: Optional[EngineConfig] = None) -> Optional[Classification]:
    """Apply the ordered decision rule to a set of scores.

    A refund/cashback tie goes to refund. A credit score that only ties the
    expense score matches neither credit branch and falls through to the
    expense check.
    """
    config = config or load_config()

    if (scores.refund >= config.credit_threshold
            and scores.refund >= scores.cashback
            and scores.refund > scores.expense):
        return Classification(REFUND, scores.refund)

    if scores.cashback >= config.credit_threshold and scores.cashback > scores.expense:
        return Classification(CASHBACK, scores.cashback)

    if scores.expense >= config.expense_threshold:
        return Classification(EXPENSE, scores.expense)

    return None


def classify(subject: str, body: str, config: Optional[EngineConfig] = None) -> Optional[Classification]:
    """Classify a message, or return None when no type is convincing enough."""
    config = config or load_config()
    scores = score_message(subject, body, config)
    result = decide(scores, config)
    logger.debug(
        "Scores expense=%d refund=%d cashback=%d -> %s",
        scores.expense, scores.refund, scores.cashback,
        result.type if result else "no match",
    )
    return result
