"""
Inbox import orchestrator.

Strategy (same shape as a server-side IMAP search, but over the Gmail API):
  1. Run every query in the search catalogue and merge the returned message
     ids into one ordered, de-duplicated list. A failing query is logged and
     contributes nothing.
  2. For each id: fetch, extract, filter, classify, resolve amount / order id
     / merchant, build the dedup hash and offer the candidate to the store.
     A failing message is logged and abandoned; the run carries on.

Per message the state machine is:

    discovered -> body-extracted -> filtered -> classified
               -> amount-resolved -> ready -> stored | duplicate

with ``skipped(reason)`` / ``rejected(reason)`` exits at every gate. Only a
failure to reach the mailbox or the store at all aborts the run; that
includes a credential the mailbox rejects part-way through.

``import_for_user`` is the one entry point used by both the daily job and
the Streamlit sync page.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from core import database
from core.account import load_account
from core.amount import resolve_amount
from core.classifier import classify
from core.config import EngineConfig, load_config
from core.content import extract_content
from core.dedup import build_dedup_key
from core.gmail_client import EmailConnectionError, GmailClient
from core.identifiers import resolve_order_id
from core.merchant import resolve_merchant
from core.promo import SKIP

logger = logging.getLogger(__name__)

STORED = "stored"
DUPLICATE = "duplicate"
SKIPPED = "skipped"
REJECTED = "rejected"
FAILED = "failed"
READY = "ready"

# guard reasons
NON_FINANCIAL = "non_financial"
PROMOTIONAL = "promotional"
PROMOTIONAL_BODY = "promotional_body"
EMPTY_BODY = "empty_body"
UNCLASSIFIED = "unclassified"
NO_AMOUNT = "no_amount"


@dataclass
class Candidate:
    merchant: str
    amount: Decimal
    type: str
    order_id: Optional[str]
    date: datetime
    dedupe_hash: str
    order_reference: str


@dataclass
class MessageOutcome:
    status: str
    reason: Optional[str] = None
    candidate: Optional[Candidate] = None


@dataclass
class ImportedTransaction:
    merchant: str
    amount: Decimal
    type: str
    order_reference: str


@dataclass
class ImportSummary:
    imported: int = 0
    duplicates: int = 0
    skipped: int = 0
    rejected: int = 0
    failed: int = 0
    reasons: Counter = field(default_factory=Counter)
    transactions: list[ImportedTransaction] = field(default_factory=list)

    def record(self, outcome: MessageOutcome) -> None:
        if outcome.status == STORED:
            self.imported += 1
            c = outcome.candidate
            self.transactions.append(
                ImportedTransaction(c.merchant, c.amount, c.type, c.order_reference)
            )
        elif outcome.status == DUPLICATE:
            self.duplicates += 1
        elif outcome.status == SKIPPED:
            self.skipped += 1
        elif outcome.status == REJECTED:
            self.rejected += 1
        else:
            self.failed += 1
        if outcome.reason:
            self.reasons[outcome.reason] += 1

    @property
    def processed(self) -> int:
        return self.imported + self.duplicates + self.skipped + self.rejected + self.failed


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def discover_message_ids(
    mail,
    queries: Iterable[str],
    on_progress: Optional[Callable[[str, str], None]] = None,
) -> list[str]:
    """Run every search query and merge the ids, first-seen order preserved."""
    queries = list(queries)
    seen: set[str] = set()
    ids: list[str] = []

    for i, query in enumerate(queries):
        if on_progress:
            on_progress("search", f"Searching {i + 1}/{len(queries)}")
        try:
            found = mail.search(query)
        except EmailConnectionError:
            raise
        except Exception as e:
            logger.warning("Search query failed, skipping: %r (%s)", query, e)
            continue
        for msg_id in found:
            if msg_id not in seen:
                seen.add(msg_id)
                ids.append(msg_id)

    return ids


# ---------------------------------------------------------------------------
# Per-message pipeline
# ---------------------------------------------------------------------------

def process_message(message: dict, user_id, config: Optional[EngineConfig] = None) -> MessageOutcome:
    """Walk one fetched message through every guard up to a ready candidate.

    Never touches the store; a READY outcome carries the candidate to offer.
    """
    config = config or load_config()
    policy = config.promo_policy
    content = extract_content(message)

    verdict = policy.check_headers(content.subject, content.sender)
    if verdict == SKIP:
        return MessageOutcome(SKIPPED, NON_FINANCIAL)
    if verdict is not None:
        return MessageOutcome(REJECTED, PROMOTIONAL)

    if not content.body:
        return MessageOutcome(SKIPPED, EMPTY_BODY)

    if policy.is_promotional_body(content.body):
        return MessageOutcome(REJECTED, PROMOTIONAL_BODY)

    classification = classify(content.subject, content.body, config)
    if classification is None:
        return MessageOutcome(SKIPPED, UNCLASSIFIED)

    amount = resolve_amount(content.body, classification.type, config)
    if amount is None or not (config.min_amount <= amount <= config.max_amount):
        return MessageOutcome(REJECTED, NO_AMOUNT)

    merchant = resolve_merchant(content.sender, config)
    order_id = resolve_order_id(content.body, config)
    key = build_dedup_key(
        user_id, classification.type, order_id, merchant, amount,
        content.date, message.get("id", ""),
    )

    return MessageOutcome(READY, candidate=Candidate(
        merchant=merchant,
        amount=amount,
        type=classification.type,
        order_id=order_id,
        date=content.date,
        dedupe_hash=key.hash,
        order_reference=key.order_reference,
    ))


def _import_one(mail, msg_id: str, user_id, insert: Callable, config: EngineConfig) -> MessageOutcome:
    message = mail.fetch(msg_id)
    outcome = process_message(message, user_id, config)
    if outcome.status != READY:
        logger.debug("Message %s %s: %s", msg_id, outcome.status, outcome.reason)
        return outcome

    c = outcome.candidate
    inserted = insert(
        user_id, c.merchant, c.order_reference, c.amount, c.date, c.dedupe_hash, c.type,
    )
    if inserted:
        logger.info("Imported %s ₹%s | %s", c.type, c.amount, c.merchant)
        outcome.status = STORED
    else:
        outcome.status = DUPLICATE
    return outcome


def run_import(
    mail,
    user_id,
    insert: Optional[Callable] = None,
    config: Optional[EngineConfig] = None,
    on_progress: Optional[Callable[[str, str], None]] = None,
) -> ImportSummary:
    """Discover, process and store every candidate message for one user.

    Args:
        mail: object with ``search(query)`` and ``fetch(message_id)``.
        insert: ``insert_if_absent``-compatible callable (defaults to the
                SQLite store).
        on_progress: optional callback(step: str, detail: str).

    Returns an ImportSummary; per-query and per-message failures are counted
    and logged, never raised. EmailConnectionError (mailbox unreachable or
    credential rejected) propagates and ends the run.
    """
    config = config or load_config()
    insert = insert or database.insert_if_absent

    def _progress(step: str, detail: str = ""):
        if on_progress:
            on_progress(step, detail)

    summary = ImportSummary()
    message_ids = discover_message_ids(mail, config.search_queries, on_progress)
    total = len(message_ids)
    _progress("download", f"Found {total} candidate emails. Processing...")

    def _guarded(msg_id: str) -> MessageOutcome:
        try:
            return _import_one(mail, msg_id, user_id, insert, config)
        except EmailConnectionError:
            raise
        except Exception as e:
            logger.warning("Error processing message %s: %s", msg_id, e)
            return MessageOutcome(FAILED)

    if config.max_workers > 1 and total > 1:
        with ThreadPoolExecutor(max_workers=min(config.max_workers, total)) as executor:
            futures = [executor.submit(_guarded, msg_id) for msg_id in message_ids]
            try:
                for i, future in enumerate(as_completed(futures)):
                    summary.record(future.result())
                    if (i + 1) % 5 == 0:
                        _progress("download", f"Processed {i + 1}/{total}")
            except EmailConnectionError:
                for pending in futures:
                    pending.cancel()
                raise
    else:
        for i, msg_id in enumerate(message_ids):
            summary.record(_guarded(msg_id))
            if (i + 1) % 5 == 0:
                _progress("download", f"Processed {i + 1}/{total}")

    logger.info(
        "Import summary: %d candidates, %d imported, %d duplicate, "
        "%d skipped, %d rejected, %d failed",
        total, summary.imported, summary.duplicates,
        summary.skipped, summary.rejected, summary.failed,
    )
    if summary.reasons:
        logger.info("Guard reasons: %s", dict(summary.reasons))

    _progress("done",
        f"Done: {summary.imported} imported from {total} emails "
        f"({summary.duplicates} duplicate, {summary.skipped} skipped, "
        f"{summary.rejected} rejected)")
    return summary


def import_for_user(
    user_id,
    config: Optional[EngineConfig] = None,
    on_progress: Optional[Callable[[str, str], None]] = None,
    mail_factory: Callable = GmailClient.from_token,
) -> ImportSummary:
    """Complete pipeline: account -> mailbox -> store -> import.

    Raises MissingCredentialError / EmailConnectionError when the mailbox
    cannot be reached and StoreConnectionError when the database cannot be
    opened. Nothing is imported in those cases.
    """
    database.check_connection()
    account = load_account(user_id)
    mail = mail_factory(account.token)
    return run_import(mail, account.user_id, config=config, on_progress=on_progress)
