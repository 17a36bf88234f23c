#!/usr/bin/env python3
"""
Headless daily Gmail import + notify.

Runs without Streamlit. Designed to be called by cron:
    0 20 * * * cd ~/inbox-expense-tracker && ./venv/bin/python fetch_daily.py

Uses the same import engine as the Email Sync page.
"""

import logging
import os
import sys

import requests
from dotenv import load_dotenv

load_dotenv()

from core.database import StoreConnectionError, init_db
from core.gmail_client import EmailConnectionError
from core.importer import ImportSummary, import_for_user

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ntfy.sh configuration
NTFY_TOPIC = os.getenv("NTFY_TOPIC", "")
NTFY_SERVER = os.getenv("NTFY_SERVER", "https://ntfy.sh")


def _send_notification(title: str, message: str, url: str = ""):
    """Send a push notification via ntfy.sh."""
    if not NTFY_TOPIC:
        logger.info("NTFY_TOPIC not set -- skipping notification.")
        logger.info("Notification would be: %s -- %s", title, message)
        return

    headers = {"Title": title}
    if url:
        headers["Click"] = url
        headers["Actions"] = f"view, Review Transactions, {url}"

    try:
        resp = requests.post(
            f"{NTFY_SERVER}/{NTFY_TOPIC}",
            data=message.encode("utf-8"),
            headers=headers,
            timeout=10,
        )
        if resp.status_code == 200:
            logger.info("Notification sent successfully.")
        else:
            logger.warning("ntfy returned %d: %s", resp.status_code, resp.text[:200])
    except requests.RequestException as e:
        logger.warning("Failed to send notification: %s", e)


def format_notification(summary: ImportSummary) -> tuple[str, str]:
    """Build the (title, body) pair pushed after a run."""
    title = f"Expense Tracker: {summary.imported} new transaction(s)"

    totals: dict[str, float] = {}
    for t in summary.transactions:
        totals[t.type] = totals.get(t.type, 0) + float(t.amount)

    lines = [f"{kind.title()}: Rs {total:,.0f}" for kind, total in sorted(totals.items())]
    lines.append(
        f"{summary.duplicates} duplicate, {summary.skipped} skipped, "
        f"{summary.rejected} rejected"
    )
    if summary.failed:
        lines.append(f"{summary.failed} message(s) failed")
    return title, "\n".join(lines)


def main():
    """Import today's financial mail for the configured user and notify."""
    init_db()

    user_id = os.getenv("EXPENSE_USER_ID", "").strip()
    if not user_id:
        logger.error("EXPENSE_USER_ID is not set; nothing to import.")
        sys.exit(1)

    try:
        summary = import_for_user(
            user_id,
            on_progress=lambda step, detail: logger.info("[%s] %s", step, detail),
        )
    except (EmailConnectionError, StoreConnectionError) as e:
        logger.error("Import failed: %s", e)
        _send_notification("Expense Tracker: Sync Failed", f"Could not run import: {e}")
        sys.exit(1)

    if not summary.imported:
        logger.info("No new transactions (%d duplicate).", summary.duplicates)
        return

    cloud_url = os.getenv("APP_URL", "").strip()
    if cloud_url:
        review_url = f"{cloud_url}/?page=Transactions"
    else:
        review_url = "http://localhost:8501/?page=Transactions"

    title, body = format_notification(summary)
    logger.info("Summary: %s", title)
    logger.info("Details: %s", body.replace("\n", " | "))
    _send_notification(title, body, url=review_url)
    logger.info("Done.")


if __name__ == "__main__":
    main()
