"""
Shared fixtures: a throwaway SQLite store, Gmail-shaped message builders and
an in-memory mailbox that stands in for the Gmail API.
"""

import base64

import pytest

from core import database
from core.config import EngineConfig


def encode_part(text: str) -> str:
    """base64url without padding, the way the Gmail API returns part bodies."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def build_message(
    msg_id: str,
    subject: str,
    body,
    sender: str = '"Flipkart" <noreply@flipkart.com>',
    date: str = "Mon, 06 Jan 2025 10:30:00 +0530",
    mime_type: str = "text/plain",
    internal_date=None,
) -> dict:
    """Return a message in the shape ``GmailClient.fetch`` produces."""
    headers = [
        {"name": "Subject", "value": subject},
        {"name": "From", "value": sender},
        {"name": "Date", "value": date},
    ]
    if body is None:
        payload = {"mimeType": "multipart/alternative", "headers": headers, "parts": []}
    else:
        payload = {
            "mimeType": "multipart/alternative",
            "headers": headers,
            "parts": [{"mimeType": mime_type, "body": {"data": encode_part(body)}}],
        }
    message = {"id": msg_id, "headers": headers, "payload": payload}
    if internal_date is not None:
        message["internal_date"] = internal_date
    return message


class FakeMailbox:
    """search/fetch over canned data; records every fetch.

    Failing queries and ids raise ``error`` (RuntimeError unless given).
    """

    def __init__(self, messages, results, failing_queries=(), failing_ids=(), error=RuntimeError):
        self.messages = {m["id"]: m for m in messages}
        self.results = results
        self.failing_queries = set(failing_queries)
        self.failing_ids = set(failing_ids)
        self.error = error
        self.fetched = []

    def search(self, query):
        if query in self.failing_queries:
            raise self.error(f"search failed: {query}")
        return list(self.results.get(query, []))

    def fetch(self, message_id):
        self.fetched.append(message_id)
        if message_id in self.failing_ids:
            raise self.error(f"fetch failed: {message_id}")
        return self.messages[message_id]


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the store at a fresh database file for the test."""
    db_path = str(tmp_path / "data" / "test.db")
    monkeypatch.setattr(database, "DB_PATH", db_path)
    database.init_db()
    return db_path


@pytest.fixture
def make_message():
    return build_message


@pytest.fixture
def mailbox_factory():
    return FakeMailbox


@pytest.fixture
def config():
    """Default engine config with a two-query catalogue."""
    return EngineConfig(search_queries=("q1", "q2"))
