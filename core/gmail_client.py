"""
Gmail API mail access.

Thin wrapper over ``users.messages.list`` / ``users.messages.get`` that
exposes the two operations the importer needs:

    search(query) -> [message_id, ...]
    fetch(message_id) -> {"id", "headers", "payload", "internal_date"}

Token acquisition and refresh happen elsewhere; this module assumes the
stored credential is live and only builds the service from it. Transient
API errors (rate limiting, 5xx) are retried with exponential backoff; auth
errors surface as EmailConnectionError.
"""

import logging
import os
import threading
import time
from functools import wraps

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
GMAIL_MAX_RESULTS = int(os.getenv("GMAIL_MAX_RESULTS", "50"))

_TRANSIENT_STATUSES = {429, 500, 502, 503, 504}
_AUTH_STATUSES = {401, 403}


class EmailConnectionError(Exception):
    """Raised when the mailbox cannot be reached or authenticated."""


class MissingCredentialError(EmailConnectionError):
    """Raised when the account has no stored Gmail credential."""


def _is_rate_limited(error: HttpError) -> bool:
    # Gmail reports per-user quota exhaustion as 403 rateLimitExceeded
    content = error.content or b""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return b"ratelimitexceeded" in content.lower()


def retry_on_transient(max_retries: int = 3, delay: float = 1.0, backoff: float = 2.0):
    """Retry a Gmail call on rate-limit / server errors.

    An expired, revoked or under-scoped credential (401/403, or a failed
    token refresh) is raised as EmailConnectionError so the caller aborts
    the run instead of treating it like one bad query. Anything else is
    re-raised unchanged.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RefreshError as e:
                    raise EmailConnectionError(f"Gmail token refresh failed: {e}") from e
                except HttpError as e:
                    status = getattr(e.resp, "status", None)
                    transient = status in _TRANSIENT_STATUSES or (
                        status == 403 and _is_rate_limited(e)
                    )
                    if status in _AUTH_STATUSES and not transient:
                        raise EmailConnectionError(
                            f"Gmail rejected the stored credential (HTTP {status})"
                        ) from e
                    if not transient or attempt == max_retries:
                        raise
                    logger.warning(
                        "Gmail call %s failed with %s (attempt %d/%d), retrying in %.1fs",
                        func.__name__, status, attempt, max_retries, current_delay,
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff
        return wrapper
    return decorator


def credentials_from_token(token: dict) -> Credentials:
    """Build google-auth credentials from a stored token dict."""
    return Credentials(
        token=token.get("access_token") or token.get("token"),
        refresh_token=token.get("refresh_token"),
        token_uri=token.get("token_uri", TOKEN_URI),
        client_id=token.get("client_id") or os.getenv("GOOGLE_CLIENT_ID"),
        client_secret=token.get("client_secret") or os.getenv("GOOGLE_CLIENT_SECRET"),
        scopes=token.get("scopes", SCOPES),
    )


class GmailClient:
    """Mail Access backed by the Gmail REST API.

    httplib2 connections are not thread-safe, so when built from credentials
    each worker thread gets its own service object.
    """

    def __init__(self, service=None, credentials=None, max_results: int = GMAIL_MAX_RESULTS):
        if service is None and credentials is None:
            raise ValueError("GmailClient needs a service or credentials")
        self._service = service
        self._credentials = credentials
        self._local = threading.local()
        self.max_results = max_results

    @classmethod
    def from_token(cls, token: dict, max_results: int = GMAIL_MAX_RESULTS) -> "GmailClient":
        if not token or not (token.get("access_token") or token.get("token")):
            raise MissingCredentialError("No Gmail access token stored for this account.")
        client = cls(credentials=credentials_from_token(token), max_results=max_results)
        try:
            client.service  # fail fast on a broken credential/discovery
        except Exception as e:
            raise EmailConnectionError(f"Cannot build Gmail service: {e}") from e
        return client

    @property
    def service(self):
        if self._service is not None:
            return self._service
        service = getattr(self._local, "service", None)
        if service is None:
            service = build("gmail", "v1", credentials=self._credentials, cache_discovery=False)
            self._local.service = service
        return service

    @retry_on_transient()
    def search(self, query: str) -> list[str]:
        """Return up to ``max_results`` message ids matching a Gmail query."""
        result = self.service.users().messages().list(
            userId="me", q=query, maxResults=self.max_results,
        ).execute()
        return [m["id"] for m in result.get("messages", [])]

    @retry_on_transient()
    def fetch(self, message_id: str) -> dict:
        message = self.service.users().messages().get(
            userId="me", id=message_id, format="full",
        ).execute()
        payload = message.get("payload") or {}
        return {
            "id": message.get("id", message_id),
            "headers": payload.get("headers", []),
            "payload": payload,
            "internal_date": message.get("internalDate"),
        }
