"""Account context: who is importing and the Gmail credential stored for them."""

import json
import sqlite3
from dataclasses import dataclass

from core.database import StoreConnectionError, delete_setting, get_setting, set_setting
from core.gmail_client import MissingCredentialError

_CREDENTIAL_KEY = "gmail_credentials:{user_id}"


@dataclass(frozen=True)
class AccountContext:
    user_id: str
    token: dict


def save_gmail_token(user_id, token: dict) -> None:
    """Persist a token obtained by the (external) OAuth flow."""
    set_setting(_CREDENTIAL_KEY.format(user_id=user_id), json.dumps(token))


def clear_gmail_token(user_id) -> None:
    delete_setting(_CREDENTIAL_KEY.format(user_id=user_id))


def load_account(user_id) -> AccountContext:
    """Load the stored credential for ``user_id``.

    Raises MissingCredentialError when the user never connected Gmail or the
    stored value is unreadable; the import run cannot proceed without it.
    """
    if user_id is None or str(user_id).strip() == "":
        raise MissingCredentialError("No authenticated user.")

    raw = get_setting(_CREDENTIAL_KEY.format(user_id=user_id))
    if not raw:
        raise MissingCredentialError(f"Gmail is not connected for user {user_id}.")
    try:
        token = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MissingCredentialError(f"Stored Gmail credential is unreadable: {e}") from e
    if not isinstance(token, dict):
        raise MissingCredentialError("Stored Gmail credential is not a token object.")
    return AccountContext(user_id=str(user_id), token=token)


def has_gmail_token(user_id) -> bool:
    """True when a usable credential is stored for ``user_id``.

    An unreachable store raises StoreConnectionError rather than reading as
    "not connected".
    """
    try:
        load_account(user_id)
    except MissingCredentialError:
        return False
    except sqlite3.Error as e:
        raise StoreConnectionError(f"Cannot read stored Gmail credential: {e}") from e
    return True
