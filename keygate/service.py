"""
Key issuance, key-based login and per-user data operations.

These functions take an explicit store handle so the HTTP routes, the
admin CLI and the tests all share the same behavior.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from keygate.db import StoreClient
from keygate.errors import (
    DuplicateKeyError,
    InvalidKey,
    KeyAlreadyClaimed,
    KeyExpired,
    MissingEmail,
)
from keygate.records import AccessKey, UserData, format_timestamp, utcnow

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.digits + string.ascii_lowercase
DEFAULT_KEY_PREFIX = "sk_live_"
DEFAULT_KEY_LENGTH = 26
MAX_ISSUE_ATTEMPTS = 5


def generate_token(
    prefix: str = DEFAULT_KEY_PREFIX, length: int = DEFAULT_KEY_LENGTH
) -> str:
    """Return ``prefix`` followed by ``length`` random base-36 characters."""
    return prefix + "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def issue_key(
    store: StoreClient,
    duration: int,
    created_by: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    prefix: str = DEFAULT_KEY_PREFIX,
    length: int = DEFAULT_KEY_LENGTH,
) -> AccessKey:
    """
    Create a new unclaimed key valid for ``duration`` days.

    The duration is not range-checked: zero or negative values yield a key
    that is already expired.
    """
    now = now or utcnow()
    expires_at = now + timedelta(days=duration)
    for _ in range(MAX_ISSUE_ATTEMPTS):
        record = AccessKey(
            key=generate_token(prefix, length),
            expires_at=format_timestamp(expires_at),
            duration=duration,
            created_at=format_timestamp(now),
            created_by=created_by,
        )
        try:
            store.add_key(record)
        except DuplicateKeyError:
            logger.warning("Generated key collided with an existing key, retrying")
            continue
        logger.info(
            "Issued key %s... valid for %s days (created by %s)",
            record.key[: len(prefix) + 4],
            duration,
            created_by or "unknown",
        )
        return record
    raise RuntimeError(f"Could not generate a unique key after {MAX_ISSUE_ATTEMPTS} attempts")


def login(
    store: StoreClient,
    key: Optional[str],
    email: Optional[str],
    *,
    now: Optional[datetime] = None,
    allow_shared: bool = True,
) -> AccessKey:
    """
    Verify ``key`` and bind it to ``email`` if it is still unclaimed.

    A key already bound to another email still logs in when
    ``allow_shared`` is true; the binding is left untouched.
    """
    now = now or utcnow()
    record = store.get_key(key) if key else None
    if record is None:
        logger.warning("Login rejected: unknown key")
        raise InvalidKey()
    if record.is_expired(now):
        logger.warning("Login rejected: key expired at %s", record.expires_at)
        raise KeyExpired()
    if not email:
        raise MissingEmail()

    was_claimed = record.claimed
    record = store.claim_key(record.key, email, format_timestamp(now))
    if not was_claimed and record.used_by == email:
        logger.info("Key claimed by %s", email)
    if record.used_by != email and not allow_shared:
        logger.warning("Login rejected: key already claimed by another email")
        raise KeyAlreadyClaimed()
    return record


def read_user_data(store: StoreClient, email: Optional[str]) -> UserData:
    if not email:
        return UserData()
    return store.get_user_data(email)


def write_user_data(
    store: StoreClient,
    email: Optional[str],
    projects: Optional[list] = None,
    settings: Optional[dict] = None,
) -> None:
    """Replace whichever of ``projects``/``settings`` is given for ``email``."""
    if not email:
        raise MissingEmail()
    store.save_user_data(email, projects=projects, settings=settings)
