"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import secrets
import threading
from typing import Optional

from fastapi import Depends, Header

from keygate.config import Settings, get_settings
from keygate.db import InMemoryStoreClient, JsonFileStoreClient, SqlStoreClient, StoreClient
from keygate.errors import AdminAuthRequired

_store: StoreClient | None = None
_store_lock = threading.Lock()


def get_store() -> StoreClient:
    """
    Return a singleton store so every request shares the same handle and lock.
    """
    global _store
    if _store:
        return _store

    with _store_lock:
        if _store:
            return _store
        settings = get_settings()
        if settings.use_in_memory_backends:
            _store = InMemoryStoreClient()
        elif settings.database_url:
            _store = SqlStoreClient(settings.database_url)
        else:
            _store = JsonFileStoreClient(settings.data_file)
    return _store


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_admin(
    authorization: Optional[str] = Header(None),
    x_admin_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject admin calls lacking the configured token. No-op when none is configured."""
    expected = settings.admin_token
    if not expected:
        return
    supplied = _bearer_token(authorization) or x_admin_token or ""
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise AdminAuthRequired()
