"""
Store abstraction: in-memory, JSON-file and SQLAlchemy implementations.

Every store handle funnels mutations through a single lock, so request
handlers running in the threadpool cannot interleave read-modify-write
cycles on the same handle.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from dataclasses import replace
from typing import Dict, Optional, Protocol

from sqlalchemy import JSON, Column, Integer, String, create_engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from keygate.errors import DuplicateKeyError, InvalidKey
from keygate.records import UNCLAIMED, AccessKey, Registration, UserData

logger = logging.getLogger(__name__)


class StoreClient(Protocol):
    """Interface for the record store."""

    def add_key(self, record: AccessKey) -> AccessKey:
        ...

    def get_key(self, token: str) -> Optional[AccessKey]:
        ...

    def list_keys(self) -> list[AccessKey]:
        ...

    def claim_key(self, token: str, email: str, used_date: str) -> AccessKey:
        ...

    def list_registrations(self) -> list[Registration]:
        ...

    def get_user_data(self, email: str) -> UserData:
        ...

    def save_user_data(
        self,
        email: str,
        *,
        projects: Optional[list] = None,
        settings: Optional[dict] = None,
    ) -> None:
        ...

    def snapshot(self) -> dict:
        ...

    def reset(self) -> None:
        ...


class InMemoryStoreClient:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.keys: Dict[str, AccessKey] = {}
        self.projects: Dict[str, list] = {}
        self.settings: Dict[str, dict] = {}
        self.registrations: list[Registration] = []
        self._lock = threading.RLock()

    def _persist(self) -> None:
        """Hook called after every mutation while the lock is held."""

    def add_key(self, record: AccessKey) -> AccessKey:
        with self._lock:
            if record.key in self.keys:
                raise DuplicateKeyError()
            self.keys[record.key] = replace(record)
            self._persist()
        return replace(record)

    def get_key(self, token: str) -> Optional[AccessKey]:
        with self._lock:
            record = self.keys.get(token)
            return replace(record) if record else None

    def list_keys(self) -> list[AccessKey]:
        with self._lock:
            return [replace(record) for record in self.keys.values()]

    def claim_key(self, token: str, email: str, used_date: str) -> AccessKey:
        with self._lock:
            record = self.keys.get(token)
            if record is None:
                raise InvalidKey()
            if not record.claimed:
                record.used_by = email
                record.used_date = used_date
                if not any(r.email == email for r in self.registrations):
                    self.registrations.append(
                        Registration(email=email, key=token, used_date=used_date)
                    )
            self._persist()
            return replace(record)

    def list_registrations(self) -> list[Registration]:
        with self._lock:
            return [replace(r) for r in self.registrations]

    def get_user_data(self, email: str) -> UserData:
        with self._lock:
            return UserData(
                projects=copy.deepcopy(self.projects.get(email, [])),
                settings=copy.deepcopy(self.settings.get(email, {})),
            )

    def save_user_data(
        self,
        email: str,
        *,
        projects: Optional[list] = None,
        settings: Optional[dict] = None,
    ) -> None:
        with self._lock:
            if projects is not None:
                self.projects[email] = copy.deepcopy(projects)
            if settings is not None:
                self.settings[email] = copy.deepcopy(settings)
            self._persist()

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "keys": [record.as_dict() for record in self.keys.values()],
                "projects": copy.deepcopy(self.projects),
                "settings": copy.deepcopy(self.settings),
                "registrations": [r.as_dict() for r in self.registrations],
            }

    def load_snapshot(self, data: dict) -> None:
        # Documents written by the earlier service call the key list "apiKeys".
        raw_keys = data.get("keys")
        if raw_keys is None:
            raw_keys = data.get("apiKeys", [])
        with self._lock:
            self.keys = {}
            for item in raw_keys:
                record = AccessKey.from_dict(item)
                self.keys[record.key] = record
            self.projects = dict(data.get("projects") or {})
            self.settings = dict(data.get("settings") or {})
            self.registrations = [
                Registration.from_dict(item) for item in data.get("registrations") or []
            ]

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.keys.clear()
            self.projects.clear()
            self.settings.clear()
            self.registrations.clear()
            self._persist()


class JsonFileStoreClient(InMemoryStoreClient):
    """
    In-memory store mirrored to a single JSON document.

    The document is loaded once at construction and rewritten in full after
    every mutation. Writes go to a temporary file in the same directory
    which is then renamed over the target, so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = os.path.abspath(path)
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            logger.info("No store file at %s, starting with an empty store", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("store document must be a JSON object")
            self.load_snapshot(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Could not load store from %s, starting fresh: %s", self.path, exc)
            self.load_snapshot({})
            return
        logger.info(
            "Loaded store from %s (%d keys, %d registrations)",
            self.path,
            len(self.keys),
            len(self.registrations),
        )

    def _persist(self) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        payload = self.snapshot()
        fd, tmp_path = tempfile.mkstemp(
            prefix=".keygate-", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class SqlStoreClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., SQLite or Postgres).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlStoreClient")
        self.engine = create_engine(database_url, future=True, pool_pre_ping=True)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self._lock = threading.RLock()
        Base.metadata.create_all(self.engine)

    def _to_access_key(self, row: "KeyRow") -> AccessKey:
        return AccessKey(
            key=row.key,
            expires_at=row.expires_at,
            duration=row.duration,
            created_at=row.created_at,
            used_by=row.used_by,
            used_date=row.used_date,
            created_by=row.created_by,
        )

    def add_key(self, record: AccessKey) -> AccessKey:
        with self._lock, self.Session() as session:
            existing = session.execute(
                select(KeyRow).where(KeyRow.key == record.key)
            ).scalar_one_or_none()
            if existing:
                raise DuplicateKeyError()
            session.add(
                KeyRow(
                    key=record.key,
                    expires_at=record.expires_at,
                    duration=record.duration,
                    used_by=record.used_by,
                    used_date=record.used_date,
                    created_at=record.created_at,
                    created_by=record.created_by,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError() from exc
        return replace(record)

    def get_key(self, token: str) -> Optional[AccessKey]:
        with self.Session() as session:
            row = session.execute(
                select(KeyRow).where(KeyRow.key == token)
            ).scalar_one_or_none()
            return self._to_access_key(row) if row else None

    def list_keys(self) -> list[AccessKey]:
        with self.Session() as session:
            rows = session.execute(select(KeyRow).order_by(KeyRow.id.asc())).scalars()
            return [self._to_access_key(row) for row in rows]

    def claim_key(self, token: str, email: str, used_date: str) -> AccessKey:
        with self._lock, self.Session() as session:
            row = session.execute(
                select(KeyRow).where(KeyRow.key == token).with_for_update()
            ).scalar_one_or_none()
            if row is None:
                raise InvalidKey()
            if row.used_by == UNCLAIMED:
                row.used_by = email
                row.used_date = used_date
                registered = session.execute(
                    select(RegistrationRow).where(RegistrationRow.email == email)
                ).scalar_one_or_none()
                if not registered:
                    session.add(
                        RegistrationRow(email=email, key=token, used_date=used_date)
                    )
            session.commit()
            session.refresh(row)
            return self._to_access_key(row)

    def list_registrations(self) -> list[Registration]:
        with self.Session() as session:
            rows = session.execute(
                select(RegistrationRow).order_by(RegistrationRow.id.asc())
            ).scalars()
            return [
                Registration(email=row.email, key=row.key, used_date=row.used_date)
                for row in rows
            ]

    def get_user_data(self, email: str) -> UserData:
        with self.Session() as session:
            row = session.get(UserDataRow, email)
            if not row:
                return UserData()
            return UserData(
                projects=row.projects if row.projects is not None else [],
                settings=row.settings if row.settings is not None else {},
            )

    def save_user_data(
        self,
        email: str,
        *,
        projects: Optional[list] = None,
        settings: Optional[dict] = None,
    ) -> None:
        with self._lock, self.Session() as session:
            row = session.get(UserDataRow, email)
            if row is None:
                row = UserDataRow(email=email)
                session.add(row)
            if projects is not None:
                row.projects = projects
            if settings is not None:
                row.settings = settings
            session.commit()

    def snapshot(self) -> dict:
        with self.Session() as session:
            user_rows = session.execute(select(UserDataRow)).scalars().all()
            projects = {r.email: r.projects for r in user_rows if r.projects is not None}
            settings = {r.email: r.settings for r in user_rows if r.settings is not None}
        return {
            "keys": [record.as_dict() for record in self.list_keys()],
            "projects": projects,
            "settings": settings,
            "registrations": [r.as_dict() for r in self.list_registrations()],
        }

    def reset(self) -> None:
        with self._lock, self.Session() as session:
            session.execute(delete(KeyRow))
            session.execute(delete(RegistrationRow))
            session.execute(delete(UserDataRow))
            session.commit()


Base = declarative_base()


class KeyRow(Base):
    __tablename__ = "access_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String, nullable=False, unique=True, index=True)
    expires_at = Column(String, nullable=False)
    duration = Column(JSON, nullable=True)
    used_by = Column(String, nullable=False, default=UNCLAIMED)
    used_date = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    created_by = Column(String, nullable=True)


class RegistrationRow(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    key = Column(String, nullable=False)
    used_date = Column(String, nullable=False)


class UserDataRow(Base):
    __tablename__ = "user_data"

    email = Column(String, primary_key=True)
    projects = Column(JSON, nullable=True)
    settings = Column(JSON, nullable=True)
