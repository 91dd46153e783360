"""
Record types kept in the store, plus timestamp helpers.

Timestamps are persisted as ISO-8601 UTC strings with millisecond
precision and a trailing ``Z`` so the JSON document stays readable by
browser clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

UNCLAIMED = "Unclaimed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class AccessKey:
    key: str
    expires_at: str
    duration: Any
    created_at: str
    used_by: str = UNCLAIMED
    used_date: Optional[str] = None
    created_by: Optional[str] = None

    @property
    def claimed(self) -> bool:
        return self.used_by != UNCLAIMED

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > parse_timestamp(self.expires_at)

    def as_dict(self) -> dict:
        data: dict[str, Any] = {
            "key": self.key,
            "expiresAt": self.expires_at,
            "duration": self.duration,
            "usedBy": self.used_by,
            "createdAt": self.created_at,
        }
        if self.used_date is not None:
            data["usedDate"] = self.used_date
        if self.created_by is not None:
            data["createdBy"] = self.created_by
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AccessKey":
        return cls(
            key=data["key"],
            expires_at=data["expiresAt"],
            duration=data.get("duration"),
            created_at=data.get("createdAt", ""),
            used_by=data.get("usedBy") or UNCLAIMED,
            used_date=data.get("usedDate"),
            created_by=data.get("createdBy"),
        )


@dataclass
class Registration:
    email: str
    key: str
    used_date: str

    def as_dict(self) -> dict:
        return {"email": self.email, "key": self.key, "usedDate": self.used_date}

    @classmethod
    def from_dict(cls, data: dict) -> "Registration":
        return cls(
            email=data["email"], key=data["key"], used_date=data.get("usedDate", "")
        )


@dataclass
class UserData:
    projects: list = field(default_factory=list)
    settings: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"projects": self.projects, "settings": self.settings}
