"""
Pydantic schemas for the record store API.

Field names follow the camelCase layout the browser client already uses.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class AccessKeyOut(BaseModel):
    key: str
    expiresAt: str
    # Documents from the earlier service may hold fractional durations.
    duration: Any = None
    usedBy: str
    usedDate: Optional[str] = None
    createdAt: str
    createdBy: Optional[str] = None


class RegistrationOut(BaseModel):
    email: str
    key: str
    usedDate: str


class GenerateKeyRequest(BaseModel):
    duration: int
    createdBy: Optional[str] = None


class GenerateKeyResponse(BaseModel):
    success: Literal[True] = True
    key: str
    keys: list[AccessKeyOut]


class KeyLoginRequest(BaseModel):
    key: Optional[str] = None
    email: Optional[str] = None


class KeyLoginResponse(BaseModel):
    success: Literal[True] = True
    role: str


class UserDataResponse(BaseModel):
    projects: list[Any]
    settings: dict[str, Any]


class SaveUserDataRequest(BaseModel):
    email: Optional[str] = None
    projects: Optional[list[Any]] = None
    settings: Optional[dict[str, Any]] = None


class SuccessResponse(BaseModel):
    success: Literal[True] = True


class ErrorResponse(BaseModel):
    error: str
