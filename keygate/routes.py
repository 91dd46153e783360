"""
HTTP routes for the record store API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from keygate import service
from keygate.config import Settings, get_settings
from keygate.db import StoreClient
from keygate.dependencies import get_store, require_admin
from keygate.schemas import (
    AccessKeyOut,
    GenerateKeyRequest,
    GenerateKeyResponse,
    KeyLoginRequest,
    KeyLoginResponse,
    RegistrationOut,
    SaveUserDataRequest,
    SuccessResponse,
    UserDataResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/admin/generate-key",
    response_model=GenerateKeyResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)],
)
def generate_key(
    payload: GenerateKeyRequest,
    store: StoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    record = service.issue_key(
        store,
        payload.duration,
        payload.createdBy,
        prefix=settings.key_prefix,
        length=settings.key_length,
    )
    keys = [AccessKeyOut(**k.as_dict()) for k in store.list_keys()]
    return GenerateKeyResponse(key=record.key, keys=keys)


@router.get(
    "/admin/keys",
    response_model=list[AccessKeyOut],
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)],
)
def list_keys(store: StoreClient = Depends(get_store)):
    return [k.as_dict() for k in store.list_keys()]


@router.get(
    "/admin/registrations",
    response_model=list[RegistrationOut],
    dependencies=[Depends(require_admin)],
)
def list_registrations(store: StoreClient = Depends(get_store)):
    return [r.as_dict() for r in store.list_registrations()]


@router.post("/auth/key-login", response_model=KeyLoginResponse)
def key_login(
    payload: KeyLoginRequest,
    store: StoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    service.login(
        store,
        payload.key,
        payload.email,
        allow_shared=settings.allow_shared_keys,
    )
    return KeyLoginResponse(role=settings.role_label)


@router.get("/user/data", response_model=UserDataResponse)
def get_user_data(
    email: Optional[str] = Query(None),
    store: StoreClient = Depends(get_store),
):
    data = service.read_user_data(store, email)
    return UserDataResponse(projects=data.projects, settings=data.settings)


@router.post("/user/data", response_model=SuccessResponse)
def save_user_data(
    payload: SaveUserDataRequest,
    store: StoreClient = Depends(get_store),
):
    service.write_user_data(
        store,
        payload.email,
        projects=payload.projects,
        settings=payload.settings,
    )
    return SuccessResponse()
