"""
Single-page shell served for the root path and every ``/raw/...`` path.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse

from keygate.config import Settings, get_settings

router = APIRouter()


def _index_response(settings: Settings):
    path = os.path.join(settings.static_dir, settings.index_file)
    if not os.path.isfile(path):
        return JSONResponse({"error": "Page not found"}, status_code=404)
    return FileResponse(path, media_type="text/html")


@router.get("/", include_in_schema=False)
def index(settings: Settings = Depends(get_settings)):
    return _index_response(settings)


@router.get("/raw/{subpath:path}", include_in_schema=False)
def raw_view(subpath: str, settings: Settings = Depends(get_settings)):
    # Client-side routing handles the sub-path.
    return _index_response(settings)
