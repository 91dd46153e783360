"""
FastAPI application entry point for the record store service.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from keygate.config import get_settings
from keygate.errors import KeygateError
from keygate.middleware import BodySizeLimitMiddleware
from keygate.pages import router as pages_router
from keygate.routes import router

logger = logging.getLogger(__name__)


async def keygate_error_handler(request: Request, exc: KeygateError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Keygate Record Store", version="0.1.0")
    app.add_exception_handler(KeygateError, keygate_error_handler)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)

    if not settings.admin_token:
        logger.warning("ADMIN_TOKEN is not set; admin routes are unauthenticated")

    # Mounted last so API and page routes take precedence.
    if os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir), name="static")
    return app


app = create_app()
