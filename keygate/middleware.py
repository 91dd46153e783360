"""
ASGI middleware capping the size of request bodies.
"""

from __future__ import annotations

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from keygate.errors import PayloadTooLarge

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """
    Reject bodies larger than ``max_body_bytes`` with 413.

    A declared ``Content-Length`` over the limit is refused before the
    body is read. Otherwise the body is buffered up to the limit and
    replayed to the app, so bodies without a length header are capped too.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: str) -> None:
        logger.warning(
            "Rejected %s %s: body of %s bytes exceeds %d",
            scope.get("method"),
            scope.get("path"),
            size,
            self.max_body_bytes,
        )
        response = JSONResponse(
            {"error": PayloadTooLarge.message},
            status_code=PayloadTooLarge.status_code,
        )
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self.max_body_bytes <= 0:
            await self.app(scope, receive, send)
            return

        declared = dict(scope.get("headers") or []).get(b"content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > self.max_body_bytes:
                await self._reject(scope, receive, send, declared.decode())
                return

        chunks: list[bytes] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # Client went away before finishing the body.
                return
            body = message.get("body", b"")
            received += len(body)
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, f"more than {received}")
                return
            chunks.append(body)
            if not message.get("more_body", False):
                break

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": b"".join(chunks), "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)
