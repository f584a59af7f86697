"""Middleware: request body size limit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, status
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from photoreel.config import Settings


def _get_settings_from_scope(scope: Scope) -> Settings:
    settings: Settings = scope["app"].state.settings
    return settings


class BodySizeLimitMiddleware:
    """Reject request bodies larger than PHOTOREEL_MAX_BODY_BYTES (10 MiB by default).

    Images travel as base64 data URLs inside JSON, so the limit applies to
    the encoded size. A declared Content-Length over the limit is refused
    before anything is read. Otherwise the bytes are counted as they arrive
    and reading stops with 413 as soon as the count passes the limit, which
    also covers chunked uploads.
    """

    def __init__(self, app: ASGIApp, paths: tuple[str, ...] = ("/api/transform",)) -> None:
        self.app = app
        self.paths = paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return

        limit = _get_settings_from_scope(scope).max_body_bytes
        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            try:
                length = int(declared)
            except ValueError:
                await JSONResponse({"detail": "Invalid Content-Length"}, status.HTTP_400_BAD_REQUEST)(
                    scope, receive, send
                )
                return
            if length > limit:
                await JSONResponse(
                    {"detail": f"Request body exceeds {limit} bytes"},
                    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                )(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    # Raised inside body reading, so the app's exception handling answers 413.
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"Request body exceeds {limit} bytes",
                    )
            return message

        await self.app(scope, limited_receive, send)
