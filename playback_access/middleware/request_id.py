# playback_access/middleware/request_id.py
from __future__ import annotations

"""
Per-request correlation id.

A UUIDv4 sent by the client in `X-Request-ID` (or `X-Correlation-ID`) is kept;
anything else is replaced by a fresh one. The id is stored on
`request.state.request_id`, returned in the `X-Request-ID` response header,
echoed in error envelopes and bound into the Loguru context for every log
line written while the request runs.
"""

import uuid

from loguru import logger
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = "X-Request-ID"
_INCOMING = (HEADER_NAME, "X-Correlation-ID")


def _client_id(headers: Headers) -> str | None:
    for name in _INCOMING:
        value = (headers.get(name) or "").strip()
        if not value:
            continue
        try:
            parsed = uuid.UUID(value)
        except ValueError:
            return None
        return str(parsed) if parsed.version == 4 else None
    return None


class RequestIDMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        req_id = _client_id(Headers(scope=scope)) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = req_id

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER_NAME] = req_id
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, send_with_id)


def get_request_id(request) -> str:
    """Current request id, or "" outside a request that went through the middleware."""
    return getattr(getattr(request, "state", None), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "get_request_id"]
