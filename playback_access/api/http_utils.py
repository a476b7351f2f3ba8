from __future__ import annotations

"""
HTTP helpers shared by the routers.

Share links are bearer credentials for the duration of their TTL, so every
response that carries one goes out with strict `no-store` caching.
"""

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 No-store JSON helper (sensitive responses)
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(payload: Any, status_code: int = 200) -> JSONResponse:
    """
    Return a JSON response with strict `no-store` caching.

    Pydantic models are dumped by alias so the wire shape matches the
    response schema declared on the route.
    """
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(by_alias=True)
    resp = JSONResponse(content=payload, status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp


# ─────────────────────────────────────────────────────────────────────────────
# 🌐 Client IP (for request logging only)
# ─────────────────────────────────────────────────────────────────────────────

def get_client_ip(request: Request) -> Optional[str]:
    """Best-effort client IP: first `X-Forwarded-For` hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


__all__ = ["json_no_store", "get_client_ip"]
