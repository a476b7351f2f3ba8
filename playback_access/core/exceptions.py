# playback_access/core/exceptions.py
from __future__ import annotations

"""
Playback Access • Application Exceptions
========================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and render one JSON error shape from
`playback_access.core.exception_handlers`.

Key ideas
---------
- One base `AppException` carrying a machine-readable `code`, the public
  `message`, optional `details`, and an `internal` description.
- `internal` is for logs (and non-production debug output) only; it is never
  part of the public message.
- Domain exceptions set the status/code pairs of the access taxonomy:
  400 `BAD_REQUEST`, 401 `UNAUTHORIZED`, 404 `NOT_FOUND`, 500 `INTERNAL_ERROR`.

Usage
-----
    raise UnauthorizedException(reason="nonce already used")
    raise DependencyUnavailableException(component="redis", internal=f"{type(exc).__name__}: {exc}")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "BadRequestException",
    "UnauthorizedException",
    "VideoNotFoundException",
    "DependencyUnavailableException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable public message (serialized as `detail` as well).
    code : str
        Machine-readable error code, e.g. ``"UNAUTHORIZED"``.
    details : Any
        Optional machine-readable details safe to show to clients.
    internal : str | None
        Internal diagnostic text. Logged; exposed only outside production.
    """

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        *,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        internal: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        msg = message or self.default_message
        super().__init__(status_code=status_code or self.default_status, detail=msg, headers=headers)
        self.message: str = msg
        self.code: str = code or self.default_code
        self.details: Optional[Any] = details
        self.internal: Optional[str] = internal

    def to_problem(self, *, request_id: Optional[str] = None, debug: bool = False) -> Dict[str, Any]:
        """Return the standardized error envelope for this exception."""
        error: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
            "request_id": request_id or "N/A",
        }
        if self.details is not None:
            error["details"] = self.details
        if debug and self.internal:
            error["debug"] = self.internal
        return {"success": False, "error": error}


# ──────────────────────────────────────────────────────────────
# 🔐 Access taxonomy
# ──────────────────────────────────────────────────────────────
class BadRequestException(AppException):
    """Unparseable input (request body or signed payload)."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"
    default_message = "Bad request"


class UnauthorizedException(AppException):
    """
    Access denied. The public message and code are identical for every cause
    (bad signature, expired proof, replayed nonce, missing grant, unknown
    derivation method); `reason` is kept for logs only.
    """

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"
    default_message = "Unauthorized"

    def __init__(self, *, reason: str = "denied") -> None:
        super().__init__(internal=reason)
        self.reason = reason


class VideoNotFoundException(AppException):
    """The token references no ready video."""

    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"
    default_message = "Video metadata not found"


class DependencyUnavailableException(AppException):
    """
    Transient failure of an external dependency (cache, database, link
    issuer). Surfaced immediately; the caller may retry the whole request.
    """

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, *, component: str, internal: Optional[str] = None, message: Optional[str] = None) -> None:
        super().__init__(message=message, internal=internal)
        self.component = component
