from __future__ import annotations

"""
Standardized JSON exception handlers.

Every error leaves the service as

    {"success": false, "error": {"message", "code", "request_id", "details"?, "debug"?}}

`debug` carries internal diagnostics and is only present outside production.
FastAPI integrates these via `install_exception_handlers` in the app factory.
"""

import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from playback_access.core.config import settings
from playback_access.core.exceptions import AppException, DependencyUnavailableException, UnauthorizedException
from playback_access.core.metrics import inc_dependency_error
from playback_access.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _envelope(message: str, code: str, request: Request, *, details=None, debug: Optional[str] = None) -> dict:
    error = {"message": message, "code": code, "request_id": get_request_id(request) or "N/A"}
    if details is not None:
        error["details"] = details
    if debug and not settings.is_production:
        error["debug"] = debug
    return {"success": False, "error": error}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:  # type: ignore
    if isinstance(exc, DependencyUnavailableException):
        inc_dependency_error(exc.component)
        logger.error("Dependency failure [%s] on %s: %s", exc.component, request.url.path, exc.internal)
    elif isinstance(exc, UnauthorizedException):
        logger.info("Access denied on %s: %s", request.url.path, exc.reason)
    else:
        logger.warning("%s on %s: %s", exc.code, request.url.path, exc.internal or exc.message)

    body = exc.to_problem(request_id=get_request_id(request), debug=not settings.is_production)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(detail, code, request),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    # Unparseable bodies are plain bad requests in this API (no 422s).
    logger.warning("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "Failed to read request body",
            "BAD_REQUEST",
            request,
            debug=str(exc.errors()),
        ),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Hide internals from clients; the log line carries the traceback.
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "Internal server error",
            "INTERNAL_ERROR",
            request,
            debug="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        ),
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register the handlers in specificity order."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)  # type: ignore[arg-type]


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
    "install_exception_handlers",
]
