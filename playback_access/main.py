# playback_access/main.py
from __future__ import annotations

"""
# Playback Access API • Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the playback access service.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Long-lived clients (Redis, database engine, share-link issuer) are created
  once in the lifespan, kept on `app.state`, and injected per request.
- Middleware order: 1) request id → 2) CORS.
- Centralized exception handling with one JSON error envelope.

## Probes
- `/healthz`: liveness (process up).
- `/readyz`: readiness (quick DB/Redis checks).
- `/metrics`: Prometheus exposition.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import JSONResponse, Response

# Importing sets up loguru handlers and the stdlib intercept.
from playback_access.core import logger as _logsetup  # noqa: F401
from playback_access.api.v1.routers import root_router, router as api_v1_router
from playback_access.core.config import settings
from playback_access.core.exception_handlers import install_exception_handlers
from playback_access.core.redis_client import RedisClient
from playback_access.db.session import Database
from playback_access.middleware.request_id import RequestIDMiddleware
from playback_access.services.share_links import ShareLinkError, build_share_link_issuer

logger = logging.getLogger("playback_access")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifecycle manager.

    Startup:
        - Connect Redis (non-fatal; requests fail with 500 until it is reachable).
        - Build the database engine (connections are opened lazily).
        - Build the share-link issuer named by `LINK_ISSUER`.

    Shutdown:
        - Close Redis and dispose the engine (best-effort).
    """
    logger.info("✅ Playback Access API starting up (env=%s)", settings.ENV)

    redis_client = RedisClient(settings.REDIS_URL)
    try:
        await redis_client.connect()
    except RuntimeError:
        logger.exception("Redis connect failed (continuing in degraded mode)")
    app.state.redis = redis_client

    database = Database.from_settings(settings)
    app.state.db = database

    try:
        app.state.link_issuer = build_share_link_issuer(settings)
        logger.info("Share links issued by %s", settings.LINK_ISSUER)
    except ShareLinkError:
        logger.exception("Share-link issuer unavailable; link issuance will fail")
        app.state.link_issuer = None

    try:
        yield
    finally:
        try:
            await database.dispose()
            logger.info("🛑 Database engine disposed")
        except Exception:
            logger.exception("Error disposing DB engine")
        await redis_client.close()
        logger.info("🛑 Playback Access API shutting down")


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: application with middleware, exception handlers, routers,
        and health/readiness/metrics endpoints.
    """
    docs_url = "/docs" if settings.ENABLE_DOCS else None
    openapi_url = "/openapi.json" if settings.ENABLE_DOCS else None

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url=docs_url,
        redoc_url=None,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )

    # ── Middlewares (order matters) ─────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID"],
    )

    install_exception_handlers(app)

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)
    app.include_router(root_router)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe. No external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        """Readiness probe: Redis PING and database `SELECT 1`; 503 until both pass."""
        redis_client = getattr(app.state, "redis", None)
        database = getattr(app.state, "db", None)
        redis_ok = bool(redis_client is not None and await redis_client.is_connected())
        db_ok = bool(database is not None and await database.healthcheck())
        ready = redis_ok and db_ok
        return JSONResponse(
            {"ready": ready, "checks": {"db": db_ok, "redis": redis_ok}},
            status_code=200 if ready else 503,
        )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn playback_access.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "playback_access.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
