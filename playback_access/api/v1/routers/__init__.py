"""
Playback Access • API v1 Router Aggregator
==========================================

Quick usage
-----------
    from playback_access.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from .playback import root_router, router as playback_router


def build_v1_router() -> APIRouter:
    """Compose the API v1 surface into a single `APIRouter`."""
    r = APIRouter()
    r.include_router(playback_router)
    return r


router = build_v1_router()


__all__ = [
    "router",
    "build_v1_router",
    "playback_router",
    "root_router",
]
