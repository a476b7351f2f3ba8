from __future__ import annotations

"""
FastAPI dependencies wiring lifespan-scoped clients into the decision engine.

Everything the engine touches lives on `app.state` (set up by the app
lifespan): `redis`, `db`, `link_issuer` and optionally `video_repository`
(tests install a `MemoryVideoRepository` there). Missing pieces surface as
`DependencyUnavailableException`, i.e. a 500 with the standard envelope.
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request

from playback_access.core.config import settings
from playback_access.core.exceptions import DependencyUnavailableException
from playback_access.core.redis_client import RedisProto, get_redis
from playback_access.db.session import Database, get_database
from playback_access.repositories.videos import SqlVideoRepository, VideoRepositoryProtocol
from playback_access.services.access import AccessDecisionEngine
from playback_access.services.grants import AccessGrantStore
from playback_access.services.metadata import MetadataResolver
from playback_access.services.replay_guard import ReplayGuard
from playback_access.services.share_links import ShareLinkIssuer


def get_video_repository(
    request: Request,
    database: Optional[Database] = Depends(get_database),
) -> VideoRepositoryProtocol:
    override = getattr(request.app.state, "video_repository", None)
    if override is not None:
        return override
    if database is None:
        raise DependencyUnavailableException(component="database", internal="database not configured")
    return SqlVideoRepository(database)


def get_share_link_issuer(request: Request) -> ShareLinkIssuer:
    issuer = getattr(request.app.state, "link_issuer", None)
    if issuer is None:
        raise DependencyUnavailableException(
            component="storage",
            message="Failed to create public shared link",
            internal="share link issuer not configured",
        )
    return issuer


def get_access_engine(
    redis: RedisProto = Depends(get_redis),
    videos: VideoRepositoryProtocol = Depends(get_video_repository),
    issuer: ShareLinkIssuer = Depends(get_share_link_issuer),
) -> AccessDecisionEngine:
    """One engine per request; the components are thin wrappers over shared clients."""
    return AccessDecisionEngine(
        resolver=MetadataResolver(redis, videos),
        replay_guard=ReplayGuard(redis),
        grants=AccessGrantStore(redis),
        issuer=issuer,
        link_ttl=timedelta(seconds=settings.SHARE_LINK_TTL_SECONDS),
    )


__all__ = ["get_access_engine", "get_share_link_issuer", "get_video_repository"]
