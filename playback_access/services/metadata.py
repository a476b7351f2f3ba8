from __future__ import annotations

"""
Cache-aside resolution of video metadata by token id.

Read path
---------
1) `GET token:{tokenId}` in Redis.
2) Hit → parse. A payload that does not parse is surfaced as a dependency
   failure; it never falls through to the database.
3) Miss (key absent) → ready row from PostgreSQL; no row → not found.
4) Write the record back to Redis with no expiry (best-effort, logged).

Entries are never invalidated here; they live until evicted or overwritten.
"""

import logging

from pydantic import ValidationError
from redis.exceptions import RedisError

from playback_access.core.exceptions import DependencyUnavailableException, VideoNotFoundException
from playback_access.core.metrics import inc_metadata_lookup
from playback_access.core.redis_client import RedisProto
from playback_access.repositories.videos import VideoRepositoryError, VideoRepositoryProtocol
from playback_access.schemas.access import VideoRecord

logger = logging.getLogger(__name__)


def token_key(token_id: str) -> str:
    return f"token:{token_id}"


class MetadataResolver:
    def __init__(self, redis: RedisProto, videos: VideoRepositoryProtocol) -> None:
        self._redis = redis
        self._videos = videos

    async def resolve(self, token_id: str) -> VideoRecord:
        """
        Return the ready `VideoRecord` for `token_id`.

        Raises:
            VideoNotFoundException: no ready video for the token.
            DependencyUnavailableException: Redis/database failure or an
                unparseable cached payload.
        """
        key = token_key(token_id)
        try:
            cached = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise DependencyUnavailableException(
                component="redis", internal=f"error fetching video metadata: {type(exc).__name__}: {exc}"
            ) from exc

        if cached is not None:
            inc_metadata_lookup("hit")
            return self._parse_cached(key, cached)

        inc_metadata_lookup("miss")
        try:
            record = await self._videos.find_ready_video_by_token(token_id)
        except VideoRepositoryError as exc:
            raise DependencyUnavailableException(component="database", internal=str(exc)) from exc
        if record is None:
            raise VideoNotFoundException(internal=f"no ready video for token {token_id!r}")

        await self._fill(key, record)
        return record

    @staticmethod
    def _parse_cached(key: str, cached) -> VideoRecord:
        if isinstance(cached, (bytes, bytearray)):
            cached = cached.decode("utf-8", errors="replace")
        try:
            return VideoRecord.model_validate_json(cached)
        except ValidationError as exc:
            raise DependencyUnavailableException(
                component="redis", internal=f"error parsing video metadata at {key}: {exc}"
            ) from exc

    async def _fill(self, key: str, record: VideoRecord) -> None:
        try:
            await self._redis.set(key, record.to_cache())
            inc_metadata_lookup("fill")
        except (RedisError, OSError) as exc:
            inc_metadata_lookup("fill_failed")
            logger.warning("Failed to cache video metadata at %s: %r", key, exc)


__all__ = ["MetadataResolver", "token_key"]
