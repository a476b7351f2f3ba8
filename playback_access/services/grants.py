from __future__ import annotations

"""Time-bounded access grants: `access:{videoTokenId}:{address}` markers in Redis."""

import logging
from enum import Enum

from redis.exceptions import RedisError

from playback_access.core.exceptions import DependencyUnavailableException
from playback_access.core.redis_client import RedisProto
from playback_access.services.clock import Clock, remaining_ttl_ms, system_clock

logger = logging.getLogger(__name__)

GRANT_MARKER = "t"


class GrantStatus(str, Enum):
    granted = "granted"
    not_granted = "not_granted"


def access_key(video_token_id: str, user_address: str) -> str:
    return f"access:{video_token_id}:{user_address.strip().lower()}"


class AccessGrantStore:
    def __init__(self, redis: RedisProto, *, clock: Clock = system_clock) -> None:
        self._redis = redis
        self._clock = clock

    async def grant(self, video_token_id: str, user_address: str, expires_at_ms: int) -> None:
        """Record a grant that lapses at `expires_at_ms`. Grants are never extended."""
        key = access_key(video_token_id, user_address)
        try:
            await self._redis.set(key, GRANT_MARKER, px=remaining_ttl_ms(expires_at_ms, self._clock))
        except (RedisError, OSError) as exc:
            raise DependencyUnavailableException(
                component="redis", internal=f"error setting access: {type(exc).__name__}: {exc}"
            ) from exc
        logger.debug("Access granted at %s until %s", key, expires_at_ms)

    async def check(self, token_id: str, user_address: str) -> GrantStatus:
        key = access_key(token_id, user_address)
        try:
            value = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise DependencyUnavailableException(
                component="redis", internal=f"error checking access: {type(exc).__name__}: {exc}"
            ) from exc
        return GrantStatus.granted if value is not None else GrantStatus.not_granted


__all__ = ["AccessGrantStore", "GrantStatus", "access_key", "GRANT_MARKER"]
