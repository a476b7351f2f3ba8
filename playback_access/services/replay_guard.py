from __future__ import annotations

"""
One-time nonces for delegated-action proofs.

A nonce is consumed by a single `SET nonce:{nonce} <exp> NX PX <ttl>`: the
write either creates the key (first use) or does nothing (replay). There is
no separate existence check, so concurrent requests carrying the same nonce
cannot both succeed. The key expires together with the proof.
"""

import logging
from enum import Enum

from redis.exceptions import RedisError

from playback_access.core.exceptions import DependencyUnavailableException
from playback_access.core.metrics import inc_nonce
from playback_access.core.redis_client import RedisProto
from playback_access.services.clock import Clock, remaining_ttl_ms, system_clock

logger = logging.getLogger(__name__)


class NonceStatus(str, Enum):
    consumed = "consumed"
    already_used = "already_used"


def nonce_key(nonce: str) -> str:
    return f"nonce:{nonce}"


class ReplayGuard:
    def __init__(self, redis: RedisProto, *, clock: Clock = system_clock) -> None:
        self._redis = redis
        self._clock = clock

    async def check_and_consume(self, nonce: str, expires_at_ms: int) -> NonceStatus:
        """Atomically mark `nonce` used until `expires_at_ms`."""
        ttl_ms = remaining_ttl_ms(expires_at_ms, self._clock)
        try:
            created = await self._redis.set(nonce_key(nonce), str(expires_at_ms), px=ttl_ms, nx=True)
        except (RedisError, OSError) as exc:
            raise DependencyUnavailableException(
                component="redis", internal=f"error setting nonce: {type(exc).__name__}: {exc}"
            ) from exc

        status = NonceStatus.consumed if created else NonceStatus.already_used
        inc_nonce(status.value)
        return status

    async def release(self, nonce: str) -> None:
        """Best-effort undo of a consumption whose request failed afterwards."""
        try:
            await self._redis.delete(nonce_key(nonce))
        except (RedisError, OSError):
            logger.warning("Could not release nonce %s; a retry of this proof will be denied", nonce)



__all__ = ["ReplayGuard", "NonceStatus", "nonce_key"]
