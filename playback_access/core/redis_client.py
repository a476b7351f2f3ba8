# playback_access/core/redis_client.py
from __future__ import annotations

"""
Playback Access • Redis Client (Async)
======================================
Connection manager for the key-value tier that backs the metadata cache,
the nonce registry and access grants.

What this provides
------------------
• Resilient connect with retries, exponential backoff and jitter
• Pooled async client with health checks and bounded socket timeouts
• `RedisClient.client`: the low-level `redis.asyncio` client handed to the
  cache/guard/grant components

Lifecycle
---------
The app factory builds one `RedisClient` per process in its lifespan,
connects it, stores it on `app.state.redis` and closes it on shutdown.
Request handlers obtain the low-level client through the `get_redis`
dependency; nothing in the engine reaches for a module global.
"""

import asyncio
import logging
import os
import random
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

import redis.asyncio as redis
from fastapi import Request
from redis.exceptions import RedisError

from playback_access.core.exceptions import DependencyUnavailableException

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Tunables (env-aware sensible defaults)
# ─────────────────────────────────────────────────────────────────────────────
MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "5"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))  # seconds
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
SOCKET_CONNECT_TIMEOUT = float(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5"))
POOL_MAX_CONNECTIONS = int(os.getenv("REDIS_POOL_MAX_CONNECTIONS", "64"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "playback-access")


# ─────────────────────────────────────────────────────────────────────────────
# Minimal protocol the components rely on (redis.asyncio.Redis and test mocks)
# ─────────────────────────────────────────────────────────────────────────────
class RedisProto(Protocol):
    async def ping(self) -> Any: ...
    async def get(self, name: str) -> Any: ...
    async def set(
        self,
        name: str,
        value: Any,
        *,
        ex: Optional[int] = None,
        px: Optional[int] = None,
        nx: bool = False,
    ) -> Any: ...
    async def delete(self, *names: str) -> Any: ...
    async def close(self) -> Any: ...


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────
class RedisClient:
    """
    Redis connection manager (asyncio).

    Features
    --------
    • Resilient connect with exponential backoff + jitter
    • TLS via `rediss://` URLs
    • Pooled connections, health checks
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[RedisProto] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """
        Establish a connection with retries.

        Steps
        -----
        - **[Step 1]** Reuse a healthy client when possible.
        - **[Step 2]** Attempt connection with backoff and jitter.
        """
        # ── [Step 1] Reuse an existing healthy client ───────────────────────
        if self._client:
            try:
                await self._client.ping()
                logger.debug("Redis already connected.")
                return
            except Exception:
                self._client = None  # stale client → reconnect

        attempt = 0
        last_err: Optional[Exception] = None

        # ── [Step 2] Retry with backoff ─────────────────────────────────────
        while attempt < MAX_RETRIES:
            attempt += 1
            try:
                self._client = self._build_client()
                await asyncio.wait_for(self._client.ping(), timeout=SOCKET_CONNECT_TIMEOUT)
                logger.info("Connected to Redis")
                return
            except Exception as e:  # noqa: BLE001
                last_err = e
                delay = self._backoff(attempt)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %s (retrying in %.2fs)",
                    attempt, MAX_RETRIES, repr(e), delay,
                )
                await asyncio.sleep(delay)

        self._client = None
        logger.error("Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        """Gracefully close the client and its pool (best-effort)."""
        if not self._client:
            return
        try:
            await self._client.close()
            pool = getattr(self._client, "connection_pool", None)
            if pool:
                try:
                    await pool.disconnect(inuse_connections=True)  # type: ignore[attr-defined]
                except Exception:
                    logger.debug("Redis pool disconnect failed (best-effort).", exc_info=True)
            logger.info("Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds (healthy connection)."""
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> RedisProto:
        """Low-level client; `connect()` must have run (or a client injected)."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    async def ensure_connected(self) -> RedisProto:
        """
        Return the client, making one bounded connect attempt if there is none.

        Covers a failed startup connect: once Redis is reachable again the next
        request installs a client, and the pool reconnects lazily after that.
        """
        if self._client is not None:
            return self._client
        candidate = self._build_client()
        try:
            await asyncio.wait_for(candidate.ping(), timeout=SOCKET_CONNECT_TIMEOUT)
        except Exception as e:  # noqa: BLE001
            try:
                await candidate.close()
            except Exception:
                logger.debug("Closing failed Redis candidate raised.", exc_info=True)
            raise RuntimeError(f"Redis unreachable: {type(e).__name__}: {e}") from e
        if self._client is None:
            self._client = candidate
            logger.info("Connected to Redis (lazy reconnect)")
        else:
            await candidate.close()
        return self._client

    def use_client(self, client: RedisProto) -> None:
        """Install an already-built client (used by tests and tooling)."""
        self._client = client

    # ── internals ───────────────────────────────────────────────────────────
    def _build_client(self) -> RedisProto:
        """Instantiate a pooled client with sane options from the URL."""
        url = self.redis_url.strip()
        parsed = urlparse(url)
        client_kwargs: dict = dict(
            decode_responses=True,
            health_check_interval=HEALTH_CHECK_INTERVAL,
            socket_keepalive=True,
            socket_timeout=SOCKET_TIMEOUT,
            socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
            max_connections=POOL_MAX_CONNECTIONS,
            client_name=CLIENT_NAME,
        )
        if parsed.scheme == "rediss":
            cert_reqs = os.getenv("REDIS_SSL_CERT_REQS", "required").lower()
            if cert_reqs == "none":  # dev only
                client_kwargs["ssl_cert_reqs"] = None
        return redis.Redis.from_url(url, **client_kwargs)

    @staticmethod
    def _backoff(attempt: int) -> float:
        # Exponential backoff with jitter (cap at 3s)
        return min(3.0, BASE_DELAY * (2 ** (attempt - 1))) + random.uniform(0, 0.25)


# ─────────────────────────────────────────────────────────────────────────────
# FastAPI dependency
# ─────────────────────────────────────────────────────────────────────────────
async def get_redis(request: Request) -> RedisProto:
    """
    Return the process-wide client stored on `app.state.redis` by the lifespan.

    When the startup connect failed, each call retries once (no backoff) so the
    service recovers without a restart.
    """
    wrapper: Optional[RedisClient] = getattr(request.app.state, "redis", None)
    try:
        if wrapper is None:
            raise RuntimeError("Redis client not configured on application state")
        return await wrapper.ensure_connected()
    except RuntimeError as exc:
        raise DependencyUnavailableException(component="redis", internal=str(exc)) from exc
