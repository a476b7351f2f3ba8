# tests/conftest.py
"""
Global test bootstrap
- Pins a development environment before the package is imported
- Provides a simulated clock shared by the Redis mock and the components
- Exposes mock Redis, in-memory repository, fake link issuer and an engine
  wired from them
"""

from __future__ import annotations

import os
from typing import Optional

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the package so settings pick it up)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("ENV", "development")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LINK_ISSUER", "static")

from playback_access.repositories.videos import MemoryVideoRepository
from playback_access.services.access import AccessDecisionEngine
from tests.fixtures.fakes import PROTECTED_VIDEO, PUBLIC_VIDEO, FakeLinkIssuer, build_engine
from tests.fixtures.mocks.redis import FakeClock, MockRedisClient

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Pull in the rest of the fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.wallets import *  # noqa: F401,F403


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Component fixtures (function-scoped)
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def redis_client(clock) -> MockRedisClient:
    return MockRedisClient(clock)


@pytest.fixture()
def videos() -> MemoryVideoRepository:
    repo = MemoryVideoRepository()
    repo.add("tok-public", PUBLIC_VIDEO)
    repo.add("tok1", PROTECTED_VIDEO)
    return repo


@pytest.fixture()
def issuer() -> FakeLinkIssuer:
    return FakeLinkIssuer()


@pytest.fixture()
def engine(redis_client, videos, issuer, clock) -> AccessDecisionEngine:
    return build_engine(redis_client, videos, issuer, clock)


@pytest.fixture()
def make_engine(videos, issuer, clock):
    """Factory for engines over a custom Redis client (e.g. a failing one)."""

    def _make(redis, *, verifier=None, repo: Optional[MemoryVideoRepository] = None):
        return build_engine(redis, repo or videos, issuer, clock, verifier=verifier)

    return _make
