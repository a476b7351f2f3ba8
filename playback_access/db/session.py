from __future__ import annotations

"""
Playback Access • Database engine & sessions

`Database` owns one async engine + session factory. The app lifespan builds
it from settings, stores it on `app.state.db`, and disposes it on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from playback_access.core.config import Settings

logger = logging.getLogger(__name__)

# Pool knobs that are not worth an env var
_POOL_PRE_PING = True
_POOL_TIMEOUT = 5


class Database:
    """Async engine + session factory with explicit lifetime."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_maker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine = create_async_engine(
            settings.ASYNC_DATABASE_URL,
            pool_pre_ping=_POOL_PRE_PING,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=_POOL_TIMEOUT,
            connect_args=settings.database_connect_args,
        )
        logger.info(
            "Database engine configured (pool_size=%s, max_overflow=%s, recycle=%ss)",
            settings.DB_POOL_SIZE, settings.DB_MAX_OVERFLOW, settings.DB_POOL_RECYCLE_SECONDS,
        )
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    async def healthcheck(self) -> bool:
        """Quick SELECT 1 to verify DB connectivity (used by /readyz)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("DB healthcheck failed")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Optional[Database]:
    """FastAPI dependency returning the lifespan-scoped `Database` (if any)."""
    return getattr(request.app.state, "db", None)


__all__ = ["Database", "get_database"]
