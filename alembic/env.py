"""Alembic environment for the `videos` catalogue (asyncpg engine)."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from playback_access.core.config import settings
from playback_access.db.base import Base

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.ASYNC_DATABASE_URL
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


async def _run_online() -> None:
    # sslmode from the DSN travels as connect_args for asyncpg
    engine = create_async_engine(
        DATABASE_URL, poolclass=pool.NullPool, connect_args=settings.database_connect_args
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(lambda conn: _configure(connection=conn))
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_run_online())
