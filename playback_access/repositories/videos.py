from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from playback_access.db.models.video import Video
from playback_access.db.session import Database
from playback_access.schemas.access import VideoRecord
from playback_access.schemas.enums import VideoStatus

logger = logging.getLogger(__name__)


class VideoRepositoryError(RuntimeError):
    """The relational store failed (connection, query, or unreadable row)."""


class VideoRepositoryProtocol(Protocol):
    async def find_ready_video_by_token(self, token_id: str) -> Optional[VideoRecord]:
        """Return the ready video for `token_id`, None when no ready row exists."""
        ...


class SqlVideoRepository:
    """PostgreSQL-backed lookup over the `videos` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def find_ready_video_by_token(self, token_id: str) -> Optional[VideoRecord]:
        stmt = (
            select(Video.video_metadata)
            .where(Video.token_id == token_id, Video.status == VideoStatus.ready.value)
            .limit(1)
        )
        try:
            async with self._db.session() as session:
                metadata = (await session.execute(stmt)).scalar_one_or_none()
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            raise VideoRepositoryError(f"error querying video metadata: {type(exc).__name__}: {exc}") from exc

        if metadata is None:
            return None
        try:
            return VideoRecord.model_validate(metadata)
        except ValidationError as exc:
            raise VideoRepositoryError(f"error parsing video metadata for token {token_id}: {exc}") from exc


class MemoryVideoRepository:
    """In-memory repository keyed by token id; counts lookups for assertions."""

    def __init__(self) -> None:
        self._rows: Dict[str, Tuple[str, Dict[str, Any]]] = {}
        self.lookups: List[str] = []
        self.fail_with: Optional[Exception] = None

    def add(self, token_id: str, metadata: Dict[str, Any], *, status: str = VideoStatus.ready.value) -> None:
        self._rows[token_id] = (status, dict(metadata))

    async def find_ready_video_by_token(self, token_id: str) -> Optional[VideoRecord]:
        self.lookups.append(token_id)
        if self.fail_with is not None:
            raise VideoRepositoryError(repr(self.fail_with)) from self.fail_with
        row = self._rows.get(token_id)
        if row is None or row[0] != VideoStatus.ready.value:
            return None
        return VideoRecord.model_validate(row[1])


__all__ = [
    "VideoRepositoryError",
    "VideoRepositoryProtocol",
    "SqlVideoRepository",
    "MemoryVideoRepository",
]
