from __future__ import annotations

"""
🎬 Playback Access • Video
==========================

One row per uploaded video, written by the ingestion pipeline. This service
only reads it: a row is servable once `status = 'ready'`, and the access
policy lives inside the JSONB `metadata` document:

    {"id", "visibility", "isDownloadable", "creator", "playbackAccess"?}

`token_id` is the on-chain token that clients use to address the video.
"""

import uuid
from typing import Any, Dict

from sqlalchemy import Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from playback_access.db.base_class import Base, TimestampMixin


class Video(TimestampMixin, Base):
    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Video id"
    )
    token_id: Mapped[str] = mapped_column(
        Text, nullable=False, unique=True, comment="Token id addressing this video"
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text("'pending'"), comment="Ingestion status"
    )
    video_metadata: Mapped[Dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )

    __table_args__ = (
        Index("ix_videos_token_id_status", "token_id", "status"),
    )
