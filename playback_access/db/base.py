"""
Playback Access • SQLAlchemy Base registry

Import all ORM models so their tables are registered on `Base.metadata`
(used by Alembic autogeneration).
"""

from playback_access.db.base_class import Base
from playback_access.db.models.video import Video  # noqa: F401

__all__ = ["Base"]
