from playback_access.db.models.video import Video

__all__ = ["Video"]
