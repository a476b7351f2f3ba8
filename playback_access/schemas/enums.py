from __future__ import annotations

"""Enumerations shared by the API schemas, the ORM and the access engine."""

from enum import Enum
from typing import Optional


class Visibility(str, Enum):
    public = "public"
    protected = "protected"


class VideoStatus(str, Enum):
    """Ingestion status of a video row. Only `ready` videos are served."""

    pending = "pending"
    processing = "processing"
    ready = "ready"
    failed = "failed"


class DerivationMethod(str, Enum):
    """
    How the caller's authorization was produced.

    - `delegated_action`: a freshly signed payload asserting a new grant
    - `existing_grant`: a plain wallet signature relying on a stored grant
    """

    delegated_action = "delegated-action"
    existing_grant = "existing-grant"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DerivationMethod"]:
        """Map a wire value (canonical or legacy client alias) to a member, else None."""
        if not value:
            return None
        v = value.strip()
        try:
            return cls(v)
        except ValueError:
            return _LEGACY_ALIASES.get(v)


_LEGACY_ALIASES = {
    "lit.action": DerivationMethod.delegated_action,
    "loop.web3.auth": DerivationMethod.existing_grant,
}


__all__ = ["Visibility", "VideoStatus", "DerivationMethod"]
