# tests/fixtures/fakes.py

"""
🧩 Fakes shared across tests:
- `FakeLinkIssuer` recording issuance calls
- Sample video metadata documents (camelCase, as stored)
- `build_engine` wiring the decision engine over test doubles
- `ScriptedRedisClient` whose connects hand out prepared clients in order
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, List, Tuple

from playback_access.core.redis_client import RedisClient
from playback_access.services.access import AccessDecisionEngine
from playback_access.services.grants import AccessGrantStore
from playback_access.services.metadata import MetadataResolver
from playback_access.services.replay_guard import ReplayGuard
from playback_access.services.share_links import ShareLinkError


class FakeLinkIssuer:
    """Records issuance calls; optionally fails like an unreachable store."""

    def __init__(self, *, bucket: str = "videos", fail: bool = False) -> None:
        self.bucket = bucket
        self.fail = fail
        self.calls: List[Tuple[str, str, timedelta]] = []

    async def issue_public_link(self, bucket: str, object_prefix: str, valid_for: timedelta) -> str:
        self.calls.append((bucket, object_prefix, valid_for))
        if self.fail:
            raise ShareLinkError("gateway unavailable")
        return f"https://links.example/{bucket}/{object_prefix}?ttl={int(valid_for.total_seconds())}"


PUBLIC_VIDEO = {"id": "vid-public", "visibility": "public", "isDownloadable": True, "creator": "0xcreator"}
PROTECTED_VIDEO = {
    "id": "vid1",
    "visibility": "protected",
    "isDownloadable": False,
    "creator": "0xcreator",
    "playbackAccess": {"acl": [{"contractAddress": ""}], "ciphertext": "c", "dataToEncryptHash": "h"},
}


def build_engine(redis, videos, issuer, clock, *, verifier=None) -> AccessDecisionEngine:
    """Engine over test doubles; every component shares the simulated clock."""
    kwargs = {}
    if verifier is not None:
        kwargs["verifier"] = verifier
    return AccessDecisionEngine(
        resolver=MetadataResolver(redis, videos),
        replay_guard=ReplayGuard(redis, clock=clock),
        grants=AccessGrantStore(redis, clock=clock),
        issuer=issuer,
        clock=clock,
        **kwargs,
    )


class ScriptedRedisClient(RedisClient):
    """`RedisClient` that builds the given clients in turn instead of dialing a server."""

    def __init__(self, *clients: Any) -> None:
        super().__init__("redis://scripted:6379/0")
        self._script = list(clients)
        self.builds = 0

    def _build_client(self):
        self.builds += 1
        return self._script.pop(0)
