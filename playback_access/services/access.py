from __future__ import annotations

"""
Playback access decisions.

`AccessDecisionEngine.authorize` walks one request through

    Start → VisibilityChecked → {public short-circuit | SignatureChecked}
          → {delegated path | existing-grant path} → {Authorized | Denied}

and `issue_link` turns an authorized video id into a public share link for
`{videoId}/data/`.

Outcomes
--------
- Authorized → `AccessGrantResult` (video id + which path authorized it).
- Denied → `UnauthorizedException`; one public message for every cause, the
  cause itself only reaches logs and metrics.
- Unparseable delegated payload → `BadRequestException`.
- Unknown token → `VideoNotFoundException`.
- Redis / database / storage failures → `DependencyUnavailableException`.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, NoReturn, Optional

from pydantic import ValidationError

from playback_access.core.exceptions import (
    BadRequestException,
    DependencyUnavailableException,
    UnauthorizedException,
)
from playback_access.core.metrics import inc_decision
from playback_access.schemas.access import AuthSig, SignedPayload
from playback_access.schemas.enums import DerivationMethod, Visibility
from playback_access.services.clock import Clock, system_clock
from playback_access.services.grants import AccessGrantStore, GrantStatus
from playback_access.services.metadata import MetadataResolver
from playback_access.services.replay_guard import NonceStatus, ReplayGuard
from playback_access.services.share_links import ShareLinkError, ShareLinkIssuer
from playback_access.services.signature import verify_signature

logger = logging.getLogger(__name__)

DEFAULT_LINK_TTL = timedelta(hours=4)

SignatureVerifier = Callable[[str, str, str], bool]


@dataclass(frozen=True)
class AuthProof:
    """Caller evidence; the claimed address is lowercased on the way in."""

    signed_message: str = ""
    signature: str = ""
    claimed_address: str = ""
    derivation_method: str = ""

    @classmethod
    def from_auth_sig(cls, auth_sig: Optional[AuthSig]) -> "AuthProof":
        if auth_sig is None:
            return cls()
        return cls(
            signed_message=auth_sig.signed_message or "",
            signature=auth_sig.sig or "",
            claimed_address=(auth_sig.address or "").strip().lower(),
            derivation_method=(auth_sig.derived_via or "").strip(),
        )


@dataclass(frozen=True)
class AccessGrantResult:
    video_id: str
    path: str  # public | delegated-action | existing-grant


def data_prefix(video_id: str) -> str:
    return f"{video_id}/data/"


class AccessDecisionEngine:
    def __init__(
        self,
        *,
        resolver: MetadataResolver,
        replay_guard: ReplayGuard,
        grants: AccessGrantStore,
        issuer: ShareLinkIssuer,
        verifier: SignatureVerifier = verify_signature,
        clock: Clock = system_clock,
        link_ttl: timedelta = DEFAULT_LINK_TTL,
    ) -> None:
        self._resolver = resolver
        self._replay_guard = replay_guard
        self._grants = grants
        self._issuer = issuer
        self._verifier = verifier
        self._clock = clock
        self._link_ttl = link_ttl

    # ── decision ─────────────────────────────────────────────────────────────
    async def authorize(self, token_id: Optional[str], proof: AuthProof) -> AccessGrantResult:
        video_id = ""
        visibility = Visibility.protected

        # [Start] token → metadata
        if token_id:
            record = await self._resolver.resolve(token_id)
            video_id = record.id
            visibility = record.visibility

        # [VisibilityChecked] public content needs no proof
        if visibility == Visibility.public:
            inc_decision("authorized", "public")
            return AccessGrantResult(video_id=video_id, path="public")

        # [SignatureChecked]
        if not await self._verify(proof):
            self._deny("signature", "invalid signature")

        method = DerivationMethod.parse(proof.derivation_method)
        if method is DerivationMethod.delegated_action:
            video_id = await self._delegated(proof, video_id)
            path = DerivationMethod.delegated_action.value
        elif method is DerivationMethod.existing_grant:
            await self._existing_grant(token_id or "", proof)
            path = DerivationMethod.existing_grant.value
        else:
            self._deny("method", f"unsupported derivation method {proof.derivation_method!r}")

        inc_decision("authorized", path)
        logger.info("Access authorized for %s via %s (video %s)", proof.claimed_address, path, video_id)
        return AccessGrantResult(video_id=video_id, path=path)

    async def _verify(self, proof: AuthProof) -> bool:
        # secp256k1 recovery is CPU work; keep it off the event loop
        return await asyncio.to_thread(
            self._verifier, proof.signed_message, proof.signature, proof.claimed_address
        )

    async def _delegated(self, proof: AuthProof, token_video_id: str) -> str:
        try:
            payload = SignedPayload.model_validate_json(proof.signed_message)
        except ValidationError as exc:
            raise BadRequestException(
                message="Failed to parse signed message", internal=str(exc)
            ) from exc

        user_address = payload.user_address.strip().lower()
        if payload.expires_at_ms <= self._clock():
            self._deny("expired", "expired")

        status = await self._replay_guard.check_and_consume(payload.nonce, payload.expires_at_ms)
        if status is NonceStatus.already_used:
            self._deny("replay", "nonce already used")

        try:
            await self._grants.grant(payload.video_token_id, user_address, payload.expires_at_ms)
        except DependencyUnavailableException:
            # Nothing was granted, so the proof stays usable for a retry.
            await self._replay_guard.release(payload.nonce)
            raise

        # The signed payload names the video for this path.
        return payload.video_id or token_video_id

    async def _existing_grant(self, token_id: str, proof: AuthProof) -> None:
        status = await self._grants.check(token_id, proof.claimed_address)
        if status is not GrantStatus.granted:
            self._deny("no_grant", "no access grant")

    @staticmethod
    def _deny(label: str, reason: str) -> NoReturn:
        inc_decision("denied", label)
        raise UnauthorizedException(reason=reason)

    # ── link issuance ───────────────────────────────────────────────────────
    async def issue_link(self, video_id: str) -> str:
        if not video_id:
            raise BadRequestException(message="Unable to determine video", internal="empty video id")
        try:
            return await self._issuer.issue_public_link(
                self._issuer.bucket, data_prefix(video_id), self._link_ttl
            )
        except ShareLinkError as exc:
            raise DependencyUnavailableException(
                component="storage",
                message="Failed to create public shared link",
                internal=str(exc),
            ) from exc

    async def authorize_and_issue(self, token_id: Optional[str], proof: AuthProof) -> str:
        """Full request: decision, then a share link for the authorized video."""
        result = await self.authorize(token_id, proof)
        return await self.issue_link(result.video_id)


__all__ = [
    "AccessDecisionEngine",
    "AccessGrantResult",
    "AuthProof",
    "DEFAULT_LINK_TTL",
    "data_prefix",
]
