from __future__ import annotations

"""
Wire and domain schemas for playback access.

Field names on the wire are camelCase (shared with the web client and with
other writers of the Redis keyspace); Python attributes are snake_case.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from playback_access.schemas.enums import Visibility


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ─────────────────────────────────────────────────────────────
# Video metadata
# ─────────────────────────────────────────────────────────────
class VideoAccessPolicy(_CamelModel):
    """
    Access-control descriptor attached to protected videos.

    Opaque to the engine: `acl` is kept as raw JSON and the whole object is
    passed through unmodified (unknown keys included).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    acl: Optional[Any] = None
    type: Optional[str] = None
    ciphertext: Optional[str] = None
    data_to_encrypt_hash: Optional[str] = Field(None, alias="dataToEncryptHash")


class VideoRecord(_CamelModel):
    """Identity and access policy of a stored video (cached at `token:{tokenId}`)."""

    id: str
    visibility: Visibility
    creator: str = ""
    downloadable: bool = Field(
        False,
        alias="isDownloadable",
        validation_alias=AliasChoices("isDownloadable", "downloadable"),
    )
    access_policy: Optional[VideoAccessPolicy] = Field(
        None,
        alias="playbackAccess",
        validation_alias=AliasChoices("playbackAccess", "accessPolicy"),
    )

    def to_cache(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ─────────────────────────────────────────────────────────────
# Request
# ─────────────────────────────────────────────────────────────
class AuthSig(_CamelModel):
    """Caller-supplied proof bundle. Every field may be absent for public videos."""

    sig: Optional[str] = None
    derived_via: Optional[str] = Field(None, alias="derivedVia")
    signed_message: Optional[str] = Field(None, alias="signedMessage")
    address: Optional[str] = None


class AccessRequest(_CamelModel):
    token_id: Optional[str] = Field(None, alias="tokenId")
    auth_sig: Optional[AuthSig] = Field(None, alias="authSig")


class SignedPayload(_CamelModel):
    """
    Decoded `signedMessage` of a delegated-action proof.

    `expiresAtMillis` is also accepted under the short key `exp` used by the
    original signing action.
    """

    user_address: str = Field(alias="userAddress", min_length=1)
    video_id: str = Field("", alias="videoId")
    video_token_id: str = Field(alias="videoTokenId", min_length=1)
    nonce: str = Field(min_length=1)
    expires_at_ms: int = Field(
        alias="expiresAtMillis",
        validation_alias=AliasChoices("expiresAtMillis", "exp"),
    )


# ─────────────────────────────────────────────────────────────
# Responses
# ─────────────────────────────────────────────────────────────
class ShareLinkResponse(BaseModel):
    data: str = Field(..., description="Public, time-limited retrieval URL")


class ErrorDetail(BaseModel):
    message: str
    code: str
    request_id: str = "N/A"
    details: Optional[Any] = None
    debug: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


__all__ = [
    "VideoAccessPolicy",
    "VideoRecord",
    "AuthSig",
    "AccessRequest",
    "SignedPayload",
    "ShareLinkResponse",
    "ErrorResponse",
    "ErrorDetail",
]
