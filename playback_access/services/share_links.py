from __future__ import annotations

"""
🔗 Playback Access • Share-Link Issuers
=======================================

Issue public, time-limited retrieval links for a video's data prefix.

Contract
--------
    await issuer.issue_public_link(bucket, object_prefix, valid_for) -> str

- Download-only: links are presigned **GET**s, never writes.
- Scoped to one object path (`{videoId}/data/`).
- Validity is fixed by configuration (`SHARE_LINK_TTL_SECONDS`, 4h default).

Implementations
---------------
- `S3ShareLinkIssuer`  : SigV4 presigned GET against any S3-compatible
  endpoint (AWS, or a gateway such as Storj's via `S3_ENDPOINT_URL`).
- `StaticShareLinkIssuer`: deterministic `{base}/{prefix}` URLs for local
  development when no object store is configured.
"""

import asyncio
import logging
import re
import time
from datetime import timedelta
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import SecretStr

from playback_access.core.config import Settings
from playback_access.core.metrics import observe_share_link

logger = logging.getLogger(__name__)


class ShareLinkError(RuntimeError):
    """Raised when a share link cannot be produced."""


class ShareLinkIssuer(Protocol):
    bucket: str

    async def issue_public_link(self, bucket: str, object_prefix: str, valid_for: timedelta) -> str: ...


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")


def _normalize_key(key: str) -> str:
    """
    Normalize and validate object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k or k == "/":
        raise ShareLinkError("Invalid object key: empty")
    if ".." in k:
        raise ShareLinkError("Invalid object key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise ShareLinkError("Invalid object key: contains forbidden characters")
    return k


def _secret_value(v: Optional[SecretStr | str]) -> Optional[str]:
    if v is None:
        return None
    return v.get_secret_value() if isinstance(v, SecretStr) else str(v)


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3-compatible issuer
# ─────────────────────────────────────────────────────────────────────────────

class S3ShareLinkIssuer:
    """
    Presigned-GET issuer over a boto3 S3 client.

    Notes
    -----
    * Credentials: explicit `AWS_ACCESS_KEY_ID`/`AWS_SECRET_ACCESS_KEY` when
      configured, otherwise the standard AWS credential chain.
    * Signing is local CPU work; it runs in a worker thread so the event loop
      never blocks.
    """

    def __init__(self, client: Any, *, bucket: str) -> None:
        if not bucket:
            raise ShareLinkError("S3_VIDEO_BUCKET not configured")
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ShareLinkIssuer":
        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 1, "mode": "standard"},
            connect_timeout=3,
            read_timeout=5,
            s3={"addressing_style": "path" if settings.S3_ENDPOINT_URL else "virtual"},
        )
        client_kwargs: Dict[str, Any] = {"config": cfg, "region_name": settings.AWS_REGION}
        if settings.S3_ENDPOINT_URL:
            client_kwargs["endpoint_url"] = settings.S3_ENDPOINT_URL
        ak = settings.AWS_ACCESS_KEY_ID
        sk = _secret_value(settings.AWS_SECRET_ACCESS_KEY)
        if ak and sk:
            client_kwargs["aws_access_key_id"] = ak
            client_kwargs["aws_secret_access_key"] = sk
        try:
            client = boto3.client("s3", **client_kwargs)
        except (BotoCoreError, ValueError) as e:
            raise ShareLinkError(f"Failed to create S3 client: {e}") from e
        return cls(client, bucket=settings.S3_VIDEO_BUCKET or "")

    def _presign(self, bucket: str, key: str, expires_in: int) -> str:
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
            HttpMethod="GET",
        )

    async def issue_public_link(self, bucket: str, object_prefix: str, valid_for: timedelta) -> str:
        key = _normalize_key(object_prefix)
        expires_in = int(valid_for.total_seconds())
        logger.info("Creating public shared link for bucket: %s, object: %s", bucket, key)
        started = time.perf_counter()
        try:
            url = await asyncio.to_thread(self._presign, bucket, key, expires_in)
        except (BotoCoreError, ClientError, ValueError) as e:
            observe_share_link("error", time.perf_counter() - started)
            raise ShareLinkError(f"could not create a shared link: {e}") from e
        observe_share_link("ok", time.perf_counter() - started)
        return url


# ─────────────────────────────────────────────────────────────────────────────
# 🧪 Static issuer (local development)
# ─────────────────────────────────────────────────────────────────────────────

class StaticShareLinkIssuer:
    """Builds `{base_url}/{object_prefix}` without contacting any store."""

    def __init__(self, base_url: str, *, bucket: str = "local") -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket

    async def issue_public_link(self, bucket: str, object_prefix: str, valid_for: timedelta) -> str:
        url = f"{self.base_url}/{_normalize_key(object_prefix)}"
        observe_share_link("ok", 0.0)
        return url


def build_share_link_issuer(settings: Settings) -> ShareLinkIssuer:
    """Pick the issuer named by `LINK_ISSUER`."""
    if settings.LINK_ISSUER == "static":
        return StaticShareLinkIssuer(settings.STATIC_LINK_BASE_URL, bucket=settings.S3_VIDEO_BUCKET or "local")
    return S3ShareLinkIssuer.from_settings(settings)


__all__ = [
    "ShareLinkError",
    "ShareLinkIssuer",
    "S3ShareLinkIssuer",
    "StaticShareLinkIssuer",
    "build_share_link_issuer",
]
