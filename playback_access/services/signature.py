from __future__ import annotations

"""
Wallet signature verification (EIP-191 `personal_sign`).

`verify_signature` recovers the signer of a text message from a 65-byte
secp256k1 signature and compares the derived account address with the
claimed one. Every failure mode returns ``False``; nothing raises.
"""

import logging
from typing import Optional

from eth_keys import keys
from eth_utils import keccak

logger = logging.getLogger(__name__)

SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
SIGNATURE_LENGTH = 65
_LEGACY_V_OFFSET = 27


def personal_message_digest(message: str) -> bytes:
    """keccak256(prefix + decimal byte length + message)."""
    body = message.encode("utf-8")
    return keccak(SIGNED_MESSAGE_PREFIX + str(len(body)).encode("ascii") + body)


def _decode_signature(signature: str) -> Optional[bytes]:
    sig = (signature or "").strip()
    if sig[:2] in ("0x", "0X"):
        sig = sig[2:]
    try:
        raw = bytearray(bytes.fromhex(sig))
    except ValueError:
        logger.debug("Signature is not valid hex")
        return None
    if len(raw) != SIGNATURE_LENGTH:
        logger.debug("Invalid signature length: %d", len(raw))
        return None
    if raw[64] in (27, 28):
        raw[64] -= _LEGACY_V_OFFSET
    return bytes(raw)


def recover_address(message: str, signature: str) -> Optional[str]:
    """Return the lowercase address that signed `message`, or None."""
    raw = _decode_signature(signature)
    if raw is None:
        return None
    try:
        sig = keys.Signature(signature_bytes=raw)
        public_key = sig.recover_public_key_from_msg_hash(personal_message_digest(message or ""))
    except Exception as exc:  # eth_keys raises BadSignature/ValidationError on bad r, s, v
        logger.debug("Failed to recover public key: %r", exc)
        return None
    return public_key.to_checksum_address().lower()


def verify_signature(signed_message: str, signature: str, claimed_address: str) -> bool:
    """
    Verify that `claimed_address` produced `signature` over `signed_message`.

    - Accepts signatures with or without the ``0x`` prefix
    - Normalizes legacy recovery ids (27/28 → 0/1)
    - Case-insensitive address comparison
    """
    recovered = recover_address(signed_message, signature)
    if recovered is None:
        return False
    is_valid = recovered == (claimed_address or "").strip().lower()
    logger.debug("Signature valid: %s", is_valid)
    return is_valid


__all__ = ["verify_signature", "recover_address", "personal_message_digest"]
