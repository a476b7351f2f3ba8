# tests/test_signature.py

from eth_keys import keys

from playback_access.services.signature import (
    personal_message_digest,
    recover_address,
    verify_signature,
)
from tests.fixtures.wallets import personal_sign


MESSAGE = '{"nonce":"abc","videoId":"vid1"}'


# ─────────────────────────────────────────────────────────────────────────────
# Digest
# ─────────────────────────────────────────────────────────────────────────────

def test_digest_is_32_bytes_and_message_sensitive():
    d1 = personal_message_digest("hello")
    d2 = personal_message_digest("hello!")
    assert len(d1) == 32
    assert d1 != d2


def test_digest_length_prefix_counts_utf8_bytes():
    # "é" is two bytes; a digest computed over the char count would differ
    from eth_utils import keccak

    msg = "é"
    expected = keccak(b"\x19Ethereum Signed Message:\n2" + msg.encode("utf-8"))
    assert personal_message_digest(msg) == expected


# ─────────────────────────────────────────────────────────────────────────────
# Verify
# ─────────────────────────────────────────────────────────────────────────────

def test_valid_signature_verifies_against_signer(alice):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE, sig, alice.address) is True


def test_address_comparison_is_case_insensitive(alice):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE, sig, alice.address.lower()) is True
    assert verify_signature(MESSAGE, sig, alice.address.upper().replace("0X", "0x")) is True


def test_signature_fails_for_other_address(alice, bob):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE, sig, bob.address) is False


def test_signature_fails_for_tampered_message(alice):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE + " ", sig, alice.address) is False


def test_signature_without_0x_prefix_is_accepted(alice):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE, sig[2:], alice.address) is True


def test_recovery_id_zero_one_form_is_accepted(alice):
    sig = personal_sign(MESSAGE, alice.key)
    raw = bytearray(bytes.fromhex(sig[2:]))
    assert raw[64] in (27, 28)
    raw[64] -= 27
    assert verify_signature(MESSAGE, "0x" + raw.hex(), alice.address) is True


def test_recover_address_matches_eth_keys_derivation(alice):
    sig = personal_sign(MESSAGE, alice.key)
    expected = keys.PrivateKey(bytes(alice.key)).public_key.to_checksum_address().lower()
    assert recover_address(MESSAGE, sig) == expected


# ─────────────────────────────────────────────────────────────────────────────
# Malformed input never raises
# ─────────────────────────────────────────────────────────────────────────────

def test_wrong_length_signature_fails_without_raising(alice):
    sig = personal_sign(MESSAGE, alice.key)
    assert verify_signature(MESSAGE, sig[:-2], alice.address) is False  # 64 bytes
    assert verify_signature(MESSAGE, sig + "00", alice.address) is False  # 66 bytes


def test_non_hex_signature_fails_without_raising(alice):
    assert verify_signature(MESSAGE, "0x" + "zz" * 65, alice.address) is False


def test_empty_inputs_fail_without_raising(alice):
    assert verify_signature("", "", "") is False
    assert verify_signature(MESSAGE, "", alice.address) is False


def test_invalid_recovery_id_fails_without_raising(alice):
    sig = personal_sign(MESSAGE, alice.key)
    raw = bytearray(bytes.fromhex(sig[2:]))
    raw[64] = 5
    assert verify_signature(MESSAGE, "0x" + raw.hex(), alice.address) is False