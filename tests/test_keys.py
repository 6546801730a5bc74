"""Tests for ECDSA Multikeys."""

import pytest
from multiformats import multibase

from di_ecdsa_suite.keys import (
    MULTICODEC_PREFIXES,
    MultikeyPair,
    UnsupportedKeyTypeError,
    decode_multikey,
    get_multikeys,
    verify_signature,
)


@pytest.mark.parametrize(
    "key_type,header,length",
    [("P-256", "zDna", 35), ("P-384", "z82L", 51)],
)
def test_multikey_encoding(key_type, header, length):
    """Multikeys carry the curve's multicodec prefix and a compressed point."""
    key = MultikeyPair.generate(key_type)
    encoded = key.public_key_multibase

    assert encoded.startswith(header)
    data = multibase.decode(encoded)
    assert len(data) == length
    assert data[:2] == MULTICODEC_PREFIXES[key_type]


def test_decode_multikey_returns_key_type():
    key = MultikeyPair.generate("P-384")
    key_type, public_key = decode_multikey(key.public_key_multibase)

    assert key_type == "P-384"
    assert public_key.public_numbers() == key.public_key.public_numbers()


def test_decode_ed25519_multikey_is_unsupported():
    ed25519 = multibase.encode(bytes([0xED, 0x01]) + bytes(32), "base58btc")
    with pytest.raises(UnsupportedKeyTypeError):
        decode_multikey(ed25519)


def test_did_key_identifiers():
    key = MultikeyPair.generate("P-256")

    assert key.issuer == f"did:key:{key.public_key_multibase}"
    assert key.verification_method == f"{key.issuer}#{key.public_key_multibase}"


@pytest.mark.parametrize("key_type,size", [("P-256", 64), ("P-384", 96)])
def test_sign_produces_p1363_signature(key_type, size):
    key = MultikeyPair.generate(key_type)
    signature = key.sign(b"data")

    assert len(signature) == size
    assert verify_signature(key.public_key, key_type, signature, b"data") is True
    assert verify_signature(key.public_key, key_type, signature, b"other") is False


def test_verify_rejects_wrong_signature_length():
    key = MultikeyPair.generate("P-256")
    signature = key.sign(b"data")

    assert verify_signature(key.public_key, "P-256", signature[:-1], b"data") is False


def test_generate_unsupported_key_type():
    with pytest.raises(UnsupportedKeyTypeError):
        MultikeyPair.generate("Ed25519")


def test_get_multikeys():
    keys = get_multikeys(["P-256", "P-384"])

    assert list(keys) == ["P-256", "P-384"]
    assert keys["P-384"].key_type == "P-384"
    assert list(get_multikeys()) == ["P-256"]
