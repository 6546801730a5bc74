"""
ECDSA Multikey generation and encoding.

A Multikey is the multicodec-prefixed compressed public key, multibase
base58btc encoded (``zDna...`` for P-256, ``z82L...`` for P-384).
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from multiformats import multibase

# varint encoded multicodec codes: p256-pub (0x1200), p384-pub (0x1201)
MULTICODEC_PREFIXES = {
    "P-256": bytes([0x80, 0x24]),
    "P-384": bytes([0x81, 0x24]),
}

CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
}

HASH_ALGORITHMS = {
    "P-256": hashes.SHA256,
    "P-384": hashes.SHA384,
}

# bytes of each of r and s in an IEEE P1363 signature
SIGNATURE_COMPONENT_SIZES = {
    "P-256": 32,
    "P-384": 48,
}


class UnsupportedKeyTypeError(ValueError):
    """Raised for a key type that is not an ECDSA curve of this suite."""


def _check_key_type(key_type: str) -> None:
    if key_type not in CURVES:
        raise UnsupportedKeyTypeError(f"Unsupported key type: {key_type}")


def encode_multikey(public_key: ec.EllipticCurvePublicKey, key_type: str) -> str:
    """Encode an EC public key as a base58btc Multikey."""
    _check_key_type(key_type)
    point = public_key.public_bytes(Encoding.X962, PublicFormat.CompressedPoint)
    return multibase.encode(MULTICODEC_PREFIXES[key_type] + point, "base58btc")


def decode_multikey(public_key_multibase: str) -> tuple[str, ec.EllipticCurvePublicKey]:
    """Decode a Multikey into its key type and EC public key.

    Raises:
        UnsupportedKeyTypeError: If the multicodec prefix is not P-256/P-384.
        ValueError: If the value is not valid multibase or not a curve point.
    """
    data = multibase.decode(public_key_multibase)
    for key_type, prefix in MULTICODEC_PREFIXES.items():
        if data[:2] == prefix:
            public_key = ec.EllipticCurvePublicKey.from_encoded_point(
                CURVES[key_type](), data[2:]
            )
            return key_type, public_key
    raise UnsupportedKeyTypeError(
        f"Unsupported multicodec prefix: {data[:2].hex()}"
    )


@dataclass
class MultikeyPair:
    """A P-256/P-384 key pair identified by a ``did:key``."""

    key_type: str
    private_key: ec.EllipticCurvePrivateKey

    @classmethod
    def generate(cls, key_type: str) -> MultikeyPair:
        _check_key_type(key_type)
        return cls(key_type, ec.generate_private_key(CURVES[key_type]()))

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self.private_key.public_key()

    @property
    def public_key_multibase(self) -> str:
        return encode_multikey(self.public_key, self.key_type)

    @property
    def issuer(self) -> str:
        return f"did:key:{self.public_key_multibase}"

    @property
    def verification_method(self) -> str:
        return f"{self.issuer}#{self.public_key_multibase}"

    def sign(self, data: bytes) -> bytes:
        """Sign ``data`` and return an IEEE P1363 (r || s) signature."""
        der = self.private_key.sign(data, ec.ECDSA(HASH_ALGORITHMS[self.key_type]()))
        r, s = decode_dss_signature(der)
        size = SIGNATURE_COMPONENT_SIZES[self.key_type]
        return r.to_bytes(size, byteorder="big") + s.to_bytes(size, byteorder="big")


def verify_signature(
    public_key: ec.EllipticCurvePublicKey,
    key_type: str,
    signature: bytes,
    data: bytes,
) -> bool:
    """Verify an IEEE P1363 signature over ``data``."""
    size = SIGNATURE_COMPONENT_SIZES[key_type]
    if len(signature) != size * 2:
        return False
    r = int.from_bytes(signature[:size], byteorder="big")
    s = int.from_bytes(signature[size:], byteorder="big")
    try:
        public_key.verify(
            encode_dss_signature(r, s),
            data,
            ec.ECDSA(HASH_ALGORITHMS[key_type]()),
        )
    except InvalidSignature:
        return False
    return True


def get_multikeys(key_types: list[str] | None = None) -> dict[str, MultikeyPair]:
    """Generate one key pair per key type, keyed by key type."""
    return {key_type: MultikeyPair.generate(key_type) for key_type in key_types or ["P-256"]}
