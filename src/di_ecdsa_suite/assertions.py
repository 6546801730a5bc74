"""
Conformance assertions.

Raise ``AssertionError`` with a descriptive message; pytest rewrites this
module's asserts when the reporting plugin is loaded.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Callable

from di_ecdsa_suite.cryptosuites import (
    SD_BASE_PROOF_HEADER,
    SD_DERIVED_PROOF_HEADER,
    Cryptosuite,
)
from di_ecdsa_suite.endpoints import PostResult
from di_ecdsa_suite.helpers import (
    MULTIBASE_MULTIKEY_HEADER_P256,
    MULTIBASE_MULTIKEY_HEADER_P384,
    SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS,
    get_bs58_bytes,
    get_bs64url_bytes,
    get_proofs,
    is_valid_datetime,
)
from di_ecdsa_suite.keys import MULTICODEC_PREFIXES, SIGNATURE_COMPONENT_SIZES

BS58 = re.compile(r"^[123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz]+$")

# decoded Multikey length: 2 byte multicodec prefix + compressed point
MULTIKEY_LENGTHS = {
    "P-256": 35,
    "P-384": 51,
}


def should_be_bs58(s: str) -> bool:
    """True when ``s`` is entirely base58btc encoded."""
    return bool(BS58.match(s))


def should_be_multicodec_encoded(s: str) -> None:
    """Assert a P-256/P-384 Multikey has the right length and multicodec prefix."""
    for key_type, header in (
        ("P-256", MULTIBASE_MULTIKEY_HEADER_P256),
        ("P-384", MULTIBASE_MULTIKEY_HEADER_P384),
    ):
        if not s.startswith(header):
            continue
        data = get_bs58_bytes(s)
        assert len(data) == MULTIKEY_LENGTHS[key_type], (
            f"Expected {key_type} Multikey to decode to "
            f"{MULTIKEY_LENGTHS[key_type]} bytes, got {len(data)}"
        )
        assert data[:2] == MULTICODEC_PREFIXES[key_type], (
            f"Expected {key_type} multicodec prefix "
            f"{MULTICODEC_PREFIXES[key_type].hex()}, got {data[:2].hex()}"
        )


def assert_multikey(public_key_multibase: Any, key_type: str) -> None:
    """Assert a publicKeyMultibase is a base58btc Multikey of ``key_type``."""
    assert isinstance(public_key_multibase, str), (
        "Expected publicKeyMultibase to be a string"
    )
    assert public_key_multibase.startswith("z"), (
        "Expected publicKeyMultibase to start with the base58btc header 'z'"
    )
    assert should_be_bs58(public_key_multibase[1:]), (
        "Expected publicKeyMultibase to be base58btc encoded"
    )
    header = SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS[key_type]
    assert public_key_multibase.startswith(header), (
        f"Expected {key_type} Multikey to start with '{header}'"
    )
    should_be_multicodec_encoded(public_key_multibase)


def assert_has_proof(credential: Any) -> list[dict[str, Any]]:
    """Assert a credential carries at least one proof and return them."""
    assert isinstance(credential, dict), "Expected issuer to return a credential"
    proofs = get_proofs(credential)
    assert proofs, "Expected credential to have a proof"
    return proofs


def find_proof(credential: dict[str, Any], cryptosuite: Cryptosuite) -> dict[str, Any]:
    """The first DataIntegrityProof of ``cryptosuite`` on a credential."""
    proofs = assert_has_proof(credential)
    matching = [
        p for p in proofs
        if p.get("type") == "DataIntegrityProof"
        and p.get("cryptosuite") == cryptosuite.name
    ]
    assert matching, (
        f'Expected a "DataIntegrityProof" with cryptosuite "{cryptosuite.name}"'
    )
    return matching[0]


def assert_proof_value(
    proof: dict[str, Any],
    cryptosuite: Cryptosuite,
    key_type: str | None = None,
    derived: bool = False,
) -> None:
    """Assert the proofValue header, encoding and decoded size."""
    proof_value = proof.get("proofValue")
    assert isinstance(proof_value, str) and proof_value, (
        "Expected proof.proofValue to be a non-empty string"
    )
    header = cryptosuite.proof_value_header
    assert proof_value.startswith(header), (
        f"Expected proof.proofValue to start with multibase header '{header}'"
    )

    if cryptosuite.is_selective_disclosure:
        data = get_bs64url_bytes(proof_value)
        expected = SD_DERIVED_PROOF_HEADER if derived else SD_BASE_PROOF_HEADER
        assert data[:3] == expected, (
            f"Expected {'derived' if derived else 'base'} proof header "
            f"{expected.hex()}, got {data[:3].hex()}"
        )
        return

    assert should_be_bs58(proof_value[1:]), (
        "Expected proof.proofValue to be base58btc encoded"
    )
    if key_type in SIGNATURE_COMPONENT_SIZES:
        expected_length = SIGNATURE_COMPONENT_SIZES[key_type] * 2
        actual_length = len(get_bs58_bytes(proof_value))
        assert actual_length == expected_length, (
            f"Expected {key_type} signature of {expected_length} bytes, "
            f"got {actual_length}"
        )


def assert_data_integrity_proof(
    proof: dict[str, Any],
    cryptosuite: Cryptosuite,
    key_type: str | None = None,
) -> None:
    """Assert the shape of a DataIntegrityProof created by an issuer."""
    assert proof.get("type") == "DataIntegrityProof", (
        'Expected proof.type to be "DataIntegrityProof"'
    )
    assert proof.get("cryptosuite") == cryptosuite.name, (
        f'Expected proof.cryptosuite to be "{cryptosuite.name}"'
    )
    assert proof.get("proofPurpose") == "assertionMethod", (
        'Expected proof.proofPurpose to be "assertionMethod"'
    )
    verification_method = proof.get("verificationMethod")
    assert isinstance(verification_method, str) and verification_method, (
        "Expected proof.verificationMethod to be a URL string"
    )
    if "created" in proof:
        assert is_valid_datetime(proof["created"]), (
            "Expected proof.created to be a valid XML Schema dateTimeStamp"
        )
    assert_proof_value(proof, cryptosuite, key_type=key_type)


def assert_verification_succeeded(post: PostResult) -> None:
    """Assert a verifier accepted a credential (2xx)."""
    assert post.result is not None, (
        f"Expected a response from {post.request_url}, got error: {post.error}"
    )
    assert post.ok, (
        f"Expected verification to succeed, got status {post.status_code}: "
        f"{post.data}"
    )


def assert_verification_failed(post: PostResult) -> None:
    """Assert a verifier rejected a credential (4xx)."""
    assert post.result is not None, (
        f"Expected a response from {post.request_url}, got error: {post.error}"
    )
    assert 400 <= post.status_code < 500, (
        f"Expected verification to fail with a 4xx status, got {post.status_code}"
    )


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Resolve a JSON pointer (RFC 6901).

    Raises:
        KeyError: If the pointer does not resolve.
    """
    if pointer == "":
        return document
    if not pointer.startswith("/"):
        raise KeyError(f"Invalid JSON pointer: {pointer}")
    value = document
    for token in pointer[1:].split("/"):
        token = token.replace("~1", "/").replace("~0", "~")
        if isinstance(value, list):
            try:
                value = value[int(token)]
            except (ValueError, IndexError):
                raise KeyError(pointer) from None
        elif isinstance(value, dict) and token in value:
            value = value[token]
        else:
            raise KeyError(pointer)
    return value


def assert_disclosed(credential: dict[str, Any], pointers: list[str]) -> None:
    """Assert every pointer resolves in a derived credential."""
    for pointer in pointers:
        try:
            resolve_pointer(credential, pointer)
        except KeyError:
            raise AssertionError(
                f"Expected derived credential to disclose {pointer}"
            ) from None


def _first_proof(credential: dict[str, Any]) -> dict[str, Any]:
    return get_proofs(credential)[0]


def _tamper_subject(credential: dict[str, Any]) -> None:
    subject = credential.get("credentialSubject")
    if isinstance(subject, list):
        subject = subject[0]
    subject["id"] = "did:example:mallory"


def _alter_proof_value(credential: dict[str, Any]) -> None:
    proof = _first_proof(credential)
    value = proof["proofValue"]
    middle = len(value) // 2
    replacement = "A" if value[middle] != "A" else "B"
    proof["proofValue"] = value[:middle] + replacement + value[middle + 1:]


def _wrong_cryptosuite(credential: dict[str, Any]) -> None:
    _first_proof(credential)["cryptosuite"] = "not-an-ecdsa-cryptosuite"


def _wrong_proof_type(credential: dict[str, Any]) -> None:
    _first_proof(credential)["type"] = "UnknownProofType"


def _missing_proof_value(credential: dict[str, Any]) -> None:
    del _first_proof(credential)["proofValue"]


def _non_multibase_proof_value(credential: dict[str, Any]) -> None:
    proof = _first_proof(credential)
    # "M" is base64pad, not the suite's encoding
    proof["proofValue"] = "M" + proof["proofValue"][1:]


def _invalid_created(credential: dict[str, Any]) -> None:
    _first_proof(credential)["created"] = "not-a-dateTimeStamp"


def _missing_verification_method(credential: dict[str, Any]) -> None:
    del _first_proof(credential)["verificationMethod"]


def _wrong_proof_purpose(credential: dict[str, Any]) -> None:
    _first_proof(credential)["proofPurpose"] = "authentication"


VERIFY_ERROR_MUTATIONS: dict[str, Callable[[dict[str, Any]], None]] = {
    "credentialSubject has been tampered with": _tamper_subject,
    "proofValue has been altered": _alter_proof_value,
    "cryptosuite is not the one that created the proof": _wrong_cryptosuite,
    'proof type is not "DataIntegrityProof"': _wrong_proof_type,
    "proofValue is missing": _missing_proof_value,
    "proofValue does not use the expected multibase encoding": _non_multibase_proof_value,
    "created is not a valid dateTimeStamp": _invalid_created,
    "verificationMethod is missing": _missing_verification_method,
    'proofPurpose is not "assertionMethod"': _wrong_proof_purpose,
}


def mutate(credential: dict[str, Any], mutation: str) -> dict[str, Any]:
    """Deep copy a secured credential and apply a named verify-error mutation.

    Raises:
        KeyError: If the mutation is unknown.
    """
    mutated = copy.deepcopy(credential)
    VERIFY_ERROR_MUTATIONS[mutation](mutated)
    return mutated
