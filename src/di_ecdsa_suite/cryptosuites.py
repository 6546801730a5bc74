"""
ECDSA Data Integrity cryptosuites.

Local proof creation and verification for:
- ecdsa-rdfc-2019 (RDF Dataset Canonicalization via pyld)
- ecdsa-jcs-2019 (JSON Canonicalization Scheme via canonicaljson)

ecdsa-sd-2023 proofs are created and derived by a reference
implementation over the VC API; only its descriptor lives here.
https://www.w3.org/TR/vc-di-ecdsa/
"""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass
from typing import Any

import canonicaljson
from multiformats import multibase
from pyld import jsonld
from pyld.jsonld import JsonLdError

from di_ecdsa_suite.did_resolver import DIDResolutionError, DIDResolver
from di_ecdsa_suite.documentloader import DocumentLoader, get_document_loader
from di_ecdsa_suite.helpers import iso_timestamp
from di_ecdsa_suite.keys import MultikeyPair, decode_multikey, verify_signature

ECDSA_RDFC_2019 = "ecdsa-rdfc-2019"
ECDSA_JCS_2019 = "ecdsa-jcs-2019"
ECDSA_SD_2023 = "ecdsa-sd-2023"

SUPPORTED_CRYPTOSUITES = (ECDSA_RDFC_2019, ECDSA_JCS_2019, ECDSA_SD_2023)

# proofValue headers of ecdsa-sd-2023 base and derived proofs
SD_BASE_PROOF_HEADER = bytes([0xD9, 0x5D, 0x00])
SD_DERIVED_PROOF_HEADER = bytes([0xD9, 0x5D, 0x01])

DIGESTS = {
    "P-256": hashlib.sha256,
    "P-384": hashlib.sha384,
}


class CryptosuiteError(Exception):
    """Raised when a cryptosuite operation is not possible."""


@dataclass(frozen=True)
class Cryptosuite:
    """A named ECDSA cryptosuite and its selective disclosure pointers."""

    name: str
    mandatory_pointers: tuple[str, ...] = ()
    selective_pointers: tuple[str, ...] = ()

    @property
    def is_selective_disclosure(self) -> bool:
        return self.name == ECDSA_SD_2023

    @property
    def signs_locally(self) -> bool:
        return not self.is_selective_disclosure

    @property
    def proof_value_header(self) -> str:
        """Multibase header of proofValue: base64url for sd, else base58btc."""
        return "u" if self.is_selective_disclosure else "z"

    def canonicalize(
        self, document: dict[str, Any], document_loader: DocumentLoader | None = None
    ) -> bytes:
        """Canonicalize a document the way this cryptosuite hashes it."""
        if self.name == ECDSA_JCS_2019:
            return canonicaljson.encode_canonical_json(document)
        if self.name == ECDSA_RDFC_2019:
            try:
                nquads = jsonld.normalize(
                    document,
                    {
                        "algorithm": "URDNA2015",
                        "format": "application/n-quads",
                        "documentLoader": document_loader or get_document_loader(),
                    },
                )
            except JsonLdError as e:
                raise CryptosuiteError(f"Could not canonicalize document: {e}") from e
            return nquads.encode("utf-8")
        raise CryptosuiteError(f"{self.name} is not canonicalized locally")

    def hash_data(
        self,
        document: dict[str, Any],
        proof_config: dict[str, Any],
        key_type: str,
        document_loader: DocumentLoader | None = None,
    ) -> bytes:
        """hash(canonical proof config) || hash(canonical document)."""
        digest = DIGESTS[key_type]
        return (
            digest(self.canonicalize(proof_config, document_loader)).digest()
            + digest(self.canonicalize(document, document_loader)).digest()
        )

    def create_proof(
        self,
        document: dict[str, Any],
        key: MultikeyPair,
        proof_purpose: str = "assertionMethod",
        created: str | None = None,
        document_loader: DocumentLoader | None = None,
    ) -> dict[str, Any]:
        """Create a DataIntegrityProof over an unsecured document.

        Raises:
            CryptosuiteError: For cryptosuites that do not sign locally.
        """
        if not self.signs_locally:
            raise CryptosuiteError(f"{self.name} proofs are not created locally")

        proof: dict[str, Any] = {
            "type": "DataIntegrityProof",
            "cryptosuite": self.name,
            "created": created or iso_timestamp(),
            "verificationMethod": key.verification_method,
            "proofPurpose": proof_purpose,
        }
        unsecured = {k: v for k, v in document.items() if k != "proof"}
        proof_config = _proof_configuration(unsecured, proof)
        hash_data = self.hash_data(unsecured, proof_config, key.key_type, document_loader)

        if self.name == ECDSA_JCS_2019 and "@context" in unsecured:
            proof = {"@context": copy.deepcopy(unsecured["@context"]), **proof}
        proof["proofValue"] = multibase.encode(key.sign(hash_data), "base58btc")
        return proof

    def verify_proof(
        self,
        document: dict[str, Any],
        resolver: DIDResolver | None = None,
        document_loader: DocumentLoader | None = None,
    ) -> bool:
        """Verify the proof of a secured document against its did:key/did:web.

        Raises:
            CryptosuiteError: For cryptosuites that do not verify locally.
        """
        if not self.signs_locally:
            raise CryptosuiteError(f"{self.name} proofs are not verified locally")

        proof = document.get("proof")
        if not isinstance(proof, dict) or proof.get("cryptosuite") != self.name:
            return False

        proof_value = proof.get("proofValue", "")
        if not isinstance(proof_value, str) or not proof_value.startswith("z"):
            return False

        resolver = resolver or DIDResolver()
        try:
            vm = resolver.dereference(
                proof.get("verificationMethod", ""), proof.get("proofPurpose")
            )
            key_type, public_key = decode_multikey(vm.public_key_multibase or "")
            signature = multibase.decode(proof_value)
        except (DIDResolutionError, KeyError, ValueError):
            return False

        unsecured = {k: v for k, v in document.items() if k != "proof"}
        proof_config = {
            k: v for k, v in proof.items() if k not in ("proofValue", "@context")
        }
        if "@context" in proof and proof["@context"] != unsecured.get("@context"):
            return False
        proof_config = _proof_configuration(unsecured, proof_config)
        try:
            hash_data = self.hash_data(
                unsecured, proof_config, key_type, document_loader
            )
        except CryptosuiteError:
            return False
        return verify_signature(public_key, key_type, signature, hash_data)


def _proof_configuration(
    unsecured: dict[str, Any], proof: dict[str, Any]
) -> dict[str, Any]:
    if "@context" not in unsecured:
        return dict(proof)
    return {"@context": unsecured["@context"], **proof}


def get_suite(
    suite: str,
    mandatory_pointers: list[str] | None = None,
    selective_pointers: list[str] | None = None,
) -> Cryptosuite:
    """Get a cryptosuite by name.

    Raises:
        CryptosuiteError: If the cryptosuite is not an ECDSA suite.
    """
    if suite not in SUPPORTED_CRYPTOSUITES:
        raise CryptosuiteError(f"Unsupported cryptosuite: {suite}")
    return Cryptosuite(
        name=suite,
        mandatory_pointers=tuple(mandatory_pointers or ()),
        selective_pointers=tuple(selective_pointers or ()),
    )
