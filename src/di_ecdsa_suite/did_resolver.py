"""
DID resolution for verification method dereferencing.

Supports:
- did:key with P-256 / P-384 Multikeys (resolved locally)
- did:web (resolved over HTTPS)
https://w3c-ccg.github.io/did-method-key/
https://w3c-ccg.github.io/did-method-web/
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from di_ecdsa_suite.keys import decode_multikey

DID_V1_CONTEXT = "https://www.w3.org/ns/did/v1"
MULTIKEY_V1_CONTEXT = "https://w3id.org/security/multikey/v1"


class DIDResolutionError(Exception):
    """Raised when DID resolution fails."""


@dataclass
class VerificationMethod:
    """DID Document verification method."""

    id: str
    type: str
    controller: str
    public_key_multibase: str | None = None


@dataclass
class DIDDocument:
    """W3C DID Document."""

    id: str
    verification_methods: list[VerificationMethod]
    assertion_method: list[str]
    raw: dict[str, Any] = field(default_factory=dict)

    def _absolute(self, method_id: str) -> str:
        return f"{self.id}{method_id}" if method_id.startswith("#") else method_id

    def get_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Get a verification method by ID (absolute or ``#fragment``)."""
        method_id = self._absolute(method_id)
        for vm in self.verification_methods:
            if self._absolute(vm.id) == method_id:
                return vm
        return None

    def is_assertion_method(self, method_id: str) -> bool:
        """True when the DID controller authorizes ``method_id`` for assertions."""
        method_id = self._absolute(method_id)
        return any(self._absolute(m) == method_id for m in self.assertion_method)


class DIDResolver:
    """Resolver for did:key and did:web DIDs."""

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the DID resolver.

        Args:
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._cache: dict[str, DIDDocument] = {}

    def _did_to_url(self, did: str) -> str:
        """Convert a did:web identifier to its resolution URL.

        did:web:example.com -> https://example.com/.well-known/did.json
        did:web:example.com:path:to:doc -> https://example.com/path/to/doc/did.json
        did:web:example.com%3A8080 -> https://example.com:8080/.well-known/did.json

        Raises:
            DIDResolutionError: If the DID format is invalid.
        """
        if not did.startswith("did:web:"):
            raise DIDResolutionError(f"Invalid did:web identifier: {did}")

        domain_path = did[8:].split("#")[0]
        parts = domain_path.split(":")
        domain = parts[0].replace("%3A", ":")

        if len(parts) > 1:
            path = "/" + "/".join(quote(p, safe="") for p in parts[1:]) + "/did.json"
        else:
            path = "/.well-known/did.json"

        return f"https://{domain}{path}"

    def _did_key_document(self, did: str) -> dict[str, Any]:
        """Build the DID Document of a P-256/P-384 did:key."""
        public_key_multibase = did[8:]
        try:
            decode_multikey(public_key_multibase)
        except (KeyError, ValueError) as e:
            raise DIDResolutionError(f"Invalid did:key {did}: {e}") from e

        vm_id = f"{did}#{public_key_multibase}"
        return {
            "@context": [DID_V1_CONTEXT, MULTIKEY_V1_CONTEXT],
            "id": did,
            "verificationMethod": [{
                "id": vm_id,
                "type": "Multikey",
                "controller": did,
                "publicKeyMultibase": public_key_multibase,
            }],
            "authentication": [vm_id],
            "assertionMethod": [vm_id],
            "capabilityDelegation": [vm_id],
            "capabilityInvocation": [vm_id],
        }

    def _fetch_did_web_document(self, did: str) -> dict[str, Any]:
        url = self._did_to_url(did)
        try:
            with httpx.Client(timeout=self.timeout, verify=self.verify_ssl) as client:
                response = client.get(
                    url,
                    headers={"Accept": "application/did+ld+json, application/json"},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise DIDResolutionError(
                f"HTTP error resolving {did}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise DIDResolutionError(f"Network error resolving {did}: {e}") from e
        except ValueError as e:
            raise DIDResolutionError(f"Invalid JSON in DID Document for {did}") from e

    def resolve(self, did: str, use_cache: bool = True) -> DIDDocument:
        """Resolve a DID to its DID Document.

        Args:
            did: A did:key or did:web identifier; a fragment is ignored.
            use_cache: Whether to use cached results.

        Returns:
            The resolved DIDDocument.

        Raises:
            DIDResolutionError: If resolution fails.
        """
        base_did = did.split("#")[0]

        if use_cache and base_did in self._cache:
            return self._cache[base_did]

        if base_did.startswith("did:key:"):
            data = self._did_key_document(base_did)
        elif base_did.startswith("did:web:"):
            data = self._fetch_did_web_document(base_did)
        else:
            raise DIDResolutionError(f"Unsupported DID method: {base_did}")

        doc = self._parse_did_document(data, base_did)

        if use_cache:
            self._cache[base_did] = doc

        return doc

    def dereference(
        self, verification_method: str, proof_purpose: str | None = None
    ) -> VerificationMethod:
        """Dereference a verification method URL (``did:...#fragment``).

        With ``proof_purpose="assertionMethod"`` the method must also be
        listed under the DID Document's ``assertionMethod``.

        Raises:
            DIDResolutionError: If the DID cannot be resolved, does not
                contain the verification method or does not authorize it
                for the proof purpose.
        """
        did_document = self.resolve(verification_method)
        vm = did_document.get_verification_method(verification_method)
        if vm is None:
            raise DIDResolutionError(
                f"Verification method {verification_method} not found in DID Document"
            )
        if proof_purpose == "assertionMethod" and not did_document.is_assertion_method(
            verification_method
        ):
            raise DIDResolutionError(
                f"Verification method {verification_method} is not an assertion method"
            )
        return vm

    def _parse_did_document(self, data: dict[str, Any], did: str) -> DIDDocument:
        """Parse a DID Document from JSON.

        Raises:
            DIDResolutionError: If the document id does not match the DID.
        """
        doc_id = data.get("id", "")
        if doc_id != did:
            raise DIDResolutionError(
                f"DID Document id mismatch: expected {did}, got {doc_id}"
            )

        verification_methods = [
            VerificationMethod(
                id=vm_data.get("id", ""),
                type=vm_data.get("type", ""),
                controller=vm_data.get("controller", ""),
                public_key_multibase=vm_data.get("publicKeyMultibase"),
            )
            for vm_data in data.get("verificationMethod", [])
        ]

        # Embedded assertion methods are also verification methods
        assertion_method: list[str] = []
        for item in data.get("assertionMethod", []):
            if isinstance(item, str):
                assertion_method.append(item)
            elif isinstance(item, dict) and "id" in item:
                assertion_method.append(item["id"])
                verification_methods.append(VerificationMethod(
                    id=item["id"],
                    type=item.get("type", ""),
                    controller=item.get("controller", ""),
                    public_key_multibase=item.get("publicKeyMultibase"),
                ))

        return DIDDocument(
            id=doc_id,
            verification_methods=verification_methods,
            assertion_method=assertion_method,
            raw=data,
        )

    def clear_cache(self) -> None:
        """Clear the resolution cache."""
        self._cache.clear()
