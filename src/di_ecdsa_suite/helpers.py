"""
Test helpers: credential construction, VC API calls and endpoint filters.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from multiformats import multibase

from di_ecdsa_suite.endpoints import Endpoint, Implementation

logger = logging.getLogger(__name__)

VC_V1_CONTEXT = "https://www.w3.org/2018/credentials/v1"
VC_V2_CONTEXT = "https://www.w3.org/ns/credentials/v2"
DATA_INTEGRITY_V2_CONTEXT = "https://w3id.org/security/data-integrity/v2"

SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS = {
    "P-256": "zDna",
    "P-384": "z82L",
    "Ed25519": "z6Mk",
}

MULTIBASE_MULTIKEY_HEADER_P256 = SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS["P-256"]
MULTIBASE_MULTIKEY_HEADER_P384 = SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS["P-384"]
MULTIBASE_MULTIKEY_HEADER_ED25519 = SUPPORTED_BASE58_ECDSA_MULTIKEY_HEADERS["Ed25519"]


def get_bs58_bytes(s: str) -> bytes:
    """Drop the multibase header of ``s`` and decode the rest as base58btc."""
    return multibase.decode("z" + s[1:])


def get_bs64url_bytes(s: str) -> bytes:
    """Drop the multibase header of ``s`` and decode the rest as base64url."""
    return multibase.decode("u" + s[1:])


def iso_timestamp(date: datetime | None = None) -> str:
    """UTC RFC 3339 timestamp without fractional seconds, ending in ``Z``."""
    date = date or datetime.now(timezone.utc)
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return date.replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def _is_v1(vc_version: str | float) -> bool:
    version = float(vc_version)
    return 1 <= version < 2


def unwrap_credential(data: Any) -> Any:
    """Unwrap a VC API ``{"verifiableCredential": ...}`` response body."""
    if isinstance(data, dict) and isinstance(data.get("verifiableCredential"), dict):
        return data["verifiableCredential"]
    return data


def create_initial_vc(
    issuer: Endpoint,
    vc: dict[str, Any],
    mandatory_pointers: list[str] | None = None,
    vc_version: str = "2.0",
) -> dict[str, Any] | None:
    """Issue a credential with an implementation's issuer.

    Args:
        issuer: The issuer endpoint.
        vc: The credential to be issued. It is not modified.
        mandatory_pointers: JSON pointers that must always be disclosed
            (selective disclosure suites only).
        vc_version: VC data model version of ``vc``.

    Returns:
        The issued credential, or None when issuance failed.
    """
    options = copy.deepcopy(issuer.settings.get("options", {}))
    credential = copy.deepcopy(vc)
    credential["id"] = f"urn:uuid:{uuid.uuid4()}"
    credential["issuer"] = issuer.id
    if _is_v1(vc_version):
        credential["issuanceDate"] = iso_timestamp()
    if isinstance(mandatory_pointers, list):
        options["mandatoryPointers"] = mandatory_pointers

    post = issuer.post(json={"credential": credential, "options": options})
    if not post.ok:
        logger.warning(
            "initial vc creation failed for %s: %s\n%s",
            post.request_url,
            post.error,
            json.dumps(post.data, indent=2),
        )
        return None
    return unwrap_credential(post.data)


def create_disclosed_vc(
    signed_credential: dict[str, Any],
    vc_holder: Endpoint,
    selective_pointers: list[str] | None = None,
) -> dict[str, Any]:
    """Derive a selectively disclosed credential with a holder.

    Returns:
        ``{"disclosedCredential": data}``; data is whatever the holder
        returned, even on failure.
    """
    post = vc_holder.post(json={
        "options": {"selectivePointers": selective_pointers or []},
        "verifiableCredential": signed_credential,
    })
    if not post.ok:
        logger.warning(
            "derived vc creation failed for %s: %s\n%s",
            post.request_url,
            post.error,
            json.dumps(post.data, indent=2),
        )
    return {"disclosedCredential": unwrap_credential(post.data)}


def endpoint_check(
    endpoint: Endpoint,
    vc_version: str,
    key_type: str | None = None,
) -> bool:
    """Check an endpoint declares support for a VC version and key type."""
    settings = endpoint.settings
    # assume support for vc 2.0
    supports = settings.get("supports", {"vc": ["2.0"]})
    key_types = settings.get("supportedEcdsaKeyTypes") or supports.get("keyTypes")
    if key_type and key_type not in (key_types or []):
        return False
    return vc_version in supports.get("vc", [])


def filter_verifiers(
    implementation: Implementation,
    *,
    tags: list[str],
    vc: Mapping[str, str],
) -> list[Endpoint]:
    """Verifiers with every tag that support ``vc["version"]``.

    Endpoints without ``supports`` are assumed to support ``vc["default"]``.
    Bind the keyword arguments with ``functools.partial`` to use this as an
    :meth:`ImplementationRegistry.filter` callback.
    """
    endpoints = []
    for endpoint in implementation.verifiers:
        if not all(tag in endpoint.tags for tag in tags):
            continue
        supports = endpoint.settings.get("supports", {"vc": [vc["default"]]})
        if vc["version"] in supports.get("vc", []):
            endpoints.append(endpoint)
    return endpoints


def is_valid_utf8(string: str) -> bool:
    try:
        string.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def is_valid_datetime(date_string: Any) -> bool:
    if not isinstance(date_string, str):
        return False
    try:
        datetime.fromisoformat(date_string)
    except ValueError:
        return False
    return True


def create_valid_credential(version: int = 2) -> dict[str, Any] | None:
    """Build a minimal unsigned credential for VC 1.1 (``1``) or 2.0 (``2``)."""
    credential = {
        "type": ["VerifiableCredential"],
        "id": f"urn:uuid:{uuid.uuid4()}",
        "credentialSubject": {"id": "did:example:alice"},
    }
    if version == 1:
        return {
            "@context": [VC_V1_CONTEXT, DATA_INTEGRITY_V2_CONTEXT],
            "issuanceDate": iso_timestamp(),
            **credential,
        }
    if version == 2:
        return {"@context": [VC_V2_CONTEXT], **credential}
    return None


def get_vc_version(credential: dict[str, Any]) -> str:
    """"1.1" for credentials using the VC 1.1 context, "2.0" otherwise."""
    contexts = credential.get("@context", [])
    if isinstance(contexts, str):
        contexts = [contexts]
    return "1.1" if VC_V1_CONTEXT in contexts else "2.0"


def credential_for_version(vc_version: str) -> dict[str, Any] | None:
    """Minimal credential for a "1.1" / "2.0" style version string."""
    return create_valid_credential(1 if _is_v1(vc_version) else 2)


def get_proofs(issued_vc: Any) -> list[dict[str, Any]]:
    """Proofs of a credential as a list (empty for anything without one)."""
    if not isinstance(issued_vc, dict):
        return []
    proof = issued_vc.get("proof")
    if not proof:
        return []
    return proof if isinstance(proof, list) else [proof]
