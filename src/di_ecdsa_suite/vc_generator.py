"""
Test data generation.

ecdsa-rdfc-2019 and ecdsa-jcs-2019 credentials are signed locally with
freshly generated did:key Multikeys. ecdsa-sd-2023 credentials are issued
and derived by the reference implementation (``ISSUER_NAME`` /
``HOLDER_NAME``) over the VC API.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from di_ecdsa_suite.config import holder_name, issuer_name
from di_ecdsa_suite.cryptosuites import CryptosuiteError, get_suite
from di_ecdsa_suite.documentloader import DocumentLoader
from di_ecdsa_suite.endpoints import ImplementationRegistry, load_registry
from di_ecdsa_suite.helpers import (
    create_disclosed_vc,
    create_initial_vc,
    get_proofs,
    get_vc_version,
)
from di_ecdsa_suite.keys import get_multikeys

logger = logging.getLogger(__name__)


def issue_test_data(
    credential: dict[str, Any],
    suite: str,
    mandatory_pointers: list[str] | None = None,
    key_types: list[str] | None = None,
    registry: ImplementationRegistry | None = None,
    document_loader: DocumentLoader | None = None,
) -> dict[str, dict[str, Any]]:
    """Issue test data for each key type.

    Args:
        credential: An unsigned VC. It is not modified.
        suite: A cryptosuite name.
        mandatory_pointers: JSON pointers always disclosed (ecdsa-sd-2023).
        key_types: Key types to issue with. Defaults to ``["P-256"]``.
        registry: Implementations holding the reference issuer
            (ecdsa-sd-2023 only). Defaults to :func:`load_registry`.
        document_loader: JSON-LD document loader (ecdsa-rdfc-2019 only).

    Returns:
        Signed credentials keyed by key type. Key types the reference
        issuer could not issue for are missing.
    """
    key_types = key_types or ["P-256"]
    cryptosuite = get_suite(suite, mandatory_pointers=mandatory_pointers)
    results: dict[str, dict[str, Any]] = {}

    if cryptosuite.signs_locally:
        for key_type, key in get_multikeys(key_types).items():
            _credential = copy.deepcopy(credential)
            _credential["issuer"] = key.issuer
            _credential["proof"] = cryptosuite.create_proof(
                _credential, key, document_loader=document_loader
            )
            results[key_type] = _credential
        return results

    registry = registry if registry is not None else load_registry()
    for key_type in key_types:
        issuer = registry.find_endpoint(
            issuer_name(), "issuers", tags=[suite], key_type=key_type
        )
        if issuer is None:
            logger.warning(
                "No %s issuer for %s from %s", suite, key_type, issuer_name()
            )
            continue
        issued = create_initial_vc(
            issuer=issuer,
            vc=credential,
            mandatory_pointers=list(cryptosuite.mandatory_pointers),
            vc_version=get_vc_version(credential),
        )
        if isinstance(issued, dict):
            results[key_type] = issued
    return results


def derive_test_data(
    verifiable_credential: dict[str, Any],
    suite: str,
    selective_pointers: list[str] | None = None,
    key_types: list[str] | None = None,
    registry: ImplementationRegistry | None = None,
) -> dict[str, dict[str, Any]]:
    """Derive selectively disclosed test data with the reference holder.

    Args:
        verifiable_credential: A VC secured with an ecdsa-sd-2023 base proof.
        suite: A cryptosuite name; must be ecdsa-sd-2023.
        selective_pointers: JSON pointers to disclose.
        key_types: Key types the results are keyed by.
        registry: Implementations holding the reference holder.

    Returns:
        Derived credentials keyed by key type.

    Raises:
        CryptosuiteError: If the cryptosuite has no derived proofs.
    """
    key_types = key_types or ["P-256"]
    cryptosuite = get_suite(suite, selective_pointers=selective_pointers)
    if not cryptosuite.is_selective_disclosure:
        raise CryptosuiteError(f"{suite} does not support derived proofs")

    registry = registry if registry is not None else load_registry()
    holder = registry.find_endpoint(holder_name(), "vcHolders", tags=[suite])
    if holder is None:
        logger.warning("No %s holder from %s", suite, holder_name())
        return {}

    results: dict[str, dict[str, Any]] = {}
    for key_type in key_types:
        disclosed = create_disclosed_vc(
            signed_credential=verifiable_credential,
            vc_holder=holder,
            selective_pointers=list(cryptosuite.selective_pointers),
        )["disclosedCredential"]
        # holders answer failures with an error body, JSON or not
        if isinstance(disclosed, dict) and get_proofs(disclosed):
            results[key_type] = disclosed
    return results
