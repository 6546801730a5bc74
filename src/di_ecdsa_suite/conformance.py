"""
Shared conformance tests.

Test modules under ``di_ecdsa_suite.suites`` subclass these classes with a
``suite_name``; ``suites/conftest.py`` parametrizes them with the
implementations that qualify for that cryptosuite.
"""

from __future__ import annotations

import copy
import functools
from dataclasses import dataclass
from typing import Any, Iterator

import pytest

from di_ecdsa_suite import assertions
from di_ecdsa_suite.config import get_suite_config, holder_name, verifier_name
from di_ecdsa_suite.cryptosuites import Cryptosuite, get_suite
from di_ecdsa_suite.did_resolver import DIDResolutionError, DIDResolver
from di_ecdsa_suite.endpoints import Endpoint, ImplementationRegistry
from di_ecdsa_suite.helpers import (
    create_disclosed_vc,
    credential_for_version,
    endpoint_check,
    filter_verifiers,
    get_vc_version,
    is_valid_datetime,
)
from di_ecdsa_suite.reporting import annotate_reportable_test

DEFAULT_VC_VERSION = "2.0"


@dataclass(frozen=True)
class EndpointCase:
    """One endpoint exercised with one key type and VC version."""

    suite: str
    implementation_name: str
    endpoint: Endpoint
    key_type: str
    vc_version: str

    def __str__(self) -> str:
        return f"{self.implementation_name}-{self.key_type}-vc{self.vc_version}"


def issuer_cases(suite: str, registry: ImplementationRegistry) -> Iterator[EndpointCase]:
    """Issuers tagged for ``suite`` that support each key type and VC version."""
    suite_config = get_suite_config(suite)
    match, _ = registry.filter_by_tag(suite_config["tags"], property="issuers")
    for name, implementation in match.items():
        for endpoint in implementation.issuers:
            for vc_version in suite_config.get("vcVersions", [DEFAULT_VC_VERSION]):
                for key_type in suite_config.get("keyTypes", ["P-256"]):
                    if endpoint_check(endpoint, vc_version, key_type):
                        yield EndpointCase(suite, name, endpoint, key_type, vc_version)


def verifier_cases(suite: str, registry: ImplementationRegistry) -> Iterator[EndpointCase]:
    """Verifiers tagged for ``suite``, per supported VC version and key type."""
    suite_config = get_suite_config(suite)
    for vc_version in suite_config.get("vcVersions", [DEFAULT_VC_VERSION]):
        match, _ = registry.filter(
            functools.partial(
                filter_verifiers,
                tags=suite_config["tags"],
                vc={"default": DEFAULT_VC_VERSION, "version": vc_version},
            ),
            property="verifiers",
        )
        for name, implementation in match.items():
            for endpoint in implementation.verifiers:
                for key_type in suite_config.get("keyTypes", ["P-256"]):
                    if endpoint.key_types and key_type not in endpoint.key_types:
                        continue
                    yield EndpointCase(suite, name, endpoint, key_type, vc_version)


def verify(endpoint: Endpoint, credential: dict[str, Any]):
    """POST a credential to a verifier, checking its proof."""
    return endpoint.post(json={
        "verifiableCredential": credential,
        "options": {"checks": ["proof"]},
    })


class IssuerConformance:
    """Issuer conformance for one cryptosuite."""

    suite_name: str

    @property
    def cryptosuite(self) -> Cryptosuite:
        return get_suite(self.suite_name)

    @pytest.fixture(autouse=True)
    def _annotate(self, request, issuer_case: EndpointCase) -> None:
        annotate_reportable_test(
            request,
            implementation_name=issuer_case.implementation_name,
            key_type=issuer_case.key_type,
        )

    def test_issues_credential_with_proof(self, issued_vc):
        """Issuer MUST issue a credential with a proof."""
        assertions.assert_has_proof(issued_vc)

    def test_proof_type(self, issued_vc):
        """The field "proof.type" MUST be "DataIntegrityProof"."""
        proofs = assertions.assert_has_proof(issued_vc)
        assert any(p.get("type") == "DataIntegrityProof" for p in proofs), (
            'Expected a proof with type "DataIntegrityProof"'
        )

    def test_cryptosuite(self, issued_vc):
        """The field "proof.cryptosuite" MUST be the suite's name."""
        assertions.find_proof(issued_vc, self.cryptosuite)

    def test_proof_shape(self, issued_vc, issuer_case: EndpointCase):
        """The proof MUST be a well-formed DataIntegrityProof."""
        proof = assertions.find_proof(issued_vc, self.cryptosuite)
        assertions.assert_data_integrity_proof(
            proof, self.cryptosuite, key_type=issuer_case.key_type
        )

    def test_proof_value_encoding(self, issued_vc, issuer_case: EndpointCase):
        """The field "proof.proofValue" MUST use the suite's multibase encoding."""
        proof = assertions.find_proof(issued_vc, self.cryptosuite)
        assertions.assert_proof_value(
            proof, self.cryptosuite, key_type=issuer_case.key_type
        )

    def test_created(self, issued_vc):
        """If present, "proof.created" MUST be a valid dateTimeStamp."""
        proof = assertions.find_proof(issued_vc, self.cryptosuite)
        if "created" not in proof:
            pytest.skip("proof has no created")
        assert is_valid_datetime(proof["created"]), (
            "Expected proof.created to be a valid dateTimeStamp"
        )

    def test_verification_method_is_multikey(
        self, issued_vc, issuer_case: EndpointCase, did_resolver: DIDResolver
    ):
        """Dereferencing "verificationMethod" MUST result in a Multikey of the key type."""
        proof = assertions.find_proof(issued_vc, self.cryptosuite)
        try:
            vm = did_resolver.dereference(proof.get("verificationMethod", ""))
        except DIDResolutionError as e:
            pytest.fail(f"Could not dereference verificationMethod: {e}")
        assert vm.type == "Multikey", (
            f'Expected verification method type "Multikey", got "{vm.type}"'
        )
        assertions.assert_multikey(vm.public_key_multibase, issuer_case.key_type)

    def test_verification_method_is_assertion_method(
        self, issued_vc, did_resolver: DIDResolver
    ):
        """The "verificationMethod" MUST be an assertion method of its controller."""
        proof = assertions.find_proof(issued_vc, self.cryptosuite)
        try:
            did_resolver.dereference(
                proof.get("verificationMethod", ""), proof_purpose="assertionMethod"
            )
        except DIDResolutionError as e:
            pytest.fail(str(e))

    def test_verifies_with_reference_verifier(
        self, issued_vc, issuer_case: EndpointCase, registry: ImplementationRegistry
    ):
        """The issued credential MUST verify with a conformant verifier."""
        verifier = registry.find_endpoint(
            verifier_name(),
            "verifiers",
            tags=[self.suite_name],
            key_type=issuer_case.key_type,
        )
        if verifier is None:
            pytest.skip(f"No {self.suite_name} verifier from {verifier_name()}")
        assertions.assert_verification_succeeded(verify(verifier, issued_vc))


class VerifierConformance:
    """Verifier conformance for one cryptosuite."""

    suite_name: str

    @pytest.fixture(autouse=True)
    def _annotate(self, request, verifier_case: EndpointCase) -> None:
        annotate_reportable_test(
            request,
            implementation_name=verifier_case.implementation_name,
            key_type=verifier_case.key_type,
        )

    def test_verifies_valid_credential(self, verifier_case: EndpointCase, secured_vc):
        """Verifier MUST verify a valid credential."""
        post = verify(verifier_case.endpoint, secured_vc)
        assertions.assert_verification_succeeded(post)

    def test_rejects_invalid_credential(
        self, verifier_case: EndpointCase, secured_vc, mutation: str
    ):
        """Verifier MUST reject a credential when the {mutation}."""
        post = verify(verifier_case.endpoint, assertions.mutate(secured_vc, mutation))
        assertions.assert_verification_failed(post)


class SelectiveDisclosureVerifierConformance(VerifierConformance):
    """Verifier conformance for ecdsa-sd-2023 derived credentials."""

    def test_rejects_base_proof(self, verifier_case: EndpointCase, base_vc):
        """Verifier MUST reject a credential secured with a base proof."""
        post = verify(verifier_case.endpoint, base_vc)
        assertions.assert_verification_failed(post)


class SelectiveDisclosureIssuerConformance(IssuerConformance):
    """Issuer conformance for ecdsa-sd-2023 base proofs."""

    def _derive(self, issued_vc, registry: ImplementationRegistry) -> dict[str, Any]:
        holder = registry.find_endpoint(holder_name(), "vcHolders", tags=[self.suite_name])
        if holder is None:
            pytest.skip(f"No {self.suite_name} holder from {holder_name()}")
        suite_config = get_suite_config(self.suite_name)
        disclosed = create_disclosed_vc(
            signed_credential=issued_vc,
            vc_holder=holder,
            selective_pointers=suite_config.get("selectivePointers", []),
        )["disclosedCredential"]
        assert isinstance(disclosed, dict) and disclosed.get("proof"), (
            "Expected the holder to derive a credential from the base proof"
        )
        return disclosed

    def test_derives_with_reference_holder(
        self, issued_vc, issuer_case: EndpointCase, registry: ImplementationRegistry
    ):
        """A conformant holder MUST derive a disclosed credential from the base proof."""
        disclosed = self._derive(issued_vc, registry)
        proof = assertions.find_proof(disclosed, self.cryptosuite)
        assertions.assert_proof_value(proof, self.cryptosuite, derived=True)
        suite_config = get_suite_config(self.suite_name)
        assertions.assert_disclosed(
            disclosed,
            suite_config.get("mandatoryPointers", [])
            + suite_config.get("selectivePointers", []),
        )

    def test_verifies_with_reference_verifier(
        self, issued_vc, issuer_case: EndpointCase, registry: ImplementationRegistry
    ):
        """The derived credential MUST verify with a conformant verifier."""
        assertions.assert_has_proof(issued_vc)
        verifier = registry.find_endpoint(
            verifier_name(),
            "verifiers",
            tags=[self.suite_name],
            key_type=issuer_case.key_type,
        )
        if verifier is None:
            pytest.skip(f"No {self.suite_name} verifier from {verifier_name()}")
        disclosed = self._derive(issued_vc, registry)
        assertions.assert_verification_succeeded(verify(verifier, disclosed))


def credential_for_suite(suite_config: dict[str, Any], vc_version: str) -> dict[str, Any]:
    """The suite's ``issuerDocument`` when it matches ``vc_version``, else a minimal VC."""
    document = suite_config.get("issuerDocument")
    if isinstance(document, dict) and get_vc_version(document) == get_vc_version(
        credential_for_version(vc_version)
    ):
        return copy.deepcopy(document)
    return credential_for_version(vc_version)
