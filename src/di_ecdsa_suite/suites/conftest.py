"""Fixtures and parametrization for the conformance suites."""

import pytest

from di_ecdsa_suite.assertions import VERIFY_ERROR_MUTATIONS
from di_ecdsa_suite.config import get_suite_config
from di_ecdsa_suite.conformance import (
    credential_for_suite,
    issuer_cases,
    verifier_cases,
)
from di_ecdsa_suite.cryptosuites import get_suite
from di_ecdsa_suite.did_resolver import DIDResolver
from di_ecdsa_suite.documentloader import get_document_loader
from di_ecdsa_suite.helpers import create_initial_vc
from di_ecdsa_suite.plugin import get_registry
from di_ecdsa_suite.vc_generator import derive_test_data, issue_test_data


def pytest_generate_tests(metafunc):
    suite = getattr(metafunc.cls, "suite_name", None)
    if suite is None:
        return
    registry = get_registry(metafunc.config)
    if "issuer_case" in metafunc.fixturenames:
        metafunc.parametrize("issuer_case", list(issuer_cases(suite, registry)), ids=str)
    if "verifier_case" in metafunc.fixturenames:
        metafunc.parametrize("verifier_case", list(verifier_cases(suite, registry)), ids=str)
    if "mutation" in metafunc.fixturenames:
        metafunc.parametrize("mutation", list(VERIFY_ERROR_MUTATIONS))


def _timeout(config) -> float:
    return config.getoption("http_timeout", default=None) or 30.0


@pytest.fixture(scope="session")
def registry(request):
    return get_registry(request.config)


@pytest.fixture(scope="session")
def did_resolver(request):
    return DIDResolver(timeout=_timeout(request.config))


@pytest.fixture(scope="session")
def document_loader(request, did_resolver):
    return get_document_loader(resolver=did_resolver, timeout=_timeout(request.config))


@pytest.fixture(scope="session")
def vc_cache():
    """Issued and derived credentials shared by every test of a session."""
    return {}


@pytest.fixture
def issued_vc(issuer_case, vc_cache):
    """The credential the issuer under test issued (None when issuance failed)."""
    key = ("issued", issuer_case.suite, issuer_case.endpoint.url, str(issuer_case))
    if key not in vc_cache:
        suite_config = get_suite_config(issuer_case.suite)
        mandatory_pointers = None
        if get_suite(issuer_case.suite).is_selective_disclosure:
            mandatory_pointers = suite_config.get("mandatoryPointers", [])
        vc_cache[key] = create_initial_vc(
            issuer=issuer_case.endpoint,
            vc=credential_for_suite(suite_config, issuer_case.vc_version),
            mandatory_pointers=mandatory_pointers,
            vc_version=issuer_case.vc_version,
        )
    return vc_cache[key]


def _selective_disclosure_data(verifier_case, vc_cache, registry):
    key = ("sd", verifier_case.suite, verifier_case.vc_version, verifier_case.key_type)
    if key not in vc_cache:
        suite_config = get_suite_config(verifier_case.suite)
        issued = issue_test_data(
            credential=credential_for_suite(suite_config, verifier_case.vc_version),
            suite=verifier_case.suite,
            mandatory_pointers=suite_config.get("mandatoryPointers", []),
            key_types=[verifier_case.key_type],
            registry=registry,
        ).get(verifier_case.key_type)
        disclosed = None
        if issued is not None:
            disclosed = derive_test_data(
                verifiable_credential=issued,
                suite=verifier_case.suite,
                selective_pointers=suite_config.get("selectivePointers", []),
                key_types=[verifier_case.key_type],
                registry=registry,
            ).get(verifier_case.key_type)
        vc_cache[key] = {"base": issued, "disclosed": disclosed}
    return vc_cache[key]


@pytest.fixture
def secured_vc(verifier_case, vc_cache, registry, document_loader):
    """A valid credential for the verifier under test."""
    if get_suite(verifier_case.suite).is_selective_disclosure:
        vc = _selective_disclosure_data(verifier_case, vc_cache, registry)["disclosed"]
    else:
        key = ("local", verifier_case.suite, verifier_case.vc_version)
        if key not in vc_cache:
            suite_config = get_suite_config(verifier_case.suite)
            vc_cache[key] = issue_test_data(
                credential=credential_for_suite(suite_config, verifier_case.vc_version),
                suite=verifier_case.suite,
                key_types=suite_config.get("keyTypes", ["P-256"]),
                document_loader=document_loader,
            )
        vc = vc_cache[key].get(verifier_case.key_type)
    if vc is None:
        pytest.skip(f"No {verifier_case.suite} test data for {verifier_case.key_type}")
    return vc


@pytest.fixture
def base_vc(verifier_case, vc_cache, registry):
    """An ecdsa-sd-2023 credential still secured with its base proof."""
    vc = _selective_disclosure_data(verifier_case, vc_cache, registry)["base"]
    if vc is None:
        pytest.skip(f"No {verifier_case.suite} base proof for {verifier_case.key_type}")
    return vc
