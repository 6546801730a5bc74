"""Shared fixtures for the unit tests."""

import pytest

from di_ecdsa_suite.endpoints import ImplementationRegistry

pytest_plugins = ["pytester"]

ISSUER_URL = "https://vendor.example/credentials/issue"
SD_ISSUER_URL = "https://vendor.example/sd/credentials/issue"
VERIFIER_URL = "https://vendor.example/credentials/verify"
HOLDER_URL = "https://vendor.example/credentials/derive"
ISSUER_DID = "did:key:zDnaeWgbpcUat3VPa1GtNYiLUmQHumYbXF2TNrtBPrgJRbjKN"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "RUNNER_CONFIG",
        "IMPLEMENTATIONS_DIR",
        "ISSUER_NAME",
        "HOLDER_NAME",
        "VERIFIER_NAME",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def manifest():
    """An implementation manifest named after the default reference implementation."""
    return {
        "name": "Digital Bazaar",
        "implementation": "Veres Issuer",
        "issuers": [
            {
                "id": ISSUER_DID,
                "endpoint": ISSUER_URL,
                "tags": ["ecdsa-rdfc-2019", "ecdsa-jcs-2019"],
                "supportedEcdsaKeyTypes": ["P-256", "P-384"],
                "supports": {"vc": ["1.1", "2.0"]},
            },
            {
                "id": ISSUER_DID,
                "endpoint": SD_ISSUER_URL,
                "tags": ["ecdsa-sd-2023"],
                "supportedEcdsaKeyTypes": ["P-256"],
            },
        ],
        "verifiers": [
            {
                "endpoint": VERIFIER_URL,
                "tags": ["ecdsa-rdfc-2019", "ecdsa-jcs-2019", "ecdsa-sd-2023"],
                "supportedEcdsaKeyTypes": ["P-256", "P-384"],
            },
        ],
        "vcHolders": [
            {"endpoint": HOLDER_URL, "tags": ["ecdsa-sd-2023"]},
        ],
    }


@pytest.fixture
def registry(manifest):
    return ImplementationRegistry.from_manifests([manifest])


@pytest.fixture
def unsigned_credential():
    return {
        "@context": ["https://www.w3.org/ns/credentials/v2"],
        "id": "urn:uuid:58172aac-d8ba-11ed-83dd-0b3aef56cc33",
        "type": ["VerifiableCredential"],
        "validFrom": "2025-01-01T00:00:00Z",
        "credentialSubject": {
            "id": "did:example:holder",
            "name": "Test User",
        },
    }
