"""Tests for conformance assertions."""

import copy

import pytest
from httpx import Response
from multiformats import multibase

from di_ecdsa_suite import assertions
from di_ecdsa_suite.cryptosuites import (
    ECDSA_JCS_2019,
    ECDSA_SD_2023,
    SD_BASE_PROOF_HEADER,
    SD_DERIVED_PROOF_HEADER,
    get_suite,
)
from di_ecdsa_suite.endpoints import PostResult
from di_ecdsa_suite.keys import MultikeyPair


@pytest.fixture
def jcs_credential(unsigned_credential):
    key = MultikeyPair.generate("P-256")
    credential = copy.deepcopy(unsigned_credential)
    credential["issuer"] = key.issuer
    credential["proof"] = get_suite(ECDSA_JCS_2019).create_proof(credential, key)
    return credential


def post_result(status_code, data=None):
    return PostResult(
        data=data,
        result=Response(status_code, json=data),
        error=None,
        request_url="https://vendor.example/credentials/verify",
    )


class TestMultikey:
    @pytest.mark.parametrize("key_type", ["P-256", "P-384"])
    def test_valid(self, key_type):
        key = MultikeyPair.generate(key_type)
        assertions.assert_multikey(key.public_key_multibase, key_type)

    def test_wrong_key_type(self):
        key = MultikeyPair.generate("P-256")
        with pytest.raises(AssertionError, match="z82L"):
            assertions.assert_multikey(key.public_key_multibase, "P-384")

    def test_not_base58(self):
        with pytest.raises(AssertionError, match="base58btc"):
            assertions.assert_multikey("zDna0OIl", "P-256")

    def test_not_a_string(self):
        with pytest.raises(AssertionError):
            assertions.assert_multikey(None, "P-256")

    def test_should_be_bs58(self):
        assert assertions.should_be_bs58("DnaeWgbpcUat3V")
        assert not assertions.should_be_bs58("0OIl")


class TestProofs:
    def test_find_proof(self, jcs_credential):
        proof = assertions.find_proof(jcs_credential, get_suite(ECDSA_JCS_2019))
        assert proof["cryptosuite"] == ECDSA_JCS_2019

    def test_find_proof_other_cryptosuite(self, jcs_credential):
        with pytest.raises(AssertionError, match="ecdsa-sd-2023"):
            assertions.find_proof(jcs_credential, get_suite(ECDSA_SD_2023))

    def test_missing_proof(self, unsigned_credential):
        with pytest.raises(AssertionError, match="proof"):
            assertions.assert_has_proof(unsigned_credential)

    def test_data_integrity_proof(self, jcs_credential):
        assertions.assert_data_integrity_proof(
            jcs_credential["proof"], get_suite(ECDSA_JCS_2019), key_type="P-256"
        )

    def test_signature_size_for_key_type(self, jcs_credential):
        with pytest.raises(AssertionError, match="96 bytes"):
            assertions.assert_proof_value(
                jcs_credential["proof"], get_suite(ECDSA_JCS_2019), key_type="P-384"
            )

    def test_wrong_proof_purpose(self, jcs_credential):
        jcs_credential["proof"]["proofPurpose"] = "authentication"
        with pytest.raises(AssertionError, match="proofPurpose"):
            assertions.assert_data_integrity_proof(
                jcs_credential["proof"], get_suite(ECDSA_JCS_2019)
            )

    def test_sd_proof_headers(self):
        suite = get_suite(ECDSA_SD_2023)
        base = {"proofValue": multibase.encode(SD_BASE_PROOF_HEADER + b"\x01", "base64url")}
        derived = {
            "proofValue": multibase.encode(SD_DERIVED_PROOF_HEADER + b"\x01", "base64url")
        }

        assertions.assert_proof_value(base, suite)
        assertions.assert_proof_value(derived, suite, derived=True)
        with pytest.raises(AssertionError, match="derived proof header"):
            assertions.assert_proof_value(base, suite, derived=True)

    def test_sd_proof_value_must_be_base64url(self, jcs_credential):
        with pytest.raises(AssertionError, match="'u'"):
            assertions.assert_proof_value(jcs_credential["proof"], get_suite(ECDSA_SD_2023))


class TestVerificationResults:
    def test_succeeded(self):
        assertions.assert_verification_succeeded(post_result(200, {"verified": True}))
        with pytest.raises(AssertionError):
            assertions.assert_verification_succeeded(post_result(400))

    def test_failed(self):
        assertions.assert_verification_failed(post_result(400, {"verified": False}))
        with pytest.raises(AssertionError, match="4xx"):
            assertions.assert_verification_failed(post_result(200))
        with pytest.raises(AssertionError, match="4xx"):
            assertions.assert_verification_failed(post_result(500))

    def test_no_response(self):
        post = PostResult(None, None, None, "https://vendor.example/verify")
        with pytest.raises(AssertionError, match="Expected a response"):
            assertions.assert_verification_failed(post)


class TestPointers:
    document = {
        "issuer": "did:example:issuer",
        "credentialSubject": {"a/b": 1, "m~n": 2, "list": ["x", "y"]},
    }

    @pytest.mark.parametrize(
        "pointer,expected",
        [
            ("/issuer", "did:example:issuer"),
            ("/credentialSubject/a~1b", 1),
            ("/credentialSubject/m~0n", 2),
            ("/credentialSubject/list/1", "y"),
        ],
    )
    def test_resolve(self, pointer, expected):
        assert assertions.resolve_pointer(self.document, pointer) == expected

    def test_resolve_whole_document(self):
        assert assertions.resolve_pointer(self.document, "") is self.document

    @pytest.mark.parametrize("pointer", ["/missing", "/credentialSubject/list/5", "issuer"])
    def test_unresolvable(self, pointer):
        with pytest.raises(KeyError):
            assertions.resolve_pointer(self.document, pointer)

    def test_assert_disclosed(self):
        assertions.assert_disclosed(self.document, ["/issuer", "/credentialSubject"])
        with pytest.raises(AssertionError, match="/validFrom"):
            assertions.assert_disclosed(self.document, ["/validFrom"])


@pytest.mark.parametrize("mutation", list(assertions.VERIFY_ERROR_MUTATIONS))
def test_mutations_copy_and_change_credential(jcs_credential, mutation):
    original = copy.deepcopy(jcs_credential)
    mutated = assertions.mutate(jcs_credential, mutation)

    assert mutated != original
    assert jcs_credential == original


def test_unknown_mutation(jcs_credential):
    with pytest.raises(KeyError):
        assertions.mutate(jcs_credential, "nothing")
