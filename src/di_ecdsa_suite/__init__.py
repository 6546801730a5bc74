"""
ECDSA Data Integrity conformance test suite.

Tests VC API issuers and verifiers for:
- ecdsa-rdfc-2019 (RDF Dataset Canonicalization)
- ecdsa-jcs-2019 (JSON Canonicalization Scheme)
- ecdsa-sd-2023 (selective disclosure)
- P-256 and P-384 Multikeys
"""

from di_ecdsa_suite.config import ConfigError, get_suite_config
from di_ecdsa_suite.cryptosuites import Cryptosuite, CryptosuiteError, get_suite
from di_ecdsa_suite.did_resolver import DIDResolutionError, DIDResolver
from di_ecdsa_suite.endpoints import ImplementationRegistry, load_registry
from di_ecdsa_suite.keys import MultikeyPair
from di_ecdsa_suite.reporting import Report, ReportMatrix
from di_ecdsa_suite.vc_generator import derive_test_data, issue_test_data

__version__ = "0.1.0"

__all__ = [
    "get_suite_config",
    "ConfigError",
    "get_suite",
    "Cryptosuite",
    "CryptosuiteError",
    "DIDResolver",
    "DIDResolutionError",
    "load_registry",
    "ImplementationRegistry",
    "MultikeyPair",
    "Report",
    "ReportMatrix",
    "issue_test_data",
    "derive_test_data",
]
