"""ecdsa-jcs-2019 verifiers conformance."""

from di_ecdsa_suite.conformance import VerifierConformance
from di_ecdsa_suite.reporting import (
    get_column_name_for_test_category,
    setup_reportable_test_suite,
)


class TestEcdsaJcs2019Verifiers(VerifierConformance):
    """ecdsa-jcs-2019 (verifiers)"""

    suite_name = "ecdsa-jcs-2019"


setup_reportable_test_suite(TestEcdsaJcs2019Verifiers, get_column_name_for_test_category("verifiers"))
