"""ecdsa-sd-2023 verifiers conformance."""

from di_ecdsa_suite.conformance import SelectiveDisclosureVerifierConformance
from di_ecdsa_suite.reporting import (
    get_column_name_for_test_category,
    setup_reportable_test_suite,
)


class TestEcdsaSd2023Verifiers(SelectiveDisclosureVerifierConformance):
    """ecdsa-sd-2023 (verifiers)"""

    suite_name = "ecdsa-sd-2023"


setup_reportable_test_suite(TestEcdsaSd2023Verifiers, get_column_name_for_test_category("verifiers"))
