"""ecdsa-sd-2023 issuers conformance."""

from di_ecdsa_suite.conformance import SelectiveDisclosureIssuerConformance
from di_ecdsa_suite.reporting import (
    get_column_name_for_test_category,
    setup_reportable_test_suite,
)


class TestEcdsaSd2023Issuers(SelectiveDisclosureIssuerConformance):
    """ecdsa-sd-2023 (issuers)"""

    suite_name = "ecdsa-sd-2023"


setup_reportable_test_suite(TestEcdsaSd2023Issuers, get_column_name_for_test_category("issuers"))
