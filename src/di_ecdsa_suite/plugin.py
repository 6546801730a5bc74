"""
pytest plugin: suite options and results matrix collection.

Load with ``pytest -p di_ecdsa_suite.plugin``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

pytest.register_assert_rewrite("di_ecdsa_suite.assertions")

from di_ecdsa_suite.endpoints import ImplementationRegistry, load_registry  # noqa: E402
from di_ecdsa_suite.reporting import Report, get_cell  # noqa: E402

logger = logging.getLogger(__name__)

report_key = pytest.StashKey[Report]()
registry_key = pytest.StashKey[ImplementationRegistry]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("di-ecdsa", "ECDSA Data Integrity conformance")
    group.addoption(
        "--implementations-dir",
        default=os.environ.get("IMPLEMENTATIONS_DIR", "implementations"),
        help="Directory of implementation manifests",
    )
    group.addoption(
        "--http-timeout",
        type=float,
        default=30.0,
        help="HTTP request timeout in seconds",
    )
    group.addoption(
        "--report-json",
        default=None,
        help="Write the results matrix to this JSON file",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.stash[report_key] = Report()


def get_registry(config: pytest.Config) -> ImplementationRegistry:
    """The session's implementation registry, loaded on first use."""
    if registry_key not in config.stash:
        path = config.getoption("implementations_dir", default=None)
        timeout = config.getoption("http_timeout", default=None) or 30.0
        config.stash[registry_key] = load_registry(
            Path(path) if path else None, timeout=timeout
        )
    return config.stash[registry_key]


def get_report(config: pytest.Config) -> Report:
    if report_key not in config.stash:
        config.stash[report_key] = Report()
    return config.stash[report_key]


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo):
    outcome = yield
    report = outcome.get_result()

    context = getattr(item, "cls", None)
    if not getattr(context, "report", False):
        return
    # a skip or error during setup still fills the cell
    if report.when != "call" and (report.when != "setup" or report.passed):
        return
    cell = get_cell(item)
    if cell is None:
        return

    get_report(item.config).matrix_for(context).record(cell, report.outcome)
    implemented = getattr(context, "implemented", None)
    if implemented is not None and cell["columnId"] not in implemented:
        implemented.append(cell["columnId"])


def pytest_terminal_summary(terminalreporter, exitstatus, config: pytest.Config) -> None:
    report = get_report(config)
    if not report.matrices:
        return
    terminalreporter.section("results matrix")
    for matrix in report.matrices.values():
        counts = matrix.counts()
        terminalreporter.write_line(
            f"{matrix.title}: {len(matrix.columns)} columns, "
            f"{counts['passed']} passed, {counts['failed']} failed, "
            f"{counts['skipped']} skipped"
        )


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    path = session.config.getoption("report_json", default=None)
    if not path:
        return
    get_report(session.config).save(Path(path))
    logger.info("Wrote results matrix to %s", path)
