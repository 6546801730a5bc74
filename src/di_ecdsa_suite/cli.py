"""
Command-line interface for the ECDSA Data Integrity test suite.

Usage:
    vc-di-ecdsa run --implementations-dir implementations/
    vc-di-ecdsa run -k sd_2023 --report-json reports/ecdsa.json
    vc-di-ecdsa report reports/ecdsa.json
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

import click
import pytest
from rich.console import Console
from rich.logging import RichHandler

from di_ecdsa_suite import __version__
from di_ecdsa_suite.reporting import Report, render_report


console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def build_pytest_args(
    implementations_dir: str | None,
    report_json: str | None,
    timeout: float,
    keyword: str | None,
    extra: tuple[str, ...] = (),
) -> list[str]:
    """Arguments that run the bundled suites with the reporting plugin."""
    args = ["--pyargs", "di_ecdsa_suite.suites", "-p", "di_ecdsa_suite.plugin"]
    args += ["--http-timeout", str(timeout)]
    if implementations_dir:
        args += ["--implementations-dir", implementations_dir]
    if report_json:
        args += ["--report-json", report_json]
    if keyword:
        args += ["-k", keyword]
    args += list(extra)
    return args


@click.group()
@click.version_option(__version__)
def main() -> None:
    """Conformance tests for the W3C ECDSA Data Integrity cryptosuites."""


@main.command(context_settings={"ignore_unknown_options": True})
@click.option(
    "--implementations-dir",
    type=click.Path(file_okay=False),
    envvar="IMPLEMENTATIONS_DIR",
    default=None,
    help="Directory of implementation manifests",
)
@click.option(
    "--runner-config",
    type=click.Path(exists=True, dir_okay=False),
    envvar="RUNNER_CONFIG",
    default=None,
    help="Suite runner configuration JSON",
)
@click.option(
    "--report-json",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the results matrix to this JSON file",
)
@click.option(
    "--timeout",
    type=float,
    default=30.0,
    help="HTTP request timeout in seconds",
)
@click.option("-k", "keyword", default=None, help="Only run tests matching this expression")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.argument("pytest_args", nargs=-1, type=click.UNPROCESSED)
def run(
    implementations_dir: str | None,
    runner_config: str | None,
    report_json: str | None,
    timeout: float,
    keyword: str | None,
    verbose: bool,
    pytest_args: tuple[str, ...],
) -> None:
    """Run the conformance suites against the configured implementations.

    Extra arguments are passed through to pytest.

    Examples:

        vc-di-ecdsa run --implementations-dir implementations/

        vc-di-ecdsa run -k "jcs_2019 and verifiers" -- -x
    """
    configure_logging(verbose)
    if runner_config:
        os.environ["RUNNER_CONFIG"] = runner_config

    args = build_pytest_args(
        implementations_dir, report_json, timeout, keyword, pytest_args
    )
    logging.getLogger(__name__).debug("pytest %s", " ".join(args))
    sys.exit(int(pytest.main(args)))


@main.command()
@click.argument("report_json", type=click.Path(exists=True, dir_okay=False))
def report(report_json: str) -> None:
    """Render a saved results matrix."""
    try:
        loaded = Report.load(Path(report_json))
    except (json.JSONDecodeError, KeyError) as e:
        raise click.ClickException(f"Invalid report {report_json}: {e}") from e
    render_report(loaded, console)


if __name__ == "__main__":
    main()
