"""Tests for the command-line interface."""

import os

import pytest
from click.testing import CliRunner

from di_ecdsa_suite import __version__, cli
from di_ecdsa_suite.reporting import Report, build_result_cell


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def pytest_calls(monkeypatch):
    # run exports RUNNER_CONFIG; restore it after the test
    monkeypatch.setenv("RUNNER_CONFIG", "")
    calls = []

    def fake_main(args):
        calls.append((args, os.environ.get("RUNNER_CONFIG")))
        return 1

    monkeypatch.setattr(cli.pytest, "main", fake_main)
    return calls


def test_version(runner):
    result = runner.invoke(cli.main, ["--version"])
    assert __version__ in result.output


def test_public_api():
    import di_ecdsa_suite

    assert di_ecdsa_suite.issue_test_data.__module__ == "di_ecdsa_suite.vc_generator"
    for name in di_ecdsa_suite.__all__:
        assert getattr(di_ecdsa_suite, name) is not None


def test_build_pytest_args():
    args = cli.build_pytest_args("impls", "out.json", 5.0, "jcs", ("-x",))

    assert args == [
        "--pyargs", "di_ecdsa_suite.suites",
        "-p", "di_ecdsa_suite.plugin",
        "--http-timeout", "5.0",
        "--implementations-dir", "impls",
        "--report-json", "out.json",
        "-k", "jcs",
        "-x",
    ]


def test_run(runner, pytest_calls, tmp_path):
    runner_config = tmp_path / "runner.json"
    runner_config.write_text('{"suites": {}}')

    result = runner.invoke(cli.main, [
        "run",
        "--implementations-dir", str(tmp_path),
        "--runner-config", str(runner_config),
        "-k", "sd_2023",
        "--", "-x",
    ])

    assert result.exit_code == 1
    [(args, runner_config_env)] = pytest_calls
    assert args[-3:] == ["-k", "sd_2023", "-x"]
    assert runner_config_env == str(runner_config)


def test_run_defaults(runner, pytest_calls):
    result = runner.invoke(cli.main, ["run"])

    assert result.exit_code == 1
    [(args, _)] = pytest_calls
    assert "--implementations-dir" not in args
    assert "--report-json" not in args


def test_report(runner, tmp_path):
    report = Report()
    matrix = report.matrix_for(type("Suite", (), {"report_title": "ecdsa-rdfc-2019 (verifiers)"}))
    matrix.record(build_result_cell("Vendor", "P-384", "Verifies a credential"), "passed")
    path = tmp_path / "report.json"
    report.save(path)

    result = runner.invoke(cli.main, ["report", str(path)])

    assert result.exit_code == 0
    assert "ecdsa-rdfc-2019 (verifiers)" in result.output
    assert "1 passed" in result.output


def test_report_invalid_json(runner, tmp_path):
    path = tmp_path / "report.json"
    path.write_text("{")

    result = runner.invoke(cli.main, ["report", str(path)])

    assert result.exit_code == 1
    assert "Invalid report" in result.output
