"""
Test configuration.

Loads the runner configuration describing, per cryptosuite, which
implementations to test (by tag), which key types and VC versions to
exercise, and which JSON pointers are mandatory or selectively disclosed.
"""

from __future__ import annotations

import copy
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

DEFAULT_REFERENCE_NAME = "Digital Bazaar"
DEFAULT_RUNNER_CONFIG = Path(__file__).parent / "data" / "runner.json"


class ConfigError(Exception):
    """Raised when the runner configuration is missing or invalid."""


def issuer_name() -> str:
    """Name of the implementation whose issuer creates reference test data."""
    return os.environ.get("ISSUER_NAME", DEFAULT_REFERENCE_NAME)


def holder_name() -> str:
    """Name of the implementation whose holder derives reference test data."""
    return os.environ.get("HOLDER_NAME", DEFAULT_REFERENCE_NAME)


def verifier_name() -> str:
    """Name of the implementation whose verifier checks issued credentials."""
    return os.environ.get("VERIFIER_NAME", DEFAULT_REFERENCE_NAME)


def runner_config_path() -> Path:
    """Path of the runner JSON file (``RUNNER_CONFIG`` overrides the bundled one)."""
    override = os.environ.get("RUNNER_CONFIG")
    if override:
        return Path(override)
    return DEFAULT_RUNNER_CONFIG


@lru_cache(maxsize=None)
def _load_json(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    try:
        with path.open() as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def load_runner_config(path: Path | None = None) -> dict[str, Any]:
    """Load the runner configuration.

    Args:
        path: Runner JSON file. Defaults to :func:`runner_config_path`.

    Returns:
        A deep copy of the parsed configuration.

    Raises:
        ConfigError: If the file is missing or is not valid JSON.
    """
    path = path or runner_config_path()
    config = copy.deepcopy(_load_json(path.resolve()))
    if not isinstance(config.get("suites"), dict):
        raise ConfigError(f"Runner config {path} has no 'suites' object")
    return config


def get_suite_config(suite: str, path: Path | None = None) -> dict[str, Any]:
    """Get the configuration for one cryptosuite.

    When the suite names an ``issuerDocument`` it is replaced by the parsed
    document, resolved relative to the runner file.

    Args:
        suite: Cryptosuite name (e.g. "ecdsa-sd-2023").
        path: Runner JSON file. Defaults to :func:`runner_config_path`.

    Returns:
        A deep copy of the suite configuration.

    Raises:
        ConfigError: If the suite is not configured.
    """
    path = path or runner_config_path()
    suite_config = load_runner_config(path)["suites"].get(suite)
    if not suite_config:
        raise ConfigError(f"Could not find config for suite {suite}")

    issuer_document = suite_config.get("issuerDocument")
    if issuer_document:
        document_path = Path(issuer_document)
        if not document_path.is_absolute():
            document_path = path.resolve().parent / document_path
        suite_config["issuerDocument"] = copy.deepcopy(
            _load_json(document_path.resolve())
        )

    return suite_config


def configured_suites(path: Path | None = None) -> list[str]:
    """Names of every cryptosuite in the runner configuration."""
    return list(load_runner_config(path)["suites"])
