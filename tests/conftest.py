"""Shared test fixtures for spectool.

Provides reusable fixtures for loading API description fixtures, creating
isolated config environments, managing output state, and running CLI
commands. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from spectool.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()

    # configure_logging() binds a handler to the runner's stderr, which is
    # closed once the invocation ends.
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_30_text() -> str:
    """Raw text of the petstore OpenAPI 3.0 fixture."""
    return (FIXTURES_DIR / "petstore_3.0.json").read_text(encoding="utf-8")


@pytest.fixture
def petstore_30_raw(petstore_30_text: str) -> dict[str, Any]:
    """Decoded petstore OpenAPI 3.0 fixture."""
    return json.loads(petstore_30_text)


@pytest.fixture
def swagger_20_text() -> str:
    """Raw YAML text of the Swagger 2.0 fixture."""
    return (FIXTURES_DIR / "swagger_2.0.yaml").read_text(encoding="utf-8")


@pytest.fixture
def petstore_path() -> Path:
    return FIXTURES_DIR / "petstore_3.0.json"


@pytest.fixture
def swagger_path() -> Path:
    return FIXTURES_DIR / "swagger_2.0.yaml"


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config. Clears all SPECTOOL_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("spectool.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["SPECTOOL_BASE_URL", "SPECTOOL_TEMPLATE_ENGINE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
