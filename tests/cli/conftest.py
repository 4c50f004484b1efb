"""CLI test fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def ecc_config(tmp_path: Path) -> Path:
    """A configuration enabling PK parsing with builtin ECC."""
    path = tmp_path / "ecc.yaml"
    path.write_text(
        "flags:\n"
        "  MBEDTLS_PK_PARSE_C: true\n"
        "  MBEDTLS_ECP_C: true\n"
        "  MBEDTLS_ECDSA_C: true\n"
        "capabilities:\n"
        "  - ecdsa-verify\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def restore_logging():
    """Undo the root-logger configuration done by ``--verbose``."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
