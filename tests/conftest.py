"""Shared test fixtures for specir.

Provides the petstore document fixture, a compiled petstore IR, the CLI
runner, and state resets for the global output manager and the ``specir``
logger. Document builders live in ``helpers.py``.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any

import pytest

from helpers import FIXTURES_DIR
from specir.compiler import compile_spec
from specir.models import CompiledSpec
from specir.output import reset_output


# ---------------------------------------------------------------------------
# Global state resets
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Reset the global OutputManager and the CLI log handler after every test.

    Both cache the streams that were current when the CLI callback ran.
    Once a CliRunner invocation is over those streams are closed.
    """
    yield
    reset_output()
    logger = logging.getLogger("specir")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_path() -> Path:
    return FIXTURES_DIR / "petstore.json"


@pytest.fixture
def petstore_raw(petstore_path: Path) -> dict[str, Any]:
    """Load the raw petstore document."""
    with open(petstore_path) as f:
        return json.load(f)


@pytest.fixture
def petstore(petstore_raw: dict[str, Any]) -> CompiledSpec:
    """The petstore document compiled with default options."""
    return compile_spec(copy.deepcopy(petstore_raw))


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
