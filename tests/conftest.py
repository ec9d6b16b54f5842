from __future__ import annotations

import pytest

from permtest import bootstrap
from permtest.options import HarnessOptions


@pytest.fixture(scope="session", autouse=True)
def setup_permtest_registry() -> None:
    """Register built-in backends once for the entire test session."""

    bootstrap()


@pytest.fixture(autouse=True)
def reset_harness_options():
    HarnessOptions.reset()
    yield
    HarnessOptions.reset()
