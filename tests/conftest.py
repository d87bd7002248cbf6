"""Shared fixtures for the irprobe test suite."""

import pytest

from irprobe.harness import BytecodeHarness


@pytest.fixture
def harness() -> BytecodeHarness:
    """A fresh harness per test, selecting the ``<module>`` entry point."""
    return BytecodeHarness()
