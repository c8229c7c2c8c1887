"""Shared fixtures for the exactbn test-suite."""

from __future__ import annotations

import pytest

from exactbn.core.context import VariableRegistry
from exactbn.networks.graph import build_alarm, build_sprinkler


@pytest.fixture
def registry() -> VariableRegistry:
    """A fresh variable registry per test."""
    return VariableRegistry("test")


@pytest.fixture
def alarm(registry):
    return build_alarm(registry)


@pytest.fixture
def sprinkler(registry):
    return build_sprinkler(registry)
