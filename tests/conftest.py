"""Shared pytest fixtures for ReachVet tests."""

from __future__ import annotations

import pytest

from reachvet.cache.store import FactStore


class FakeClock:
    """Manually advanced wall clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return FactStore.for_tests(clock=clock)


@pytest.fixture
def make_store(clock):
    def _make(**overrides):
        return FactStore.for_tests(clock=clock, **overrides)

    return _make
