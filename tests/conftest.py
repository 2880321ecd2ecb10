"""Shared test fixtures."""

import threading

import pytest

from taskmanager.scheduler import SchedulerState, TaskManager


class FakeClock:
    """Manually advanced millisecond clock for deterministic timing tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, millis: float) -> None:
        self.now += millis


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager():
    """A started TaskManager with a short tick, torn down after the test."""
    m = TaskManager(tick_length=5)
    m.start()
    yield m
    if m.state is SchedulerState.RUNNING:
        stopped = threading.Event()
        m.destroy(stopped.set)
        stopped.wait(timeout=2.0)
