"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so settings never pick up a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["PACER_ENV"] = "testing"

os.environ.setdefault("PACER_SCHEDULER_BACKEND", "manual")
os.environ.setdefault("PACER_LOG_LEVEL", "DEBUG")

import pytest  # noqa: E402

from pacer.adapters.scheduler.manual import ManualScheduler  # noqa: E402


class Recorder:
    """Action stand-in that remembers every call and the virtual time it ran at."""

    def __init__(self, scheduler: ManualScheduler | None = None) -> None:
        self.scheduler = scheduler
        self.calls: list[tuple[tuple, dict]] = []
        self.times: list[float] = []

    def __call__(self, *args, **kwargs) -> None:
        self.calls.append((args, kwargs))
        if self.scheduler is not None:
            self.times.append(self.scheduler.now_ms)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def recorder(scheduler: ManualScheduler) -> Recorder:
    return Recorder(scheduler)


@pytest.fixture
def make_recorder(scheduler: ManualScheduler):
    def _make() -> Recorder:
        return Recorder(scheduler)

    return _make
