"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from weavereg.registry import WeaveRegistry

OWNER = "human:admin"
BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Registry home directory (not created yet)."""
    return tmp_path / ".weavereg"


@pytest.fixture
def registry(home: Path, clock: StepClock) -> WeaveRegistry:
    """Registry initialized with OWNER as administrator."""
    return WeaveRegistry.open(home, owner=OWNER, clock=clock)


@pytest.fixture
def owner() -> str:
    return OWNER
