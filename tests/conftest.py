from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from phase_tracking.storage import SessionStore
from phase_tracking.tracker import PhaseTracker


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "phase-tracking")


@pytest.fixture
def tracker(store: SessionStore, clock: ManualClock) -> PhaseTracker:
    return PhaseTracker(store, clock=clock)
