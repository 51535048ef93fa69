from datetime import datetime, timedelta, timezone

import pytest

from vocabsrs.application.scheduler import SchedulerEngine

T0 = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for deterministic scheduling tests."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs) -> datetime:
        self.now = self.now + timedelta(days=days, **kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return SchedulerEngine(clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "VOCABSRS_DATA_FILE",
        "VOCABSRS_SESSION_LIMIT",
        "VOCABSRS_MODE_WEIGHTS",
        "VOCABSRS_DEFAULT_MODE",
        "VOCABSRS_PERSIST_MODE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
