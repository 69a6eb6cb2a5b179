"""Shared test fixtures for fishing-forecast."""

import sys
from datetime import date, datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from forecast.models import Location, SourceResult, TimeWindow  # noqa: E402
from observability import metrics  # noqa: E402
from reports.clock import Clock  # noqa: E402
from shared_types import Confidence, WindowKind  # noqa: E402

# 2026-10-17 12:00 in New York
FROZEN_NOW = datetime(2026, 10, 17, 16, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 17)


class FrozenClock(Clock):
    """Clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime = FROZEN_NOW, tz: str = "America/New_York"):
        self.current = now
        super().__init__(tz, now_fn=lambda: self.current)

    def advance(self, **kwargs):
        from datetime import timedelta

        self.current = self.current + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def location():
    return Location(
        latitude=42.4583,
        longitude=-82.7167,
        name="Lake St. Clair, MI",
        timezone="America/New_York",
    )


@pytest.fixture
def temp_paths(tmp_path):
    """Database and log paths under a per-test directory."""
    return {
        "reports_db": tmp_path / "reports.db",
        "log_file": tmp_path / "fishing.log",
    }


@pytest.fixture
def make_window():
    def _make(start, end, kind=WindowKind.MAJOR, source_id="a", weight=1.0) -> TimeWindow:
        return TimeWindow(start=start, end=end, kind=kind, source_id=source_id, weight=weight)

    return _make


@pytest.fixture
def make_result():
    def _make(source_id, windows, confidence=Confidence.MEDIUM, **fields) -> SourceResult:
        return SourceResult(source_id=source_id, confidence=confidence, windows=windows, **fields)

    return _make


@pytest.fixture
def fake_adapter():
    """Factory for adapters that return a canned result without network."""

    def _make(source_id, result=None, confidence=Confidence.MEDIUM, side_effect=None):
        adapter = MagicMock()
        adapter.source_id = source_id
        adapter.confidence = confidence
        if side_effect is not None:
            adapter.fetch.side_effect = side_effect
        else:
            adapter.fetch.return_value = result
        return adapter

    return _make
