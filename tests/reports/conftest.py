"""Fixtures for report store, writer and coordinator tests."""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from forecast.consensus import ConsensusAggregator
from forecast.models import SourceResult, TimeWindow
from reports.coordinator import GenerationCoordinator
from reports.models import ReportArtifact
from reports.store import ReportStore
from reports.writer import ReportWriter
from shared_types import Confidence, WindowKind


@pytest.fixture
def store(temp_paths, clock):
    return ReportStore(temp_paths["reports_db"], clock=clock)


@pytest.fixture
def make_artifact(clock):
    def _make(date_key="2026-10-17", age=timedelta(0), **fields) -> ReportArtifact:
        defaults = dict(
            date_key=date_key,
            title="Daily Fishing Report",
            content="## Feeding Windows\n- **Major** 08:15-10:15",
            generated_at=clock.now() - age,
            generation_duration_ms=850,
            cost_units=0,
            location="Lake St. Clair, MI",
            confidence_tier="medium",
            schedule={"entries": []},
        )
        defaults.update(fields)
        return ReportArtifact(**defaults)

    return _make


def sample_results() -> list[SourceResult]:
    """Two agreeing sources and one failure."""

    def window(start, end, source_id, weight):
        return TimeWindow(start=start, end=end, kind=WindowKind.MAJOR, source_id=source_id, weight=weight)

    return [
        SourceResult(
            source_id="solunar_org",
            confidence=Confidence.HIGH,
            windows=[window(480, 600, "solunar_org", 0.4)],
            moon_phase="Waxing Crescent",
        ),
        SourceResult(
            source_id="fishing_reminder",
            confidence=Confidence.MEDIUM,
            windows=[window(510, 630, "fishing_reminder", 0.4)],
        ),
        SourceResult.failure("in_fisherman", Confidence.MEDIUM, "HTTP 500"),
    ]


@pytest.fixture
def gatherer():
    """Gatherer double returning canned results and counting calls."""
    mock = MagicMock()
    mock.gather.side_effect = lambda location, day: sample_results()
    return mock


@pytest.fixture
def coordinator(store, gatherer, location, clock):
    return GenerationCoordinator(
        store=store,
        gatherer=gatherer,
        aggregator=ConsensusAggregator(),
        writer=ReportWriter(),
        location=location,
        clock=clock,
    )


@pytest.fixture
def today() -> date:
    return date(2026, 10, 17)


@pytest.fixture
def results():
    return sample_results()


@pytest.fixture
def schedule(location, today):
    """Two agreeing Major windows merged to 08:15-10:15, one failed source."""
    return ConsensusAggregator().aggregate(sample_results(), today, location)
