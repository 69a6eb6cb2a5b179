"""Shared fixtures for web API tests."""

import os
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from forecast.consensus import ConsensusAggregator
from forecast.models import SourceResult
from reports.coordinator import GenerationCoordinator
from reports.scheduler import ReportScheduler
from reports.store import ReportStore
from reports.writer import ReportWriter
from shared_types import Confidence, WindowKind


@pytest.fixture
def gatherer(make_result, make_window):
    """Two sources agreeing on a morning Major, one failing."""
    results = [
        make_result(
            "solunar_org",
            [make_window(480, 600, source_id="solunar_org", weight=0.4)],
            confidence=Confidence.HIGH,
        ),
        make_result(
            "fishing_reminder",
            [
                make_window(510, 630, source_id="fishing_reminder", weight=0.3),
                make_window(1020, 1080, kind=WindowKind.MINOR, source_id="fishing_reminder", weight=0.3),
            ],
        ),
        SourceResult.failure("in_fisherman", Confidence.MEDIUM, "timeout"),
    ]
    mock = MagicMock()
    mock.gather.side_effect = lambda location, day: list(results)
    return mock


@pytest.fixture
def store(temp_paths, clock):
    return ReportStore(temp_paths["reports_db"], clock=clock)


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
def scheduler(coordinator):
    return ReportScheduler(coordinator)


@pytest.fixture
def client(coordinator, scheduler):
    """Test client wired to a temp-dir pipeline; the background scheduler stays off."""
    from web.app import app
    from web.deps import get_coordinator, get_scheduler

    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    with patch.dict(os.environ, {"FISHING_SCHEDULER": "0"}):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()
