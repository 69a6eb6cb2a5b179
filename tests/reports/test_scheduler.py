"""Tests for the daily report scheduler."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from forecast.health import SourceHealthTracker
from reports.errors import GenerationFailure
from reports.scheduler import DAILY_JOB_ID, SWEEP_JOB_ID, ReportScheduler, _parse_cron
from shared_types import ArtifactStatus


def _fields(trigger) -> dict:
    return {f.name: str(f) for f in trigger.fields}


class TestParseCron:
    def test_full_expression(self):
        fields = _fields(_parse_cron("1 0 * * *", timezone="America/New_York"))
        assert fields["minute"] == "1"
        assert fields["hour"] == "0"
        assert fields["day_of_week"] == "*"

    def test_partial_expression_uses_defaults(self):
        fields = _fields(_parse_cron("15"))
        assert fields["minute"] == "15"
        assert fields["hour"] == "0"

    def test_custom_defaults(self):
        fields = _fields(_parse_cron("30", defaults={"hour": "4"}))
        assert fields["hour"] == "4"

    def test_timezone(self):
        trigger = _parse_cron("1 0 * * *", timezone="America/New_York")
        assert str(trigger.timezone) == "America/New_York"


class TestReportScheduler:
    @pytest.fixture
    def scheduler(self, coordinator):
        sched = ReportScheduler(coordinator, cron="1 0 * * *", timezone="America/New_York")
        yield sched
        sched.stop()

    def test_start_registers_jobs(self, scheduler):
        scheduler.start()
        assert scheduler.running
        assert scheduler.scheduler.get_job(DAILY_JOB_ID) is not None
        assert scheduler.scheduler.get_job(SWEEP_JOB_ID) is not None
        assert scheduler.next_run() is not None

    def test_start_twice_is_noop(self, scheduler):
        scheduler.start()
        first = scheduler.scheduler
        scheduler.start()
        assert scheduler.scheduler is first

    def test_stop_and_restart(self, scheduler):
        scheduler.start()
        scheduler.stop()
        assert not scheduler.running
        assert scheduler.next_run() is None
        scheduler.start()
        assert scheduler.running

    def test_run_daily_generates_today(self, scheduler, gatherer, clock):
        artifact = scheduler.run_daily()
        assert artifact.date_key == "2026-10-17"
        assert artifact.revision == 1
        assert scheduler.last_run == clock.now()
        assert scheduler.get_status()["last_run"] == "2026-10-17T16:00:00+00:00"
        assert scheduler.last_error is None
        gatherer.gather.assert_called_once()

    def test_run_daily_records_error(self, store):
        coordinator = MagicMock()
        coordinator.store = store
        coordinator.get_or_generate.side_effect = GenerationFailure("all sources down")
        sched = ReportScheduler(coordinator)

        with pytest.raises(GenerationFailure):
            sched.run_daily()
        assert sched.last_error == "all sources down"

    def test_force_regenerate(self, scheduler):
        scheduler.run_daily()
        artifact = scheduler.force_regenerate("2026-10-17")
        assert artifact.revision == 2

    def test_sweep_uses_retention(self, scheduler, store, make_artifact):
        store.put(make_artifact(date_key="2026-10-01"))
        store.put(make_artifact(date_key="2026-10-16"))
        assert scheduler.sweep() == 1
        assert scheduler.sweep(retain_days=0) == 1

    def test_status(self, scheduler, store, make_artifact):
        store.put(make_artifact(age=timedelta(hours=2)))
        status = scheduler.get_status()

        assert status["scheduler_running"] is False
        assert status["cron"] == "1 0 * * *"
        assert status["timezone"] == "America/New_York"
        assert status["next_run"] is None
        assert status["in_flight"] == []
        assert status["current_artifact_summary"]["status"] == str(ArtifactStatus.FRESH)
        assert status["latest_artifact_summary"]["date_key"] == "2026-10-17"
        assert status["stats"]["total_reports"] == 1
        assert "counters" in status["metrics"]
        assert "sources" not in status

    def test_status_latest_falls_back_to_older_report(self, scheduler, store, make_artifact):
        store.put(make_artifact(date_key="2026-10-15"))
        store.put(make_artifact(date_key="2026-10-16"))
        status = scheduler.get_status()

        assert status["current_artifact_summary"] is None
        assert status["latest_artifact_summary"]["date_key"] == "2026-10-16"

    def test_status_includes_source_health(self, coordinator, temp_paths):
        health = SourceHealthTracker(temp_paths["reports_db"])
        health.record_failure("in_fisherman", "HTTP 500")
        sched = ReportScheduler(coordinator, health=health)

        status = sched.get_status()
        assert status["sources"][0]["source_id"] == "in_fisherman"
        assert status["sources"][0]["status"] == "degraded"

    def test_error_listener(self, coordinator):
        callback = MagicMock()
        sched = ReportScheduler(coordinator, on_error=callback)
        event = MagicMock(job_id=DAILY_JOB_ID, exception=RuntimeError("boom"), traceback="tb")

        sched._default_error_handler(event)
        assert sched.last_error == "boom"
        callback.assert_called_once_with(event)

    def test_error_callback_failure_is_logged(self, coordinator):
        sched = ReportScheduler(coordinator, on_error=MagicMock(side_effect=ValueError("bad")))
        event = MagicMock(job_id=SWEEP_JOB_ID, exception=RuntimeError("boom"), traceback=None)
        sched._default_error_handler(event)
        assert sched.last_error == "boom"
