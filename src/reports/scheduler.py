"""Daily report generation and retention jobs."""

from datetime import datetime
from typing import Callable, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from forecast.health import SourceHealthTracker
from observability import log_run_summary, metrics

from .coordinator import GenerationCoordinator
from .models import ReportArtifact
from .store import DEFAULT_RETAIN_DAYS

logger = structlog.get_logger().bind(source="scheduler")

DAILY_JOB_ID = "daily_report"
SWEEP_JOB_ID = "report_sweep"


def _parse_cron(expr: str, defaults: Optional[dict] = None, timezone: Optional[str] = None) -> CronTrigger:
    """Parse cron expression string into CronTrigger.

    Args:
        expr: 5-field cron expression (min hour day month dow)
        defaults: Optional dict of default values for missing fields
        timezone: Zone the fields are interpreted in
    """
    d = defaults or {"minute": "1", "hour": "0", "day": "*", "month": "*", "day_of_week": "*"}
    parts = expr.split()
    return CronTrigger(
        minute=parts[0] if len(parts) > 0 else d.get("minute", "1"),
        hour=parts[1] if len(parts) > 1 else d.get("hour", "0"),
        day=parts[2] if len(parts) > 2 else d.get("day", "*"),
        month=parts[3] if len(parts) > 3 else d.get("month", "*"),
        day_of_week=parts[4] if len(parts) > 4 else d.get("day_of_week", "*"),
        timezone=timezone,
    )


class ReportScheduler:
    """Owns the cron jobs that keep today's report warm and old ones pruned.

    A fresh ``BackgroundScheduler`` is created on every ``start`` so the
    instance can be stopped and started again.
    """

    def __init__(
        self,
        coordinator: GenerationCoordinator,
        cron: str = "1 0 * * *",
        timezone: str = "America/New_York",
        sweep_cron: str = "30 0 * * *",
        retain_days: int = DEFAULT_RETAIN_DAYS,
        health: Optional[SourceHealthTracker] = None,
        on_error: Optional[Callable] = None,
    ):
        self.coordinator = coordinator
        self.store = coordinator.store
        self.cron = cron
        self.timezone = timezone
        self.sweep_cron = sweep_cron
        self.retain_days = retain_days
        self.health = health
        self.on_error = on_error
        self.scheduler: Optional[BackgroundScheduler] = None
        self.last_run: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def start(self) -> None:
        if self.running:
            logger.debug("scheduler.already_running")
            return
        self.scheduler = BackgroundScheduler(timezone=self.timezone)
        self.scheduler.add_job(
            self.run_daily,
            trigger=_parse_cron(self.cron, timezone=self.timezone),
            id=DAILY_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            self.sweep,
            trigger=_parse_cron(
                self.sweep_cron,
                defaults={"minute": "30", "hour": "0", "day": "*", "month": "*", "day_of_week": "*"},
                timezone=self.timezone,
            ),
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.add_listener(self._default_error_handler, EVENT_JOB_ERROR)
        self.scheduler.start()
        logger.info("scheduler.started", cron=self.cron, timezone=self.timezone)

    def stop(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler.stopped")
        self.scheduler = None

    def run_daily(self) -> ReportArtifact:
        """Scheduled entry point: make sure today's report exists and is fresh."""
        self.last_run = self.coordinator.clock.now()
        try:
            artifact = self.coordinator.get_or_generate()
        except Exception as e:
            self.last_error = str(e)
            raise
        finally:
            log_run_summary()
        self.last_error = artifact.error
        return artifact

    def force_regenerate(self, date_key: Optional[str] = None) -> ReportArtifact:
        logger.info("scheduler.force_regenerate", date_key=date_key)
        return self.coordinator.get_or_generate(date_key, force=True)

    def sweep(self, retain_days: Optional[int] = None) -> int:
        return self.store.sweep(self.retain_days if retain_days is None else retain_days)

    def next_run(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self.scheduler.get_job(DAILY_JOB_ID)
        return job.next_run_time if job else None

    def get_status(self) -> dict:
        current = self.coordinator.peek()
        latest = self.store.latest()
        next_run = self.next_run()
        status = {
            "scheduler_running": self.running,
            "cron": self.cron,
            "timezone": self.timezone,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
            "next_run": next_run.isoformat() if next_run else None,
            "current_artifact_summary": current.summary() if current else None,
            "latest_artifact_summary": latest.summary() if latest else None,
            "in_flight": self.coordinator.in_flight(),
            "stats": self.store.get_stats(),
            "metrics": metrics.summary(),
        }
        if self.health:
            status["sources"] = self.health.get_health_summary()
        return status

    def _default_error_handler(self, event):
        """Log APScheduler job failures."""
        logger.error(
            "job_error",
            job_id=event.job_id,
            exception=str(event.exception),
            traceback=event.traceback,
        )
        self.last_error = str(event.exception)
        if self.on_error:
            try:
                self.on_error(event)
            except Exception as e:
                logger.error("job_error_callback_failed", error=str(e))
