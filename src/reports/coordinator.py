"""Cache-first report generation with per-date single-flight."""

import contextvars
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import structlog
import structlog.contextvars

from forecast.conditions import ConditionsProvider
from forecast.consensus import ConsensusAggregator
from forecast.fanout import SourceGatherer
from forecast.models import ConsensusSchedule, Location
from observability import metrics
from shared_types import ArtifactStatus

from .clock import Clock, parse_date_key
from .errors import GenerationFailure, StoreError
from .models import ReportArtifact
from .store import ReportStore
from .writer import ReportWriter

logger = structlog.get_logger().bind(source="coordinator")

WAIT_POLICIES = ("block", "stale")


@dataclass
class _Flight:
    done: threading.Event = field(default_factory=threading.Event)
    result: Optional[ReportArtifact] = None
    error: Optional[BaseException] = None


class GenerationCoordinator:
    """Serve reports from the store and regenerate them at most once at a time per date.

    The first caller for a date key runs the generation. Callers that arrive
    while it runs either wait for that result (``block``) or, when an older
    artifact exists, get it back immediately marked stale (``stale``).
    Generations for different dates run independently.
    """

    def __init__(
        self,
        store: ReportStore,
        gatherer: SourceGatherer,
        aggregator: ConsensusAggregator,
        writer: ReportWriter,
        location: Location,
        clock: Optional[Clock] = None,
        min_sources: int = 1,
        wait_policy: str = "block",
        conditions: Optional[ConditionsProvider] = None,
    ):
        if wait_policy not in WAIT_POLICIES:
            raise ValueError(f"wait_policy must be one of {WAIT_POLICIES}, got {wait_policy!r}")
        self.store = store
        self.gatherer = gatherer
        self.aggregator = aggregator
        self.writer = writer
        self.location = location
        self.clock = clock or store.clock
        self.min_sources = min_sources
        self.wait_policy = wait_policy
        self.conditions = conditions
        self._lock = threading.Lock()
        self._flights: dict[str, _Flight] = {}

    def get_or_generate(self, date_key: Optional[str] = None, force: bool = False) -> ReportArtifact:
        """Return the report for ``date_key`` (today when omitted).

        Raises:
            ValueError: ``date_key`` is not ``YYYY-MM-DD``.
            GenerationFailure: generation failed and nothing is cached.
        """
        key = date_key or self.clock.date_key()
        parse_date_key(key)

        existing = self._read(key)
        if existing and existing.status == ArtifactStatus.FRESH and not force:
            metrics.counter("report_cache_hit")
            return existing

        with self._lock:
            flight = self._flights.get(key)
            leader = flight is None
            if leader:
                flight = _Flight()
                self._flights[key] = flight

        if not leader:
            if self.wait_policy == "stale" and existing is not None:
                logger.info("generation.serving_stale", date_key=key)
                return existing.with_status(ArtifactStatus.STALE)
            logger.debug("generation.waiting", date_key=key)
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.result

        try:
            flight.result = self._generate(key, force)
            return flight.result
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._flights.pop(key, None)
            flight.done.set()

    def peek(self, date_key: Optional[str] = None) -> Optional[ReportArtifact]:
        """Store read only; status is ``generating`` while a run for the key is in flight."""
        key = date_key or self.clock.date_key()
        artifact = self._read(key)
        if artifact and key in self.in_flight():
            return artifact.with_status(ArtifactStatus.GENERATING)
        return artifact

    def in_flight(self) -> list[str]:
        with self._lock:
            return sorted(self._flights)

    def build_schedule(
        self, location: Optional[Location] = None, day: Optional[date] = None
    ) -> ConsensusSchedule:
        """Fan out to every adapter and aggregate, without touching the cache."""
        location = location or self.location
        day = day or self.clock.today()
        # Current conditions only describe today
        if self.conditions is None or day != self.clock.today():
            results = self.gatherer.gather(location, day)
            return self.aggregator.aggregate(results, day, location, min_sources=self.min_sources)

        deadline = time.monotonic() + self.gatherer.deadline_seconds
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="conditions")
        try:
            future = pool.submit(
                contextvars.copy_context().run, self.conditions.fetch, location, deadline
            )
            results = self.gatherer.gather(location, day)
            schedule = self.aggregator.aggregate(
                results, day, location, min_sources=self.min_sources
            )
            try:
                schedule.conditions = future.result(timeout=max(0.0, deadline - time.monotonic()))
            except FutureTimeout:
                logger.warning("generation.conditions_timeout", date_key=day.isoformat())
            return schedule
        finally:
            pool.shutdown(wait=False)

    def _read(self, key: str) -> Optional[ReportArtifact]:
        try:
            return self.store.get(key)
        except StoreError as e:
            logger.warning("generation.store_read_failed", date_key=key, error=str(e))
            return None

    def _generate(self, key: str, force: bool) -> ReportArtifact:
        run_id = uuid.uuid4().hex[:8]
        structlog.contextvars.bind_contextvars(run_id=run_id)
        try:
            previous = self._read(key)
            # Another leader may have finished between our first read and the lock
            if previous and previous.status == ArtifactStatus.FRESH and not force:
                return previous
            return self._run(key, previous)
        finally:
            structlog.contextvars.unbind_contextvars("run_id")

    def _run(self, key: str, previous: Optional[ReportArtifact]) -> ReportArtifact:
        day = parse_date_key(key)
        logger.info("generation.started", date_key=key, revision=previous.revision if previous else 0)
        started = time.monotonic()
        try:
            schedule = self.build_schedule(day=day)
            content = self.writer.write(schedule)
        except Exception as e:
            metrics.counter("generation_failure")
            if previous is not None:
                logger.warning(
                    "generation.failed_serving_previous",
                    date_key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return previous.with_status(ArtifactStatus.STALE, error=str(e))
            logger.error("generation.failed", date_key=key, error=str(e))
            if isinstance(e, GenerationFailure):
                raise
            raise GenerationFailure(f"report generation failed for {key}: {e}") from e

        elapsed = time.monotonic() - started
        metrics.record("generation_duration", elapsed)
        artifact = ReportArtifact(
            date_key=key,
            content=content.body,
            generated_at=self.clock.now(),
            status=ArtifactStatus.FRESH,
            generation_duration_ms=int(elapsed * 1000),
            cost_units=content.cost_units,
            revision=previous.revision if previous else 0,
            title=content.title,
            location=self.location.name,
            source=content.source,
            valid_until=self.clock.valid_until(day),
            confidence_tier=str(schedule.confidence_tier),
            schedule=schedule.to_dict(),
        )

        try:
            stored = self.store.put(artifact)
        except StoreError as e:
            logger.error("generation.store_write_failed", date_key=key, error=str(e))
            artifact.persisted = False
            artifact.error = str(e)
            return artifact

        logger.info(
            "generation.completed",
            date_key=key,
            revision=stored.revision,
            duration_ms=stored.generation_duration_ms,
            tier=stored.confidence_tier,
            sources_used=schedule.sources_used,
        )
        return stored
