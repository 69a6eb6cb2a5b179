"""Concurrent adapter fan-out bounded by one overall deadline."""

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date
from typing import Optional

import structlog

from observability import metrics

from .adapter import SourceAdapter
from .health import SourceHealthTracker
from .models import Location, SourceResult

logger = structlog.get_logger().bind(source="fanout")

DEFAULT_DEADLINE_SECONDS = 25.0


class SourceGatherer:
    """Query every adapter in parallel and return results in registration order.

    Adapters still running when the deadline passes are recorded as
    ``timeout`` and whatever they return later is discarded.
    """

    def __init__(
        self,
        adapters: list[SourceAdapter],
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        max_workers: int = 4,
        health: Optional[SourceHealthTracker] = None,
    ):
        self.adapters = list(adapters)
        self.deadline_seconds = deadline_seconds
        self.max_workers = max(1, max_workers)
        self.health = health

    def gather(self, location: Location, day: date) -> list[SourceResult]:
        if not self.adapters:
            return []

        deadline = time.monotonic() + self.deadline_seconds
        pool = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(self.adapters)),
            thread_name_prefix="adapter",
        )
        try:
            futures = [
                # copy_context keeps the bound run_id on worker log lines
                pool.submit(contextvars.copy_context().run, a.fetch, location, day, deadline)
                for a in self.adapters
            ]
            wait(futures, timeout=self.deadline_seconds)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        results = []
        for adapter, future in zip(self.adapters, futures):
            if future.done() and not future.cancelled():
                result = future.result()
            else:
                logger.warning("fanout.adapter_timeout", adapter=adapter.source_id)
                result = SourceResult.failure(
                    adapter.source_id,
                    adapter.confidence,
                    "timeout",
                    duration_ms=int(self.deadline_seconds * 1000),
                )
            results.append(result)
            self._record(result)

        logger.info(
            "fanout.complete",
            attempted=len(results),
            succeeded=sum(1 for r in results if r.ok),
        )
        return results

    def _record(self, result: SourceResult) -> None:
        if result.ok:
            metrics.counter("adapter_success")
        else:
            metrics.counter("adapter_failure")
        if not self.health:
            return
        try:
            if result.ok:
                self.health.record_success(
                    result.source_id, windows=len(result.windows), duration_ms=result.duration_ms
                )
            else:
                self.health.record_failure(
                    result.source_id, result.error or "unknown", duration_ms=result.duration_ms
                )
        except Exception as e:
            logger.warning("fanout.health_record_failed", source_id=result.source_id, error=str(e))
