"""Base source adapter: one external provider of feeding-time predictions."""

import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import httpx
import structlog
from bs4 import BeautifulSoup

from cli.retry import http_retry
from shared_types import Confidence, WindowKind

from .clock import parse_clock
from .errors import AdapterError, InvalidWindowError
from .models import Location, SourceResult, TimeWindow

logger = structlog.get_logger().bind(source="adapter")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

_RETRYABLE = (httpx.ConnectError, httpx.RemoteProtocolError)


class SourceAdapter(ABC):
    """Wraps one provider and normalizes its answer into a ``SourceResult``.

    ``fetch`` never raises. Each call opens its own HTTP client, so one adapter
    instance can serve concurrent calls.
    """

    source_id: str = "base"
    default_confidence: Confidence = Confidence.LOW
    requires_network: bool = True

    def __init__(
        self,
        weight: float,
        confidence: Optional[Confidence] = None,
        timeout: float = 10.0,
    ):
        if not 0 < weight <= 1:
            raise ValueError(f"{self.source_id}: weight {weight} outside (0, 1]")
        self.weight = weight
        self.confidence = Confidence(confidence or self.default_confidence)
        self.timeout = timeout

    @abstractmethod
    def collect(
        self, client: Optional[httpx.Client], location: Location, day: date
    ) -> SourceResult:
        """Query the provider and build a result. May raise; ``fetch`` catches."""

    def fetch(
        self, location: Location, day: date, deadline: Optional[float] = None
    ) -> SourceResult:
        """Fetch windows for ``location`` on ``day``.

        Args:
            location: Target spot.
            day: Target date.
            deadline: Absolute ``time.monotonic()`` value the caller will stop
                waiting at. The HTTP timeout is shortened to fit it.
        """
        started = time.monotonic()
        timeout = self.timeout
        if deadline is not None:
            timeout = min(timeout, deadline - started)
            if timeout <= 0:
                return self._failure("timeout", started)

        try:
            if self.requires_network:
                with httpx.Client(
                    timeout=timeout,
                    headers={"User-Agent": USER_AGENT},
                    follow_redirects=True,
                ) as client:
                    result = self.collect(client, location, day)
            else:
                result = self.collect(None, location, day)
        except httpx.TimeoutException:
            return self._failure("timeout", started)
        except httpx.HTTPStatusError as e:
            return self._failure(f"HTTP {e.response.status_code}", started)
        except httpx.RequestError as e:
            return self._failure(f"request failed: {e}", started)
        except AdapterError as e:
            return self._failure(str(e), started)
        except Exception as e:
            logger.warning(
                "adapter.unexpected_error",
                adapter=self.source_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._failure(f"{type(e).__name__}: {e}", started)

        if result.ok and not result.windows:
            return self._failure("no feeding windows in response", started)

        result.duration_ms = self._elapsed_ms(started)
        logger.debug(
            "adapter.fetched",
            adapter=self.source_id,
            windows=len(result.windows),
            duration_ms=result.duration_ms,
        )
        return result

    # --- helpers for subclasses ---

    def result(self, windows: list[TimeWindow], **fields) -> SourceResult:
        return SourceResult(
            source_id=self.source_id,
            confidence=self.confidence,
            windows=windows,
            **fields,
        )

    def window(self, start, end, kind: WindowKind) -> Optional[TimeWindow]:
        """Build a window from clock strings or minute values; None when unusable."""
        try:
            start_min = parse_clock(start) if isinstance(start, str) else start
            end_min = parse_clock(end) if isinstance(end, str) else end
            return TimeWindow(
                start=start_min,
                end=end_min,
                kind=kind,
                source_id=self.source_id,
                weight=self.weight,
            )
        except (InvalidWindowError, ValueError, TypeError) as e:
            logger.warning(
                "adapter.window_rejected",
                adapter=self.source_id,
                start=start,
                end=end,
                error=str(e),
            )
            return None

    @http_retry(exceptions=_RETRYABLE)
    def get_json(self, client: httpx.Client, url: str, **kwargs):
        response = client.get(url, **kwargs)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise AdapterError(f"malformed JSON from {self.source_id}: {e}") from e

    @http_retry(exceptions=_RETRYABLE)
    def get_html(self, client: httpx.Client, url: str, **kwargs) -> BeautifulSoup:
        response = client.get(url, **kwargs)
        response.raise_for_status()
        return BeautifulSoup(response.text, "html.parser")

    def _failure(self, error: str, started: float) -> SourceResult:
        logger.warning("adapter.failed", adapter=self.source_id, error=error)
        return SourceResult.failure(
            self.source_id, self.confidence, error, duration_ms=self._elapsed_ms(started)
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
