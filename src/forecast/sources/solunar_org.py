"""Solunar.org JSON API adapter."""

from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

import httpx
import structlog

from forecast.adapter import SourceAdapter
from forecast.errors import AdapterError
from forecast.models import Location, SourceResult
from shared_types import Confidence, SourceId, WindowKind

logger = structlog.get_logger().bind(source="solunar_org")

_PERIODS = (
    ("major1Start", "major1Stop", WindowKind.MAJOR),
    ("major2Start", "major2Stop", WindowKind.MAJOR),
    ("minor1Start", "minor1Stop", WindowKind.MINOR),
    ("minor2Start", "minor2Stop", WindowKind.MINOR),
)


def utc_offset_hours(tz_name: str, day: date) -> float:
    """UTC offset of ``tz_name`` at local noon on ``day`` (DST-aware)."""
    noon = datetime.combine(day, time(12, 0), tzinfo=ZoneInfo(tz_name))
    return noon.utcoffset().total_seconds() / 3600


class SolunarOrgAdapter(SourceAdapter):
    """Major/minor periods plus moon phase and day rating from api.solunar.org."""

    source_id = SourceId.SOLUNAR_ORG
    default_confidence = Confidence.HIGH
    API_BASE = "https://api.solunar.org/solunar"

    def __init__(
        self,
        weight: float = 0.4,
        confidence: Optional[Confidence] = None,
        timeout: float = 8.0,
        base_url: Optional[str] = None,
    ):
        super().__init__(weight=weight, confidence=confidence, timeout=timeout)
        self.base_url = (base_url or self.API_BASE).rstrip("/")

    def build_url(self, location: Location, day: date) -> str:
        offset = utc_offset_hours(location.timezone, day)
        offset_str = f"{offset:g}"
        return (
            f"{self.base_url}/{location.latitude},{location.longitude},"
            f"{day.strftime('%Y%m%d')},{offset_str}"
        )

    def collect(
        self, client: Optional[httpx.Client], location: Location, day: date
    ) -> SourceResult:
        data = self.get_json(client, self.build_url(location, day))
        if not isinstance(data, dict):
            raise AdapterError("solunar.org returned a non-object payload")

        windows = []
        for start_key, stop_key, kind in _PERIODS:
            start, stop = data.get(start_key), data.get(stop_key)
            if not start or not stop:
                continue
            window = self.window(start, stop, kind)
            if window:
                windows.append(window)

        illumination = data.get("moonIllumination")
        if isinstance(illumination, (int, float)):
            illumination = round(illumination * 100)
        else:
            illumination = None

        rating = data.get("dayRating")
        return self.result(
            windows,
            moon_phase=data.get("moonPhase") or None,
            moon_illumination=illumination,
            day_rating=float(rating) if isinstance(rating, (int, float)) else None,
            sunrise=data.get("sunRise"),
            sunset=data.get("sunSet"),
        )
