"""Data model for source observations and consensus schedules."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from shared_types import Confidence, Quality, WindowKind

from .clock import MINUTES_PER_DAY, format_clock
from .errors import InvalidWindowError


@dataclass(frozen=True)
class Location:
    """A fishing spot and the zone its clock times are expressed in."""

    latitude: float
    longitude: float
    name: str = ""
    timezone: str = "America/New_York"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class TimeWindow:
    """One predicted feeding interval in minutes since local midnight.

    A window that crosses midnight (``end <= start``) is unwrapped on
    construction by adding a day to ``end``, so ``start < end`` always holds
    afterwards. ``start`` itself must fall inside the day.
    """

    start: float
    end: float
    kind: WindowKind
    source_id: str
    weight: float = 1.0

    def __post_init__(self):
        if not 0 <= self.start < MINUTES_PER_DAY:
            raise InvalidWindowError(f"start {self.start} outside [0, {MINUTES_PER_DAY})")
        if not 0 <= self.end <= MINUTES_PER_DAY:
            raise InvalidWindowError(f"end {self.end} outside [0, {MINUTES_PER_DAY}]")
        if self.start == self.end:
            raise InvalidWindowError(f"zero-length window at {self.start}")
        if not 0 < self.weight <= 1:
            raise InvalidWindowError(f"weight {self.weight} outside (0, 1]")
        object.__setattr__(self, "kind", WindowKind(self.kind))
        if self.end < self.start:
            object.__setattr__(self, "end", self.end + MINUTES_PER_DAY)

    @property
    def crosses_midnight(self) -> bool:
        return self.end > MINUTES_PER_DAY

    def to_dict(self) -> dict:
        return {
            "start": format_clock(self.start),
            "end": format_clock(self.end),
            "start_minutes": self.start,
            "end_minutes": self.end,
            "kind": str(self.kind),
            "source_id": self.source_id,
            "weight": self.weight,
        }


@dataclass
class SourceResult:
    """Normalized output of one adapter call.

    Either ``windows`` is non-empty or ``error`` is set. Failed results are
    kept for diagnostics but contribute nothing to aggregation.
    """

    source_id: str
    confidence: Confidence
    windows: list[TimeWindow] = field(default_factory=list)
    moon_phase: Optional[str] = None
    moon_illumination: Optional[int] = None
    day_rating: Optional[float] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(
        cls, source_id: str, confidence: Confidence, error: str, duration_ms: Optional[int] = None
    ) -> "SourceResult":
        return cls(
            source_id=source_id,
            confidence=Confidence(confidence),
            error=error,
            duration_ms=duration_ms,
        )

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "confidence": str(self.confidence),
            "windows": [w.to_dict() for w in self.windows],
            "moon_phase": self.moon_phase,
            "moon_illumination": self.moon_illumination,
            "day_rating": self.day_rating,
            "sunrise": self.sunrise,
            "sunset": self.sunset,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ConsensusCluster:
    """Same-kind windows merged into one weighted-average interval."""

    kind: WindowKind
    members: list[TimeWindow]
    merged_start: float
    merged_end: float
    agreement_count: int
    quality: Quality

    @property
    def sources(self) -> list[str]:
        """Distinct contributing source ids in first-seen order."""
        return list(dict.fromkeys(m.source_id for m in self.members))

    def to_dict(self) -> dict:
        return {
            "kind": str(self.kind),
            "start": format_clock(self.merged_start),
            "end": format_clock(self.merged_end),
            "merged_start": self.merged_start,
            "merged_end": self.merged_end,
            "agreement_count": self.agreement_count,
            "quality": str(self.quality),
            "sources": self.sources,
            "members": [m.to_dict() for m in self.members],
        }


@dataclass
class Conditions:
    """Current weather and water temperature for the report's Conditions section.

    Not part of the consensus: windows never depend on these values.
    """

    air_temp_f: Optional[float] = None
    water_temp_f: Optional[float] = None
    water_temp_estimated: bool = False
    wind_mph: Optional[float] = None
    wind_direction: Optional[str] = None
    pressure_inhg: Optional[float] = None
    cloud_cover: Optional[int] = None
    humidity: Optional[int] = None
    water_locations: dict[str, float] = field(default_factory=dict)
    sources: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.air_temp_f is not None or self.water_temp_f is not None

    def to_dict(self) -> dict:
        return {
            "air_temp_f": self.air_temp_f,
            "water_temp_f": self.water_temp_f,
            "water_temp_estimated": self.water_temp_estimated,
            "wind_mph": self.wind_mph,
            "wind_direction": self.wind_direction,
            "pressure_inhg": self.pressure_inhg,
            "cloud_cover": self.cloud_cover,
            "humidity": self.humidity,
            "water_locations": dict(self.water_locations),
            "sources": list(self.sources),
            "errors": list(self.errors),
        }


@dataclass
class ConsensusSchedule:
    """Final output of one aggregation run."""

    date: date
    location: Location
    entries: list[ConsensusCluster]
    confidence_tier: Confidence
    sources_used: int
    sources_attempted: int
    moon_phase: Optional[str] = None
    day_rating: Optional[float] = None
    errors: list[dict] = field(default_factory=list)
    is_fallback: bool = False
    degraded: bool = False
    conditions: Optional[Conditions] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "location": self.location.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
            "moon_phase": self.moon_phase,
            "day_rating": self.day_rating,
            "confidence_tier": str(self.confidence_tier),
            "sources_used": self.sources_used,
            "sources_attempted": self.sources_attempted,
            "errors": list(self.errors),
            "is_fallback": self.is_fallback,
            "degraded": self.degraded,
            "conditions": self.conditions.to_dict() if self.conditions else None,
        }
