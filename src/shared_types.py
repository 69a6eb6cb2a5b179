"""Shared enums and types for fishing-forecast."""

from enum import StrEnum


class WindowKind(StrEnum):
    MAJOR = "Major"
    MINOR = "Minor"


class Confidence(StrEnum):
    """Static trust tier of a source, and the tier of a consensus run."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class Quality(StrEnum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    ESTIMATED = "Estimated"


class ArtifactStatus(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    GENERATING = "generating"


class SourceId(StrEnum):
    SOLUNAR_ORG = "solunar_org"
    FISHING_REMINDER = "fishing_reminder"
    IN_FISHERMAN = "in_fisherman"
    ASTRONOMICAL = "astronomical"
    FALLBACK = "fallback"
    OPENWEATHER = "openweather"
    SEA_TEMPERATURE = "seatemperature"
