"""Cached daily report artifact."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Optional

from shared_types import ArtifactStatus


def derive_status(generated_at: datetime, now: datetime, freshness: timedelta) -> ArtifactStatus:
    """Fresh while ``now - generated_at <= freshness``."""
    if now - generated_at <= freshness:
        return ArtifactStatus.FRESH
    return ArtifactStatus.STALE


@dataclass
class ReportArtifact:
    """One generated report per date key.

    ``status`` is not persisted; the store derives it from ``generated_at``
    on every read.
    """

    date_key: str
    content: str
    generated_at: datetime
    status: ArtifactStatus = ArtifactStatus.FRESH
    generation_duration_ms: int = 0
    cost_units: int = 0
    revision: int = 0
    title: str = ""
    location: str = ""
    source: str = "template"
    valid_until: Optional[datetime] = None
    confidence_tier: Optional[str] = None
    schedule: dict = field(default_factory=dict)
    error: Optional[str] = None
    persisted: bool = True

    def with_status(self, status: ArtifactStatus, error: Optional[str] = None) -> "ReportArtifact":
        changes = {"status": ArtifactStatus(status)}
        if error is not None:
            changes["error"] = error
        return replace(self, **changes)

    def summary(self) -> dict:
        return {
            "date_key": self.date_key,
            "title": self.title,
            "status": str(self.status),
            "revision": self.revision,
            "generated_at": self.generated_at.isoformat(),
            "confidence_tier": self.confidence_tier,
            "source": self.source,
        }

    def to_dict(self) -> dict:
        return {
            "date_key": self.date_key,
            "title": self.title,
            "content": self.content,
            "status": str(self.status),
            "generated_at": self.generated_at.isoformat(),
            "generation_duration_ms": self.generation_duration_ms,
            "cost_units": self.cost_units,
            "revision": self.revision,
            "location": self.location,
            "source": self.source,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "confidence_tier": self.confidence_tier,
            "schedule": self.schedule,
            "error": self.error,
            "persisted": self.persisted,
        }
