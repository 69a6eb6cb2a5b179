"""Cached daily fishing report pipeline."""

from .clock import Clock, parse_date_key
from .coordinator import GenerationCoordinator
from .errors import GenerationFailure, StoreError
from .models import ReportArtifact
from .scheduler import ReportScheduler
from .store import ReportStore
from .writer import ReportContent, ReportWriter

__all__ = [
    "Clock",
    "GenerationCoordinator",
    "GenerationFailure",
    "ReportArtifact",
    "ReportContent",
    "ReportScheduler",
    "ReportStore",
    "ReportWriter",
    "StoreError",
    "parse_date_key",
]
