"""Multi-source feeding-time consensus engine."""

from .adapter import SourceAdapter
from .conditions import ConditionsProvider
from .consensus import ConsensusAggregator
from .errors import AdapterError, FishingError, InvalidWindowError
from .fanout import SourceGatherer
from .health import SourceHealthTracker
from .models import (
    Conditions,
    ConsensusCluster,
    ConsensusSchedule,
    Location,
    SourceResult,
    TimeWindow,
)
from .reliability import confidence_tier, is_degraded

__all__ = [
    "AdapterError",
    "Conditions",
    "ConditionsProvider",
    "ConsensusAggregator",
    "ConsensusCluster",
    "ConsensusSchedule",
    "FishingError",
    "InvalidWindowError",
    "Location",
    "SourceAdapter",
    "SourceGatherer",
    "SourceHealthTracker",
    "SourceResult",
    "TimeWindow",
    "confidence_tier",
    "is_degraded",
]
