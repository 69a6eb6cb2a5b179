"""Confidence tier from the number of sources that answered."""

from shared_types import Confidence


def confidence_tier(sources_used: int) -> Confidence:
    """Map successful source count to a tier: 3+ high, 2 medium, otherwise low."""
    if sources_used >= 3:
        return Confidence.HIGH
    if sources_used == 2:
        return Confidence.MEDIUM
    return Confidence.LOW


def is_degraded(sources_used: int, minimum: int) -> bool:
    """True when fewer sources than the configured minimum succeeded."""
    return sources_used < minimum
