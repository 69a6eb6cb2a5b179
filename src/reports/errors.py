"""Report pipeline errors."""

from forecast.errors import FishingError


class GenerationFailure(FishingError):
    """Fresh content could not be produced and no previous artifact exists."""


class StoreError(FishingError):
    """The report cache could not be read or written."""
