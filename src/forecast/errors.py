"""Exception hierarchy shared by the forecast and report layers."""


class FishingError(Exception):
    """Base error for fishing-forecast."""


class AdapterError(FishingError):
    """A single source failed: network, timeout or malformed upstream payload.

    Never escapes ``SourceAdapter.fetch``; it is captured into
    ``SourceResult.error``.
    """


class InvalidWindowError(FishingError, ValueError):
    """Time window outside the minutes-of-day range or zero length."""
