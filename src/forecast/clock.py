"""Minutes-of-day parsing and formatting."""

import re

MINUTES_PER_DAY = 1440

_CLOCK_RE = re.compile(
    r"^\s*(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::\d{2})?\s*(?P<meridiem>[AaPp]\.?[Mm]\.?)?\s*$"
)


def parse_clock(text: str) -> int:
    """Parse ``"HH:MM"``, ``"H:MM AM"`` or ``"HH:MM:SS"`` into minutes since midnight.

    ``"24:00"`` is accepted and maps to 1440 (end of day).

    Raises:
        ValueError: text is not a recognisable clock time.
    """
    if not isinstance(text, str):
        raise ValueError(f"Not a clock string: {text!r}")
    match = _CLOCK_RE.match(text)
    if not match:
        raise ValueError(f"Not a clock string: {text!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if minute > 59:
        raise ValueError(f"Minute out of range: {text!r}")
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Hour out of range for 12h clock: {text!r}")
        hour = hour % 12
        if meridiem[0].lower() == "p":
            hour += 12
    elif hour > 24 or (hour == 24 and minute):
        raise ValueError(f"Hour out of range: {text!r}")

    return hour * 60 + minute


def format_clock(minutes: float) -> str:
    """Format minutes since midnight as ``HH:MM``, rounded to the minute; values past midnight wrap."""
    whole = round(minutes)
    hours = (whole // 60) % 24
    mins = whole % 60
    return f"{hours:02d}:{mins:02d}"


def wrap_minutes(minutes: float) -> float:
    """Fold any minute value into ``[0, 1440)``."""
    return minutes % MINUTES_PER_DAY
