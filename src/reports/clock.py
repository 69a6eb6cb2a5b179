"""Reference-zone clock for date keys and freshness checks."""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

DATE_KEY_FORMAT = "%Y-%m-%d"


def parse_date_key(date_key: str) -> date:
    """``YYYY-MM-DD`` to a date. Raises ValueError on anything else."""
    return datetime.strptime(date_key, DATE_KEY_FORMAT).date()


class Clock:
    """Wall clock pinned to one time zone.

    ``now_fn`` returns an aware datetime and exists so tests can freeze time.
    """

    def __init__(self, tz: str = "America/New_York", now_fn: Optional[Callable[[], datetime]] = None):
        self.tz = ZoneInfo(tz)
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        current = self._now_fn()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(timezone.utc)

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()

    def date_key(self, day: Optional[date] = None) -> str:
        return (day or self.today()).strftime(DATE_KEY_FORMAT)

    def valid_until(self, day: date) -> datetime:
        """Next scheduled refresh after ``day``: 00:01 local on the following day."""
        following = day + timedelta(days=1)
        return datetime.combine(following, datetime.min.time(), tzinfo=self.tz) + timedelta(minutes=1)
