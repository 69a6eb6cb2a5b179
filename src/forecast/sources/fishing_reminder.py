"""FishingReminder.com fishing-times chart scraper."""

import re
from datetime import date
from typing import Optional
from urllib.parse import quote

import httpx
import structlog
from bs4 import BeautifulSoup

from forecast.adapter import SourceAdapter
from forecast.models import Location, SourceResult
from shared_types import Confidence, SourceId, WindowKind

logger = structlog.get_logger().bind(source="fishing_reminder")

TIME_RANGE_RE = re.compile(
    r"(\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?)\s*(?:-|–|—|to)\s*(\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?)"
)

# (latitude, longitude, city) pairs with a 0.1 degree match radius
KNOWN_CITIES = (
    (42.4583, -82.7167, "Saint Clair Shores, MI"),
)
DEFAULT_CITY = "Detroit, MI"


def city_for(latitude: float, longitude: float) -> str:
    """Resolve the chart city for coordinates; Great Lakes default otherwise."""
    for lat, lng, city in KNOWN_CITIES:
        if abs(latitude - lat) < 0.1 and abs(longitude - lng) < 0.1:
            return city
    return DEFAULT_CITY


def parse_ranges(text: str) -> list[tuple[str, str]]:
    return [(m.group(1).strip(), m.group(2).strip()) for m in TIME_RANGE_RE.finditer(text)]


class FishingReminderAdapter(SourceAdapter):
    """Major and minor ranges from the FishingReminder daily chart page."""

    source_id = SourceId.FISHING_REMINDER
    default_confidence = Confidence.MEDIUM
    BASE_URL = "https://www.fishingreminder.com/US/charts/fishing_times"

    def __init__(
        self,
        weight: float = 0.3,
        confidence: Optional[Confidence] = None,
        timeout: float = 10.0,
        base_url: Optional[str] = None,
        city: Optional[str] = None,
    ):
        super().__init__(weight=weight, confidence=confidence, timeout=timeout)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.city = city

    def build_url(self, location: Location) -> str:
        city = self.city or city_for(location.latitude, location.longitude)
        return f"{self.base_url}/{quote(city)}"

    def collect(
        self, client: Optional[httpx.Client], location: Location, day: date
    ) -> SourceResult:
        soup = self.get_html(client, self.build_url(location), params={"date": day.isoformat()})
        return self.parse(soup)

    def parse(self, soup: BeautifulSoup) -> SourceResult:
        windows = []
        for selector, kind in ((".major-time", WindowKind.MAJOR), (".minor-time", WindowKind.MINOR)):
            for elem in soup.select(selector):
                for start, end in parse_ranges(elem.get_text(" ", strip=True)):
                    window = self.window(start, end, kind)
                    if window:
                        windows.append(window)

        moon_elem = soup.select_one(".moon-phase")
        rating = None
        rating_elem = soup.select_one(".day-rating")
        if rating_elem:
            match = re.search(r"\d+(?:\.\d+)?", rating_elem.get_text())
            if match:
                rating = float(match.group())

        return self.result(
            windows,
            moon_phase=moon_elem.get_text(strip=True) if moon_elem else None,
            day_rating=rating,
        )
