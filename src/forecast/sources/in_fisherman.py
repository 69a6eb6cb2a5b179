"""In-Fisherman best-fishing-times page scraper."""

import re
from datetime import date
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from forecast.adapter import SourceAdapter
from forecast.models import Location, SourceResult
from shared_types import Confidence, SourceId, WindowKind

# "Major: 6:15 AM - 8:15 AM", "Minor Period 12:40 to 1:40 PM"
PERIOD_RE = re.compile(
    r"\b(Major|Minor)\b[^0-9]{0,24}"
    r"(\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?)\s*(?:-|–|—|to)\s*"
    r"(\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?)",
    re.IGNORECASE,
)
_MERIDIEM_RE = re.compile(r"[AaPp]\.?[Mm]\.?\s*$")


def _share_meridiem(start: str, end: str) -> str:
    """``"12:40 to 1:40 PM"`` writes the meridiem once; copy it to the start."""
    if _MERIDIEM_RE.search(start) or not _MERIDIEM_RE.search(end):
        return start
    meridiem = _MERIDIEM_RE.search(end).group()
    hour = int(start.split(":")[0])
    end_hour = int(end.split(":")[0])
    # "11:30 - 1:30 PM" and "11:30 - 12:30 PM" start before noon
    if hour != 12 and (hour > end_hour or end_hour == 12):
        meridiem = "AM" if meridiem[0].lower() == "p" else "PM"
    return f"{start.strip()} {meridiem}"


class InFishermanAdapter(SourceAdapter):
    """Periods scraped from the text of the In-Fisherman solunar page."""

    source_id = SourceId.IN_FISHERMAN
    default_confidence = Confidence.MEDIUM
    PAGE_URL = "https://www.in-fisherman.com/content/best-fishing-times/245806"

    def __init__(
        self,
        weight: float = 0.2,
        confidence: Optional[Confidence] = None,
        timeout: float = 10.0,
        page_url: Optional[str] = None,
    ):
        super().__init__(weight=weight, confidence=confidence, timeout=timeout)
        self.page_url = page_url or self.PAGE_URL

    def collect(
        self, client: Optional[httpx.Client], location: Location, day: date
    ) -> SourceResult:
        soup = self.get_html(
            client,
            self.page_url,
            params={
                "lat": location.latitude,
                "lng": location.longitude,
                "date": day.isoformat(),
            },
        )
        return self.parse(soup)

    def parse(self, soup: BeautifulSoup) -> SourceResult:
        text = soup.get_text(" ", strip=True)
        windows = []
        for match in PERIOD_RE.finditer(text):
            kind = WindowKind.MAJOR if match.group(1).lower() == "major" else WindowKind.MINOR
            start, end = match.group(2).strip(), match.group(3).strip()
            window = self.window(_share_meridiem(start, end), end, kind)
            if window:
                windows.append(window)
        return self.result(windows)
