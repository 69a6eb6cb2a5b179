"""Current weather and water temperature around the lake.

Two independent lookups feed one ``Conditions`` record: OpenWeatherMap for air,
wind and pressure, and the seatemperature.info lake page for water readings.
Either may fail without affecting the other. When no water reading is found,
water temperature is estimated from air temperature plus
``water_temp_offset_f``, a configured bias, and flagged as estimated.
"""

import os
import re
import time
from typing import Optional

import httpx
import structlog
from bs4 import BeautifulSoup

from cli.retry import http_retry
from shared_types import SourceId

from .adapter import USER_AGENT
from .models import Conditions, Location

logger = structlog.get_logger().bind(source="conditions")

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
WATER_TEMPERATURE_URL = "https://seatemperature.info/lake-st-clair-water-temperature.html"
DEFAULT_WATER_TEMP_OFFSET_F = -5.0
HPA_TO_INHG = 0.02953

COMPASS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# (pattern, display name) for readings on the lake page
WATER_LOCATIONS = (
    (r"Mitchell['’]?s\s+Bay", "Mitchell's Bay"),
    (r"Pearl\s+Beach", "Pearl Beach"),
    (r"Algonac", "Algonac"),
    (r"Anchor\s+Bay", "Anchor Bay"),
    (r"Mount\s+Clemens", "Mount Clemens"),
    (r"(?:Saint|St\.?)\s+Clair\s+Shores", "St. Clair Shores"),
    (r"New\s+Baltimore", "New Baltimore"),
    (r"Marine\s+City", "Marine City"),
)
_WATER_RE = re.compile(
    r"(" + "|".join(p for p, _ in WATER_LOCATIONS) + r")[^0-9°]{0,40}?(\d{2,3}(?:\.\d+)?)\s*°\s*F",
    re.IGNORECASE,
)

_RETRYABLE = (httpx.ConnectError, httpx.RemoteProtocolError)


def degrees_to_compass(degrees: float) -> str:
    return COMPASS[int((degrees % 360) / 45 + 0.5) % 8]


def _display_name(matched: str) -> str:
    for pattern, name in WATER_LOCATIONS:
        if re.fullmatch(pattern, matched, re.IGNORECASE):
            return name
    return matched


def parse_water_temperatures(soup: BeautifulSoup) -> dict[str, float]:
    """Location name to °F; the first reading per location wins."""
    text = soup.get_text(" ", strip=True)
    readings: dict[str, float] = {}
    for match in _WATER_RE.finditer(text):
        readings.setdefault(_display_name(match.group(1)), float(match.group(2)))
    return readings


def parse_weather(payload: dict) -> dict:
    """OpenWeatherMap current-weather JSON (imperial units) to ``Conditions`` fields."""
    main = payload.get("main") or {}
    wind = payload.get("wind") or {}
    if main.get("temp") is None:
        raise ValueError("no temperature in weather response")
    fields = {
        "air_temp_f": round(float(main["temp"]), 1),
        "humidity": main.get("humidity"),
        "cloud_cover": (payload.get("clouds") or {}).get("all"),
    }
    if main.get("pressure") is not None:
        fields["pressure_inhg"] = round(float(main["pressure"]) * HPA_TO_INHG, 2)
    if wind.get("speed") is not None:
        fields["wind_mph"] = round(float(wind["speed"]), 1)
    if wind.get("deg") is not None:
        fields["wind_direction"] = degrees_to_compass(float(wind["deg"]))
    return fields


def species_notes(conditions: Conditions) -> list[str]:
    """Short water-temperature hints for the report."""
    notes = []
    water = conditions.water_temp_f
    if water is not None and 68 <= water <= 78:
        notes.append("Water is in the 68-78°F range where musky are most active.")
    if conditions.water_locations:
        warmest = max(conditions.water_locations.items(), key=lambda kv: kv[1])
        coldest = min(conditions.water_locations.items(), key=lambda kv: kv[1])
        if warmest[1] > 75:
            notes.append(f"{warmest[0]} is warmest at {warmest[1]:g}°F, best for warm-water species.")
        if coldest[1] < 70:
            notes.append(f"{coldest[0]} is coolest at {coldest[1]:g}°F; expect less activity there.")
    return notes


class ConditionsProvider:
    """Fetches current conditions; ``fetch`` never raises.

    Args:
        weather_api_key: OpenWeatherMap key; falls back to ``WEATHER_API_KEY``.
            Without one the weather lookup is skipped.
        water_url: Lake water-temperature page; None skips the lookup.
        timeout: Per-request timeout in seconds.
        water_temp_offset_f: Added to air temperature when no water reading exists.
    """

    def __init__(
        self,
        weather_api_key: Optional[str] = None,
        water_url: Optional[str] = WATER_TEMPERATURE_URL,
        timeout: float = 8.0,
        water_temp_offset_f: float = DEFAULT_WATER_TEMP_OFFSET_F,
        weather_url: str = OPENWEATHER_URL,
    ):
        self.weather_api_key = weather_api_key or os.getenv("WEATHER_API_KEY")
        self.water_url = water_url
        self.timeout = timeout
        self.water_temp_offset_f = water_temp_offset_f
        self.weather_url = weather_url

    def fetch(self, location: Location, deadline: Optional[float] = None) -> Conditions:
        conditions = Conditions()
        timeout = self.timeout
        if deadline is not None:
            timeout = min(timeout, deadline - time.monotonic())
            if timeout <= 0:
                conditions.errors.append({"source_id": "conditions", "message": "timeout"})
                return conditions

        with httpx.Client(
            timeout=timeout, headers={"User-Agent": USER_AGENT}, follow_redirects=True
        ) as client:
            if self.weather_api_key:
                self._lookup(conditions, SourceId.OPENWEATHER, self._weather, client, location)
            if self.water_url:
                self._lookup(conditions, SourceId.SEA_TEMPERATURE, self._water, client, location)

        if conditions.water_locations:
            temps = conditions.water_locations.values()
            conditions.water_temp_f = round(sum(temps) / len(temps), 1)
        elif conditions.air_temp_f is not None:
            conditions.water_temp_f = round(conditions.air_temp_f + self.water_temp_offset_f, 1)
            conditions.water_temp_estimated = True

        logger.info(
            "conditions.fetched",
            sources=conditions.sources,
            errors=len(conditions.errors),
            water_temp_f=conditions.water_temp_f,
            estimated=conditions.water_temp_estimated,
        )
        return conditions

    @staticmethod
    def _lookup(conditions: Conditions, source_id: str, fn, client, location) -> None:
        try:
            fn(conditions, client, location)
        except httpx.TimeoutException:
            message = "timeout"
        except httpx.HTTPStatusError as e:
            message = f"HTTP {e.response.status_code}"
        except httpx.RequestError as e:
            message = f"request failed: {e}"
        except ValueError as e:
            message = str(e)
        else:
            conditions.sources.append(str(source_id))
            return
        logger.warning("conditions.lookup_failed", lookup=str(source_id), error=message)
        conditions.errors.append({"source_id": str(source_id), "message": message})

    def _weather(self, conditions: Conditions, client: httpx.Client, location: Location) -> None:
        payload = self._get(
            client,
            self.weather_url,
            params={
                "lat": location.latitude,
                "lon": location.longitude,
                "appid": self.weather_api_key,
                "units": "imperial",
            },
        ).json()
        for name, value in parse_weather(payload).items():
            setattr(conditions, name, value)

    def _water(self, conditions: Conditions, client: httpx.Client, location: Location) -> None:
        soup = BeautifulSoup(self._get(client, self.water_url).text, "html.parser")
        readings = parse_water_temperatures(soup)
        if not readings:
            raise ValueError("no water temperatures on page")
        conditions.water_locations = readings

    @staticmethod
    @http_retry(exceptions=_RETRYABLE)
    def _get(client: httpx.Client, url: str, **kwargs) -> httpx.Response:
        response = client.get(url, **kwargs)
        response.raise_for_status()
        return response
