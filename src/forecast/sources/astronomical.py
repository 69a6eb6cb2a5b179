"""Offline solunar estimate from moon phase and solar position (no API).

Accuracy is within tens of minutes, which is enough to act as a low-weight
tie-breaker next to the published tables.
"""

import math
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

import httpx

from forecast.adapter import SourceAdapter
from forecast.clock import format_clock, wrap_minutes
from forecast.models import Location, SourceResult
from shared_types import Confidence, SourceId, WindowKind

REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=ZoneInfo("UTC"))
SYNODIC_DAYS = 29.53058770576
LUNAR_DAY_MINUTES = 1490  # 24h50m between successive lunar transits

MAJOR_MINUTES = 120
MINOR_MINUTES = 60

_PHASE_NAMES = (
    (22.5, "New Moon"),
    (67.5, "Waxing Crescent"),
    (112.5, "First Quarter"),
    (157.5, "Waxing Gibbous"),
    (202.5, "Full Moon"),
    (247.5, "Waning Gibbous"),
    (292.5, "Last Quarter"),
    (337.5, "Waning Crescent"),
)


def moon_phase_angle(moment: datetime) -> float:
    """Moon phase angle in degrees. 0/360 = new moon, 180 = full moon."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    diff_seconds = (moment - REFERENCE_NEW_MOON).total_seconds()
    synodic_seconds = SYNODIC_DAYS * 86400
    return (diff_seconds % synodic_seconds) / synodic_seconds * 360.0


def moon_info(moment: datetime) -> dict:
    """Phase name, illumination percent and a 1-4 day rating.

    The rating peaks within ~2 days of new or full moon.
    """
    angle = moon_phase_angle(moment)
    phase_name = "New Moon"
    for limit, name in _PHASE_NAMES:
        if angle < limit:
            phase_name = name
            break

    illumination = round((1 - math.cos(math.radians(angle))) / 2 * 100)

    dist_from_new = min(angle, 360 - angle)
    dist_from_full = abs(angle - 180)
    min_dist = min(dist_from_new, dist_from_full)
    if min_dist < 30:
        rating = 4
    elif min_dist < 60:
        rating = 3
    elif min_dist < 90:
        rating = 2
    else:
        rating = 1

    return {
        "angle": angle,
        "phase_name": phase_name,
        "illumination_pct": illumination,
        "day_rating": rating,
    }


def _solar_terms(day: date) -> tuple[float, float]:
    """Equation of time (minutes) and declination (radians), NOAA approximation."""
    n = day.timetuple().tm_yday
    gamma = 2 * math.pi / 365 * (n - 1)
    eqtime = 229.18 * (
        0.000075
        + 0.001868 * math.cos(gamma)
        - 0.032077 * math.sin(gamma)
        - 0.014615 * math.cos(2 * gamma)
        - 0.040849 * math.sin(2 * gamma)
    )
    decl = (
        0.006918
        - 0.399912 * math.cos(gamma)
        + 0.070257 * math.sin(gamma)
        - 0.006758 * math.cos(2 * gamma)
        + 0.000907 * math.sin(2 * gamma)
        - 0.002697 * math.cos(3 * gamma)
        + 0.00148 * math.sin(3 * gamma)
    )
    return eqtime, decl


def utc_offset_minutes(tz_name: str, day: date) -> float:
    noon = datetime.combine(day, time(12, 0), tzinfo=ZoneInfo(tz_name))
    return noon.utcoffset().total_seconds() / 60


def solar_noon(day: date, longitude: float, offset_minutes: float) -> float:
    """Local solar noon in minutes since local midnight."""
    eqtime, _ = _solar_terms(day)
    return 720 - 4 * longitude - eqtime + offset_minutes


def sun_times(
    day: date, latitude: float, longitude: float, offset_minutes: float
) -> tuple[float, float]:
    """Approximate local sunrise and sunset in minutes since midnight."""
    eqtime, decl = _solar_terms(day)
    lat_rad = math.radians(latitude)
    cos_ha = math.cos(math.radians(90.833)) / (
        math.cos(lat_rad) * math.cos(decl)
    ) - math.tan(lat_rad) * math.tan(decl)
    # Polar day/night clamps to a full or empty arc
    cos_ha = max(-1.0, min(1.0, cos_ha))
    ha = math.degrees(math.acos(cos_ha))
    sunrise = 720 - 4 * (longitude + ha) - eqtime + offset_minutes
    sunset = 720 - 4 * (longitude - ha) - eqtime + offset_minutes
    return wrap_minutes(sunrise), wrap_minutes(sunset)


class AstronomicalAdapter(SourceAdapter):
    """Majors around lunar transit and underfoot, minors around moonrise and moonset."""

    source_id = SourceId.ASTRONOMICAL
    default_confidence = Confidence.LOW
    requires_network = False

    def __init__(
        self,
        weight: float = 0.1,
        confidence: Optional[Confidence] = None,
        timeout: float = 1.0,
    ):
        super().__init__(weight=weight, confidence=confidence, timeout=timeout)

    def collect(
        self, client: Optional[httpx.Client], location: Location, day: date
    ) -> SourceResult:
        tz = ZoneInfo(location.timezone)
        noon_local = datetime.combine(day, time(12, 0), tzinfo=tz)
        offset = utc_offset_minutes(location.timezone, day)

        moon = moon_info(noon_local)
        noon = solar_noon(day, location.longitude, offset)
        transit = noon + moon["angle"] / 360.0 * LUNAR_DAY_MINUTES
        centers = (
            (transit, WindowKind.MAJOR, MAJOR_MINUTES),
            (transit + LUNAR_DAY_MINUTES / 2, WindowKind.MAJOR, MAJOR_MINUTES),
            (transit - LUNAR_DAY_MINUTES / 4, WindowKind.MINOR, MINOR_MINUTES),
            (transit + LUNAR_DAY_MINUTES / 4, WindowKind.MINOR, MINOR_MINUTES),
        )

        windows = []
        for center, kind, length in centers:
            start = round(wrap_minutes(center - length / 2))
            if start == 1440:
                start = 0
            end = (start + length) % 1440
            window = self.window(start, end, kind)
            if window:
                windows.append(window)

        sunrise, sunset = sun_times(day, location.latitude, location.longitude, offset)
        return self.result(
            windows,
            moon_phase=moon["phase_name"],
            moon_illumination=moon["illumination_pct"],
            day_rating=float(moon["day_rating"]),
            sunrise=format_clock(sunrise),
            sunset=format_clock(sunset),
        )
