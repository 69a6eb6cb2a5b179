"""Tests for current weather and water-temperature lookups."""

import time
from unittest.mock import MagicMock, patch

import httpx
import pytest
from bs4 import BeautifulSoup

from forecast.conditions import (
    OPENWEATHER_URL,
    WATER_TEMPERATURE_URL,
    ConditionsProvider,
    degrees_to_compass,
    parse_water_temperatures,
    parse_weather,
    species_notes,
)
from forecast.models import Conditions

WATER_HTML = """
<html><body>
<h1>Lake St. Clair water temperature today</h1>
<p>Mitchell’s Bay water temperature today is 72.5°F</p>
<p>Water temperature in Algonac today is 69°F</p>
<table><tr><td>Anchor Bay</td><td>77°F</td></tr>
<tr><td>St Clair Shores</td><td>66.2 °F</td></tr>
<tr><td>Algonac</td><td>70°F</td></tr></table>
</body></html>
"""

WEATHER_PAYLOAD = {
    "main": {"temp": 61.34, "pressure": 1016, "humidity": 72},
    "wind": {"speed": 9.2, "deg": 225},
    "clouds": {"all": 40},
}


def _mock_client_class(mock_client_class, get_side_effect):
    client = MagicMock()
    client.get.side_effect = get_side_effect
    mock_client_class.return_value.__enter__ = MagicMock(return_value=client)
    mock_client_class.return_value.__exit__ = MagicMock(return_value=False)
    return client


def _routes(weather=None, water=None):
    """Answer by URL; an exception instance is raised instead of returned."""

    def get(url, **kwargs):
        answer = weather if url == OPENWEATHER_URL else water
        if isinstance(answer, Exception):
            raise answer
        return answer

    return get


def _weather_ok():
    return MagicMock(json=MagicMock(return_value=WEATHER_PAYLOAD))


def _water_ok():
    return MagicMock(text=WATER_HTML)


def _http_error(status):
    return httpx.HTTPStatusError(
        "error", request=MagicMock(), response=MagicMock(status_code=status)
    )


class TestParsing:
    def test_water_page(self):
        readings = parse_water_temperatures(BeautifulSoup(WATER_HTML, "html.parser"))
        assert readings == {
            "Mitchell's Bay": 72.5,
            "Algonac": 69.0,
            "Anchor Bay": 77.0,
            "St. Clair Shores": 66.2,
        }

    def test_water_page_without_readings(self):
        soup = BeautifulSoup("<p>Lake St. Clair is 26 miles across.</p>", "html.parser")
        assert parse_water_temperatures(soup) == {}

    def test_weather(self):
        fields = parse_weather(WEATHER_PAYLOAD)
        assert fields["air_temp_f"] == 61.3
        assert fields["pressure_inhg"] == 30.0
        assert fields["wind_mph"] == 9.2
        assert fields["wind_direction"] == "SW"
        assert fields["humidity"] == 72
        assert fields["cloud_cover"] == 40

    def test_weather_without_temperature(self):
        with pytest.raises(ValueError, match="no temperature"):
            parse_weather({"wind": {"speed": 3}})

    @pytest.mark.parametrize(
        "degrees,expected",
        [(0, "N"), (22, "N"), (23, "NE"), (90, "E"), (225, "SW"), (350, "N"), (-90, "W")],
    )
    def test_compass(self, degrees, expected):
        assert degrees_to_compass(degrees) == expected


class TestSpeciesNotes:
    def test_musky_range_and_extremes(self):
        conditions = Conditions(
            water_temp_f=71.2,
            water_locations={"Anchor Bay": 77.0, "St. Clair Shores": 66.2},
        )
        notes = species_notes(conditions)
        assert notes[0].startswith("Water is in the 68-78°F range")
        assert "Anchor Bay is warmest at 77°F" in notes[1]
        assert "St. Clair Shores is coolest at 66.2°F" in notes[2]

    def test_cold_water_estimate(self):
        assert species_notes(Conditions(water_temp_f=50.0)) == []


class TestConditionsProvider:
    @patch("forecast.conditions.httpx.Client")
    def test_both_lookups(self, mock_client_class, location):
        client = _mock_client_class(
            mock_client_class, _routes(weather=_weather_ok(), water=_water_ok())
        )
        conditions = ConditionsProvider(weather_api_key="owm-test").fetch(location)

        assert conditions.sources == ["openweather", "seatemperature"]
        assert conditions.errors == []
        assert conditions.air_temp_f == 61.3
        assert conditions.water_temp_f == pytest.approx(71.2, abs=0.05)
        assert conditions.water_temp_estimated is False
        assert conditions.available

        weather_call = client.get.call_args_list[0]
        assert weather_call.args[0] == OPENWEATHER_URL
        assert weather_call.kwargs["params"] == {
            "lat": 42.4583,
            "lon": -82.7167,
            "appid": "owm-test",
            "units": "imperial",
        }
        assert client.get.call_args_list[1].args[0] == WATER_TEMPERATURE_URL

    @patch("forecast.conditions.httpx.Client")
    def test_water_estimated_from_air_when_page_fails(self, mock_client_class, location):
        _mock_client_class(
            mock_client_class, _routes(weather=_weather_ok(), water=_http_error(503))
        )
        conditions = ConditionsProvider(weather_api_key="owm-test").fetch(location)

        assert conditions.water_temp_f == pytest.approx(56.3)
        assert conditions.water_temp_estimated is True
        assert conditions.sources == ["openweather"]
        assert conditions.errors == [{"source_id": "seatemperature", "message": "HTTP 503"}]

    @patch("forecast.conditions.httpx.Client")
    def test_water_offset_is_configurable(self, mock_client_class, location):
        _mock_client_class(
            mock_client_class,
            _routes(weather=_weather_ok(), water=MagicMock(text="<p>closed</p>")),
        )
        provider = ConditionsProvider(weather_api_key="owm-test", water_temp_offset_f=-8.0)
        conditions = provider.fetch(location)

        assert conditions.water_temp_f == pytest.approx(53.3)
        assert conditions.errors == [
            {"source_id": "seatemperature", "message": "no water temperatures on page"}
        ]

    @patch("forecast.conditions.httpx.Client")
    def test_without_key_weather_is_skipped(self, mock_client_class, monkeypatch, location):
        monkeypatch.delenv("WEATHER_API_KEY", raising=False)
        client = _mock_client_class(mock_client_class, _routes(water=_water_ok()))
        conditions = ConditionsProvider().fetch(location)

        assert client.get.call_count == 1
        assert client.get.call_args.args[0] == WATER_TEMPERATURE_URL
        assert conditions.air_temp_f is None
        assert conditions.water_temp_f == pytest.approx(71.2, abs=0.05)
        assert conditions.errors == []

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("WEATHER_API_KEY", "owm-env")
        assert ConditionsProvider().weather_api_key == "owm-env"

    @patch("forecast.conditions.httpx.Client")
    def test_weather_timeout_keeps_water(self, mock_client_class, location):
        _mock_client_class(
            mock_client_class,
            _routes(weather=httpx.ReadTimeout("slow"), water=_water_ok()),
        )
        conditions = ConditionsProvider(weather_api_key="owm-test").fetch(location)

        assert conditions.errors == [{"source_id": "openweather", "message": "timeout"}]
        assert conditions.sources == ["seatemperature"]
        assert conditions.water_temp_estimated is False
        assert conditions.available

    @patch("forecast.conditions.httpx.Client")
    def test_everything_down_is_unavailable(self, mock_client_class, location):
        _mock_client_class(
            mock_client_class,
            _routes(weather=_http_error(401), water=httpx.ReadTimeout("slow")),
        )
        conditions = ConditionsProvider(weather_api_key="bad").fetch(location)

        assert not conditions.available
        assert conditions.water_temp_f is None
        assert [e["source_id"] for e in conditions.errors] == ["openweather", "seatemperature"]

    @patch("forecast.conditions.httpx.Client")
    def test_expired_deadline_skips_requests(self, mock_client_class, location):
        conditions = ConditionsProvider(weather_api_key="owm-test").fetch(
            location, deadline=time.monotonic() - 1
        )
        mock_client_class.assert_not_called()
        assert conditions.errors == [{"source_id": "conditions", "message": "timeout"}]
