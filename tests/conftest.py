"""
Shared fixtures for the weather proxy test suite.

Provides:
- settings built without reading .env
- a controllable clock for TTL and rate-limit tests
- a mocked requests session returning canned upstream responses
"""

import copy
import json
from unittest.mock import MagicMock

import pytest
import requests

from config.settings import Settings
from weather_proxy.api.cache import WeatherCache
from weather_proxy.api.lookup import WeatherLookupCache
from weather_proxy.api.weather_client import WeatherClient


LONDON_PAYLOAD = {
    "location": {
        "name": "London",
        "country": "GB",
        "lat": 51.5,
        "lon": -0.13,
        "localtime": "2024-01-01 12:00",
    },
    "current": {
        "temp_c": 15.4,
        "feelslike_c": 14.0,
        "condition": {"text": "Cloudy", "icon": "//x/03d.png"},
        "pressure_mb": 1012,
        "humidity": 81,
        "wind_kph": 10,
        "wind_degree": 200,
        "wind_dir": "SW",
        "vis_km": 10,
        "air_quality": {},
        "is_day": 1,
    },
}


def payload_for(name: str, temp_c: float = 15.4, **current) -> dict:
    """London-shaped payload with a different city name and overrides."""
    payload = copy.deepcopy(LONDON_PAYLOAD)
    payload["location"]["name"] = name
    payload["current"]["temp_c"] = temp_c
    payload["current"].update(current)
    return payload


def make_response(status_code: int = 200, body=None, text: str = None) -> requests.Response:
    """Build a real requests.Response with a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    response.encoding = "utf-8"
    return response


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        weatherapi_key="test-key",
        weatherapi_base_url="https://weather.test/v1",
        cache_ttl=600,
        max_cache_entries=100,
        request_timeout=5,
        rate_limit_max_requests=100,
        rate_limit_window_seconds=900,
    )


@pytest.fixture
def london_payload():
    return copy.deepcopy(LONDON_PAYLOAD)


@pytest.fixture
def session(london_payload):
    """Mocked session answering every GET with the London payload."""
    mock_session = MagicMock(spec=requests.Session)
    mock_session.get.return_value = make_response(200, london_payload)
    return mock_session


@pytest.fixture
def client(settings, session, clock):
    return WeatherClient(settings=settings, session=session, clock=clock)


@pytest.fixture
def cache(settings, clock):
    return WeatherCache(ttl=settings.cache_ttl, max_entries=settings.max_cache_entries, clock=clock)


@pytest.fixture
def lookups(client, cache):
    return WeatherLookupCache(client, cache)
