"""Shared pytest fixtures for zipweather tests.

Upstream OpenWeather calls are mocked with respx; every test that touches
the database gets its own SQLite file.
"""

import pytest
import respx

from zipweather import database
from zipweather.cache import WeatherCaches
from zipweather.config import DEFAULT_OPENWEATHER_BASE_URL

BASE_URL = DEFAULT_OPENWEATHER_BASE_URL
GEO_URL = f"{BASE_URL}/geo/1.0/zip"
WEATHER_URL = f"{BASE_URL}/data/2.5/weather"
FORECAST_URL = f"{BASE_URL}/data/2.5/forecast"

# 2023-11-14 12:00:00 UTC
START_TIME = 1699963200


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'weather_cache.db'}"


@pytest.fixture
def db(database_url):
    """Configured database with all tables created."""
    database.configure(database_url)
    database.init_db()
    yield
    database.dispose()


@pytest.fixture
def caches(db, clock) -> WeatherCaches:
    return WeatherCaches.build(clock)


@pytest.fixture
def openweather():
    """respx router for the OpenWeather API; unmatched requests fail."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def geo_payload() -> dict:
    return {
        "zip": "10001",
        "name": "New York",
        "lat": 40.7484,
        "lon": -73.9967,
        "country": "US",
    }


@pytest.fixture
def current_payload() -> dict:
    return {
        "coord": {"lon": -73.9967, "lat": 40.7484},
        "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
        "main": {"temp": 20.0, "feels_like": 19.4, "humidity": 65},
        "wind": {"speed": 3.6, "deg": 240},
        "name": "New York",
    }


def make_forecast_payload(entries: int = 40, timezone_offset: int = -18000) -> dict:
    """Forecast in 3-hour steps starting at START_TIME."""
    items = []
    for i in range(entries):
        items.append({
            "dt": START_TIME + i * 3 * 60 * 60,
            "main": {
                "temp": 15.0 + i,
                "temp_min": 10.0 + i,
                "temp_max": 20.0 + i,
                "humidity": 50 + i,
            },
            "weather": [{"description": f"conditions {i}", "icon": "02d"}],
            "wind": {"speed": i * 0.5},
        })
    return {
        "cod": "200",
        "cnt": entries,
        "list": items,
        "city": {"name": "New York", "timezone": timezone_offset},
    }


@pytest.fixture
def forecast_payload() -> dict:
    return make_forecast_payload()
