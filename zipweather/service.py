"""
Weather lookups for a ZIP code, served through the local caches.

Pipeline: coordinates (cache or geocode), then current weather and forecast
concurrently (each cache or fetch), then shaping into a WeatherReport.
"""

import asyncio
import logging
import re
import time
from typing import Any, Dict

from zipweather.cache import WeatherCaches, cached, location_key
from zipweather.openweather_client import OpenWeatherClient
from zipweather.weather_parser import parse_current, parse_daily_forecasts
from zipweather.models import WeatherReport

logger = logging.getLogger(__name__)

_ZIP_RE = re.compile(r"[0-9]{5}")


def is_valid_zip(zip_code: str) -> bool:
    """True for exactly five ASCII digits."""
    return bool(_ZIP_RE.fullmatch(zip_code or ""))


class WeatherService:
    """
    Cache-aside access to coordinates, current weather and forecasts.

    Each lookup returns the cached value while it is fresh and otherwise
    fetches from OpenWeather and overwrites the cached row. Upstream errors
    propagate unchanged; nothing is cached for a failed fetch.
    """

    def __init__(self, client: OpenWeatherClient, caches: WeatherCaches):
        """
        Initialize service.

        Args:
            client: Open OpenWeather client (caller closes it)
            caches: Coordinate, current weather and forecast caches
        """
        self.client = client
        self.caches = caches

        self.get_coordinates_cached = cached(
            lambda: self.caches.coordinates, lambda zip_code: zip_code
        )(self._fetch_coordinates)
        self.get_current_weather = cached(
            lambda: self.caches.current_weather, location_key
        )(self._fetch_current_weather)
        self.get_forecast = cached(
            lambda: self.caches.forecasts, location_key
        )(self._fetch_forecast)

    async def _fetch_coordinates(self, zip_code: str) -> Dict[str, float]:
        data = await self.client.get_coordinates(zip_code)
        return {"lat": float(data["lat"]), "lon": float(data["lon"])}

    async def _fetch_current_weather(self, lat: float, lon: float) -> Dict[str, Any]:
        return await self.client.get_current_weather(lat, lon)

    async def _fetch_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        return await self.client.get_forecast(lat, lon)

    async def get_coordinates(self, zip_code: str) -> Dict[str, float]:
        """
        Resolve a ZIP code to {"lat", "lon"} and record it as recently used.

        Raises:
            InvalidZipCodeError: If upstream does not know the ZIP code
            UpstreamUnavailableError: If geocoding failed
        """
        coords = await self.get_coordinates_cached(zip_code)
        self.caches.coordinates.touch(zip_code)
        return coords

    async def get_report(self, zip_code: str) -> WeatherReport:
        """
        Build the full weather report for a ZIP code.

        Args:
            zip_code: 5-digit ZIP code (already validated)

        Returns:
            WeatherReport with current conditions and up to five daily forecasts
        """
        started = time.perf_counter()

        coords = await self.get_coordinates(zip_code)
        lat, lon = coords["lat"], coords["lon"]

        # Let both lookups finish before raising so the client is idle when closed
        results = await asyncio.gather(
            self.get_current_weather(lat, lon),
            self.get_forecast(lat, lon),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        weather, forecast = results

        report = WeatherReport(
            current=parse_current(weather),
            forecast=parse_daily_forecasts(forecast),
        )

        logger.info(
            "weather-request %s: %.1fms",
            zip_code, (time.perf_counter() - started) * 1000,
        )
        return report
