"""
OpenWeather API client.
Covers ZIP geocoding, current conditions and the 5-day/3-hour forecast.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from zipweather.config import DEFAULT_OPENWEATHER_BASE_URL

logger = logging.getLogger(__name__)

_GEO_ZIP_PATH = "/geo/1.0/zip"
_CURRENT_WEATHER_PATH = "/data/2.5/weather"
_FORECAST_PATH = "/data/2.5/forecast"

# Statuses from the geocoding endpoint that mean "no such ZIP code"
_ZIP_REJECTED_STATUSES = {400, 404}


class OpenWeatherAPIError(Exception):
    """OpenWeather API error."""
    def __init__(self, message: str, status_code: Optional[int]):
        super().__init__(message)
        self.status_code = status_code


class InvalidZipCodeError(OpenWeatherAPIError):
    """Geocoding does not know the ZIP code."""
    pass


class UpstreamUnavailableError(OpenWeatherAPIError):
    """Upstream failed, timed out or answered with something unusable."""
    pass


class OpenWeatherClient:
    """
    OpenWeather HTTP client.

    One instance per request; call close() when done.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        base_url: str = DEFAULT_OPENWEATHER_BASE_URL,
    ):
        """
        Initialize OpenWeather client.

        Args:
            api_key: OpenWeather API key (sent as the appid parameter)
            timeout: Request timeout in seconds
            base_url: API root, without trailing slash
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def _fetch(self, path: str, params: Dict[str, Any], what: str) -> Dict[str, Any]:
        """
        Fetch a JSON document from the API.

        Args:
            path: Endpoint path below base_url
            params: Query parameters (appid is added here)
            what: Human-readable name of the resource, for error messages

        Returns:
            Parsed JSON response

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            UpstreamUnavailableError: On transport errors or non-JSON bodies
        """
        url = f"{self.base_url}{path}"
        query = dict(params)
        query["appid"] = self.api_key

        try:
            response = await self.client.get(url, params=query)
        except httpx.RequestError as e:
            raise UpstreamUnavailableError(f"{what} unavailable: {e.__class__.__name__}", None)

        response.raise_for_status()

        try:
            data = response.json()
        except ValueError:
            raise UpstreamUnavailableError(f"{what} unavailable: response is not JSON", response.status_code)

        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"{what} unavailable: unexpected response shape", response.status_code)

        return data

    async def _fetch_or_unavailable(self, path: str, params: Dict[str, Any], what: str) -> Dict[str, Any]:
        try:
            return await self._fetch(path, params, what)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("%s request failed with HTTP %s", what, status)
            raise UpstreamUnavailableError(f"{what} unavailable: HTTP {status}", status)

    async def get_coordinates(self, zip_code: str) -> Dict[str, Any]:
        """
        Geocode a US ZIP code.

        Args:
            zip_code: 5-digit ZIP code

        Returns:
            Geocoding response; contains at least lat and lon

        Raises:
            InvalidZipCodeError: If upstream does not know the ZIP code
            UpstreamUnavailableError: On any other failure
        """
        params = {"zip": f"{zip_code},US"}
        try:
            data = await self._fetch(_GEO_ZIP_PATH, params, "Geocoding")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in _ZIP_REJECTED_STATUSES:
                raise InvalidZipCodeError(f"Invalid zip code: {zip_code}", status)
            logger.warning("Geocoding request failed with HTTP %s", status)
            raise UpstreamUnavailableError(f"Geocoding unavailable: HTTP {status}", status)

        if "lat" not in data or "lon" not in data:
            raise UpstreamUnavailableError("Geocoding unavailable: response has no coordinates", None)

        return data

    async def get_current_weather(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Get current conditions in metric units.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            Current weather data from the API
        """
        params = {"lat": lat, "lon": lon, "units": "metric"}
        return await self._fetch_or_unavailable(_CURRENT_WEATHER_PATH, params, "Weather data")

    async def get_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Get the 5-day forecast in 3-hour steps, metric units.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            Forecast data from the API
        """
        params = {"lat": lat, "lon": lon, "units": "metric"}
        return await self._fetch_or_unavailable(_FORECAST_PATH, params, "Forecast data")
