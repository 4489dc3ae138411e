"""
OpenWeather response parser.
Converts upstream payloads to our Pydantic models.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from .models import (
    CurrentConditions, DailyForecast, Temperature, TemperatureRange,
)

# The forecast comes in 3-hour steps, so every 8th entry starts a new day
_STEPS_PER_DAY = 8
_FORECAST_DAYS = 5


class WeatherParseError(ValueError):
    """Upstream payload is missing fields we need."""
    pass


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def _format_date(timestamp: int, utc_offset: int) -> str:
    """Format a UNIX timestamp as M/D/YYYY in the given UTC offset (seconds)."""
    local = datetime.fromtimestamp(timestamp, tz=timezone(timedelta(seconds=utc_offset)))
    return f"{local.month}/{local.day}/{local.year}"


def _first_condition(entry: Dict[str, Any]) -> Dict[str, Any]:
    conditions = entry.get("weather") or []
    if not conditions:
        raise WeatherParseError("Weather entry has no conditions")
    return conditions[0]


def parse_current(payload: Dict[str, Any]) -> CurrentConditions:
    """
    Parse current weather response.

    Args:
        payload: Response from /data/2.5/weather (metric units)

    Returns:
        CurrentConditions model

    Raises:
        WeatherParseError: If required fields are missing
    """
    try:
        main = payload["main"]
        condition = _first_condition(payload)
        celsius = float(main["temp"])

        return CurrentConditions(
            temperature=Temperature(
                celsius=celsius,
                fahrenheit=celsius_to_fahrenheit(celsius),
            ),
            humidity=main["humidity"],
            wind_speed=payload["wind"]["speed"],
            description=condition["description"],
            icon=condition["icon"],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise WeatherParseError(f"Malformed current weather payload: {e}")


def parse_daily_forecasts(payload: Dict[str, Any]) -> List[DailyForecast]:
    """
    Reduce the 3-hourly forecast to one entry per day.

    Takes every 8th entry, starting with the first, and keeps at most five.
    Dates are rendered in the city's local time when the payload carries
    its UTC offset, otherwise in UTC.

    Args:
        payload: Response from /data/2.5/forecast (metric units)

    Returns:
        List of DailyForecast models

    Raises:
        WeatherParseError: If required fields are missing
    """
    try:
        entries = payload["list"]
        utc_offset = int((payload.get("city") or {}).get("timezone") or 0)

        daily = []
        for entry in entries[::_STEPS_PER_DAY][:_FORECAST_DAYS]:
            main = entry["main"]
            condition = _first_condition(entry)
            daily.append(DailyForecast(
                date=_format_date(entry["dt"], utc_offset),
                temperature=TemperatureRange(
                    min=main["temp_min"],
                    max=main["temp_max"],
                ),
                humidity=main["humidity"],
                wind_speed=entry["wind"]["speed"],
                description=condition["description"],
                icon=condition["icon"],
            ))
        return daily
    except (KeyError, TypeError, ValueError) as e:
        raise WeatherParseError(f"Malformed forecast payload: {e}")
