"""
Response models for the weather API.
Serialized with camelCase aliases.
"""

from typing import List
from pydantic import BaseModel, Field


class Temperature(BaseModel):
    """Temperature in both scales."""
    celsius: float
    fahrenheit: float


class TemperatureRange(BaseModel):
    """Daily temperature bounds in Celsius."""
    min: float
    max: float


class CurrentConditions(BaseModel):
    """Current weather at a location."""
    temperature: Temperature
    humidity: float
    wind_speed: float = Field(alias="windSpeed")
    description: str
    icon: str

    class Config:
        populate_by_name = True


class DailyForecast(BaseModel):
    """One day of the forecast."""
    date: str
    temperature: TemperatureRange
    humidity: float
    wind_speed: float = Field(alias="windSpeed")
    description: str
    icon: str

    class Config:
        populate_by_name = True


class WeatherReport(BaseModel):
    """Current conditions plus up to five daily forecasts."""
    current: CurrentConditions
    forecast: List[DailyForecast] = Field(default_factory=list)


class TableCount(BaseModel):
    count: int


class CacheStats(BaseModel):
    """Row counts per cache table."""
    current_weather: TableCount = Field(alias="currentWeather")
    forecasts: TableCount
    coordinates: TableCount

    class Config:
        populate_by_name = True


class RecentLocation(BaseModel):
    """A recently requested ZIP code."""
    zip_code: str = Field(alias="zipCode")
    last_used: str = Field(alias="lastUsed")

    class Config:
        populate_by_name = True


class RecentLocations(BaseModel):
    recent_locations: List[RecentLocation] = Field(default_factory=list, alias="recentLocations")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    error: str
