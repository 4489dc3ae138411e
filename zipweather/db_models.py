"""
Database models for zipweather.

Each table is an independent keyed cache; there are no relationships.
"""

from sqlalchemy import Column, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Coordinates(Base):
    """Geocoded coordinates for a ZIP code."""
    __tablename__ = "coordinates"

    zip_code = Column(String, primary_key=True)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)
    updated_at = Column(Integer, nullable=False, index=True)
    last_used_at = Column(Integer, nullable=True, index=True)


class CurrentWeather(Base):
    """Upstream current-conditions payload for a location key."""
    __tablename__ = "current_weather"

    location_key = Column(String, primary_key=True)
    data = Column(Text, nullable=False)
    updated_at = Column(Integer, nullable=False, index=True)


class Forecast(Base):
    """Upstream 5-day forecast payload for a location key."""
    __tablename__ = "forecasts"

    location_key = Column(String, primary_key=True)
    data = Column(Text, nullable=False)
    updated_at = Column(Integer, nullable=False, index=True)
