"""
TTL caches backed by the relational store.

Three independent tables (coordinates, current weather, forecasts), each
keyed by a string and aged by its own time-to-live.
"""

import json
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.dialects import postgresql, sqlite

from zipweather.config import COORDINATES_TTL, CURRENT_WEATHER_TTL, FORECAST_TTL
from zipweather.database import get_db_context
from zipweather.db_models import Coordinates, CurrentWeather, Forecast

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

# Dialects with native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _format_coordinate(value: float) -> str:
    if value == 0:
        return "0"
    text = repr(float(value))
    if "e" in text:
        # Plain decimal notation, never exponent form
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


def location_key(lat: float, lon: float) -> str:
    """Cache key for a coordinate pair, e.g. "40.7128,-74.006"."""
    return f"{_format_coordinate(lat)},{_format_coordinate(lon)}"


class TTLCache:
    """
    Keyed cache over a single table with a fixed time-to-live.

    A row is fresh while ``now - updated_at < ttl``. Writes overwrite the
    row for the key. Stale rows are left in place until clear_expired()
    removes them.
    """

    def __init__(self, model, key_column: str, ttl: int, clock: Clock = time.time):
        """
        Initialize cache.

        Args:
            model: Declarative model class backing this cache
            key_column: Name of the primary key column
            ttl: Time-to-live in seconds
            clock: Returns the current UNIX time in seconds
        """
        self.model = model
        self.key_column = key_column
        self.ttl = ttl
        self.clock = clock

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def _now(self) -> int:
        return int(self.clock())

    def _key_attr(self):
        return getattr(self.model, self.key_column)

    def _load(self, row) -> Any:
        raise NotImplementedError

    def _columns(self, value: Any) -> Dict[str, Any]:
        """Column values to write for a cached value."""
        raise NotImplementedError

    def is_fresh(self, updated_at: int, now: Optional[int] = None) -> bool:
        if now is None:
            now = self._now()
        return now - updated_at < self.ttl

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if still fresh.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/stale
        """
        with get_db_context() as db:
            row = db.query(self.model).filter(self._key_attr() == key).first()

            if row is None:
                return None

            if not self.is_fresh(row.updated_at):
                logger.debug("Stale %s entry for %s", self.name, key)
                return None

            return self._load(row)

    def set(self, key: str, value: Any):
        """
        Store value under key with the current timestamp, replacing any existing row.

        Args:
            key: Cache key
            value: Value to cache
        """
        columns = self._columns(value)
        columns["updated_at"] = self._now()

        with get_db_context() as db:
            insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)

            if insert is None:
                db.merge(self.model(**{self.key_column: key}, **columns))
                return

            # Single INSERT ... ON CONFLICT statement, like INSERT OR REPLACE
            stmt = insert(self.model).values(**{self.key_column: key}, **columns)
            stmt = stmt.on_conflict_do_update(
                index_elements=[self.key_column],
                set_=columns,
            )
            db.execute(stmt)

    def delete(self, key: str):
        """Delete a specific cache entry."""
        with get_db_context() as db:
            db.query(self.model).filter(self._key_attr() == key).delete(synchronize_session=False)

    def clear_expired(self) -> int:
        """
        Delete rows strictly older than the TTL window.

        Returns:
            Number of rows deleted
        """
        cutoff = self._now() - self.ttl
        with get_db_context() as db:
            deleted = db.query(self.model).filter(
                self.model.updated_at < cutoff
            ).delete(synchronize_session=False)
        return deleted

    def clear_all(self):
        """Clear all cache entries."""
        with get_db_context() as db:
            db.query(self.model).delete(synchronize_session=False)

    def count(self) -> int:
        """Number of rows currently stored, fresh or not."""
        with get_db_context() as db:
            return db.query(self.model).count()


class CoordinatesCache(TTLCache):
    """ZIP code to {"lat", "lon"} cache."""

    def __init__(self, ttl: int = COORDINATES_TTL, clock: Clock = time.time):
        super().__init__(Coordinates, "zip_code", ttl, clock)

    def _load(self, row) -> Dict[str, float]:
        return {"lat": row.lat, "lon": row.lon}

    def _columns(self, value: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "lat": float(value["lat"]),
            "lon": float(value["lon"]),
            "last_used_at": self._now(),
        }

    def touch(self, zip_code: str):
        """Mark a ZIP code as just used. Freshness is unaffected."""
        with get_db_context() as db:
            db.query(Coordinates).filter(Coordinates.zip_code == zip_code).update(
                {Coordinates.last_used_at: self._now()},
                synchronize_session=False,
            )

    def recent(self, limit: int) -> List[Tuple[str, int]]:
        """
        Most recently used ZIP codes.

        Args:
            limit: Maximum number of entries

        Returns:
            (zip_code, last_used_at) pairs, newest first
        """
        with get_db_context() as db:
            rows = (
                db.query(Coordinates.zip_code, Coordinates.last_used_at)
                .filter(Coordinates.last_used_at.isnot(None))
                .order_by(Coordinates.last_used_at.desc(), Coordinates.zip_code)
                .limit(limit)
                .all()
            )
            return [(zip_code, last_used_at) for zip_code, last_used_at in rows]


class PayloadCache(TTLCache):
    """Location key to upstream JSON payload cache."""

    def __init__(self, model, ttl: int, clock: Clock = time.time):
        super().__init__(model, "location_key", ttl, clock)

    def _load(self, row) -> Dict[str, Any]:
        return json.loads(row.data)

    def _columns(self, value: Dict[str, Any]) -> Dict[str, Any]:
        return {"data": json.dumps(value)}


@dataclass
class WeatherCaches:
    """The three caches used to serve a weather report."""
    coordinates: CoordinatesCache
    current_weather: PayloadCache
    forecasts: PayloadCache

    @classmethod
    def build(cls, clock: Clock = time.time) -> "WeatherCaches":
        return cls(
            coordinates=CoordinatesCache(COORDINATES_TTL, clock),
            current_weather=PayloadCache(CurrentWeather, CURRENT_WEATHER_TTL, clock),
            forecasts=PayloadCache(Forecast, FORECAST_TTL, clock),
        )

    def all(self) -> Dict[str, TTLCache]:
        return {
            "current_weather": self.current_weather,
            "forecasts": self.forecasts,
            "coordinates": self.coordinates,
        }


def cached(cache_getter: Callable[[], TTLCache], key_fn: Callable):
    """
    Decorator to cache async function results.

    Wrap plain functions or bound methods; every positional and keyword
    argument is passed to key_fn.

    Args:
        cache_getter: Callable that returns the cache instance (evaluated at runtime)
        key_fn: Function that takes the call args/kwargs and returns cache key

    Example:
        caches = WeatherCaches.build()

        @cached(lambda: caches.forecasts, location_key)
        async def get_forecast(lat: float, lon: float):
            return await fetch_forecast(lat, lon)
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Get cache instance at runtime (not decoration time)
            cache_instance = cache_getter()

            key = key_fn(*args, **kwargs)

            cached_value = cache_instance.get(key)
            if cached_value is not None:
                logger.info("Cache hit: %s[%s]", cache_instance.name, key)
                return cached_value

            logger.info("Cache miss: %s[%s]", cache_instance.name, key)
            result = await func(*args, **kwargs)

            cache_instance.set(key, result)

            return result
        return wrapper
    return decorator
