import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zipweather import database
from zipweather.cache import WeatherCaches
from zipweather.config import Settings
from zipweather.models import (
    CacheStats, ErrorResponse, RecentLocation, RecentLocations, TableCount, WeatherReport,
)
from zipweather.openweather_client import (
    InvalidZipCodeError, OpenWeatherClient, UpstreamUnavailableError,
)
from zipweather.service import WeatherService, is_valid_zip
from zipweather.sweeper import CacheSweeper

logger = logging.getLogger(__name__)

INVALID_ZIP_MESSAGE = "Invalid ZIP code provided"
UNAVAILABLE_MESSAGE = "Weather service temporarily unavailable"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def create_app(settings: Optional[Settings] = None, clock: Callable[[], float] = time.time) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Service settings; read from the environment when omitted
        clock: Current UNIX time source for the caches

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = Settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    caches = WeatherCaches.build(clock)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Lifespan event handler - runs on startup and shutdown."""
        database.configure(settings.database_url)
        database.init_db()

        sweeper = None
        if settings.cache_sweep_interval > 0:
            sweeper = CacheSweeper(caches, settings.cache_sweep_interval)
            sweeper.start()

        yield

        if sweeper is not None:
            await sweeper.stop()
        database.dispose()

    app = FastAPI(
        title="zipweather",
        description="Current weather and 5-day forecast by US ZIP code",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.caches = caches

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render HTTP errors as {"error": message}."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(),
        )

    @app.get("/")
    def read_root():
        return {
            "message": "zipweather API",
            "docs": "/docs",
            "endpoints": {
                "weather": "/weather/{zip_code}",
                "cache_stats": "/cache-stats",
                "recent_locations": "/recent-locations",
            }
        }

    @app.get(
        "/weather/{zip_code}",
        response_model=WeatherReport,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid ZIP code"},
            500: {"model": ErrorResponse, "description": "Server error"},
            503: {"model": ErrorResponse, "description": "Upstream unavailable"},
        },
    )
    async def get_weather(zip_code: str) -> WeatherReport:
        """
        Get current conditions and the 5-day forecast for a US ZIP code.

        Args:
            zip_code: 5-digit ZIP code

        Returns:
            WeatherReport

        Raises:
            HTTPException: 400 for an invalid ZIP, 503 when OpenWeather is
                           unavailable, 500 otherwise
        """
        if not is_valid_zip(zip_code):
            raise HTTPException(status_code=400, detail=INVALID_ZIP_MESSAGE)

        client = OpenWeatherClient(
            api_key=settings.openweather_api_key,
            timeout=settings.upstream_timeout,
            base_url=settings.openweather_base_url,
        )
        try:
            service = WeatherService(client, caches)
            return await service.get_report(zip_code)
        except InvalidZipCodeError as e:
            logger.info("Rejected ZIP code %s: %s", zip_code, e)
            raise HTTPException(status_code=400, detail=INVALID_ZIP_MESSAGE)
        except UpstreamUnavailableError as e:
            logger.error("Upstream error for %s: %s", zip_code, e)
            raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)
        except Exception:
            logger.exception("Weather request for %s failed", zip_code)
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)
        finally:
            await client.close()

    @app.get("/cache-stats", response_model=CacheStats)
    def get_cache_stats() -> CacheStats:
        """Row counts per cache table."""
        return CacheStats(
            current_weather=TableCount(count=caches.current_weather.count()),
            forecasts=TableCount(count=caches.forecasts.count()),
            coordinates=TableCount(count=caches.coordinates.count()),
        )

    @app.get("/recent-locations", response_model=RecentLocations)
    def get_recent_locations() -> RecentLocations:
        """Most recently requested ZIP codes, newest first."""
        recent = caches.coordinates.recent(settings.recent_locations_limit)
        return RecentLocations(recent_locations=[
            RecentLocation(
                zip_code=zip_code,
                last_used=datetime.fromtimestamp(last_used, tz=timezone.utc).isoformat(),
            )
            for zip_code, last_used in recent
        ])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=app.state.settings.port)
