"""HTTP API: provider passthrough endpoints and the reconciled snow series."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .cache import ResponseCache, TTLCache, make_key
from .config import Settings, load_settings
from .elements import STATION_ELEMENTS, join_elements
from .exceptions import (
    InputError,
    NotConfiguredError,
    NotFoundError,
    UpstreamAuthError,
    UpstreamError,
    WeatherDataError,
)
from .gateways.frost import NOT_CONFIGURED_DETAILS, FrostGateway
from .gateways.locationforecast import LocationForecastGateway
from .gateways.nominatim import GeocodingGateway
from .log_setup import setup_logger
from .models import Coordinate, DateRange
from .service import build_service
from .stations import StationResolver

APP_NAME = "Snow Precipitation API"
REGION_CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate=86400"


def parse_coordinate(lat: str | None, lon: str | None) -> Coordinate:
    """Coordinate from raw query strings, raising InputError on anything unusable."""
    if lat is None or lon is None or not lat.strip() or not lon.strip():
        raise InputError("lat and lon query parameters are required")
    try:
        return Coordinate(lat=float(lat), lon=float(lon))
    except (ValueError, ValidationError) as exc:
        raise InputError(
            f"Invalid coordinates lat={lat!r} lon={lon!r}; expected -90..90 and -180..180."
        ) from exc


def parse_date_range(start: str | None, end: str | None) -> DateRange:
    if not start or not end:
        raise InputError("start and end query parameters are required")
    try:
        return DateRange(start=date.fromisoformat(start), end=date.fromisoformat(end))
    except (ValueError, ValidationError) as exc:
        raise InputError(f"Invalid date range {start!r}..{end!r}: {exc}") from exc


def _error_body(error: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return body


def install_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """Map the weather error taxonomy onto HTTP responses."""

    @app.exception_handler(InputError)
    async def _input_error(request: Request, exc: InputError) -> JSONResponse:
        return JSONResponse(status_code=400, content=_error_body(str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _invalid_query(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Framework-validated parameters share the InputError contract.
        invalid = sorted(
            {str(error["loc"][-1]) for error in exc.errors() if error.get("loc")}
        )
        return JSONResponse(
            status_code=400,
            content=_error_body(
                f"Invalid query parameters: {', '.join(invalid) or 'request'}",
                jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(NotConfiguredError)
    async def _not_configured(request: Request, exc: NotConfiguredError) -> JSONResponse:
        return JSONResponse(
            status_code=503, content=_error_body(str(exc), NOT_CONFIGURED_DETAILS)
        )

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_body(str(exc)))

    @app.exception_handler(UpstreamAuthError)
    async def _upstream_auth(request: Request, exc: UpstreamAuthError) -> JSONResponse:
        logger.error("Upstream rejected credentials on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=401,
            content=_error_body(
                "Invalid Frost API credentials. Please check FROST_CLIENT_ID.", str(exc)
            ),
        )

    @app.exception_handler(UpstreamError)
    async def _upstream(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
        status = exc.status_code if exc.status_code and 400 <= exc.status_code < 600 else 502
        return JSONResponse(status_code=status, content=_error_body(str(exc), exc.body))

    @app.exception_handler(WeatherDataError)
    async def _weather_data(request: Request, exc: WeatherDataError) -> JSONResponse:
        logger.error("Unhandled weather data error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content=_error_body(str(exc)))


def create_app(
    settings: Settings | None = None,
    *,
    cache: ResponseCache | None = None,
    frost: FrostGateway | None = None,
    forecast: LocationForecastGateway | None = None,
    geocoder: GeocodingGateway | None = None,
    logger: logging.Logger | None = None,
) -> FastAPI:
    """Build the API; collaborators may be injected for tests."""
    settings = settings or load_settings()
    logger = logger or setup_logger(level=settings.log_level)
    cache = cache if cache is not None else TTLCache()
    frost = frost or FrostGateway(settings, logger, cache=cache)
    forecast = forecast or LocationForecastGateway(settings, logger, cache=cache)
    geocoder = geocoder or GeocodingGateway(settings, logger, cache=cache)
    resolver = StationResolver(frost, logger=logger)
    service = build_service(settings, frost, forecast, logger=logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s: %s", APP_NAME, settings.safe_summary())
        yield
        for gateway in (frost, forecast, geocoder):
            gateway.close()

    app = FastAPI(title=APP_NAME, version="0.1.0", lifespan=lifespan)
    install_error_handlers(app, logger)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    @app.get("/forecast")
    def get_forecast(lat: str | None = None, lon: str | None = None) -> dict[str, Any]:
        return forecast.compact(parse_coordinate(lat, lon))

    @app.get("/stations")
    def get_stations(
        lat: str | None = None,
        lon: str | None = None,
        max_distance: float = Query(
            default=settings.station_max_distance_m, alias="maxDistance", gt=0
        ),
    ) -> dict[str, Any]:
        frost.require_configured()
        coord = parse_coordinate(lat, lon)
        key = make_key("stations", coord.lat, coord.lon, max_distance)
        cached = cache.get(key)
        if cached is not None:
            return cached
        payload = resolver.resolve_nearest_payload(
            coord,
            max_results=settings.station_max_results,
            max_distance_m=max_distance,
        )
        cache.set(key, payload, settings.frost_cache_ttl_seconds)
        return payload

    @app.get("/observations")
    def get_observations(
        sources: str | None = None,
        elements: str | None = None,
        referencetime: str | None = None,
    ) -> dict[str, Any]:
        frost.require_configured()
        if not sources or not referencetime:
            raise InputError("sources and referencetime query parameters are required")
        return frost.observations(
            sources=sources,
            referencetime=referencetime,
            elements=elements or join_elements(STATION_ELEMENTS),
        )

    @app.get("/stations-region")
    def get_stations_region(bbox: str | None = None, country: str | None = None) -> JSONResponse:
        payload = frost.sources_in_region(bbox=bbox, country=country)
        return JSONResponse(content=payload, headers={"Cache-Control": REGION_CACHE_CONTROL})

    @app.get("/series")
    def get_series(
        lat: str | None = None,
        lon: str | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> dict[str, Any]:
        coord = parse_coordinate(lat, lon)
        date_range = parse_date_range(start, end)
        report = service.fetch_series(coord, date_range)
        return report.model_dump(mode="json", by_alias=True)

    @app.get("/geocode/search")
    def geocode_search(q: str = "", limit: int = Query(default=5, ge=1, le=20)) -> list[Any]:
        return [match.model_dump(mode="json") for match in geocoder.search(q, limit=limit)]

    @app.get("/geocode/reverse")
    def geocode_reverse(lat: str | None = None, lon: str | None = None) -> dict[str, str]:
        return {"display_name": geocoder.reverse(parse_coordinate(lat, lon))}

    return app
