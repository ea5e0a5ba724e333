"""Per-request orchestration: stations, reconciliation and snow estimation."""

from __future__ import annotations

import logging
import threading
from datetime import date

from .exceptions import InputError, NotConfiguredError, WeatherDataError
from .gateways.frost import FrostGateway
from .gateways.locationforecast import LocationForecastGateway
from .log_setup import request_context
from .models import Coordinate, DateRange, SeriesReport, Station
from .reconcile import ReconciliationEngine
from .snow_model import SnowAccumulationModel
from .stations import StationResolver

NOT_CONFIGURED_ADVISORY = (
    "Historical data unavailable (Frost API not configured). Showing forecast only."
)
NO_DATA_ADVISORY = "No precipitation data found for this location and time range."


class LatestRequestGate:
    """Hands out increasing tokens; only the newest token is current."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest


class WeatherDataService:
    """Build a complete, estimated series for one location and date range."""

    def __init__(
        self,
        resolver: StationResolver,
        engine: ReconciliationEngine,
        model: SnowAccumulationModel | None = None,
        *,
        max_stations: int = 10,
        max_distance_m: float | None = None,
        max_days: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.resolver = resolver
        self.engine = engine
        self.model = model or SnowAccumulationModel()
        self.max_stations = max_stations
        self.max_distance_m = max_distance_m
        self.max_days = max_days
        self.logger = logger or logging.getLogger("snow_precipitation.service")
        self.gate = LatestRequestGate()

    def fetch_series(
        self,
        coord: Coordinate,
        date_range: DateRange,
        *,
        today: date | None = None,
        request_id: int = 0,
    ) -> SeriesReport:
        if self.max_days is not None and date_range.days > self.max_days:
            raise InputError(
                f"Date range spans {date_range.days} days; at most {self.max_days} allowed."
            )

        stations: list[Station] = []
        frost_configured = True
        lookup_error: str | None = None
        try:
            stations = self.resolver.resolve_nearest(
                coord,
                max_results=self.max_stations,
                max_distance_m=self.max_distance_m,
            )
        except NotConfiguredError as exc:
            frost_configured = False
            self.logger.info(
                "Station lookup skipped: %s", exc, extra=request_context(request_id, coord)
            )
        except WeatherDataError as exc:
            lookup_error = str(exc)
            self.logger.warning(
                "Could not fetch weather stations: %s",
                exc,
                extra=request_context(request_id, coord, provider="frost", status="failed"),
            )

        selected = stations[0] if stations else None
        result = self.engine.build_unified_series(selected, coord, date_range, today=today)
        if result.historical_status == "no_station":
            if not frost_configured:
                result.historical_status = "not_configured"
            elif lookup_error is not None:
                result.historical_status = "failed"
                result.historical_error = lookup_error

        self.model.estimate(result.points)

        advisory: str | None = None
        if not frost_configured:
            advisory = NOT_CONFIGURED_ADVISORY
        elif not result.points:
            advisory = NO_DATA_ADVISORY

        return SeriesReport(
            request_id=request_id,
            coordinate=coord,
            date_range=date_range,
            stations=stations,
            selected_station=selected,
            points=result.points,
            historical_status=result.historical_status,
            forecast_status=result.forecast_status,
            historical_error=result.historical_error,
            forecast_error=result.forecast_error,
            advisory=advisory,
        )

    def fetch_latest(
        self,
        coord: Coordinate,
        date_range: DateRange,
        *,
        today: date | None = None,
    ) -> SeriesReport | None:
        """Like fetch_series, but returns None when a newer request started meanwhile."""
        token = self.gate.begin()
        report = self.fetch_series(coord, date_range, today=today, request_id=token)
        if not self.gate.is_current(token):
            self.logger.info(
                "Discarding superseded series request %d",
                token,
                extra=request_context(token, coord),
            )
            return None
        return report


def build_service(
    settings: object,
    frost: FrostGateway,
    forecast: LocationForecastGateway,
    logger: logging.Logger | None = None,
) -> WeatherDataService:
    """Wire resolver, engine and model from settings and shared gateways."""
    return WeatherDataService(
        StationResolver(frost, logger=logger),
        ReconciliationEngine(frost, forecast, logger=logger),
        SnowAccumulationModel.from_settings(settings),
        max_stations=getattr(settings, "station_max_results", 10),
        max_distance_m=getattr(settings, "station_max_distance_m", None),
        max_days=getattr(settings, "series_max_days", None),
        logger=logger,
    )
