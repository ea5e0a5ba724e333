"""Merge historical station observations and point forecasts into one hourly series."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime

from . import elements
from .exceptions import NotConfiguredError, WeatherDataError
from .gateways.frost import FrostGateway
from .gateways.locationforecast import LocationForecastGateway
from .log_setup import request_context
from .models import (
    Coordinate,
    DateRange,
    ForecastPoint,
    ObservationRecord,
    ReconciliationResult,
    Station,
    UnifiedDataPoint,
)


def utc_today() -> date:
    return datetime.now(UTC).date()


def needs_history(date_range: DateRange, today: date) -> bool:
    return date_range.start < today


def needs_forecast(date_range: DateRange, today: date) -> bool:
    # Forecast series never reach back before the current day.
    return date_range.end >= today


def observation_to_point(record: ObservationRecord) -> UnifiedDataPoint:
    """Historical point; only precipitation defaults to zero."""
    precipitation = elements.find_value(record, elements.is_precipitation)
    return UnifiedDataPoint(
        time=record.reference_time,
        precipitation=precipitation if precipitation is not None else 0.0,
        snow_depth=elements.find_value(record, elements.is_snow_thickness),
        temperature=elements.find_value(record, elements.is_air_temperature),
        wind_speed=elements.find_value(record, elements.is_wind_speed),
        wind_direction=elements.find_value(record, elements.is_wind_direction),
        is_forecast=False,
    )


def forecast_to_point(point: ForecastPoint) -> UnifiedDataPoint:
    """Forecast point; precipitation from next-1h, else next-6h, else zero."""
    precipitation: float | None = None
    for block in (point.next_1_hours, point.next_6_hours):
        if block is not None and block.precipitation_amount is not None:
            precipitation = block.precipitation_amount
            break
    return UnifiedDataPoint(
        time=point.time,
        precipitation=precipitation if precipitation is not None else 0.0,
        temperature=point.instant.air_temperature,
        wind_speed=point.instant.wind_speed,
        wind_direction=point.instant.wind_from_direction,
        is_forecast=True,
    )


def collapse_historical(points: Iterable[UnifiedDataPoint]) -> dict[datetime, UnifiedDataPoint]:
    """One point per timestamp; each field keeps the first reported value."""
    merged: dict[datetime, UnifiedDataPoint] = {}
    for point in points:
        existing = merged.get(point.time)
        if existing is None:
            merged[point.time] = point
            continue
        for field in ("snow_depth", "temperature", "wind_speed", "wind_direction"):
            if getattr(existing, field) is None:
                setattr(existing, field, getattr(point, field))
    return merged


def merge_series(
    historical: Iterable[UnifiedDataPoint],
    forecast: Iterable[UnifiedDataPoint],
    date_range: DateRange,
) -> list[UnifiedDataPoint]:
    """Historical wins on shared timestamps; forecast is clipped to the range days."""
    by_time = collapse_historical(historical)
    window_start = date_range.start_of_range()
    window_end = date_range.end_of_range()
    for point in forecast:
        if point.time < window_start or point.time > window_end:
            continue
        if point.time in by_time:
            continue
        by_time[point.time] = point
    return sorted(by_time.values(), key=lambda item: item.time)


class ReconciliationEngine:
    """Fetch both sources for a request and merge them into a unified series."""

    def __init__(
        self,
        frost: FrostGateway,
        forecast: LocationForecastGateway,
        logger: logging.Logger | None = None,
    ) -> None:
        self.frost = frost
        self.forecast = forecast
        self.logger = logger or logging.getLogger("snow_precipitation.reconcile")

    def build_unified_series(
        self,
        station: Station | None,
        coord: Coordinate,
        date_range: DateRange,
        *,
        today: date | None = None,
    ) -> ReconciliationResult:
        """Fetch history and forecast concurrently, then merge and sort.

        A failure of one source never prevents the other from contributing.
        """
        today = today or utc_today()
        result = ReconciliationResult()
        log_context = request_context(coord=coord, station_id=station.id if station else None)
        historical: list[UnifiedDataPoint] = []
        forecast: list[UnifiedDataPoint] = []

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="reconcile") as pool:
            history_future = None
            forecast_future = None
            if needs_history(date_range, today):
                if station is None:
                    result.historical_status = "no_station"
                else:
                    history_future = pool.submit(
                        self._fetch_history, station, date_range, today
                    )
            if needs_forecast(date_range, today):
                forecast_future = pool.submit(self.forecast.fetch_points, coord)

            if history_future is not None:
                try:
                    historical = history_future.result()
                    result.historical_status = "ok"
                except NotConfiguredError as exc:
                    result.historical_status = "not_configured"
                    result.historical_error = str(exc)
                    self.logger.info("Historical data skipped: %s", exc, extra=log_context)
                except WeatherDataError as exc:
                    result.historical_status = "failed"
                    result.historical_error = str(exc)
                    self.logger.warning(
                        "Could not fetch historical data: %s",
                        exc,
                        extra={**log_context, "provider": "frost", "status": "failed"},
                    )

            if forecast_future is not None:
                try:
                    forecast = [forecast_to_point(point) for point in forecast_future.result()]
                    result.forecast_status = "ok"
                except WeatherDataError as exc:
                    result.forecast_status = "failed"
                    result.forecast_error = str(exc)
                    self.logger.warning(
                        "Could not fetch forecast data: %s",
                        exc,
                        extra={**log_context, "provider": "locationforecast", "status": "failed"},
                    )

        result.points = merge_series(historical, forecast, date_range)
        self.logger.info(
            "Reconciled %d points (%d historical, %d forecast received) for %s..%s",
            len(result.points),
            len(historical),
            len(forecast),
            date_range.start.isoformat(),
            date_range.end.isoformat(),
            extra=log_context,
        )
        return result

    def _fetch_history(
        self,
        station: Station,
        date_range: DateRange,
        today: date,
    ) -> list[UnifiedDataPoint]:
        history_end = min(date_range.end, today)
        payload = self.frost.observations(
            sources=station.id,
            referencetime=f"{date_range.start.isoformat()}/{history_end.isoformat()}",
            elements=elements.OBSERVATION_ELEMENTS,
        )
        records = self.frost.parse_observations(payload)
        return [observation_to_point(record) for record in records]
