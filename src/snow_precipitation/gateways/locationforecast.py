"""MET Norway Locationforecast 2.0 (api.met.no) forecast gateway."""

from __future__ import annotations

import logging
from typing import Any

from ..cache import ResponseCache, make_key
from ..config import Settings
from ..exceptions import UpstreamError
from ..models import Coordinate, ForecastBlock, ForecastInstant, ForecastPoint
from .base import HTTPGateway


class LocationForecastGateway(HTTPGateway):
    """Fetches and normalizes the `compact` forecast time series for a point."""

    provider_name = "locationforecast"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        cache: ResponseCache | None = None,
    ) -> None:
        self.settings = settings
        self._ttl = settings.forecast_cache_ttl_seconds
        super().__init__(
            base_url=settings.locationforecast_api_url,
            user_agent=settings.user_agent,
            timeout_seconds=settings.http_timeout_seconds,
            logger=logger,
            cache=cache,
        )

    def compact(self, coord: Coordinate) -> dict[str, Any]:
        """Raw `compact` forecast payload; coordinates are truncated to 4 decimals."""
        lat = f"{coord.lat:.4f}"
        lon = f"{coord.lon:.4f}"
        payload = self._cached(
            make_key("forecast", lat, lon),
            self._ttl,
            lambda: self._request_json(
                "/compact", params={"lat": lat, "lon": lon}, context="forecast fetch"
            ),
        )
        if not isinstance(payload, dict):
            raise UpstreamError(
                "Locationforecast returned a non-object payload.",
                provider=self.provider_name,
            )
        return payload

    def fetch_points(self, coord: Coordinate) -> list[ForecastPoint]:
        return self.parse_timeseries(self.compact(coord))

    def parse_timeseries(self, payload: dict[str, Any]) -> list[ForecastPoint]:
        """Normalize `properties.timeseries`; entries without a valid time are skipped."""
        properties = payload.get("properties")
        if not isinstance(properties, dict):
            raise UpstreamError(
                "Locationforecast payload missing 'properties' object.",
                provider=self.provider_name,
            )
        timeseries = properties.get("timeseries")
        if not isinstance(timeseries, list):
            raise UpstreamError(
                "Locationforecast payload missing 'properties.timeseries' list.",
                provider=self.provider_name,
            )

        points: list[ForecastPoint] = []
        for entry in timeseries:
            if not isinstance(entry, dict):
                continue
            point_time = self._parse_datetime(entry.get("time"))
            if point_time is None:
                self.logger.debug("Skipping forecast entry without a valid time")
                continue
            data = entry.get("data")
            data = data if isinstance(data, dict) else {}
            points.append(
                ForecastPoint(
                    time=point_time,
                    instant=self._parse_instant(data.get("instant")),
                    next_1_hours=self._parse_block(data.get("next_1_hours")),
                    next_6_hours=self._parse_block(data.get("next_6_hours")),
                )
            )
        return points

    def _parse_instant(self, block: Any) -> ForecastInstant:
        details = _details(block)
        return ForecastInstant(
            air_temperature=self._as_float(details.get("air_temperature")),
            wind_speed=self._as_float(details.get("wind_speed")),
            wind_from_direction=self._as_float(details.get("wind_from_direction")),
            relative_humidity=self._as_float(details.get("relative_humidity")),
            air_pressure_at_sea_level=self._as_float(details.get("air_pressure_at_sea_level")),
        )

    def _parse_block(self, block: Any) -> ForecastBlock | None:
        if not isinstance(block, dict):
            return None
        summary = block.get("summary")
        symbol_code = (
            self._as_str(summary.get("symbol_code")) if isinstance(summary, dict) else None
        )
        return ForecastBlock(
            precipitation_amount=self._as_float(_details(block).get("precipitation_amount")),
            symbol_code=symbol_code,
        )


def _details(block: Any) -> dict[str, Any]:
    if not isinstance(block, dict):
        return {}
    details = block.get("details")
    return details if isinstance(details, dict) else {}
