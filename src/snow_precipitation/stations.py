"""Nearest observation station resolution."""

from __future__ import annotations

import logging
from typing import Any

from .elements import STATION_ELEMENTS
from .gateways.frost import FrostGateway
from .models import Coordinate, Station


class StationResolver:
    """Find the stations nearest to a coordinate, preferring snow/precipitation stations."""

    def __init__(self, frost: FrostGateway, logger: logging.Logger | None = None) -> None:
        self.frost = frost
        self.logger = logger or logging.getLogger("snow_precipitation.stations")

    def resolve_nearest_payload(
        self,
        coord: Coordinate,
        *,
        max_results: int = 10,
        max_distance_m: float | None = None,
    ) -> dict[str, Any]:
        """Raw sources payload, widened to any element when the filtered search is empty.

        Raises NotConfiguredError without calling the provider when no client id is set.
        """
        self.frost.require_configured()
        payload = self.frost.find_nearest_sources(
            coord, max_count=max_results, elements=STATION_ELEMENTS
        )
        if not _has_items(payload):
            self.logger.info(
                "No stations with %s near %.4f,%.4f; retrying without element filter",
                ",".join(STATION_ELEMENTS),
                coord.lat,
                coord.lon,
            )
            payload = self.frost.find_nearest_sources(coord, max_count=max_results, elements=None)
        if max_distance_m is not None:
            payload = _filter_by_distance(payload, max_distance_m)
        return payload

    def resolve_nearest(
        self,
        coord: Coordinate,
        *,
        max_results: int = 10,
        max_distance_m: float | None = None,
    ) -> list[Station]:
        """Distance-ordered stations; the first entry is the one used for history."""
        payload = self.resolve_nearest_payload(
            coord, max_results=max_results, max_distance_m=max_distance_m
        )
        stations = self.frost.parse_stations(payload)
        if stations:
            self.logger.info(
                "Selected station %s (%s) of %d candidates",
                stations[0].id,
                stations[0].name or "unnamed",
                len(stations),
            )
        return stations


def _has_items(payload: dict[str, Any]) -> bool:
    data = payload.get("data")
    return isinstance(data, list) and len(data) > 0


def _filter_by_distance(payload: dict[str, Any], max_distance_m: float) -> dict[str, Any]:
    data = payload.get("data")
    if not isinstance(data, list):
        return payload
    kept = []
    for item in data:
        distance_km = item.get("distance") if isinstance(item, dict) else None
        # Stations without a reported distance are kept.
        if isinstance(distance_km, (int, float)) and distance_km * 1000.0 > max_distance_m:
            continue
        kept.append(item)
    return {**payload, "data": kept}
