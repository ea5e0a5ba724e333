"""MET Norway Frost (frost.met.no) historical observations gateway."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..cache import ResponseCache, make_key
from ..config import Settings
from ..elements import PRECIPITATION_ELEMENT, STATION_ELEMENTS, join_elements
from ..exceptions import InputError, NotConfiguredError, NotFoundError
from ..models import Coordinate, ObservationRecord, ObservationValue, Station
from .base import HTTPGateway

NOT_CONFIGURED_MESSAGE = "Frost API not configured. Historical data unavailable."
NOT_CONFIGURED_DETAILS = (
    "To enable historical data, register at frost.met.no and set FROST_CLIENT_ID."
)


def empty_result() -> dict[str, Any]:
    """Frost-shaped payload used when the provider reports no matching data."""
    return {"data": []}


class FrostGateway(HTTPGateway):
    """Station sources and observations from frost.met.no, via basic auth."""

    provider_name = "frost"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        cache: ResponseCache | None = None,
    ) -> None:
        self.settings = settings
        self._client_id = settings.frost_client_id
        self._ttl = settings.frost_cache_ttl_seconds
        super().__init__(
            base_url=settings.frost_api_url,
            user_agent=settings.user_agent,
            timeout_seconds=settings.http_timeout_seconds,
            logger=logger,
            cache=cache,
            auth=(self._client_id, "") if self._client_id else None,
        )

    @property
    def configured(self) -> bool:
        return bool(self._client_id)

    def require_configured(self) -> None:
        if not self.configured:
            raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)

    def find_nearest_sources(
        self,
        coord: Coordinate,
        *,
        max_count: int = 10,
        elements: Sequence[str] | None = STATION_ELEMENTS,
    ) -> dict[str, Any]:
        """Sources nearest to `coord`, optionally restricted to those exposing `elements`."""
        self.require_configured()
        params: dict[str, Any] = {
            "geometry": f"nearest(POINT({coord.lon} {coord.lat}))",
            "nearestmaxcount": max_count,
        }
        if elements:
            params["elements"] = join_elements(elements)
        key = make_key("frost-sources", coord.lat, coord.lon, max_count, params.get("elements"))
        return self._get_or_empty("/sources/v0.jsonld", params, key, context="sources lookup")

    def sources_in_region(
        self,
        *,
        bbox: str | None = None,
        country: str | None = None,
    ) -> dict[str, Any]:
        """Precipitation-capable sensor stations inside a bbox, or a whole country."""
        self.require_configured()
        params: dict[str, Any] = {
            "types": "SensorSystem",
            "elements": PRECIPITATION_ELEMENT,
        }
        if bbox:
            params["geometry"] = bbox_to_polygon(bbox)
        else:
            params["country"] = (country or "NO").strip().upper()
        key = make_key("frost-region", params.get("geometry"), params.get("country"))
        return self._get_or_empty("/sources/v0.jsonld", params, key, context="region sources")

    def observations(
        self,
        *,
        sources: str,
        referencetime: str,
        elements: Sequence[str] | str,
    ) -> dict[str, Any]:
        """Hourly observations for `sources` over a Frost `referencetime` interval."""
        self.require_configured()
        element_param = elements if isinstance(elements, str) else join_elements(elements)
        params = {
            "sources": sources,
            "elements": element_param,
            "referencetime": referencetime,
            "timeresolutions": "PT1H",
        }
        key = make_key("frost-observations", sources, element_param, referencetime)
        return self._get_or_empty(
            "/observations/v0.jsonld", params, key, context="observations fetch"
        )

    def _get_or_empty(
        self,
        path: str,
        params: dict[str, Any],
        key: str,
        *,
        context: str,
    ) -> dict[str, Any]:
        try:
            payload = self._cached(
                key,
                self._ttl,
                lambda: self._request_json(path, params=params, context=context),
            )
        except NotFoundError:
            self.logger.info("Frost %s returned no data; treating as empty result", context)
            return empty_result()
        if not isinstance(payload, dict):
            return empty_result()
        return payload

    def parse_stations(self, payload: dict[str, Any]) -> list[Station]:
        """Normalize a sources payload into stations, preserving provider order."""
        stations: list[Station] = []
        for item in _data_items(payload):
            station_id = self._as_str(item.get("@id")) or self._as_str(item.get("id"))
            if station_id is None:
                continue
            distance_km = self._as_float(item.get("distance"))
            stations.append(
                Station(
                    id=station_id,
                    name=self._as_str(item.get("name")),
                    coordinate=self._parse_point(item.get("geometry")),
                    distance_m=distance_km * 1000.0 if distance_km is not None else None,
                )
            )
        return stations

    def parse_observations(self, payload: dict[str, Any]) -> list[ObservationRecord]:
        """Normalize an observations payload; records without a reference time are dropped."""
        records: list[ObservationRecord] = []
        for item in _data_items(payload):
            reference_time = self._parse_datetime(item.get("referenceTime"))
            if reference_time is None:
                self.logger.debug("Skipping Frost record without referenceTime")
                continue
            values: list[ObservationValue] = []
            raw_observations = item.get("observations")
            if isinstance(raw_observations, list):
                for raw in raw_observations:
                    if not isinstance(raw, dict):
                        continue
                    element_id = self._as_str(raw.get("elementId"))
                    value = self._as_float(raw.get("value"))
                    if element_id is None or value is None:
                        continue
                    values.append(
                        ObservationValue(
                            element_id=element_id,
                            value=value,
                            unit=self._as_str(raw.get("unit")),
                        )
                    )
            records.append(
                ObservationRecord(
                    source_id=self._as_str(item.get("sourceId")),
                    reference_time=reference_time,
                    observations=values,
                )
            )
        return records

    def _parse_point(self, geometry: Any) -> Coordinate | None:
        if not isinstance(geometry, dict):
            return None
        coords = geometry.get("coordinates")
        # GeoJSON order is [lon, lat].
        if not isinstance(coords, list) or len(coords) < 2:
            return None
        lon = self._as_float(coords[0])
        lat = self._as_float(coords[1])
        if lat is None or lon is None:
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        return Coordinate(lat=lat, lon=lon)


def bbox_to_polygon(bbox: str) -> str:
    """Turn "minLon,minLat,maxLon,maxLat" into a closed WKT polygon."""
    parts = [part.strip() for part in bbox.split(",")]
    if len(parts) != 4:
        raise InputError("bbox must be 'minLon,minLat,maxLon,maxLat'.")
    try:
        min_lon, min_lat, max_lon, max_lat = (float(part) for part in parts)
    except ValueError as exc:
        raise InputError("bbox values must be numeric.") from exc
    if min_lon > max_lon or min_lat > max_lat:
        raise InputError("bbox minimums must not exceed maximums.")
    return (
        f"POLYGON(({min_lon:g} {min_lat:g},{max_lon:g} {min_lat:g},"
        f"{max_lon:g} {max_lat:g},{min_lon:g} {max_lat:g},{min_lon:g} {min_lat:g}))"
    )


def _data_items(payload: dict[str, Any]) -> list[dict[str, Any]]:
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]
