"""OpenStreetMap Nominatim geocoding gateway."""

from __future__ import annotations

import logging
from typing import Any

from ..cache import ResponseCache, make_key
from ..config import Settings
from ..exceptions import NotFoundError
from ..models import Coordinate, PlaceMatch
from .base import HTTPGateway

MIN_QUERY_LENGTH = 3


class GeocodingGateway(HTTPGateway):
    """Place search and reverse geocoding."""

    provider_name = "nominatim"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        cache: ResponseCache | None = None,
    ) -> None:
        self.settings = settings
        self._ttl = settings.geocode_cache_ttl_seconds
        super().__init__(
            base_url=settings.nominatim_api_url,
            user_agent=settings.user_agent,
            timeout_seconds=settings.http_timeout_seconds,
            logger=logger,
            cache=cache,
        )

    def search(self, query: str, *, limit: int = 5) -> list[PlaceMatch]:
        """Places matching free text; short queries return nothing without a call."""
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        params = {"q": query, "format": "json", "limit": limit}
        try:
            payload = self._cached(
                make_key("geocode-search", query.lower(), limit),
                self._ttl,
                lambda: self._request_json("/search", params=params, context="place search"),
            )
        except NotFoundError:
            return []
        if not isinstance(payload, list):
            return []
        return [match for item in payload if (match := self._parse_match(item)) is not None]

    def reverse(self, coord: Coordinate) -> str:
        """Display name for a coordinate, or a formatted lat/lon fallback."""
        fallback = f"{coord.lat:.4f}, {coord.lon:.4f}"
        params = {"lat": coord.lat, "lon": coord.lon, "format": "json"}
        try:
            payload = self._cached(
                make_key("geocode-reverse", f"{coord.lat:.4f}", f"{coord.lon:.4f}"),
                self._ttl,
                lambda: self._request_json("/reverse", params=params, context="reverse lookup"),
            )
        except NotFoundError:
            return fallback
        if not isinstance(payload, dict):
            return fallback
        return self._as_str(payload.get("display_name")) or fallback

    def _parse_match(self, item: Any) -> PlaceMatch | None:
        if not isinstance(item, dict):
            return None
        display_name = self._as_str(item.get("display_name"))
        lat = self._as_float(item.get("lat"))
        lon = self._as_float(item.get("lon"))
        if display_name is None or lat is None or lon is None:
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        return PlaceMatch(
            place_id=self._as_int(item.get("place_id")),
            display_name=display_name,
            coordinate=Coordinate(lat=lat, lon=lon),
        )
