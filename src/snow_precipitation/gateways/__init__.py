"""Upstream provider gateways."""

from .base import HTTPGateway
from .frost import FrostGateway
from .locationforecast import LocationForecastGateway
from .nominatim import GeocodingGateway

__all__ = [
    "FrostGateway",
    "GeocodingGateway",
    "HTTPGateway",
    "LocationForecastGateway",
]
