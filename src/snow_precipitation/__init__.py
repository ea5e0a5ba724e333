"""Reconciled precipitation and snow depth series from MET Norway data."""

from .models import Coordinate, DateRange, SeriesReport, Station, UnifiedDataPoint
from .reconcile import ReconciliationEngine
from .service import WeatherDataService
from .snow_model import SnowAccumulationModel, estimate_snow_depth
from .stations import StationResolver

__all__ = [
    "Coordinate",
    "DateRange",
    "ReconciliationEngine",
    "SeriesReport",
    "SnowAccumulationModel",
    "Station",
    "StationResolver",
    "UnifiedDataPoint",
    "WeatherDataService",
    "estimate_snow_depth",
]
