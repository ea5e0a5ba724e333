"""Typed models for stations, observations, forecasts and the unified series."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

HistoricalStatus = Literal["ok", "not_requested", "no_station", "not_configured", "failed"]
ForecastStatus = Literal["ok", "not_requested", "failed"]


class Coordinate(BaseModel):
    """WGS84 position in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class Station(BaseModel):
    """Observation station as reported by the historical data provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    coordinate: Coordinate | None = None
    distance_m: float | None = None


class ObservationValue(BaseModel):
    """One measured element inside an observation record."""

    element_id: str
    value: float
    unit: str | None = None


class ObservationRecord(BaseModel):
    """All elements a station reported for one reference time."""

    source_id: str | None = None
    reference_time: datetime
    observations: list[ObservationValue] = Field(default_factory=list)


class ForecastBlock(BaseModel):
    """A next-N-hours prediction block."""

    precipitation_amount: float | None = None
    symbol_code: str | None = None


class ForecastInstant(BaseModel):
    """Instantaneous forecast values at a timestamp."""

    air_temperature: float | None = None
    wind_speed: float | None = None
    wind_from_direction: float | None = None
    relative_humidity: float | None = None
    air_pressure_at_sea_level: float | None = None


class ForecastPoint(BaseModel):
    """Normalized forecast time-series entry."""

    time: datetime
    instant: ForecastInstant = Field(default_factory=ForecastInstant)
    next_1_hours: ForecastBlock | None = None
    next_6_hours: ForecastBlock | None = None


class DateRange(BaseModel):
    """Inclusive calendar-day range, interpreted in UTC."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self) -> DateRange:
        """Reject ranges that end before they start."""
        if self.end < self.start:
            raise ValueError("Date range end must not be before start.")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def start_of_range(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=UTC)

    def end_of_range(self) -> datetime:
        return datetime.combine(self.end, time.max, tzinfo=UTC)


class UnifiedDataPoint(BaseModel):
    """One hourly point of the reconciled series."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    time: datetime
    precipitation: float = 0.0
    snow_depth: float | None = None
    temperature: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    is_forecast: bool


class ReconciliationResult(BaseModel):
    """Merged series plus the outcome of each upstream fetch."""

    points: list[UnifiedDataPoint] = Field(default_factory=list)
    historical_status: HistoricalStatus = "not_requested"
    forecast_status: ForecastStatus = "not_requested"
    historical_error: str | None = None
    forecast_error: str | None = None


class SeriesReport(BaseModel):
    """Complete answer for one location/date-range request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    request_id: int
    coordinate: Coordinate
    date_range: DateRange
    stations: list[Station] = Field(default_factory=list)
    selected_station: Station | None = None
    points: list[UnifiedDataPoint] = Field(default_factory=list)
    historical_status: HistoricalStatus
    forecast_status: ForecastStatus
    historical_error: str | None = None
    forecast_error: str | None = None
    advisory: str | None = None


class PlaceMatch(BaseModel):
    """Geocoding search hit."""

    place_id: int | None = None
    display_name: str
    coordinate: Coordinate

