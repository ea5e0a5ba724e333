"""Reconciliation engine tests: merge, dedup, windowing and source isolation."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from types import SimpleNamespace
from typing import Any

import pytest

from snow_precipitation.exceptions import UpstreamAuthError, UpstreamError
from snow_precipitation.gateways.frost import FrostGateway
from snow_precipitation.gateways.locationforecast import LocationForecastGateway
from snow_precipitation.models import Coordinate, DateRange, Station
from snow_precipitation.reconcile import (
    ReconciliationEngine,
    needs_forecast,
    needs_history,
)

TODAY = date(2026, 1, 10)
OSLO = Coordinate(lat=59.9423, lon=10.72)
BLINDERN = Station(id="SN18700", name="OSLO - BLINDERN")


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "frost_client_id": "test-client",
        "frost_api_url": "https://frost.met.no",
        "locationforecast_api_url": "https://api.met.no/weatherapi/locationforecast/2.0",
        "user_agent": "snow-precipitation-tests/0.1",
        "http_timeout_seconds": 5.0,
        "frost_cache_ttl_seconds": 3600,
        "forecast_cache_ttl_seconds": 1800,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _obs(time: str, values: dict[str, float]) -> dict[str, Any]:
    return {
        "sourceId": "SN18700:0",
        "referenceTime": time,
        "observations": [
            {"elementId": element, "value": value, "unit": "mm"}
            for element, value in values.items()
        ],
    }


def _ts(
    time: str,
    *,
    temperature: float | None = None,
    next_1h: float | None = None,
    next_6h: float | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"instant": {"details": {"wind_speed": 3.2, "wind_from_direction": 180.0}}}
    if temperature is not None:
        data["instant"]["details"]["air_temperature"] = temperature
    if next_1h is not None:
        data["next_1_hours"] = {
            "summary": {"symbol_code": "snow"},
            "details": {"precipitation_amount": next_1h},
        }
    if next_6h is not None:
        data["next_6_hours"] = {
            "summary": {"symbol_code": "cloudy"},
            "details": {"precipitation_amount": next_6h},
        }
    return {"time": time, "data": data}


def _make_engine(
    *,
    observations: dict[str, Any] | Exception | None = None,
    timeseries: list[dict[str, Any]] | Exception | None = None,
    settings: Any = None,
) -> tuple[ReconciliationEngine, list[tuple[str, dict[str, Any] | None]]]:
    settings = settings or _make_settings()
    logger = logging.getLogger("test_reconcile")
    frost = FrostGateway(settings=settings, logger=logger)
    forecast = LocationForecastGateway(settings=settings, logger=logger)
    calls: list[tuple[str, dict[str, Any] | None]] = []

    def _frost_request(path: str, *, params: dict[str, Any] | None = None, context: str) -> Any:
        calls.append((path, params))
        if isinstance(observations, Exception):
            raise observations
        return observations if observations is not None else {"data": []}

    def _forecast_request(
        path: str, *, params: dict[str, Any] | None = None, context: str
    ) -> Any:
        calls.append((path, params))
        if isinstance(timeseries, Exception):
            raise timeseries
        return {"type": "Feature", "properties": {"timeseries": timeseries or []}}

    frost._request_json = _frost_request  # type: ignore[method-assign]
    forecast._request_json = _forecast_request  # type: ignore[method-assign]
    return ReconciliationEngine(frost, forecast, logger=logger), calls


def _assert_unique_and_sorted(points: list[Any]) -> None:
    times = [point.time for point in points]
    assert times == sorted(times)
    assert len(set(times)) == len(times)


def test_history_and_forecast_merge_with_history_winning_overlap() -> None:
    engine, calls = _make_engine(
        observations={
            "data": [
                _obs(
                    "2026-01-09T23:00:00.000Z",
                    {
                        "sum(precipitation_amount PT1H)": 1.2,
                        "surface_snow_thickness": 30.0,
                        "air_temperature": -4.0,
                    },
                ),
                _obs(
                    "2026-01-10T00:00:00.000Z",
                    {"sum(precipitation_amount PT1H)": 0.4, "surface_snow_thickness": 31.0},
                ),
            ]
        },
        timeseries=[
            _ts("2026-01-10T00:00:00Z", temperature=-3.0, next_1h=9.9),
            _ts("2026-01-10T01:00:00Z", temperature=-3.0, next_1h=2.0),
        ],
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 9), end=date(2026, 1, 11)), today=TODAY
    )

    assert result.historical_status == "ok"
    assert result.forecast_status == "ok"
    _assert_unique_and_sorted(result.points)
    assert [point.is_forecast for point in result.points] == [False, False, True]

    overlap = result.points[1]
    assert overlap.time == datetime(2026, 1, 10, 0, 0, tzinfo=UTC)
    assert overlap.is_forecast is False
    assert overlap.precipitation == 0.4
    assert overlap.snow_depth == 31.0

    first = result.points[0]
    assert first.temperature == -4.0
    assert first.wind_speed is None

    observation_call = next(params for path, params in calls if path.startswith("/observations"))
    assert observation_call is not None
    assert observation_call["sources"] == "SN18700"
    assert observation_call["referencetime"] == "2026-01-09/2026-01-10"
    assert "surface_snow_thickness" in observation_call["elements"]
    assert observation_call["timeresolutions"] == "PT1H"


def test_missing_precipitation_defaults_to_zero_but_other_fields_stay_none() -> None:
    engine, _ = _make_engine(
        observations={"data": [_obs("2026-01-05T06:00:00Z", {"surface_snow_thickness": 12.0})]},
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 5), end=date(2026, 1, 6)), today=TODAY
    )
    assert result.forecast_status == "not_requested"
    assert len(result.points) == 1
    point = result.points[0]
    assert point.precipitation == 0.0
    assert point.snow_depth == 12.0
    assert point.temperature is None
    assert point.wind_direction is None


def test_precipitation_element_matches_any_aggregation_suffix() -> None:
    engine, _ = _make_engine(
        observations={
            "data": [_obs("2026-01-05T06:00:00Z", {"sum(precipitation_amount PT12H)": 6.5})]
        },
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 5), end=date(2026, 1, 5)), today=TODAY
    )
    assert result.points[0].precipitation == 6.5


def test_unsorted_duplicate_history_collapses_to_one_point_per_time() -> None:
    engine, _ = _make_engine(
        observations={
            "data": [
                _obs("2026-01-05T08:00:00Z", {"sum(precipitation_amount PT1H)": 1.0}),
                _obs("2026-01-05T06:00:00Z", {"sum(precipitation_amount PT1H)": 0.5}),
                _obs("2026-01-05T08:00:00Z", {"surface_snow_thickness": 14.0}),
            ]
        },
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 5), end=date(2026, 1, 5)), today=TODAY
    )
    _assert_unique_and_sorted(result.points)
    assert len(result.points) == 2
    assert result.points[1].precipitation == 1.0
    assert result.points[1].snow_depth == 14.0


def test_forecast_precipitation_falls_back_to_six_hour_block_then_zero() -> None:
    engine, _ = _make_engine(
        timeseries=[
            _ts("2026-01-11T00:00:00Z", temperature=-1.0, next_1h=0.7, next_6h=4.0),
            _ts("2026-01-11T06:00:00Z", temperature=-1.0, next_6h=4.0),
            _ts("2026-01-11T12:00:00Z", temperature=-1.0),
        ],
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 11), end=date(2026, 1, 12)), today=TODAY
    )
    assert result.historical_status == "not_requested"
    assert [point.precipitation for point in result.points] == [0.7, 4.0, 0.0]
    assert all(point.is_forecast for point in result.points)
    assert result.points[0].wind_direction == 180.0


def test_forecast_is_clipped_to_whole_days_of_the_range() -> None:
    engine, _ = _make_engine(
        timeseries=[
            _ts("2026-01-10T23:00:00Z", temperature=-1.0, next_1h=1.0),
            _ts("2026-01-11T00:00:00Z", temperature=-1.0, next_1h=1.0),
            _ts("2026-01-12T23:00:00Z", temperature=-1.0, next_1h=1.0),
            _ts("2026-01-13T00:00:00Z", temperature=-1.0, next_1h=1.0),
        ],
    )
    result = engine.build_unified_series(
        None, OSLO, DateRange(start=date(2026, 1, 11), end=date(2026, 1, 12)), today=TODAY
    )
    assert [point.time.isoformat() for point in result.points] == [
        "2026-01-11T00:00:00+00:00",
        "2026-01-12T23:00:00+00:00",
    ]


def test_historical_failure_does_not_block_forecast() -> None:
    engine, _ = _make_engine(
        observations=UpstreamError("frost observations fetch failed with status 500"),
        timeseries=[_ts("2026-01-10T12:00:00Z", temperature=-1.0, next_1h=1.0)],
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 8), end=date(2026, 1, 11)), today=TODAY
    )
    assert result.historical_status == "failed"
    assert result.historical_error is not None
    assert result.forecast_status == "ok"
    assert len(result.points) == 1


def test_forecast_failure_does_not_block_history() -> None:
    engine, _ = _make_engine(
        observations={"data": [_obs("2026-01-09T12:00:00Z", {"surface_snow_thickness": 5.0})]},
        timeseries=UpstreamError("locationforecast forecast fetch failed with status 503"),
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 9), end=date(2026, 1, 11)), today=TODAY
    )
    assert result.historical_status == "ok"
    assert result.forecast_status == "failed"
    assert [point.is_forecast for point in result.points] == [False]


def test_missing_client_id_marks_history_not_configured() -> None:
    engine, calls = _make_engine(
        settings=_make_settings(frost_client_id=None),
        timeseries=[_ts("2026-01-10T12:00:00Z", temperature=-1.0)],
    )
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 8), end=date(2026, 1, 11)), today=TODAY
    )
    assert result.historical_status == "not_configured"
    assert result.forecast_status == "ok"
    assert all(not path.startswith("/observations") for path, _ in calls)


def test_auth_failure_is_reported_as_failed_history() -> None:
    engine, _ = _make_engine(observations=UpstreamAuthError("frost rejected credentials"))
    result = engine.build_unified_series(
        BLINDERN, OSLO, DateRange(start=date(2026, 1, 1), end=date(2026, 1, 3)), today=TODAY
    )
    assert result.historical_status == "failed"
    assert result.points == []


def test_no_station_skips_history() -> None:
    engine, calls = _make_engine()
    result = engine.build_unified_series(
        None, OSLO, DateRange(start=date(2026, 1, 1), end=date(2026, 1, 3)), today=TODAY
    )
    assert result.historical_status == "no_station"
    assert calls == []


@pytest.mark.parametrize(
    ("start", "end", "history", "forecast"),
    [
        (date(2026, 1, 1), date(2026, 1, 5), True, False),
        (date(2026, 1, 1), date(2026, 1, 10), True, True),
        (date(2026, 1, 10), date(2026, 1, 10), False, True),
        (date(2026, 1, 11), date(2026, 1, 15), False, True),
        (date(2026, 1, 9), date(2026, 1, 9), True, False),
    ],
)
def test_source_selection_rules(start: date, end: date, history: bool, forecast: bool) -> None:
    date_range = DateRange(start=start, end=end)
    assert needs_history(date_range, TODAY) is history
    assert needs_forecast(date_range, TODAY) is forecast
