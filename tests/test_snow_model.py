"""Snow accumulation estimator tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from snow_precipitation.models import UnifiedDataPoint
from snow_precipitation.snow_model import (
    ForecastStep,
    HistoricalGap,
    ObservedDepth,
    SnowAccumulationModel,
    classify,
    estimate_snow_depth,
)

T0 = datetime(2026, 1, 10, 0, 0, tzinfo=UTC)


def _observed(hours: int, snow_depth: float | None, precipitation: float = 0.0) -> UnifiedDataPoint:
    return UnifiedDataPoint(
        time=T0 + timedelta(hours=hours),
        precipitation=precipitation,
        snow_depth=snow_depth,
        is_forecast=False,
    )


def _forecast(
    hours: int, precipitation: float, temperature: float | None
) -> UnifiedDataPoint:
    return UnifiedDataPoint(
        time=T0 + timedelta(hours=hours),
        precipitation=precipitation,
        temperature=temperature,
        is_forecast=True,
    )


def _depths(series: list[UnifiedDataPoint]) -> list[float | None]:
    return [point.snow_depth for point in series]


def test_cold_precipitation_accumulates_then_melts() -> None:
    series = [
        _observed(0, snow_depth=10.0, precipitation=5.0),
        _forecast(1, precipitation=3.0, temperature=-2.0),
        _forecast(2, precipitation=0.0, temperature=5.0),
    ]
    estimate_snow_depth(series)
    assert series[0].snow_depth == 10.0
    assert series[1].snow_depth == pytest.approx(13.0)
    assert series[2].snow_depth == pytest.approx(12.5)


def test_forecast_only_series_has_no_estimates() -> None:
    series = [_forecast(hour, precipitation=2.0, temperature=-5.0) for hour in range(5)]
    estimate_snow_depth(series)
    assert _depths(series) == [None] * 5


def test_leading_forecast_points_stay_empty_until_first_observation() -> None:
    series = [
        _forecast(0, precipitation=1.0, temperature=-1.0),
        _forecast(1, precipitation=1.0, temperature=-1.0),
        _observed(2, snow_depth=20.0),
        _forecast(3, precipitation=1.0, temperature=-1.0),
    ]
    estimate_snow_depth(series)
    assert series[0].snow_depth is None
    assert series[1].snow_depth is None
    assert series[2].snow_depth == 20.0
    assert series[3].snow_depth == pytest.approx(21.0)


def test_historical_gap_is_not_filled_and_does_not_reset_baseline() -> None:
    series = [
        _observed(0, snow_depth=8.0),
        _observed(1, snow_depth=None, precipitation=4.0),
        _forecast(2, precipitation=2.0, temperature=-3.0),
    ]
    estimate_snow_depth(series)
    assert series[1].snow_depth is None
    # Baseline still comes from the 8 cm observation, not from the gap.
    assert series[2].snow_depth == pytest.approx(10.0)


def test_later_observation_resets_running_estimate() -> None:
    series = [
        _observed(0, snow_depth=10.0),
        _forecast(1, precipitation=5.0, temperature=-4.0),
        _observed(2, snow_depth=3.0),
        _forecast(3, precipitation=0.0, temperature=-4.0),
    ]
    estimate_snow_depth(series)
    assert _depths(series) == [10.0, pytest.approx(15.0), 3.0, pytest.approx(3.0)]


def test_depth_never_goes_negative_under_strong_melt() -> None:
    series = [_observed(0, snow_depth=0.4)]
    series.extend(_forecast(hour, precipitation=0.0, temperature=15.0) for hour in range(1, 6))
    estimate_snow_depth(series)
    for depth in _depths(series)[1:]:
        assert depth is not None
        assert depth >= 0.0
    assert series[-1].snow_depth == 0.0


def test_every_forecast_point_after_baseline_gets_a_number() -> None:
    series = [_observed(0, snow_depth=5.0)]
    series.extend(
        _forecast(hour, precipitation=hour % 3, temperature=float(hour - 4)) for hour in range(1, 10)
    )
    series.append(_forecast(10, precipitation=1.0, temperature=None))
    estimate_snow_depth(series)
    assert all(point.snow_depth is not None for point in series[1:])


def test_rain_between_zero_and_threshold_accumulates_and_melts() -> None:
    series = [_observed(0, snow_depth=10.0), _forecast(1, precipitation=2.0, temperature=1.5)]
    estimate_snow_depth(series)
    # 10 + 2 - min(12, 1.5 * 0.1)
    assert series[1].snow_depth == pytest.approx(11.85)


def test_warm_precipitation_does_not_accumulate() -> None:
    series = [_observed(0, snow_depth=10.0), _forecast(1, precipitation=4.0, temperature=3.0)]
    estimate_snow_depth(series)
    assert series[1].snow_depth == pytest.approx(9.7)


def test_unknown_temperature_carries_depth_forward() -> None:
    series = [_observed(0, snow_depth=7.0), _forecast(1, precipitation=4.0, temperature=None)]
    estimate_snow_depth(series)
    assert series[1].snow_depth == 7.0


def test_rerunning_the_pass_is_idempotent() -> None:
    series = [
        _forecast(0, precipitation=1.0, temperature=-1.0),
        _observed(1, snow_depth=12.0),
        _observed(2, snow_depth=None),
        _forecast(3, precipitation=2.0, temperature=-6.0),
        _forecast(4, precipitation=0.0, temperature=4.0),
        _forecast(5, precipitation=1.0, temperature=1.0),
    ]
    model = SnowAccumulationModel()
    model.estimate(series)
    first = _depths(series)
    model.estimate(series)
    assert _depths(series) == first


def test_constants_are_overridable() -> None:
    model = SnowAccumulationModel(
        snow_temperature_threshold_c=0.0,
        melt_rate_per_degree_hour=0.5,
        snow_to_liquid_ratio=10.0,
    )
    series = [
        _observed(0, snow_depth=10.0),
        _forecast(1, precipitation=1.0, temperature=-1.0),
        _forecast(2, precipitation=1.0, temperature=1.0),
    ]
    model.estimate(series)
    assert series[1].snow_depth == pytest.approx(20.0)
    assert series[2].snow_depth == pytest.approx(19.5)


def test_from_settings_reads_model_constants() -> None:
    class _Settings:
        snow_temperature_threshold_c = 1.0
        snow_melt_rate_per_degree_hour = 0.2
        snow_to_liquid_ratio = 3.0

    model = SnowAccumulationModel.from_settings(_Settings())
    assert model.snow_temperature_threshold_c == 1.0
    assert model.melt_rate_per_degree_hour == 0.2
    assert model.snow_to_liquid_ratio == 3.0


def test_classification_ignores_values_written_into_forecast_points() -> None:
    estimated = _forecast(1, precipitation=0.0, temperature=-1.0)
    estimated.snow_depth = 42.0
    assert isinstance(classify(estimated), ForecastStep)
    assert isinstance(classify(_observed(0, snow_depth=None)), HistoricalGap)
    assert classify(_observed(0, snow_depth=3.0)) == ObservedDepth(depth_cm=3.0)
