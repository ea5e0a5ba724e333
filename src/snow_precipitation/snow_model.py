"""Forward snow depth estimation over a reconciled series.

The model is a documented simplification: precipitation falling at or below
`SNOW_TEMPERATURE_THRESHOLD_C` is added to the depth at `SNOW_TO_LIQUID_RATIO`
(1 mm liquid -> 1 cm snow; real ratios vary roughly 5:1 to 20:1), and every
forecast hour above freezing melts `temperature * MELT_RATE_PER_DEGREE_HOUR`
centimetres, never more than the current depth.

Each point is classified before it is applied:

* ``ObservedDepth``  - historical point carrying a measured depth; resets the baseline.
* ``HistoricalGap``  - historical point without a measurement; left empty, baseline untouched.
* ``ForecastStep``   - forecast point; advances the baseline by the physical estimate.

Classification reads only the forecast tag and the measured value, so a value
written into a forecast point by an earlier pass is never mistaken for an
observation and re-running the pass gives the same output.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .models import UnifiedDataPoint

SNOW_TEMPERATURE_THRESHOLD_C = 2.0
MELT_RATE_PER_DEGREE_HOUR = 0.1
SNOW_TO_LIQUID_RATIO = 1.0


@dataclass(frozen=True, slots=True)
class ObservedDepth:
    depth_cm: float


@dataclass(frozen=True, slots=True)
class HistoricalGap:
    pass


@dataclass(frozen=True, slots=True)
class ForecastStep:
    precipitation_mm: float
    temperature_c: float | None


PointKind = ObservedDepth | HistoricalGap | ForecastStep


def classify(point: UnifiedDataPoint) -> PointKind:
    if point.is_forecast:
        return ForecastStep(precipitation_mm=point.precipitation, temperature_c=point.temperature)
    if point.snow_depth is None:
        return HistoricalGap()
    return ObservedDepth(depth_cm=point.snow_depth)


class SnowAccumulationModel:
    """Single forward pass filling `snow_depth` on forecast points."""

    def __init__(
        self,
        *,
        snow_temperature_threshold_c: float = SNOW_TEMPERATURE_THRESHOLD_C,
        melt_rate_per_degree_hour: float = MELT_RATE_PER_DEGREE_HOUR,
        snow_to_liquid_ratio: float = SNOW_TO_LIQUID_RATIO,
        logger: logging.Logger | None = None,
    ) -> None:
        self.snow_temperature_threshold_c = snow_temperature_threshold_c
        self.melt_rate_per_degree_hour = melt_rate_per_degree_hour
        self.snow_to_liquid_ratio = snow_to_liquid_ratio
        self.logger = logger or logging.getLogger("snow_precipitation.snow_model")

    @classmethod
    def from_settings(cls, settings: object) -> SnowAccumulationModel:
        return cls(
            snow_temperature_threshold_c=getattr(
                settings, "snow_temperature_threshold_c", SNOW_TEMPERATURE_THRESHOLD_C
            ),
            melt_rate_per_degree_hour=getattr(
                settings, "snow_melt_rate_per_degree_hour", MELT_RATE_PER_DEGREE_HOUR
            ),
            snow_to_liquid_ratio=getattr(settings, "snow_to_liquid_ratio", SNOW_TO_LIQUID_RATIO),
        )

    def estimate(self, series: Iterable[UnifiedDataPoint]) -> None:
        """Mutate `snow_depth` in place; `series` must be sorted by time."""
        baseline: float | None = None
        estimated = 0
        for point in series:
            kind = classify(point)
            if isinstance(kind, ObservedDepth):
                baseline = kind.depth_cm
            elif isinstance(kind, HistoricalGap):
                continue
            elif baseline is None:
                point.snow_depth = None
            else:
                baseline = self.step(baseline, kind)
                point.snow_depth = baseline
                estimated += 1
        self.logger.debug("Estimated snow depth for %d forecast points", estimated)

    def step(self, depth_cm: float, step: ForecastStep) -> float:
        """Depth after one forecast hour starting from `depth_cm`."""
        running = depth_cm
        temperature = step.temperature_c
        # Unknown temperature: neither accumulate nor melt.
        if temperature is not None:
            if temperature <= self.snow_temperature_threshold_c and step.precipitation_mm > 0:
                running += step.precipitation_mm * self.snow_to_liquid_ratio
            if temperature > 0 and running > 0:
                running -= min(running, temperature * self.melt_rate_per_degree_hour)
        return max(running, 0.0)


def estimate_snow_depth(series: Iterable[UnifiedDataPoint]) -> None:
    """Run the default model over `series`."""
    SnowAccumulationModel().estimate(series)
