"""Frost element identifiers and the predicates used to pick them out of records."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .models import ObservationRecord

PRECIPITATION_ELEMENT = "sum(precipitation_amount PT1H)"
SNOW_THICKNESS_ELEMENT = "surface_snow_thickness"
AIR_TEMPERATURE_ELEMENT = "air_temperature"
WIND_SPEED_ELEMENT = "wind_speed"
WIND_DIRECTION_ELEMENT = "wind_from_direction"

# Elements a station must expose to be preferred by the nearest-station search.
STATION_ELEMENTS: tuple[str, ...] = (PRECIPITATION_ELEMENT, SNOW_THICKNESS_ELEMENT)
OBSERVATION_ELEMENTS: tuple[str, ...] = (
    PRECIPITATION_ELEMENT,
    SNOW_THICKNESS_ELEMENT,
    AIR_TEMPERATURE_ELEMENT,
    WIND_SPEED_ELEMENT,
    WIND_DIRECTION_ELEMENT,
)

ElementPredicate = Callable[[str], bool]


def is_precipitation(element_id: str) -> bool:
    # Frost qualifies the element with an aggregation period, e.g. "sum(precipitation_amount PT1H)".
    return "precipitation_amount" in element_id


def exact(name: str) -> ElementPredicate:
    """Predicate matching one element identifier exactly."""

    def _matches(element_id: str) -> bool:
        return element_id == name

    return _matches


is_snow_thickness = exact(SNOW_THICKNESS_ELEMENT)
is_air_temperature = exact(AIR_TEMPERATURE_ELEMENT)
is_wind_speed = exact(WIND_SPEED_ELEMENT)
is_wind_direction = exact(WIND_DIRECTION_ELEMENT)


def find_value(record: ObservationRecord, predicate: ElementPredicate) -> float | None:
    """Value of the first observation whose element id satisfies the predicate."""
    for observation in record.observations:
        if predicate(observation.element_id):
            return observation.value
    return None


def join_elements(elements: Iterable[str]) -> str:
    return ",".join(elements)
