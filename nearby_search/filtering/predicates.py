"""Filter predicates evaluated in memory against candidate entities.

Each predicate carries the pipeline stage it runs in. Stages run in ascending
order: exact radius cut, set membership, boolean flags, numeric ranges, text.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from nearby_search.geo.coordinates import Coordinate
from nearby_search.geo.distance import calculate_distance

STAGE_GEO = 1
STAGE_MEMBERSHIP = 2
STAGE_BOOLEAN = 3
STAGE_RANGE = 4
STAGE_TEXT = 5


def _positive_or_none(bound: Optional[float]) -> Optional[float]:
    if bound is None or bound <= 0:
        return None
    return bound


@dataclass(frozen=True)
class GeoRadius:
    center: Coordinate
    radius_km: float
    stage = STAGE_GEO

    def matches(self, entity) -> bool:
        coordinate = entity.geo.coordinate
        if coordinate is None:
            return False
        return calculate_distance(self.center, coordinate) <= self.radius_km


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any
    stage = STAGE_MEMBERSHIP

    def matches(self, entity) -> bool:
        return entity.value_of(self.field) == self.value


@dataclass(frozen=True)
class In:
    field: str
    values: Tuple[Any, ...]
    stage = STAGE_MEMBERSHIP

    def matches(self, entity) -> bool:
        value = entity.value_of(self.field)
        return value is not None and value in self.values


@dataclass(frozen=True)
class Boolean:
    """Strict flag equality. A value of None means "don't care"."""

    field: str
    value: Optional[bool]
    stage = STAGE_BOOLEAN

    def matches(self, entity) -> bool:
        if self.value is None:
            return True
        actual = entity.value_of(self.field)
        return isinstance(actual, bool) and actual == self.value


@dataclass(frozen=True)
class Range:
    """Inclusive numeric range; an absent or non-positive bound is open."""

    field: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    stage = STAGE_RANGE

    @property
    def lower(self) -> Optional[float]:
        return _positive_or_none(self.minimum)

    @property
    def upper(self) -> Optional[float]:
        return _positive_or_none(self.maximum)

    @property
    def is_unbounded(self) -> bool:
        return self.lower is None and self.upper is None

    def matches(self, entity) -> bool:
        if self.is_unbounded:
            return True
        value = entity.value_of(self.field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value > self.upper:
            return False
        return True


@dataclass(frozen=True)
class TextContains:
    query: str
    stage = STAGE_TEXT

    def matches(self, entity) -> bool:
        return self.query.casefold() in entity.searchable_text()
