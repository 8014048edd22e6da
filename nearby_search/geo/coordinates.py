"""Coordinate value types.

Coordinates outside the valid lat/lng range are rejected at construction;
nothing in this package clamps or wraps them.
"""
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def _unpack(coordinates: Any):
    if isinstance(coordinates, dict):
        return coordinates.get("lat"), coordinates.get("lng")
    return getattr(coordinates, "lat", None), getattr(coordinates, "lng", None)


def is_valid_coordinates(coordinates: Any) -> bool:
    """True when `coordinates` carries numeric lat/lng inside the WGS84 range."""
    lat, lng = _unpack(coordinates)
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if math.isnan(value):
            return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @model_validator(mode="after")
    def _check_range(self):
        if not is_valid_coordinates(self):
            raise ValueError(f"coordinate out of range: ({self.lat}, {self.lng})")
        return self


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    northeast: Coordinate
    southwest: Coordinate

    def contains(self, coordinate: Coordinate) -> bool:
        return (
            self.southwest.lat <= coordinate.lat <= self.northeast.lat
            and self.southwest.lng <= coordinate.lng <= self.northeast.lng
        )
