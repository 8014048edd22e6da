"""Geospatial helpers."""
import math

from nearby_search.geo.coordinates import BoundingBox, Coordinate

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


def calculate_distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine great-circle distance in km."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def calculate_bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """Axis-aligned box containing every point within `radius_km` of `center`.

    The box over-includes its corners; callers cut to the exact disc with
    calculate_distance.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(center.lat))
    lng_delta = radius_km / (KM_PER_DEGREE * cos_lat)

    # The disc is widest poleward of its center, so the flat formula can fall
    # short at high latitudes or large radii; widen to the exact extent.
    reach = math.sin(radius_km / EARTH_RADIUS_KM) / cos_lat
    spans_all = reach >= 1.0
    if not spans_all:
        lng_delta = max(lng_delta, math.degrees(math.asin(reach)))

    # Near the poles or across the antimeridian the box degenerates to the full range.
    north = min(center.lat + lat_delta, 90.0)
    south = max(center.lat - lat_delta, -90.0)
    east = center.lng + lng_delta
    west = center.lng - lng_delta
    if spans_all or north >= 90.0 or south <= -90.0 or east > 180.0 or west < -180.0:
        east, west = 180.0, -180.0

    return BoundingBox(
        northeast=Coordinate(lat=north, lng=east),
        southwest=Coordinate(lat=south, lng=west),
    )
