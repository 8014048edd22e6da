import math
from datetime import datetime, timedelta, timezone

import pytest

from nearby_search.geo.coordinates import Coordinate
from nearby_search.models import GeoAnchor, Listing, Venue

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

GANGNAM_STATION = Coordinate(lat=37.4979, lng=127.0276)
SEOUL_CITY_HALL = Coordinate(lat=37.5666805, lng=126.9784147)
HONGDAE = Coordinate(lat=37.5563, lng=126.9236)


def point_at(origin: Coordinate, distance_km: float, bearing_deg: float) -> Coordinate:
    """Destination point on the same sphere the haversine distance uses."""
    delta = distance_km / 6371.0
    theta = math.radians(bearing_deg)
    phi1 = math.radians(origin.lat)
    lam1 = math.radians(origin.lng)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lam2 = lam1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    lng = (math.degrees(lam2) + 540.0) % 360.0 - 180.0
    return Coordinate(lat=math.degrees(phi2), lng=lng)


@pytest.fixture
def make_venue():
    def _make(id, coordinate=None, region="", age_days=0, status="active", title=None, **attributes):
        return Venue(
            id=id,
            title=title or f"Studio {id}",
            geo=GeoAnchor(coordinate=coordinate, region=region),
            created_at=BASE_TIME - timedelta(days=age_days),
            status=status,
            attributes=attributes,
        )

    return _make


@pytest.fixture
def make_listing():
    def _make(id, coordinate=None, region="", age_days=0, status="available", title=None, **attributes):
        attributes.setdefault("reported", False)
        return Listing(
            id=id,
            title=title or f"Listing {id}",
            geo=GeoAnchor(coordinate=coordinate, region=region),
            created_at=BASE_TIME - timedelta(days=age_days),
            status=status,
            attributes=attributes,
        )

    return _make
