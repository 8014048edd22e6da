"""Translate search requests into immutable SearchFilters."""
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from nearby_search.core.config import settings
from nearby_search.core.errors import InvalidSearchRequest
from nearby_search.filtering.predicates import (
    Boolean,
    Eq,
    GeoRadius,
    In,
    Range,
    TextContains,
)
from nearby_search.geo.coordinates import Coordinate
from nearby_search.geo.regions import Gazetteer, default_gazetteer
from nearby_search.models import (
    ListingSearchRequest,
    SearchRequest,
    VenueSearchRequest,
)


@dataclass(frozen=True)
class SearchFilters:
    center: Optional[Coordinate] = None
    radius_km: Optional[float] = None
    text_query: Optional[str] = None
    facets: Tuple = ()

    @property
    def has_radius(self) -> bool:
        return self.center is not None and self.radius_km is not None

    def predicates(self) -> Tuple:
        result = []
        if self.has_radius:
            result.append(GeoRadius(self.center, self.radius_km))
        result.extend(self.facets)
        if self.text_query:
            result.append(TextContains(self.text_query))
        return tuple(result)


def _check_finite(field: str, value: Optional[float]):
    if value is not None and not math.isfinite(value):
        raise InvalidSearchRequest(f"{field} must be a finite number", field=field)


def _membership(facets: List, field: str, values: Optional[List]):
    if not values:
        return
    if len(values) == 1:
        facets.append(Eq(field, values[0]))
    else:
        facets.append(In(field, tuple(values)))


def _flag(facets: List, field: str, value: Optional[bool]):
    if value is not None:
        facets.append(Boolean(field, value))


def _range(facets: List, field: str, minimum, maximum):
    _check_finite(f"{field}.min", minimum)
    _check_finite(f"{field}.max", maximum)
    predicate = Range(field, minimum, maximum)
    # Non-positive bounds mean "no constraint" on that side.
    if not predicate.is_unbounded:
        facets.append(predicate)


def _geo(request: SearchRequest, gazetteer: Gazetteer):
    if gazetteer is None:
        gazetteer = default_gazetteer
    center = request.center
    if center is None and request.near_region:
        center = gazetteer.center_of(request.near_region)
        if center is None:
            raise InvalidSearchRequest(
                f"unknown region: {request.near_region}", field="near_region"
            )
    if center is None:
        return None, None

    _check_finite("radius_km", request.radius_km)
    radius_km = request.radius_km
    if radius_km is None:
        radius_km = settings.DEFAULT_RADIUS_KM
    if radius_km <= 0:
        radius_km = None
    return center, radius_km


def _text(request: SearchRequest) -> Optional[str]:
    if request.text_query is None:
        return None
    return request.text_query.strip() or None


def venue_filters(
    request: VenueSearchRequest, gazetteer: Gazetteer = None
) -> SearchFilters:
    center, radius_km = _geo(request, gazetteer)

    facets = []
    _membership(facets, "category", request.category)
    _membership(facets, "region", request.region)
    _flag(facets, "parking", request.has_parking)
    _flag(facets, "sound_system", request.has_sound_system)
    _flag(facets, "air_conditioning", request.has_air_conditioning)
    _range(facets, "area", request.min_area, request.max_area)
    if request.price_range:
        _range(
            facets,
            f"price_{request.price_range.type}",
            request.price_range.min,
            request.price_range.max,
        )

    return SearchFilters(center, radius_km, _text(request), tuple(facets))


def listing_filters(
    request: ListingSearchRequest, gazetteer: Gazetteer = None
) -> SearchFilters:
    center, radius_km = _geo(request, gazetteer)

    facets = []
    _membership(facets, "category", request.category)
    _membership(facets, "status", request.status)
    _membership(facets, "region", request.region)
    _membership(facets, "condition", request.condition)
    _membership(facets, "trade_method", request.trade_method)
    _membership(facets, "size", request.size_range)
    _membership(facets, "brand", request.brands)
    _flag(facets, "delivery_available", request.delivery_available)
    _flag(facets, "negotiable", request.negotiable)
    if request.price_range:
        _range(facets, "price", request.price_range.min, request.price_range.max)

    return SearchFilters(center, radius_km, _text(request), tuple(facets))
