from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from nearby_search.core.config import settings
from nearby_search.geo.coordinates import Coordinate

VenueCategory = Literal["studio", "practice_room", "club", "public_space", "cafe"]
VenueStatus = Literal["active", "temporarily_closed", "permanently_closed"]
ListingCategory = Literal["shoes", "clothing", "accessories", "other"]
ListingStatus = Literal["available", "reserved", "sold"]
ListingCondition = Literal["new", "like_new", "good", "fair", "poor"]
TradeMethod = Literal["direct", "delivery", "both"]
SortOption = Literal["latest", "oldest", "price_low", "price_high", "popular"]
VenuePriceType = Literal["hourly", "daily", "monthly", "drop_in"]


# ---------- Entities ----------


class GeoAnchor(BaseModel):
    coordinate: Optional[Coordinate] = None
    encoded_point: Optional[str] = None  # geohash
    region: str = ""


class SearchableEntity(BaseModel):
    id: str
    geo: GeoAnchor = Field(default_factory=GeoAnchor)
    title: str = ""
    description: str = ""
    tags: List[str] = []
    keywords: List[str] = []
    attributes: Dict[str, Any] = {}
    created_at: datetime
    status: str

    def value_of(self, field: str) -> Any:
        if field == "region":
            return self.geo.region or None
        if field in ("id", "status"):
            return getattr(self, field)
        return self.attributes.get(field)

    def _extra_text(self) -> List[str]:
        return []

    def searchable_text(self) -> str:
        parts = [self.title, self.description, self.geo.region]
        parts.extend(self.tags)
        parts.extend(self.keywords)
        parts.extend(self._extra_text())
        return " ".join(p for p in parts if p).casefold()


class Venue(SearchableEntity):
    kind: Literal["venue"] = "venue"
    status: VenueStatus = "active"
    address: str = ""

    def _extra_text(self) -> List[str]:
        return [self.address]


class Listing(SearchableEntity):
    kind: Literal["listing"] = "listing"
    status: ListingStatus = "available"

    def _extra_text(self) -> List[str]:
        brand = self.attributes.get("brand")
        return [brand] if brand else []


Entity = Annotated[Union[Venue, Listing], Field(discriminator="kind")]

ENTITY_TYPES = {"venue": Venue, "listing": Listing}


# ---------- Requests ----------


def _as_list(value):
    if isinstance(value, str):
        return [value]
    return value


class PriceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class VenuePriceRange(PriceRange):
    type: VenuePriceType = "hourly"


class SearchRequest(BaseModel):
    center: Optional[Coordinate] = None
    near_region: Optional[str] = None
    radius_km: Optional[float] = None
    text_query: Optional[str] = None
    region: Optional[List[str]] = None
    sort: SortOption = "latest"
    page: int = Field(1, ge=1)
    page_size: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)

    @field_validator("region", mode="before")
    @classmethod
    def _region_list(cls, value):
        return _as_list(value)


class VenueSearchRequest(SearchRequest):
    category: Optional[List[VenueCategory]] = None
    has_parking: Optional[bool] = None
    has_sound_system: Optional[bool] = None
    has_air_conditioning: Optional[bool] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    price_range: Optional[VenuePriceRange] = None

    @field_validator("category", mode="before")
    @classmethod
    def _category_list(cls, value):
        return _as_list(value)


class ListingSearchRequest(SearchRequest):
    category: Optional[List[ListingCategory]] = None
    status: Optional[List[ListingStatus]] = None
    condition: Optional[List[ListingCondition]] = None
    price_range: Optional[PriceRange] = None
    size_range: Optional[List[str]] = None
    brands: Optional[List[str]] = None
    trade_method: Optional[List[TradeMethod]] = None
    delivery_available: Optional[bool] = None
    negotiable: Optional[bool] = None
    party_id: Optional[str] = None

    @field_validator("category", "status", mode="before")
    @classmethod
    def _enum_list(cls, value):
        return _as_list(value)


# ---------- Responses ----------


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    has_next: bool
    has_prev: bool


class SearchResult(BaseModel):
    items: List[Entity]
    total: int
    has_more: bool
    pagination: Pagination

    @classmethod
    def empty(cls, page_size: int) -> "SearchResult":
        return cls(
            items=[],
            total=0,
            has_more=False,
            pagination=Pagination(
                page=1, limit=page_size, total=0, has_next=False, has_prev=False
            ),
        )
