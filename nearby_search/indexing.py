"""Write-time document preparation.

Region labels, geohashes and search keywords are computed once here, when a
document is written, and stored denormalized for the search path to read.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from nearby_search.core.config import settings
from nearby_search.geo.coordinates import Coordinate
from nearby_search.geo.regions import Gazetteer, default_gazetteer
from nearby_search.models import ENTITY_TYPES, GeoAnchor, SearchableEntity

logger = logging.getLogger(__name__)

GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

INDEX_MAPPINGS = {
    "dynamic_templates": [
        {
            "attribute_strings": {
                "path_match": "attributes.*",
                "match_mapping_type": "string",
                "mapping": {"type": "keyword"},
            }
        }
    ],
    "properties": {
        "kind": {"type": "keyword"},
        "status": {"type": "keyword"},
        "title": {"type": "text", "analyzer": "standard"},
        "description": {"type": "text", "analyzer": "standard"},
        "address": {"type": "text", "analyzer": "standard"},
        "tags": {"type": "keyword"},
        "keywords": {"type": "keyword"},
        "created_at": {"type": "date"},
        "geo": {
            "properties": {
                "coordinate": {
                    "properties": {
                        "lat": {"type": "double"},
                        "lng": {"type": "double"},
                    }
                },
                "encoded_point": {"type": "geo_point"},
                "region": {"type": "keyword"},
            }
        },
        "attributes": {"type": "object", "dynamic": True},
    },
}


def generate_geohash(coordinate: Coordinate, precision: int = None) -> str:
    if precision is None:
        precision = settings.GEOHASH_PRECISION
    lat_min, lat_max = -90.0, 90.0
    lng_min, lng_max = -180.0, 180.0
    geohash = []
    bits = 0
    bit = 0
    even_bit = True

    while len(geohash) < precision:
        if even_bit:
            mid = (lng_min + lng_max) / 2
            if coordinate.lng >= mid:
                bit = (bit << 1) + 1
                lng_min = mid
            else:
                bit = bit << 1
                lng_max = mid
        else:
            mid = (lat_min + lat_max) / 2
            if coordinate.lat >= mid:
                bit = (bit << 1) + 1
                lat_min = mid
            else:
                bit = bit << 1
                lat_max = mid

        even_bit = not even_bit
        bits += 1
        if bits == 5:
            geohash.append(GEOHASH_BASE32[bit])
            bits = 0
            bit = 0

    return "".join(geohash)


def build_geo_anchor(
    coordinate: Optional[Coordinate],
    fallback_region: str = "",
    gazetteer: Gazetteer = None,
) -> GeoAnchor:
    """Attach a geohash and the nearest named region to a coordinate.

    The detected region wins when it lies within REGION_MATCH_MAX_KM;
    otherwise the caller-supplied region is kept.
    """
    if coordinate is None:
        return GeoAnchor(region=fallback_region)
    if gazetteer is None:
        gazetteer = default_gazetteer

    detected = gazetteer.nearest(coordinate, max_distance_km=settings.REGION_MATCH_MAX_KM)
    return GeoAnchor(
        coordinate=coordinate,
        encoded_point=generate_geohash(coordinate),
        region=detected or fallback_region,
    )


def generate_search_keywords(
    title: str = "",
    description: str = "",
    category: str = None,
    region: str = None,
    tags: Iterable[str] = (),
    brand: str = None,
) -> List[str]:
    keywords: Dict[str, None] = {}

    if title:
        keywords[title.lower()] = None
        for word in title.split():
            keywords[word.lower()] = None
    if description:
        for word in description.split():
            if len(word) > 1:
                keywords[word.lower()] = None
    if category:
        keywords[category] = None
    if brand:
        keywords[brand.lower()] = None
    if region:
        keywords[region.lower()] = None
    for tag in tags:
        keywords[tag.lower()] = None

    return list(keywords)


def prepare_entity(
    kind: str, payload: Dict[str, Any], gazetteer: Gazetteer = None
) -> SearchableEntity:
    """Build a Venue or Listing from a write payload with raw `coordinates`."""
    model = ENTITY_TYPES[kind]
    attributes = dict(payload.get("attributes") or {})
    if kind == "listing":
        attributes.setdefault("reported", False)

    coordinates = payload.get("coordinates")
    coordinate = Coordinate(**coordinates) if coordinates else None
    geo = build_geo_anchor(coordinate, payload.get("region", ""), gazetteer)

    tags = payload.get("tags") or []
    keywords = payload.get("keywords") or generate_search_keywords(
        title=payload.get("title", ""),
        description=payload.get("description", ""),
        category=attributes.get("category"),
        region=geo.region,
        tags=tags,
        brand=attributes.get("brand"),
    )

    fields = {
        k: v
        for k, v in payload.items()
        if k not in ("coordinates", "region", "geo", "attributes", "tags", "keywords")
    }
    fields.setdefault("created_at", datetime.now(timezone.utc))
    return model(
        **fields, geo=geo, attributes=attributes, tags=tags, keywords=keywords
    )


def to_index_action(entity: SearchableEntity, index: str = None) -> Dict[str, Any]:
    if index is None:
        index = (
            settings.ES_VENUE_INDEX if entity.kind == "venue" else settings.ES_LISTING_INDEX
        )
    source = entity.model_dump(mode="json", exclude={"id"})
    return {"_index": index, "_id": entity.id, "_source": source}
