import json
import logging
from typing import Dict, Iterable, List, Optional, Protocol

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError
from elasticsearch.helpers import ScanError, async_scan
from pydantic import ValidationError

from nearby_search.core.config import settings
from nearby_search.core.errors import StoreUnavailable
from nearby_search.indexing import prepare_entity
from nearby_search.models import ENTITY_TYPES, SearchableEntity
from nearby_search.recall.planner import LATITUDE_FIELD, CoarseQuery, RangeClause

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def query_coarse(self, query: CoarseQuery) -> List[SearchableEntity]:
        ...

    async def get_by_id(self, kind: str, entity_id: str) -> Optional[SearchableEntity]:
        ...

    async def close(self) -> None:
        ...


# Logical field name -> document path
_FIELD_PATHS = {
    "id": "id",
    "status": "status",
    "region": "geo.region",
    LATITUDE_FIELD: "geo.coordinate.lat",
}


def field_path(field: str) -> str:
    return _FIELD_PATHS.get(field, f"attributes.{field}")


def _range_bounds(clause: RangeClause) -> Dict[str, float]:
    bounds = {}
    if clause.gte is not None:
        bounds["gte"] = clause.gte
    if clause.lte is not None:
        bounds["lte"] = clause.lte
    return bounds


class ESDocumentStore:
    def __init__(self, host: str = None):
        self.client = AsyncElasticsearch(host or settings.ES_HOST)
        self.indices = {
            "venue": settings.ES_VENUE_INDEX,
            "listing": settings.ES_LISTING_INDEX,
        }

    def build_query(self, query: CoarseQuery) -> dict:
        filters = []
        for clause in query.equals:
            filters.append({"term": {field_path(clause.field): clause.value}})
        for clause in query.ins:
            filters.append({"terms": {field_path(clause.field): list(clause.values)}})
        for clause in query.ranges:
            bounds = _range_bounds(clause)
            if bounds:
                filters.append({"range": {field_path(clause.field): bounds}})

        if not filters:
            return {"match_all": {}}
        return {"bool": {"filter": filters}}

    async def query_coarse(self, query: CoarseQuery) -> List[SearchableEntity]:
        """Every document matching the coarse clauses.

        Without a limit the whole result set is scrolled in pages of
        COARSE_SCAN_PAGE_SIZE; a limit is a plain size-capped search.
        """
        index = self.indices[query.kind]
        body = self.build_query(query)
        try:
            if query.limit is not None:
                resp = await self.client.search(index=index, query=body, size=query.limit)
                hits = resp["hits"]["hits"]
            else:
                hits = [
                    hit
                    async for hit in async_scan(
                        self.client,
                        query={"query": body},
                        index=index,
                        size=settings.COARSE_SCAN_PAGE_SIZE,
                    )
                ]
        except (ApiError, TransportError, ScanError) as e:
            logger.error(f"ES query failed on {index}: {e}")
            raise StoreUnavailable(f"query on {index} failed") from e

        results = []
        for hit in hits:
            entity = self._parse_hit(query.kind, hit)
            if entity is not None:
                results.append(entity)
        return results

    async def get_by_id(self, kind: str, entity_id: str) -> Optional[SearchableEntity]:
        index = self.indices[kind]
        try:
            resp = await self.client.get(index=index, id=entity_id)
        except NotFoundError:
            return None
        except (ApiError, TransportError) as e:
            logger.error(f"ES get failed on {index}/{entity_id}: {e}")
            raise StoreUnavailable(f"get on {index} failed") from e
        return self._parse_hit(kind, resp)

    async def close(self) -> None:
        await self.client.close()

    def _parse_hit(self, kind: str, hit) -> Optional[SearchableEntity]:
        source = dict(hit["_source"])
        source["id"] = hit["_id"]
        source["kind"] = kind
        try:
            return ENTITY_TYPES[kind].model_validate(source)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {kind} document {hit['_id']}: {e}")
            return None


class InMemoryDocumentStore:
    """Store backed by a list of entities, honoring the same coarse clauses."""

    def __init__(self, entities: Iterable[SearchableEntity] = ()):
        self.entities: List[SearchableEntity] = list(entities)

    @classmethod
    def from_jsonl(cls, path: str) -> "InMemoryDocumentStore":
        entities = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                payload = json.loads(line)
                entities.append(prepare_entity(payload.pop("kind"), payload))
        logger.info(f"Loaded {len(entities)} entities from {path}")
        return cls(entities)

    @staticmethod
    def _value(entity: SearchableEntity, field: str):
        if field == LATITUDE_FIELD:
            coordinate = entity.geo.coordinate
            return coordinate.lat if coordinate is not None else None
        return entity.value_of(field)

    def _matches(self, entity: SearchableEntity, query: CoarseQuery) -> bool:
        if entity.kind != query.kind:
            return False
        for clause in query.equals:
            if self._value(entity, clause.field) != clause.value:
                return False
        for clause in query.ins:
            if self._value(entity, clause.field) not in clause.values:
                return False
        for clause in query.ranges:
            value = self._value(entity, clause.field)
            if value is None:
                return False
            if clause.gte is not None and value < clause.gte:
                return False
            if clause.lte is not None and value > clause.lte:
                return False
        return True

    async def query_coarse(self, query: CoarseQuery) -> List[SearchableEntity]:
        results = [e for e in self.entities if self._matches(e, query)]
        if query.limit is not None:
            results = results[: query.limit]
        return results

    async def get_by_id(self, kind: str, entity_id: str) -> Optional[SearchableEntity]:
        for entity in self.entities:
            if entity.kind == kind and entity.id == entity_id:
                return entity
        return None

    async def close(self) -> None:
        return None


def build_store() -> DocumentStore:
    if settings.STORE_BACKEND == "memory":
        return InMemoryDocumentStore.from_jsonl(settings.SEED_DATA_PATH)
    return ESDocumentStore()
