"""Search facade: venue and listing search entry points.

request -> filters -> plan -> fetch -> filter pipeline -> rank -> envelope

A failing store degrades to an empty result instead of an error. Invalid
requests are rejected with InvalidSearchRequest before the store is touched.
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import ValidationError

from nearby_search.core.errors import InvalidSearchRequest
from nearby_search.filtering.filters import (
    SearchFilters,
    listing_filters,
    venue_filters,
)
from nearby_search.filtering.pipeline import FilterPipeline
from nearby_search.geo.regions import Gazetteer, default_gazetteer
from nearby_search.models import (
    Listing,
    ListingSearchRequest,
    Pagination,
    SearchRequest,
    SearchResult,
    Venue,
    VenueSearchRequest,
)
from nearby_search.ranking.ranker import Ranker, ranker as default_ranker
from nearby_search.recall.fetcher import fetch_candidates
from nearby_search.recall.planner import EqClause, QueryPlan, QueryPlanner
from nearby_search.recall.store import DocumentStore

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=SearchRequest)


def _parse(model: Type[RequestT], request: Union[RequestT, Mapping[str, Any]]) -> RequestT:
    if isinstance(request, model):
        return request
    if not isinstance(request, Mapping):
        raise InvalidSearchRequest(f"expected {model.__name__} or a mapping")
    try:
        return model.model_validate(request)
    except ValidationError as e:
        raise InvalidSearchRequest(str(e)) from e


@dataclass(frozen=True)
class PreparedSearch:
    """A validated request with its filters and coarse query plan."""

    kind: str
    request: SearchRequest
    filters: SearchFilters
    plan: QueryPlan
    price_field: str = "price"


class SearchService:
    def __init__(
        self,
        store: DocumentStore,
        planner: QueryPlanner = None,
        ranker: Ranker = None,
        gazetteer: Gazetteer = None,
    ):
        self.store = store
        self.planner = planner or QueryPlanner()
        self.ranker = ranker or default_ranker
        self.gazetteer = gazetteer if gazetteer is not None else default_gazetteer

    def prepare_venues(
        self, request: Union[VenueSearchRequest, Mapping[str, Any]]
    ) -> PreparedSearch:
        request = _parse(VenueSearchRequest, request)
        filters = venue_filters(request, self.gazetteer)
        price_type = request.price_range.type if request.price_range else "hourly"

        plan = self.planner.plan(
            "venue", filters, base=(EqClause("status", "active"),)
        )
        return PreparedSearch("venue", request, filters, plan, f"price_{price_type}")

    def prepare_listings(
        self, request: Union[ListingSearchRequest, Mapping[str, Any]]
    ) -> PreparedSearch:
        request = _parse(ListingSearchRequest, request)
        filters = listing_filters(request, self.gazetteer)

        base = [EqClause("reported", False)]
        union_on: Tuple[EqClause, ...] = ()
        if request.party_id:
            # A party sees its listings in every status, as seller or as buyer.
            union_on = (
                EqClause("seller_id", request.party_id),
                EqClause("buyer_id", request.party_id),
            )
        elif not request.status:
            base.insert(0, EqClause("status", "available"))

        plan = self.planner.plan(
            "listing", filters, base=tuple(base), union_on=union_on
        )
        return PreparedSearch("listing", request, filters, plan, "price")

    async def search_venues(
        self, request: Union[VenueSearchRequest, Mapping[str, Any]]
    ) -> SearchResult:
        return await self._execute(self.prepare_venues(request))

    async def search_listings(
        self, request: Union[ListingSearchRequest, Mapping[str, Any]]
    ) -> SearchResult:
        return await self._execute(self.prepare_listings(request))

    async def get_venue(self, venue_id: str) -> Optional[Venue]:
        return await self.store.get_by_id("venue", venue_id)

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        return await self.store.get_by_id("listing", listing_id)

    async def close(self):
        await self.store.close()

    async def _execute(self, prepared: PreparedSearch) -> SearchResult:
        kind, request = prepared.kind, prepared.request

        try:
            candidates = await fetch_candidates(self.store, prepared.plan)
        except Exception:
            logger.exception(f"{kind} search fetch failed, returning empty result")
            return SearchResult.empty(request.page_size)

        filtered = FilterPipeline(prepared.plan.residual).apply(candidates)
        ranked = self.ranker.rank(
            filtered,
            center=prepared.filters.center,
            sort=request.sort,
            price_field=prepared.price_field,
        )
        items, has_more = self.ranker.paginate(ranked, request.page, request.page_size)

        logger.info(
            f"{kind} search: {len(candidates)} fetched, {len(filtered)} matched, "
            f"page {request.page} returned {len(items)}"
        )
        return SearchResult(
            items=items,
            total=len(filtered),
            has_more=has_more,
            pagination=Pagination(
                page=request.page,
                limit=request.page_size,
                total=len(filtered),
                has_next=has_more,
                has_prev=request.page > 1,
            ),
        )
