import asyncio
import logging
from typing import List

from nearby_search.models import SearchableEntity
from nearby_search.recall.planner import QueryPlan
from nearby_search.recall.store import DocumentStore

logger = logging.getLogger(__name__)


async def fetch_candidates(store: DocumentStore, plan: QueryPlan) -> List[SearchableEntity]:
    """Run every coarse query of the plan concurrently and merge the results.

    Store errors propagate. Results are de-duplicated by id, keeping the first
    occurrence in query order.
    """
    results_lists = await asyncio.gather(
        *(store.query_coarse(query) for query in plan.queries)
    )

    seen_ids = set()
    merged = []
    for results in results_lists:
        for entity in results:
            if entity.id in seen_ids:
                continue
            seen_ids.add(entity.id)
            merged.append(entity)

    logger.debug(
        f"Fetched {len(merged)} candidates from {len(plan.queries)} coarse queries"
    )
    return merged
