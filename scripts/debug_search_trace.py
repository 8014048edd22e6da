import asyncio
import os
import sys

# Add the project root directory to the python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from nearby_search.filtering.pipeline import FilterPipeline
from nearby_search.geo.distance import calculate_bounding_box
from nearby_search.models import ListingSearchRequest, VenueSearchRequest
from nearby_search.recall.fetcher import fetch_candidates
from nearby_search.recall.store import build_store
from nearby_search.search import SearchService


async def trace(service: SearchService, prepared):
    request, filters, plan = prepared.request, prepared.filters, prepared.plan
    ranker = service.ranker

    print(f"\n{'='*60}", flush=True)
    print(f"{prepared.kind.upper()} SEARCH: {request.model_dump_json(exclude_none=True)}", flush=True)
    print(f"{'='*60}", flush=True)

    # 1. Plan
    print("\n--- [Phase 1] Plan ---", flush=True)
    for query in plan.queries:
        print(f"  Coarse: eq={query.equals} in={query.ins} range={query.ranges}", flush=True)
    print(f"  Residual: {list(plan.residual)}", flush=True)

    # 2. Fetch
    print("\n--- [Phase 2] Fetch ---", flush=True)
    candidates = await fetch_candidates(service.store, plan)
    print(f"  Candidates: {len(candidates)}", flush=True)
    if filters.has_radius:
        box = calculate_bounding_box(filters.center, filters.radius_km)
        in_box = [c for c in candidates if c.geo.coordinate and box.contains(c.geo.coordinate)]
        print(f"  Inside bounding box: {len(in_box)}", flush=True)

    # 3. Filter pipeline
    print("\n--- [Phase 3] Filter Pipeline ---", flush=True)

    def report(predicate, survivors):
        print(f"  stage {predicate.stage} {predicate}: {survivors} left", flush=True)

    filtered = FilterPipeline(plan.residual).apply(candidates, on_stage=report)

    # 4. Ranking
    print("\n--- [Phase 4] Ranking (first page) ---", flush=True)
    ranked = ranker.rank(
        filtered, center=filters.center, sort=request.sort, price_field=prepared.price_field
    )
    items, has_more = ranker.paginate(ranked, request.page, request.page_size)
    for i, item in enumerate(items):
        dist = ranker.distance_to(filters.center, item) if filters.center else None
        dist_str = f"{dist:.2f}km" if dist is not None else "N/A"
        print(f"#{i+1} ID: {item.id} | {item.title} (Region: {item.geo.region}, Dist: {dist_str})", flush=True)
    print(f"  has_more={has_more}", flush=True)


async def main():
    service = SearchService(build_store())
    try:
        # Searcher near Gangnam station
        center = {"lat": 37.4979, "lng": 127.0276}
        await trace(
            service,
            service.prepare_venues(
                VenueSearchRequest(center=center, radius_km=3.0, has_parking=True)
            ),
        )
        await trace(
            service,
            service.prepare_listings(
                ListingSearchRequest(
                    center=center, radius_km=10.0, price_range={"min": 10000, "max": 50000}
                )
            ),
        )
    finally:
        await service.close()


if __name__ == "__main__":
    asyncio.run(main())
