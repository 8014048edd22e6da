import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from nearby_search.core.config import settings
from nearby_search.core.errors import InvalidSearchRequest, StoreUnavailable
from nearby_search.core.logging import setup_logging
from nearby_search.models import (
    Listing,
    ListingSearchRequest,
    SearchResult,
    Venue,
    VenueSearchRequest,
)
from nearby_search.recall.store import build_store
from nearby_search.search import SearchService

logger = logging.getLogger(__name__)

app = FastAPI(title="Nearby Search Service", version="1.0")

search_service = SearchService(build_store())


@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger.info(f"Search service ready (store backend: {settings.STORE_BACKEND})")


@app.on_event("shutdown")
async def shutdown_event():
    await search_service.close()


@app.exception_handler(InvalidSearchRequest)
async def invalid_request_handler(request: Request, exc: InvalidSearchRequest):
    return JSONResponse(
        status_code=400, content={"detail": exc.message, "field": exc.field}
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.post("/venues/search", response_model=SearchResult)
async def search_venues(req: VenueSearchRequest):
    return await search_service.search_venues(req)


@app.post("/listings/search", response_model=SearchResult)
async def search_listings(req: ListingSearchRequest):
    return await search_service.search_listings(req)


@app.get("/venues/{venue_id}", response_model=Venue)
async def get_venue(venue_id: str):
    venue = await search_service.get_venue(venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="venue not found")
    return venue


@app.get("/listings/{listing_id}", response_model=Listing)
async def get_listing(listing_id: str):
    listing = await search_service.get_listing(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="listing not found")
    return listing


@app.get("/health")
async def health():
    return {"status": "ok", "store": settings.STORE_BACKEND, "elasticsearch": settings.ES_HOST}


if __name__ == "__main__":
    uvicorn.run(app, host=settings.SERVICE_HOST, port=settings.APP_PORT)
