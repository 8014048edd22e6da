import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import NotFoundError

from nearby_search.core.errors import StoreUnavailable
from nearby_search.recall.fetcher import fetch_candidates
from nearby_search.recall.planner import (
    CoarseQuery,
    EqClause,
    InClause,
    QueryPlan,
    RangeClause,
)
from nearby_search.recall.store import ESDocumentStore, InMemoryDocumentStore

VENUE_SOURCE = {
    "title": "Groove Studio",
    "status": "active",
    "created_at": "2024-05-01T10:00:00Z",
    "geo": {"coordinate": {"lat": 37.4979, "lng": 127.0276}, "region": "강남"},
    "attributes": {"category": "studio", "price_hourly": 20000},
}


def _hit(doc_id, source=None):
    return {"_id": doc_id, "_score": 0.0, "_source": source or VENUE_SOURCE}


@pytest.mark.asyncio
async def test_parallel_fetch_merges_and_dedups():
    with patch("nearby_search.recall.store.AsyncElasticsearch") as MockES:
        mock_es_instance = AsyncMock()
        MockES.return_value = mock_es_instance

        # Seller query returns [1, 2], buyer query returns [2, 3]
        mock_es_instance.search.side_effect = [
            {"hits": {"hits": [_hit("1"), _hit("2")]}},
            {"hits": {"hits": [_hit("2"), _hit("3")]}},
        ]

        store = ESDocumentStore()
        plan = QueryPlan(
            queries=(
                CoarseQuery("venue", equals=(EqClause("seller_id", "u1"),), limit=100),
                CoarseQuery("venue", equals=(EqClause("buyer_id", "u1"),), limit=100),
            )
        )
        results = await fetch_candidates(store, plan)

        assert mock_es_instance.search.call_count == 2
        assert [r.id for r in results] == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_fetch_propagates_store_errors():
    store = MagicMock()
    store.query_coarse = AsyncMock(side_effect=StoreUnavailable("down"))

    with pytest.raises(StoreUnavailable):
        await fetch_candidates(store, QueryPlan(queries=(CoarseQuery("venue"),)))


def test_build_query_paths():
    with patch("nearby_search.recall.store.AsyncElasticsearch"):
        store = ESDocumentStore()

    query = CoarseQuery(
        "listing",
        equals=(EqClause("status", "available"), EqClause("reported", False), EqClause("region", "홍대")),
        ins=(InClause("category", ("shoes", "clothing")),),
        ranges=(RangeClause("lat", 37.4, 37.6),),
    )
    body = store.build_query(query)

    assert body == {
        "bool": {
            "filter": [
                {"term": {"status": "available"}},
                {"term": {"attributes.reported": False}},
                {"term": {"geo.region": "홍대"}},
                {"terms": {"attributes.category": ["shoes", "clothing"]}},
                {"range": {"geo.coordinate.lat": {"gte": 37.4, "lte": 37.6}}},
            ]
        }
    }


def test_build_query_open_range_and_match_all():
    with patch("nearby_search.recall.store.AsyncElasticsearch"):
        store = ESDocumentStore()

    body = store.build_query(CoarseQuery("listing", ranges=(RangeClause("price", 1000, None),)))
    assert body == {"bool": {"filter": [{"range": {"attributes.price": {"gte": 1000}}}]}}

    assert store.build_query(CoarseQuery("venue")) == {"match_all": {}}


@pytest.mark.asyncio
async def test_query_coarse_calls_search():
    with patch("nearby_search.recall.store.AsyncElasticsearch") as MockES:
        mock_es_instance = AsyncMock()
        MockES.return_value = mock_es_instance
        mock_es_instance.search.return_value = {"hits": {"hits": [_hit("v1")]}}

        store = ESDocumentStore()
        results = await store.query_coarse(CoarseQuery("venue", limit=200))

        mock_es_instance.search.assert_awaited_once_with(
            index="venues_v1", query={"match_all": {}}, size=200
        )
        venue = results[0]
        assert venue.id == "v1"
        assert venue.kind == "venue"
        assert venue.geo.region == "강남"
        assert venue.value_of("price_hourly") == 20000


def _scan_yielding(*batches):
    """Stand-in for async_scan: each call yields the next batch of hits."""
    remaining = iter(batches)
    calls = []

    async def fake_scan(client, query=None, index=None, size=None):
        calls.append({"query": query, "index": index, "size": size})
        for hit in next(remaining):
            yield hit

    fake_scan.calls = calls
    return fake_scan


@pytest.mark.asyncio
async def test_query_coarse_scrolls_every_match():
    hits = [_hit(f"v{i}") for i in range(2500)]
    fake_scan = _scan_yielding(hits)

    with patch("nearby_search.recall.store.AsyncElasticsearch") as MockES, patch(
        "nearby_search.recall.store.async_scan", fake_scan
    ):
        mock_es_instance = AsyncMock()
        MockES.return_value = mock_es_instance

        store = ESDocumentStore()
        query = CoarseQuery("venue", ranges=(RangeClause("lat", 37.45, 37.55),))
        results = await store.query_coarse(query)

        # No implicit cap: more hits than one scroll page all come back
        assert len(results) == 2500
        assert results[-1].id == "v2499"
        mock_es_instance.search.assert_not_awaited()
        assert fake_scan.calls == [
            {
                "query": {"query": store.build_query(query)},
                "index": "venues_v1",
                "size": 1000,
            }
        ]


@pytest.mark.asyncio
async def test_query_coarse_wraps_transport_errors():
    async def failing_scan(client, **kwargs):
        raise ESConnectionError("connection refused")
        yield

    with patch("nearby_search.recall.store.AsyncElasticsearch") as MockES, patch(
        "nearby_search.recall.store.async_scan", failing_scan
    ):
        mock_es_instance = AsyncMock()
        MockES.return_value = mock_es_instance
        mock_es_instance.search.side_effect = ESConnectionError("connection refused")

        store = ESDocumentStore()
        with pytest.raises(StoreUnavailable):
            await store.query_coarse(CoarseQuery("venue"))
        with pytest.raises(StoreUnavailable):
            await store.query_coarse(CoarseQuery("venue", limit=10))


@pytest.mark.asyncio
async def test_query_coarse_skips_malformed_documents():
    broken = dict(VENUE_SOURCE, geo={"coordinate": {"lat": 123.0, "lng": 0.0}})
    fake_scan = _scan_yielding([_hit("ok"), _hit("bad", broken)])

    with patch("nearby_search.recall.store.AsyncElasticsearch"), patch(
        "nearby_search.recall.store.async_scan", fake_scan
    ):
        store = ESDocumentStore()
        results = await store.query_coarse(CoarseQuery("venue"))

        assert [r.id for r in results] == ["ok"]


@pytest.mark.asyncio
async def test_get_by_id():
    with patch("nearby_search.recall.store.AsyncElasticsearch") as MockES:
        mock_es_instance = AsyncMock()
        MockES.return_value = mock_es_instance
        mock_es_instance.get.side_effect = [
            _hit("v1"),
            NotFoundError("not found", MagicMock(status=404), {}),
        ]

        store = ESDocumentStore()
        venue = await store.get_by_id("venue", "v1")
        missing = await store.get_by_id("venue", "nope")

        assert venue.id == "v1"
        assert missing is None
        mock_es_instance.get.assert_any_await(index="venues_v1", id="v1")


@pytest.mark.asyncio
async def test_in_memory_store_honors_clauses(make_listing, make_venue):
    store = InMemoryDocumentStore(
        [
            make_listing("l1", region="강남", category="shoes", price=10000),
            make_listing("l2", region="홍대", category="clothing", price=30000),
            make_listing("l3", region="강남", category="shoes", status="sold"),
            make_venue("v1", region="강남"),
        ]
    )

    query = CoarseQuery(
        "listing",
        equals=(EqClause("status", "available"), EqClause("region", "강남")),
        ins=(InClause("category", ("shoes", "bags")),),
    )
    assert [e.id for e in await store.query_coarse(query)] == ["l1"]

    query = CoarseQuery("listing", ranges=(RangeClause("price", 20000, None),))
    assert [e.id for e in await store.query_coarse(query)] == ["l2"]

    assert [e.id for e in await store.query_coarse(CoarseQuery("listing", limit=2))] == ["l1", "l2"]
    assert (await store.get_by_id("venue", "v1")).id == "v1"
    assert await store.get_by_id("listing", "v1") is None
