from conftest import point_at
from nearby_search.geo.coordinates import Coordinate
from nearby_search.ranking.ranker import Ranker

CENTER = Coordinate(lat=37.5, lng=127.0)

ranker = Ranker()


def _ids(entities):
    return [e.id for e in entities]


def test_rank_by_distance(make_venue):
    venues = [
        make_venue("far", point_at(CENTER, 4.0, 90)),
        make_venue("near", point_at(CENTER, 0.5, 180)),
        make_venue("mid", point_at(CENTER, 2.0, 0)),
    ]
    assert _ids(ranker.rank(venues, center=CENTER)) == ["near", "mid", "far"]


def test_distance_ties_broken_newest_first(make_venue):
    spot = point_at(CENTER, 1.0, 45)
    venues = [
        make_venue("old", spot, age_days=10),
        make_venue("new", spot, age_days=1),
        make_venue("closer", point_at(CENTER, 0.2, 45), age_days=30),
    ]
    assert _ids(ranker.rank(venues, center=CENTER)) == ["closer", "new", "old"]


def test_missing_coordinate_sorts_last_by_distance(make_venue):
    venues = [make_venue("nowhere"), make_venue("here", CENTER)]
    assert _ids(ranker.rank(venues, center=CENTER)) == ["here", "nowhere"]


def test_center_overrides_sort_option(make_listing):
    listings = [
        make_listing("cheap-far", point_at(CENTER, 3, 0), price=1000),
        make_listing("pricey-near", point_at(CENTER, 1, 0), price=90000),
    ]
    ranked = ranker.rank(listings, center=CENTER, sort="price_low")
    assert _ids(ranked) == ["pricey-near", "cheap-far"]


def test_latest_and_oldest(make_listing):
    listings = [make_listing("b", age_days=2), make_listing("a", age_days=1), make_listing("c", age_days=3)]
    assert _ids(ranker.rank(listings)) == ["a", "b", "c"]
    assert _ids(ranker.rank(listings, sort="oldest")) == ["c", "b", "a"]


def test_price_sorts_put_missing_last(make_listing):
    listings = [
        make_listing("unpriced"),
        make_listing("high", price=50000),
        make_listing("low", price=10000),
    ]
    assert _ids(ranker.rank(listings, sort="price_low")) == ["low", "high", "unpriced"]
    assert _ids(ranker.rank(listings, sort="price_high")) == ["high", "low", "unpriced"]


def test_price_sort_uses_price_field(make_venue):
    venues = [
        make_venue("a", price_hourly=30000, price_daily=100000),
        make_venue("b", price_hourly=10000, price_daily=200000),
    ]
    assert _ids(ranker.rank(venues, sort="price_low", price_field="price_hourly")) == ["b", "a"]
    assert _ids(ranker.rank(venues, sort="price_low", price_field="price_daily")) == ["a", "b"]


def test_popular_sorts_by_views_with_newest_tie_break(make_listing):
    listings = [
        make_listing("old-hit", views=100, age_days=5),
        make_listing("new-hit", views=100, age_days=1),
        make_listing("quiet", views=3),
    ]
    assert _ids(ranker.rank(listings, sort="popular")) == ["new-hit", "old-hit", "quiet"]


def test_rank_does_not_mutate_input(make_listing):
    listings = [make_listing("a", age_days=3), make_listing("b", age_days=1)]
    ranker.rank(listings)
    assert _ids(listings) == ["a", "b"]


def test_paginate_lookahead(make_listing):
    ranked = [make_listing(str(i)) for i in range(3)]

    first, has_more = ranker.paginate(ranked, page=1, page_size=2)
    assert _ids(first) == ["0", "1"]
    assert has_more is True

    second, has_more = ranker.paginate(ranked, page=2, page_size=2)
    assert _ids(second) == ["2"]
    assert has_more is False

    beyond, has_more = ranker.paginate(ranked, page=3, page_size=2)
    assert beyond == []
    assert has_more is False


def test_paginate_exact_fit_has_no_more(make_listing):
    ranked = [make_listing(str(i)) for i in range(4)]
    items, has_more = ranker.paginate(ranked, page=2, page_size=2)
    assert _ids(items) == ["2", "3"]
    assert has_more is False


def test_pages_cover_ranking_without_gaps(make_listing):
    ranked = [make_listing(str(i)) for i in range(7)]
    seen = []
    page = 1
    while True:
        items, has_more = ranker.paginate(ranked, page=page, page_size=3)
        seen.extend(_ids(items))
        if not has_more:
            break
        page += 1
    assert seen == _ids(ranked)
