import asyncio
import pytest
from pymongo.errors import PyMongoError

from shopsearch.core.config import Settings
from shopsearch.domain.models.product import SearchFilters, SearchRequest
from shopsearch.domain.services.search_svc import SearchService, search_cache_key
from shopsearch.utils.cache import Cache
from tests.fakes import FakeSearchIndex, Rendezvous


@pytest.fixture
def svc(index, cache, settings):
    return SearchService(index, cache, settings)


@pytest.mark.asyncio
async def test_sneakers_sorted_by_price_asc(svc):
    res = await svc.search(SearchRequest(query="sneakers", sort="price_asc"))

    assert [p.product_id for p in res.products] == ["2", "1"]
    assert res.total == 2
    assert res.pagination.page_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("statuses", [None, {"active"}, {"draft"}, {"archived", "draft"}, {"draft", "active"}])
async def test_only_active_products_whatever_the_status_filter(svc, statuses):
    req = SearchRequest(
        query="sneakers",
        filters=SearchFilters(statuses=frozenset(statuses) if statuses else None),
        include_facets=False,
    )
    res = await svc.search(req)

    assert all(p.status == "active" for p in res.products)
    if statuses and "active" not in statuses:
        assert res.products == []


@pytest.mark.asyncio
async def test_identical_requests_hit_cache(svc, index, cache):
    req = SearchRequest(query="sneakers", filters=SearchFilters(vendor_ids=frozenset({"v1", "v2"})), sort="newest")
    first = await svc.search(req)
    calls = (index.search_calls, index.aggregate_calls)

    # Same request built independently, set members in another order
    again = SearchRequest(query="sneakers", filters=SearchFilters(vendor_ids=frozenset({"v2", "v1"})), sort="newest")
    second = await svc.search(again)

    assert (index.search_calls, index.aggregate_calls) == calls
    assert second.model_dump_json() == first.model_dump_json()
    assert await cache.get(search_cache_key(req)) == first.model_dump_json()


def test_cache_key_changes_with_any_field():
    base = SearchRequest(query="sneakers")
    variants = [
        SearchRequest(query="boots"),
        SearchRequest(query="sneakers", page=2),
        SearchRequest(query="sneakers", page_size=50),
        SearchRequest(query="sneakers", sort="popular"),
        SearchRequest(query="sneakers", include_facets=False),
        SearchRequest(query="sneakers", filters=SearchFilters(in_stock=True)),
    ]
    keys = {search_cache_key(v) for v in variants}
    assert search_cache_key(base) not in keys
    assert len(keys) == len(variants)


@pytest.mark.asyncio
async def test_cached_with_search_ttl(svc, redis, settings):
    req = SearchRequest(query="sneakers")
    await svc.search(req)
    assert redis.ttls[search_cache_key(req)] == settings.search_cache_ttl


@pytest.mark.asyncio
async def test_facets_counted_over_matching_active_products(svc):
    res = await svc.search(SearchRequest(query="sneakers"))
    facets = res.facets

    assert {(b.key, b.count) for b in facets.categories} == {("shoes", 2)}
    assert {(b.key, b.count) for b in facets.vendors} == {("v1", 1), ("v2", 1)}
    assert [(b.key, b.count) for b in facets.price_ranges] == [
        ("Under $50", 1), ("$50 - $100", 1), ("$100 - $200", 0), ("$200 - $500", 0), ("$500+", 0),
    ]
    assert [(b.key, b.count) for b in facets.ratings] == [
        ("Under 3.0 stars", 0), ("3.0 - 3.5 stars", 1), ("3.5 - 4.0 stars", 0),
        ("4.0 - 4.5 stars", 0), ("4.5+ stars", 1),
    ]
    assert ("running", 2) in {(b.key, b.count) for b in facets.tags}


@pytest.mark.asyncio
async def test_facet_failure_keeps_documents(svc, index):
    index.fail_aggregate()

    res = await svc.search(SearchRequest(query="sneakers", sort="price_asc"))

    assert [p.product_id for p in res.products] == ["2", "1"]
    assert res.facets is not None and res.facets.is_empty()


@pytest.mark.asyncio
async def test_no_facets_when_not_requested(svc, index):
    res = await svc.search(SearchRequest(query="sneakers", include_facets=False))
    assert res.facets is None
    assert index.aggregate_calls == 0


@pytest.mark.asyncio
async def test_index_outage_propagates(svc, index):
    index.fail_search()
    with pytest.raises(PyMongoError):
        await svc.search(SearchRequest(query="sneakers"))


@pytest.mark.asyncio
async def test_cache_unavailable_is_a_miss(index, settings):
    svc = SearchService(index, Cache(None), settings)
    req = SearchRequest(query="sneakers", include_facets=False)

    await svc.search(req)
    await svc.search(req)

    assert index.search_calls == 2


@pytest.mark.asyncio
async def test_filters_and_pagination(svc):
    res = await svc.search(SearchRequest(filters=SearchFilters(price_min=40, price_max=300), page_size=1, page=2, sort="price_desc"))

    # active products in range, price desc: 5 (250), 1 (60), 2 (45)
    assert [p.product_id for p in res.products] == ["1"]
    assert res.total == 3
    assert res.pagination.page_count == 3
    assert res.pagination.page == 2


@pytest.mark.asyncio
async def test_in_stock_tag_and_rating_filters(svc):
    in_stock = await svc.search(SearchRequest(filters=SearchFilters(in_stock=True), include_facets=False))
    assert "5" not in {p.product_id for p in in_stock.products}

    tagged = await svc.search(SearchRequest(filters=SearchFilters(tags=frozenset({"blue"})), include_facets=False))
    assert [p.product_id for p in tagged.products] == ["2"]

    rated = await svc.search(SearchRequest(filters=SearchFilters(rating_min=4.5), include_facets=False))
    assert [p.product_id for p in rated.products] == ["1"]


@pytest.mark.asyncio
async def test_clear_cache_drops_search_and_autocomplete_entries(svc, redis):
    await svc.search(SearchRequest(query="sneakers"))
    await redis.set("autocomplete:sn:10", "[]")
    await redis.set("related:1:anonymous:10", "[]")

    deleted = await svc.clear_cache()

    assert deleted == 2
    assert list(redis.store) == ["related:1:anonymous:10"]


@pytest.mark.asyncio
async def test_documents_and_facets_fetched_concurrently(sneakers, cache):
    gate = Rendezvous(2)
    svc = SearchService(FakeSearchIndex(sneakers, gate=gate), cache, Settings(facet_timeout_s=5))

    res = await asyncio.wait_for(svc.search(SearchRequest(query="sneakers")), timeout=1)

    assert res.total == 2
    assert {(b.key, b.count) for b in res.facets.categories} == {("shoes", 2)}
