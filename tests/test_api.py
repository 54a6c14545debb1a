import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from shopsearch.api import deps
from shopsearch.core.config import Settings, get_settings
from shopsearch.domain.services.autocomplete_svc import AutocompleteService
from shopsearch.domain.services.search_svc import SearchService
from shopsearch.domain.services.similarity_svc import SimilarityEngine
from shopsearch.main import app
from shopsearch.utils.cache import Cache
from tests.fakes import FakeOrderRepo, FakeProductRepo, FakeRedis, FakeSearchIndex


@pytest.fixture
def client(sneakers):
    index = FakeSearchIndex(sneakers)
    cache = Cache(FakeRedis())
    settings = Settings()

    app.dependency_overrides[deps.search_service] = lambda: SearchService(index, cache, settings)
    app.dependency_overrides[deps.autocomplete_service] = lambda: AutocompleteService(index, cache, settings)
    app.dependency_overrides[deps.similarity_engine] = lambda: SimilarityEngine(
        index, FakeProductRepo(sneakers), FakeOrderRepo(), cache, settings
    )
    with TestClient(app) as c:
        c.index = index
        yield c
    app.dependency_overrides.clear()


def test_search_endpoint(client):
    r = client.get("/products/search", params={"q": "sneakers", "sort": "price_asc", "status": ["draft", "active"]})
    assert r.status_code == 200
    data = r.json()
    assert [p["product_id"] for p in data["products"]] == ["2", "1"]
    assert data["pagination"] == {"page": 1, "page_size": 20, "total": 2, "page_count": 1}
    assert data["facets"]["price_ranges"][0] == {"key": "Under $50", "count": 1}


def test_search_repeatable_filters(client):
    r = client.get("/products/search", params={"category_id": ["shoes", "accessories"], "in_stock": "true", "include_facets": "false"})
    assert r.status_code == 200
    data = r.json()
    assert {p["product_id"] for p in data["products"]} == {"1", "2"}
    assert data["facets"] is None


def test_search_rejects_bad_paging(client):
    assert client.get("/products/search", params={"page": 0}).status_code == 422
    assert client.get("/products/search", params={"page_size": 0}).status_code == 422
    assert client.get("/products/search", params={"sort": "cheapest"}).status_code == 422


def test_index_outage_is_503(client):
    client.index.fail_search()
    r = client.get("/products/search", params={"q": "sneakers"})
    assert r.status_code == 503
    assert r.json() == {"detail": "search index unavailable"}


def test_suggestions(client):
    assert client.get("/products/search/suggestions", params={"q": "s"}).json() == {"items": [], "count": 0}

    data = client.get("/products/search/suggestions", params={"q": "sneak", "limit": 2}).json()
    assert data == {"items": ["Red Sneakers", "Shoes"], "count": 2}


def test_suggestions_survive_index_outage(client):
    client.index.fail_search()
    r = client.get("/products/search/suggestions", params={"q": "jea"})
    assert r.status_code == 200
    assert r.json()["items"] == ["jeans"]


def test_related(client):
    r = client.get("/products/1/related", params={"limit": 3})
    assert r.status_code == 200
    data = r.json()
    assert data["source_product_id"] == "1"
    assert data["count"] == len(data["items"])
    assert all(item["product_id"] != "1" for item in data["items"])
    assert all("recommendation_reason" in item and "similarity_score" in item for item in data["items"])


def test_related_unknown_product_is_empty(client):
    r = client.get("/products/404/related")
    assert r.status_code == 200
    assert r.json() == {"source_product_id": "404", "items": [], "count": 0}


def test_clear_cache(client):
    client.get("/products/search", params={"q": "sneakers"})
    r = client.delete("/products/search/cache")
    assert r.status_code == 200
    assert r.json() == {"deleted": 1}


def test_page_size_default_and_cap_come_from_settings(client):
    app.dependency_overrides[get_settings] = lambda: Settings(default_page_size=1, max_page_size=2)

    first = client.get("/products/search", params={"include_facets": "false"}).json()
    capped = client.get("/products/search", params={"page_size": 50, "include_facets": "false"}).json()

    assert first["pagination"]["page_size"] == 1
    assert len(first["products"]) == 1
    assert capped["pagination"]["page_size"] == 2


def test_related_catalog_outage_is_empty_not_503(client, sneakers):
    catalog = FakeProductRepo(sneakers)
    catalog.batch_error = ServerSelectionTimeoutError("catalog unreachable")
    app.dependency_overrides[deps.similarity_engine] = lambda: SimilarityEngine(
        client.index, catalog, FakeOrderRepo(), Cache(FakeRedis()), Settings()
    )

    r = client.get("/products/1/related")

    assert r.status_code == 200
    assert r.json()["items"] == []


def test_personalized(client):
    r = client.get("/recommendations/personalized", params={"user_id": "u1", "type": "category", "limit": 5})
    assert r.status_code == 200
    data = r.json()
    # no purchases yet: newest active products
    assert [p["product_id"] for p in data["items"]] == ["5", "2", "1"]
    assert data["type"] == "category"

    anonymous = client.get("/recommendations/personalized").json()
    assert anonymous == {"items": [], "count": 0, "type": "trending"}

    assert client.get("/recommendations/personalized", params={"type": "random"}).status_code == 422


def test_health_without_backends(client):
    data = client.get("/health").json()
    assert data["status"] == "ok"
    assert data["checks"]["mongodb"] == "skipped"
    assert data["checks"]["redis"] == "skipped"
