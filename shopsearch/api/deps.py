# shopsearch/api/deps.py
from fastapi import Depends
from shopsearch.core.config import Settings, get_settings
from shopsearch.db.mongo import get_db
from shopsearch.db.redis import get_redis
from shopsearch.domain.repositories.order_repo import OrderRepo
from shopsearch.domain.repositories.product_repo import ProductRepo
from shopsearch.domain.repositories.product_search_repo import ProductSearchRepo
from shopsearch.domain.services.autocomplete_svc import AutocompleteService
from shopsearch.domain.services.search_svc import SearchService
from shopsearch.domain.services.similarity_svc import SimilarityEngine
from shopsearch.utils.cache import Cache

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    # Returns the MongoDB database instance (async)
    return db

# Dependency for injecting the cache port; Redis may be absent
def cache_dep() -> Cache:
    return Cache(get_redis())

def search_repo_dep(db = Depends(mongo_db), settings: Settings = Depends(get_settings)) -> ProductSearchRepo:
    return ProductSearchRepo(db, settings.products_collection, settings.SEARCH_INDEX)

# Services are cheap to build; one per request, dependencies injected
def search_service(
    search_repo = Depends(search_repo_dep),
    cache: Cache = Depends(cache_dep),
    settings: Settings = Depends(get_settings),
) -> SearchService:
    return SearchService(search_repo, cache, settings)

def autocomplete_service(
    search_repo = Depends(search_repo_dep),
    cache: Cache = Depends(cache_dep),
    settings: Settings = Depends(get_settings),
) -> AutocompleteService:
    return AutocompleteService(search_repo, cache, settings)

def similarity_engine(
    db = Depends(mongo_db),
    search_repo = Depends(search_repo_dep),
    cache: Cache = Depends(cache_dep),
    settings: Settings = Depends(get_settings),
) -> SimilarityEngine:
    return SimilarityEngine(
        search_repo,
        ProductRepo(db, settings.products_collection),
        OrderRepo(db, settings.orders_collection),
        cache,
        settings,
    )
