# shopsearch/api/v1/routers/search.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import time
import logging

from shopsearch.api.deps import autocomplete_service, search_service
from shopsearch.api.v1.schemas.reco import CacheClearedOut, SuggestionsOut
from shopsearch.core.config import Settings, get_settings
from shopsearch.domain.models.product import SearchFilters, SearchRequest, SearchResult, SortKey
from shopsearch.domain.services.autocomplete_svc import AutocompleteService
from shopsearch.domain.services.search_svc import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


def _as_set(values: Optional[List[str]]):
    return frozenset(values) if values else None


@router.get("/products/search", response_model=SearchResult)
async def search_products(
    q: str = Query("", description="Free-text query; empty lists everything matching the filters"),
    category_id: Optional[List[str]] = Query(None),
    vendor_id: Optional[List[str]] = Query(None),
    price_min: Optional[float] = Query(None, ge=0),
    price_max: Optional[float] = Query(None, ge=0),
    rating_min: Optional[float] = Query(None, ge=0, le=5),
    status: Optional[List[str]] = Query(None),
    is_featured: Optional[bool] = Query(None),
    tag: Optional[List[str]] = Query(None),
    in_stock: Optional[bool] = Query(None),
    sort: SortKey = Query("relevance"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, description="Defaults to default_page_size, capped at max_page_size"),
    include_facets: bool = Query(True),
    svc: SearchService = Depends(search_service),
    settings: Settings = Depends(get_settings),
):
    """
    Ranked, faceted product search. Only active products are ever returned,
    whatever `status` asks for.
    """
    page_size = min(page_size or settings.default_page_size, settings.max_page_size)
    req = SearchRequest(
        query=q,
        filters=SearchFilters(
            category_ids=_as_set(category_id),
            vendor_ids=_as_set(vendor_id),
            price_min=price_min,
            price_max=price_max,
            rating_min=rating_min,
            statuses=_as_set(status),
            is_featured=is_featured,
            tags=_as_set(tag),
            in_stock=in_stock,
        ),
        sort=sort,
        page=page,
        page_size=page_size,
        include_facets=include_facets,
    )
    logger.info("Request: search_products q=%r sort=%s page=%s page_size=%s", q, sort, page, page_size)

    start_time = time.perf_counter()
    res = await svc.search(req)
    logger.info(
        "Response: search_products total=%s returned=%s elapsed_time=%.4fs",
        res.total, len(res.products), time.perf_counter() - start_time,
    )
    return res


@router.get("/products/search/suggestions", response_model=SuggestionsOut)
async def search_suggestions(
    q: str = Query(""),
    limit: int = Query(10, ge=1, le=20),
    svc: AutocompleteService = Depends(autocomplete_service),
):
    items = await svc.suggest(q, limit)
    return SuggestionsOut(items=items, count=len(items))


@router.delete("/products/search/cache", response_model=CacheClearedOut)
async def clear_search_cache(svc: SearchService = Depends(search_service)):
    deleted = await svc.clear_cache()
    return CacheClearedOut(deleted=deleted)
