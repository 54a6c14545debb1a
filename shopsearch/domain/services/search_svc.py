import asyncio
import hashlib
import json
import logging
import math
import time

from shopsearch.core.config import Settings
from shopsearch.domain.models.product import (
    FacetSet,
    Pagination,
    ScoredProduct,
    SearchRequest,
    SearchResult,
)
from shopsearch.domain.services.facets_svc import FacetAggregator
from shopsearch.domain.services.query_builder import build_query, build_sort
from shopsearch.utils.cache import Cache

logger = logging.getLogger(__name__)

SEARCH_CACHE_PREFIX = "search:"
AUTOCOMPLETE_CACHE_PREFIX = "autocomplete:"


def search_cache_key(req: SearchRequest) -> str:
    """Every request field goes into the key; sets and keys are sorted so equivalent requests collide."""
    data = req.model_dump(mode="json")
    raw = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return SEARCH_CACHE_PREFIX + hashlib.md5(raw.encode()).hexdigest()


def paginate(total: int, page: int, page_size: int) -> Pagination:
    return Pagination(
        page=page,
        page_size=page_size,
        total=total,
        page_count=math.ceil(total / page_size) if page_size else 0,
    )


class SearchService:
    """
    Cache-checked product search: documents and facets are fetched concurrently
    on a miss and the assembled result is cached for `search_cache_ttl`.

    Only the document fetch is load-bearing; an index error there propagates.
    """

    def __init__(self, search_repo, cache: Cache, settings: Settings):
        self.search_repo = search_repo
        self.cache = cache
        self.settings = settings
        self.facet_aggregator = FacetAggregator(search_repo, settings)

    async def search(self, req: SearchRequest) -> SearchResult:
        start_time = time.perf_counter()
        cache_key = search_cache_key(req)

        cached = await self.cache.get(cache_key)
        if cached:
            try:
                result = SearchResult.model_validate_json(cached)
                logger.info("search cache_hit key=%s total=%s", cache_key, result.total)
                return result
            except ValueError as e:
                logger.warning("search cache decode error key=%s err=%s", cache_key, e)

        logger.info("search cache_miss key=%s query=%r sort=%s page=%s", cache_key, req.query, req.sort, req.page)

        native = build_query(req.query, req.filters, fuzzy_max_edits=self.settings.fuzzy_max_edits)
        fetch = self.search_repo.search(
            native,
            sort=build_sort(req.sort),
            skip=(req.page - 1) * req.page_size,
            limit=req.page_size,
        )

        facets = None
        if req.include_facets:
            hits, facets = await asyncio.gather(fetch, self.facet_aggregator.facets(req.query, req.filters))
        else:
            hits = await fetch

        result = SearchResult(
            products=[ScoredProduct.model_validate(d) for d in hits.documents],
            total=hits.total,
            facets=facets,
            pagination=paginate(hits.total, req.page, req.page_size),
        )

        await self.cache.set(cache_key, result.model_dump_json(), self.settings.search_cache_ttl)
        logger.info(
            "search done products=%s total=%s facets=%s total_time=%.3fs",
            len(result.products), result.total, isinstance(facets, FacetSet), time.perf_counter() - start_time,
        )
        return result

    async def clear_cache(self) -> int:
        """Drop every cached search and autocomplete entry."""
        deleted = 0
        for prefix in (SEARCH_CACHE_PREFIX, AUTOCOMPLETE_CACHE_PREFIX):
            deleted += await self.cache.delete_by_prefix(prefix)
        logger.info("search cache cleared keys=%s", deleted)
        return deleted
