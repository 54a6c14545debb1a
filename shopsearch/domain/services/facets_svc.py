import asyncio
import logging
import time

from shopsearch.core.config import Settings
from shopsearch.domain.models.product import FacetBucket, FacetSet, SearchFilters
from shopsearch.domain.models.query import RangeAggregation, TermsAggregation
from shopsearch.domain.services.constants import (
    FACET_CATEGORIES,
    FACET_PRICE_RANGES,
    FACET_RATINGS,
    FACET_TAGS,
    FACET_VENDORS,
    PRICE_BUCKETS,
    RATING_BUCKETS,
)
from shopsearch.domain.services.query_builder import build_query

logger = logging.getLogger(__name__)


def facet_aggregations(settings: Settings):
    return [
        TermsAggregation(name=FACET_CATEGORIES, field="category_id", size=settings.facet_terms_size),
        TermsAggregation(name=FACET_VENDORS, field="vendor_id", size=settings.facet_terms_size),
        RangeAggregation(name=FACET_PRICE_RANGES, field="price", buckets=PRICE_BUCKETS),
        RangeAggregation(name=FACET_RATINGS, field="average_rating", buckets=RATING_BUCKETS),
        TermsAggregation(name=FACET_TAGS, field="tags", size=settings.facet_tags_size),
    ]


class FacetAggregator:
    """
    Bucket counts over the same query + filter context as the document search.
    Best effort: any backend error or timeout yields an empty FacetSet.
    """

    def __init__(self, search_repo, settings: Settings):
        self.search_repo = search_repo
        self.settings = settings

    async def facets(self, query: str, filters: SearchFilters) -> FacetSet:
        t0 = time.perf_counter()
        native = build_query(query, filters, fuzzy_max_edits=self.settings.fuzzy_max_edits)
        try:
            raw = await asyncio.wait_for(
                self.search_repo.aggregate(native, facet_aggregations(self.settings)),
                timeout=self.settings.facet_timeout_s,
            )
        except Exception as e:
            logger.warning("facets failed query=%r err=%r, returning empty facets", query, e)
            return FacetSet.empty()

        def buckets(name: str):
            return [FacetBucket(key=k, count=c) for k, c in raw.get(name, [])]

        result = FacetSet(
            categories=buckets(FACET_CATEGORIES),
            vendors=buckets(FACET_VENDORS),
            price_ranges=buckets(FACET_PRICE_RANGES),
            ratings=buckets(FACET_RATINGS),
            tags=buckets(FACET_TAGS),
        )
        logger.debug("facets done time=%.3fs", time.perf_counter() - t0)
        return result
