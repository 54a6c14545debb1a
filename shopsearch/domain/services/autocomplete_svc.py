import asyncio
import json
import logging
import time
from typing import List

from shopsearch.core.config import Settings
from shopsearch.domain.models.query import AutocompleteClause, BoolQuery
from shopsearch.domain.services.constants import AUTOCOMPLETE_FIELDS, POPULAR_TERMS
from shopsearch.domain.services.query_builder import active_only
from shopsearch.utils.cache import Cache

logger = logging.getLogger(__name__)


def popular_terms_matching(prefix: str, limit: int) -> List[str]:
    """Static vocabulary filtered by substring containment."""
    needle = prefix.lower()
    return [t for t in POPULAR_TERMS if needle in t][:limit]


def collect_suggestions(documents, limit: int) -> List[str]:
    """Per hit: product name, then category name, then vendor name; exact-string dedup."""
    suggestions: List[str] = []
    seen = set()
    for doc in documents:
        for field in AUTOCOMPLETE_FIELDS:
            value = doc.get(field)
            if value and value not in seen:
                seen.add(value)
                suggestions.append(value)
    return suggestions[:limit]


class AutocompleteService:
    """Prefix suggestions. Never raises: index trouble falls back to POPULAR_TERMS."""

    def __init__(self, search_repo, cache: Cache, settings: Settings):
        self.search_repo = search_repo
        self.cache = cache
        self.settings = settings

    async def suggest(self, prefix: str, limit: int = 10) -> List[str]:
        prefix = (prefix or "").strip()
        if len(prefix) < self.settings.autocomplete_min_length:
            return []

        cache_key = f"autocomplete:{prefix.lower()}:{limit}"
        cached = await self.cache.get(cache_key)
        if cached:
            try:
                logger.debug("autocomplete cache_hit key=%s", cache_key)
                return json.loads(cached)
            except ValueError as e:
                logger.warning("autocomplete cache decode error key=%s err=%s", cache_key, e)

        query = BoolQuery(
            should=tuple(AutocompleteClause(query=prefix, field=f) for f in AUTOCOMPLETE_FIELDS),
            filter=(active_only(),),
            minimum_should_match=1,
        )

        t0 = time.perf_counter()
        try:
            hits = await asyncio.wait_for(
                self.search_repo.search(query, limit=limit),
                timeout=self.settings.autocomplete_timeout_s,
            )
        except Exception as e:
            logger.warning("autocomplete index error prefix=%r err=%r, serving popular terms", prefix, e)
            return popular_terms_matching(prefix, self.settings.autocomplete_fallback_limit)

        suggestions = collect_suggestions(hits.documents, limit)
        logger.info("autocomplete prefix=%r suggestions=%s time=%.3fs", prefix, len(suggestions), time.perf_counter() - t0)

        if not suggestions:
            # Nothing indexed for this prefix; not cached so new products show up at once
            return popular_terms_matching(prefix, limit)

        await self.cache.set(cache_key, json.dumps(suggestions), self.settings.autocomplete_cache_ttl)
        return suggestions
