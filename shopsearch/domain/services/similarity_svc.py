import asyncio
import logging
import math
import time
from collections import Counter
from typing import Awaitable, List, Literal, Optional

from pydantic import TypeAdapter

from shopsearch.core.config import Settings
from shopsearch.domain.models.product import ProductDocument, RecommendationResult, SimilarityCandidate
from shopsearch.domain.models.query import (
    BoolQuery,
    MoreLikeThisClause,
    RangeClause,
    SortField,
    TermClause,
    TermsClause,
    sorted_values,
)
from shopsearch.domain.services import reco_merger
from shopsearch.domain.services.constants import (
    ACTIVE_STATUS,
    CONTENT_FIELDS,
    REASON_BEHAVIOR,
    REASON_COLLABORATIVE,
    REASON_CONTENT,
    REASON_INTERESTS,
    REASON_POPULAR,
    REASON_PREFERENCES,
    REASON_TRENDING,
    REASON_VENDOR,
)
from shopsearch.domain.services.query_builder import active_only
from shopsearch.utils.cache import Cache

logger = logging.getLogger(__name__)

_results_adapter = TypeAdapter(List[RecommendationResult])

PersonalizedKind = Literal["similar", "trending", "category", "mixed"]

# Scores used when the index returns a hit without one
DEFAULT_CONTENT_SCORE = 0.5
DEFAULT_BEHAVIOR_SCORE = 0.3


def related_cache_key(product_id: str, user_id: Optional[str], limit: int) -> str:
    return f"related:{product_id}:{user_id or 'anonymous'}:{limit}"


def _hit_scores(documents, default: float, normalize: bool) -> List[float]:
    """Raw search scores, or scores divided by the best one so they land in [0, 1]."""
    raw = [default if d.get("score") is None else float(d["score"]) for d in documents]
    if not normalize or not raw:
        return raw
    top = max(raw)
    return [s / top if top > 0 else 0.0 for s in raw]


class SimilarityEngine:
    """
    Related products for a source product, from four independent strategies:
    content, the user's purchase history, co-purchases and same vendor.

    Strategies run concurrently and never raise; a failing or slow strategy
    contributes an empty list. Their outputs go through `reco_merger`.

    Also serves the trending and personalized ("recommended for you") lists.
    """

    def __init__(self, search_repo, product_repo, order_repo, cache: Cache, settings: Settings):
        self.search_repo = search_repo
        self.product_repo = product_repo
        self.order_repo = order_repo
        self.cache = cache
        self.settings = settings

    # ---------- Public ----------
    async def related_products(
        self,
        product_id: str,
        user_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[RecommendationResult]:
        start_time = time.perf_counter()
        cache_key = related_cache_key(product_id, user_id, limit)

        cached = await self.cache.get(cache_key)
        if cached:
            try:
                items = _results_adapter.validate_json(cached)
                logger.info("related cache_hit key=%s items=%s", cache_key, len(items))
                return items
            except ValueError as e:
                logger.warning("related cache decode error key=%s err=%s", cache_key, e)

        # Catalog errors outside the strategies degrade to no recommendations, uncached
        try:
            source = await self.product_repo.get_by_product_id(product_id)
            if source is None or source.status != ACTIVE_STATUS:
                logger.info("related source missing or inactive product_id=%s", product_id)
                return []

            k = 2 * limit
            units = [
                ("content", self.content_based(source, k)),
                ("collaborative", self.collaborative(source, k)),
                ("vendor", self.vendor_based(source, k)),
            ]
            if user_id:
                units.append(("behavior", self.behavior_based(source, user_id, k)))

            candidate_lists = await self._gather_settled(units)
            items = await reco_merger.merge(candidate_lists, limit, self.product_repo)
        except Exception as e:
            logger.warning("related failed product_id=%s err=%r, returning no items", product_id, e)
            return []

        await self.cache.set(cache_key, _results_adapter.dump_json(items).decode(), self.settings.related_cache_ttl)
        logger.info(
            "related done product_id=%s user_id=%s candidates=%s items=%s total_time=%.3fs",
            product_id, user_id, [len(c) for c in candidate_lists], len(items), time.perf_counter() - start_time,
        )
        return items

    async def trending(self, limit: int = 10) -> List[RecommendationResult]:
        """Active featured products, newest first."""
        query = BoolQuery(filter=(active_only(), TermClause(field="is_featured", value=True)))
        return await self._newest(query, limit, REASON_TRENDING)

    async def personalized(
        self,
        user_id: Optional[str],
        kind: PersonalizedKind = "mixed",
        limit: int = 10,
    ) -> List[RecommendationResult]:
        """
        "Recommended for you" lists built from the user's purchase history.

        - similar: newest active products in the categories of recent purchases
        - category: same, over the wider history, purchased products left out
        - trending: newest active products
        - mixed: the three above concurrently, ceil(limit / 3) each, first occurrence wins

        Anonymous callers get the featured trending list. Users without purchases
        get the newest active products.
        """
        if not user_id:
            return await self.trending(limit)

        start_time = time.perf_counter()
        try:
            if kind == "similar":
                items = await self.interest_based(user_id, limit)
            elif kind == "category":
                items = await self.preference_based(user_id, limit)
            elif kind == "trending":
                items = await self.popular(limit)
            else:
                items = await self._mixed(user_id, limit)
        except Exception as e:
            logger.warning("personalized failed user_id=%s kind=%s err=%r, returning no items", user_id, kind, e)
            return []

        logger.info(
            "personalized done user_id=%s kind=%s items=%s total_time=%.3fs",
            user_id, kind, len(items), time.perf_counter() - start_time,
        )
        return items

    async def _mixed(self, user_id: str, limit: int) -> List[RecommendationResult]:
        per_kind = math.ceil(limit / 3)
        lists = await self._gather_settled([
            ("similar", self.interest_based(user_id, per_kind)),
            ("trending", self.popular(per_kind)),
            ("category", self.preference_based(user_id, per_kind)),
        ])
        seen = set()
        out: List[RecommendationResult] = []
        for item in (i for items in lists for i in items):
            if item.product_id not in seen:
                seen.add(item.product_id)
                out.append(item)
        return out[:limit]

    async def _gather_settled(self, units) -> List[list]:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self._settled(name, coro)) for name, coro in units]
        return [t.result() for t in tasks]

    async def _settled(self, name: str, coro: Awaitable[list]) -> list:
        t0 = time.perf_counter()
        try:
            out = await asyncio.wait_for(coro, timeout=self.settings.strategy_timeout_s)
        except Exception as e:
            logger.warning("strategy=%s failed err=%r, contributing nothing", name, e)
            return []
        logger.debug("strategy=%s items=%s time=%.3fs", name, len(out), time.perf_counter() - t0)
        return out

    async def _newest(self, query: BoolQuery, limit: int, reason: str) -> List[RecommendationResult]:
        hits = await self.search_repo.search(query, sort=[SortField(field="created_at")], limit=limit)
        return [
            RecommendationResult(
                **ProductDocument.model_validate(d).model_dump(),
                recommendation_reason=reason,
                similarity_score=0.0,
            )
            for d in hits.documents
        ]

    # ---------- Personalized lists ----------
    async def popular(self, limit: int) -> List[RecommendationResult]:
        return await self._newest(BoolQuery(filter=(active_only(),)), limit, REASON_POPULAR)

    async def interest_based(self, user_id: str, limit: int) -> List[RecommendationResult]:
        purchased = await self.order_repo.recent_purchased_product_ids(user_id, self.settings.behavior_history_size)
        categories = await self.product_repo.category_ids_of(purchased) if purchased else []
        if not categories:
            return await self.popular(limit)
        query = BoolQuery(
            filter=(active_only(), TermsClause(field="category_id", values=sorted_values(categories))),
        )
        return await self._newest(query, limit, REASON_INTERESTS)

    async def preference_based(self, user_id: str, limit: int) -> List[RecommendationResult]:
        purchased = await self.order_repo.recent_purchased_product_ids(user_id, self.settings.personal_history_size)
        categories = await self.product_repo.category_ids_of(purchased) if purchased else []
        if not categories:
            return await self.popular(limit)
        query = BoolQuery(
            filter=(active_only(), TermsClause(field="category_id", values=sorted_values(categories))),
            must_not=(TermsClause(field="product_id", values=sorted_values(set(purchased))),),
        )
        return await self._newest(query, limit, REASON_PREFERENCES)

    # ---------- Related strategies ----------
    async def content_based(self, source: ProductDocument, k: int) -> List[SimilarityCandidate]:
        like = {f: getattr(source, f) for f in CONTENT_FIELDS}
        query = BoolQuery(
            must=(MoreLikeThisClause(like=like, fields=CONTENT_FIELDS),),
            filter=(active_only(),),
            must_not=(TermClause(field="product_id", value=source.product_id),),
        )
        hits = await self.search_repo.search(query, limit=k)
        scores = _hit_scores(hits.documents, DEFAULT_CONTENT_SCORE, self.settings.normalize_strategy_scores)
        return [
            SimilarityCandidate(product_id=d["product_id"], score=s, reason=REASON_CONTENT, rank=i)
            for i, (d, s) in enumerate(zip(hits.documents, scores))
        ]

    async def behavior_based(self, source: ProductDocument, user_id: str, k: int) -> List[SimilarityCandidate]:
        purchased = await self.order_repo.recent_purchased_product_ids(user_id, self.settings.behavior_history_size)
        if not purchased:
            return []

        band = self.settings.behavior_price_band
        query = BoolQuery(
            should=(
                TermsClause(field="category_id", values=(source.category_id,), boost=2.0),
                TermsClause(field="vendor_id", values=(source.vendor_id,), boost=1.5),
                RangeClause(field="price", gte=max(0.0, source.price - band), lte=source.price + band),
            ),
            filter=(active_only(),),
            must_not=(
                TermClause(field="product_id", value=source.product_id),
                TermsClause(field="product_id", values=sorted_values(set(purchased))),
            ),
            minimum_should_match=1,
        )
        hits = await self.search_repo.search(query, limit=k)
        normalize = self.settings.normalize_strategy_scores
        scores = _hit_scores(hits.documents, DEFAULT_BEHAVIOR_SCORE, normalize)
        boost = self.settings.behavior_boost
        return [
            SimilarityCandidate(
                product_id=d["product_id"],
                score=min(1.0, s * boost) if normalize else s * boost,
                reason=REASON_BEHAVIOR,
                rank=i,
            )
            for i, (d, s) in enumerate(zip(hits.documents, scores))
        ]

    async def collaborative(self, source: ProductDocument, k: int) -> List[SimilarityCandidate]:
        buyers = await self.order_repo.buyers_of(source.product_id, self.settings.collab_max_buyers)
        if not buyers:
            return []

        lines = await self.order_repo.purchases_by_users(
            buyers,
            exclude_product_id=source.product_id,
            limit=self.settings.collab_max_purchases,
        )
        # one vote per buyer, so frequency / buyers stays in [0, 1]
        frequency = Counter(pid for _, pid in set(lines))
        ranked = sorted(frequency.items(), key=lambda kv: (-kv[1], kv[0]))[:k]
        return [
            SimilarityCandidate(product_id=pid, score=n / len(buyers), reason=REASON_COLLABORATIVE, rank=i)
            for i, (pid, n) in enumerate(ranked)
        ]

    async def vendor_based(self, source: ProductDocument, k: int) -> List[SimilarityCandidate]:
        query = BoolQuery(
            must=(TermClause(field="vendor_id", value=source.vendor_id),),
            filter=(active_only(),),
            must_not=(TermClause(field="product_id", value=source.product_id),),
        )
        sort = [SortField(field="total_sold"), SortField(field="average_rating")]
        hits = await self.search_repo.search(query, sort=sort, limit=k)
        return [
            SimilarityCandidate(product_id=d["product_id"], score=self.settings.vendor_score, reason=REASON_VENDOR, rank=i)
            for i, d in enumerate(hits.documents)
        ]
