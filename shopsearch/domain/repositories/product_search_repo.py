# shopsearch/domain/repositories/product_search_repo.py
from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import time
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection

from shopsearch.domain.models.query import BoolQuery, SearchHits, SortField
from shopsearch.domain.repositories import atlas_query

logger = logging.getLogger(__name__)


class ProductSearchRepo:
    """
    Search Index Port backed by MongoDB Atlas Search on the denormalized product documents.
    Read-only: documents are written wholesale by the indexing side.

    Takes typed BoolQuery / aggregations and leaves the wire format to `atlas_query`.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products", index_name: str = "product_search"):
        self.col: AsyncIOMotorCollection = db[collection_name]
        self.index = index_name

    # ---------- Documents ----------
    async def search(
        self,
        query: BoolQuery,
        *,
        sort: Optional[Sequence[SortField]] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> SearchHits:
        """
        Run one `$search` and return the requested page plus the total match count.
        Every returned document carries its relevance under `score`.
        """
        pipeline: List[Dict[str, Any]] = [
            atlas_query.search_stage(self.index, query, sort=sort, count=True),
            {
                "$facet": {
                    "docs": [
                        {"$skip": skip},
                        {"$limit": limit},
                        {"$addFields": {"score": {"$meta": "searchScore"}}},
                        {"$project": {"_id": 0}},
                    ],
                    "meta": [{"$replaceWith": "$$SEARCH_META"}, {"$limit": 1}],
                }
            },
        ]

        t0 = time.perf_counter()
        rows = await self.col.aggregate(pipeline).to_list(length=1)
        dt = time.perf_counter() - t0

        row = rows[0] if rows else {}
        docs = row.get("docs") or []
        meta = (row.get("meta") or [{}])[0]
        total = int(meta.get("count", {}).get("total", len(docs)))
        logger.debug("atlas search docs=%s total=%s skip=%s limit=%s time=%.3fs", len(docs), total, skip, limit, dt)
        return SearchHits(documents=docs, total=total)

    # ---------- Aggregations ----------
    async def aggregate(self, query: BoolQuery, aggregations: Sequence) -> Dict[str, List[Tuple[str, int]]]:
        """
        Bucket counts over the documents matching `query`, no documents returned.
        Result maps each aggregation name to its (key, count) pairs.
        """
        pipeline = [atlas_query.search_meta_stage(self.index, query, aggregations)]

        t0 = time.perf_counter()
        rows = await self.col.aggregate(pipeline).to_list(length=1)
        dt = time.perf_counter() - t0

        facet = (rows[0] if rows else {}).get("facet", {})
        out: Dict[str, List[Tuple[str, int]]] = {}
        for agg in aggregations:
            raw = facet.get(agg.name, {}).get("buckets", [])
            out[agg.name] = atlas_query.parse_facet_buckets(agg, raw)
        logger.debug("atlas searchMeta facets=%s time=%.3fs", list(out), dt)
        return out
