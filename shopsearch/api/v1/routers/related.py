# shopsearch/api/v1/routers/related.py
from fastapi import APIRouter, Depends, Query
from typing import Optional
import time
import logging

from shopsearch.api.deps import similarity_engine
from shopsearch.api.v1.schemas.reco import PersonalizedOut, RelatedOut, TrendingOut
from shopsearch.domain.services.similarity_svc import PersonalizedKind, SimilarityEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["related"])


@router.get("/products/{product_id}/related", response_model=RelatedOut)
async def related_products(
    product_id: str,
    user_id: Optional[str] = Query(None, description="Adds the shopping-history strategy when given"),
    limit: int = Query(10, ge=1, le=20),
    engine: SimilarityEngine = Depends(similarity_engine),
):
    """
    Related / recommended products.
    Strategies: content similarity, user history, co-purchases, same vendor → max-score merge → top-N.
    """
    logger.info("Request: related_products product_id=%s, user_id=%s, limit=%s", product_id, user_id, limit)

    start_time = time.perf_counter()
    items = await engine.related_products(product_id, user_id=user_id, limit=limit)

    logger.info(
        "Response: related_products product_id=%s, count=%s, elapsed_time=%.4fs",
        product_id, len(items), time.perf_counter() - start_time,
    )
    return RelatedOut(source_product_id=product_id, items=items, count=len(items))


@router.get("/recommendations/trending", response_model=TrendingOut)
async def trending_products(
    limit: int = Query(10, ge=1, le=20),
    engine: SimilarityEngine = Depends(similarity_engine),
):
    items = await engine.trending(limit)
    return TrendingOut(items=items, count=len(items))


@router.get("/recommendations/personalized", response_model=PersonalizedOut)
async def personalized_recommendations(
    user_id: Optional[str] = Query(None, description="Anonymous callers get the trending list"),
    type: PersonalizedKind = Query("mixed"),
    limit: int = Query(10, ge=1, le=20),
    engine: SimilarityEngine = Depends(similarity_engine),
):
    logger.info("Request: personalized user_id=%s, type=%s, limit=%s", user_id, type, limit)
    items = await engine.personalized(user_id, type, limit)
    return PersonalizedOut(items=items, count=len(items), type=type if user_id else "trending")
