# shopsearch/api/v1/schemas/reco.py
from pydantic import BaseModel
from typing import List

from shopsearch.domain.models.product import RecommendationResult


class SuggestionsOut(BaseModel):
    items: List[str]
    count: int


class RelatedOut(BaseModel):
    source_product_id: str
    items: List[RecommendationResult]
    count: int


class TrendingOut(BaseModel):
    items: List[RecommendationResult]
    count: int


class CacheClearedOut(BaseModel):
    deleted: int


class PersonalizedOut(BaseModel):
    items: List[RecommendationResult]
    count: int
    type: str
