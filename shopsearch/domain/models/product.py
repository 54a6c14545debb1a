from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List, Literal, FrozenSet
from datetime import datetime

ProductStatus = Literal["draft", "active", "archived"]
SortKey = Literal["relevance", "price_asc", "price_desc", "rating_desc", "newest", "popular"]

class ProductDocument(BaseModel):
    """
    Denormalized, read-optimized product projection as stored in the search index.
    Written wholesale by the indexing side; never partially mutated here.
    """
    product_id: str
    vendor_id: str
    category_id: str
    name: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    sku: Optional[str] = None
    price: float
    compare_at_price: Optional[float] = None
    stock_quantity: int = 0
    status: ProductStatus = "active"
    is_featured: bool = False
    tags: List[str] = []
    images: List[str] = []
    category_name: Optional[str] = None
    vendor_name: Optional[str] = None
    average_rating: float = Field(default=0.0, ge=0, le=5)
    total_reviews: int = 0
    total_wishlisted: int = 0
    total_sold: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True, "extra": "ignore"}  # written wholesale by the indexer

class ScoredProduct(ProductDocument):
    score: Optional[float] = None

class SearchFilters(BaseModel):
    category_ids: Optional[FrozenSet[str]] = None
    vendor_ids: Optional[FrozenSet[str]] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    rating_min: Optional[float] = None
    statuses: Optional[FrozenSet[str]] = None
    is_featured: Optional[bool] = None
    tags: Optional[FrozenSet[str]] = None
    in_stock: Optional[bool] = None

    model_config = {"frozen": True}

    # Sets serialize sorted so equivalent filters produce the same JSON
    @field_serializer("category_ids", "vendor_ids", "statuses", "tags")
    def _sorted(self, v: Optional[FrozenSet[str]]):
        return sorted(v) if v is not None else None

class SearchRequest(BaseModel):
    query: str = ""
    filters: SearchFilters = SearchFilters()
    sort: SortKey = "relevance"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)
    include_facets: bool = True

    model_config = {"frozen": True}

class FacetBucket(BaseModel):
    key: str
    count: int
    model_config = {"frozen": True}

class FacetSet(BaseModel):
    categories: List[FacetBucket] = []
    vendors: List[FacetBucket] = []
    price_ranges: List[FacetBucket] = []
    ratings: List[FacetBucket] = []
    tags: List[FacetBucket] = []
    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "FacetSet":
        return cls()

    def is_empty(self) -> bool:
        return not (self.categories or self.vendors or self.price_ranges or self.ratings or self.tags)

class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    page_count: int
    model_config = {"frozen": True}

class SearchResult(BaseModel):
    products: List[ScoredProduct]
    total: int
    facets: Optional[FacetSet] = None
    pagination: Pagination
    model_config = {"frozen": True}

class SimilarityCandidate(BaseModel):
    product_id: str
    score: float = Field(ge=0)
    reason: str
    rank: int = 0  # position inside the producing strategy's list
    model_config = {"frozen": True}

class RecommendationResult(ProductDocument):
    recommendation_reason: str
    similarity_score: float
