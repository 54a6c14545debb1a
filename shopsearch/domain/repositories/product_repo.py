# shopsearch/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from shopsearch.domain.models.product import ProductDocument
from shopsearch.domain.services.constants import ACTIVE_STATUS


class ProductRepo:
    """
    Catalog read store backed by the 'products' collection.
    Documents already carry the vendor/category names and the review,
    wishlist and sales aggregates maintained by the catalog side.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def get_by_product_id(self, product_id: str) -> Optional[ProductDocument]:
        doc = await self.col.find_one({"product_id": product_id}, {"_id": 0})
        return ProductDocument.model_validate(doc) if doc else None

    async def get_active_by_ids(self, ids: List[str]) -> Dict[str, ProductDocument]:
        """
        Batch hydration in one round trip. Unknown or inactive ids are simply
        absent from the result; callers keep their own ordering.
        """
        if not ids:
            return {}
        cursor = self.col.find(
            {"product_id": {"$in": list(ids)}, "status": ACTIVE_STATUS},
            {"_id": 0},
        )
        return {doc["product_id"]: ProductDocument.model_validate(doc) async for doc in cursor}

    async def category_ids_of(self, ids: List[str]) -> List[str]:
        """Distinct categories of the given products, whatever their status."""
        if not ids:
            return []
        return await self.col.distinct("category_id", {"product_id": {"$in": list(ids)}})
