# shopsearch/domain/repositories/order_repo.py
from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple
from motor.motor_asyncio import AsyncIOMotorDatabase

from shopsearch.domain.services.constants import PURCHASED_STATUSES


class OrderRepo:
    """
    Read-only view over the 'orders' collection owned by the orders subsystem.
    Order shape: { order_id, user_id, status, created_at, items: [{ product_id, quantity, price }] }
    Only orders in PURCHASED_STATUSES count as purchases.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "orders"):
        self.col = db[collection_name]

    async def recent_purchased_product_ids(self, user_id: str, limit: int = 20) -> List[str]:
        """Product ids of the user's most recent purchased line items (newest first, may repeat)."""
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"user_id": user_id, "status": {"$in": list(PURCHASED_STATUSES)}}},
            {"$sort": {"created_at": -1}},
            {"$unwind": "$items"},
            {"$limit": limit},
            {"$project": {"_id": 0, "product_id": "$items.product_id"}},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=limit)
        return [d["product_id"] for d in docs if d.get("product_id")]

    async def buyers_of(self, product_id: str, limit: int = 100) -> List[str]:
        """Distinct users who purchased `product_id`, scanning at most `limit` of its most recent line items."""
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"items.product_id": product_id, "status": {"$in": list(PURCHASED_STATUSES)}}},
            {"$sort": {"created_at": -1}},
            {"$unwind": "$items"},
            {"$match": {"items.product_id": product_id}},
            {"$limit": limit},
            {"$project": {"_id": 0, "user_id": 1}},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=limit)
        # dict keeps first-seen order
        return list(dict.fromkeys(d["user_id"] for d in docs if d.get("user_id")))

    async def purchases_by_users(
        self,
        user_ids: Sequence[str],
        *,
        exclude_product_id: str,
        limit: int = 500,
    ) -> List[Tuple[str, str]]:
        """(user_id, product_id) purchase lines for the given users, the excluded product left out."""
        if not user_ids:
            return []
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"user_id": {"$in": list(user_ids)}, "status": {"$in": list(PURCHASED_STATUSES)}}},
            {"$sort": {"created_at": -1}},
            {"$unwind": "$items"},
            {"$match": {"items.product_id": {"$ne": exclude_product_id}}},
            {"$limit": limit},
            {"$project": {"_id": 0, "user_id": 1, "product_id": "$items.product_id"}},
        ]
        docs = await self.col.aggregate(pipeline).to_list(length=limit)
        return [(d["user_id"], d["product_id"]) for d in docs if d.get("user_id") and d.get("product_id")]
