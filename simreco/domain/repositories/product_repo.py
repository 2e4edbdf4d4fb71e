# simreco/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Any, Dict, Optional, List
import logging
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from simreco.domain.models.product import Product

logger = logging.getLogger(__name__)

# Fields that feed embedding text, fingerprints and heuristic scoring
_PROJECTION = {
    "_id": 0,
    "product_id": 1,
    "name": 1,
    "description": 1,
    "category": 1,
    "category_id": 1,
    "price": 1,
    "current_price": 1,
    "rating": 1,
    "tags": 1,
}

def _to_product(doc: Dict[str, Any]) -> Optional[Product]:
    """Convert a loose catalog document into a Product; None if it does not validate."""
    try:
        return Product.model_validate(doc)
    except ValidationError as e:
        logger.warning(f"Skipping malformed catalog document product_id={doc.get('product_id')}: {e.error_count()} error(s)")
        return None

class ProductRepo:
    """
    Read-only catalog adapter over the 'products' collection.
    The engine never writes to the catalog.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def get_by_product_id(self, product_id: str) -> Optional[Product]:
        doc = await self.col.find_one({"product_id": product_id}, _PROJECTION)
        return _to_product(doc) if doc else None

    async def list_products(self, limit: Optional[int] = None) -> List[Product]:
        cursor = self.col.find({}, _PROJECTION).sort("product_id", 1)
        if limit:
            cursor = cursor.limit(limit)
        out: List[Product] = []
        async for doc in cursor:
            if p := _to_product(doc):
                out.append(p)
        return out

    async def list_by_category(
        self,
        category: str,
        *,
        limit: Optional[int] = None,
        exclude_product_id: Optional[str] = None,
    ) -> List[Product]:
        """Products sharing `category` (either field spelling), sorted by product_id for stable sampling."""
        flt: Dict[str, Any] = {"$or": [{"category": category}, {"category_id": category}]}
        if exclude_product_id:
            flt["product_id"] = {"$ne": exclude_product_id}
        cursor = self.col.find(flt, _PROJECTION).sort("product_id", 1)
        if limit:
            cursor = cursor.limit(limit)
        out: List[Product] = []
        async for doc in cursor:
            if p := _to_product(doc):
                out.append(p)
        return out
