"""Cart store: one row per add-to-cart, owned by an account id."""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
import structlog

from bookstore.database import get_documents, to_client
from bookstore.errors import Conflict, NotFound
from bookstore.schemas import CartItemIn

logger = structlog.get_logger(__name__)

COLLECTION = "cart_items"


class CartStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.items = db[COLLECTION]

    async def add_item(self, user_id: str, item: CartItemIn) -> dict[str, Any]:
        # Rows are never merged: the same book added twice is two rows.
        doc = {
            "user_id": user_id,
            **item.model_dump(),
            "added_at": datetime.now(timezone.utc),
        }
        result = await self.items.insert_one(doc)
        logger.info("cart_item_added", user_id=user_id, book_id=item.book_id, quantity=item.quantity)
        return to_client({**doc, "_id": result.inserted_id})

    async def list_items(self, user_id: str) -> list[dict[str, Any]]:
        return await get_documents(self.db, COLLECTION, {"user_id": user_id}, sort=[("_id", 1)])

    async def remove_item(self, user_id: str, book_id: str) -> None:
        """Delete one row for ``book_id``. Rows held by an unfinished checkout stay put."""
        query = {"user_id": user_id, "book_id": book_id}
        result = await self.items.delete_one({**query, "checkout_at": {"$exists": False}})
        if result.deleted_count == 0:
            if await self.items.find_one(query) is not None:
                raise Conflict("Book is being checked out. Buy again to finish the purchase.")
            raise NotFound("Book not found in cart.")
        logger.info("cart_item_removed", user_id=user_id, book_id=book_id)

    async def mark_checking_out(self, user_id: str, item_ids: Iterable[str]) -> int:
        """Flag rows as belonging to a checkout; they stay flagged until cleared."""
        result = await self.items.update_many(
            {
                "user_id": user_id,
                "_id": {"$in": [ObjectId(item_id) for item_id in item_ids]},
                "checkout_at": {"$exists": False},
            },
            {"$set": {"checkout_at": datetime.now(timezone.utc)}},
        )
        return result.modified_count

    async def clear(self, user_id: str, item_ids: Optional[Iterable[str]] = None) -> int:
        """Delete the user's rows, or only ``item_ids`` when given."""
        query: dict[str, Any] = {"user_id": user_id}
        if item_ids is not None:
            query["_id"] = {"$in": [ObjectId(item_id) for item_id in item_ids]}
        result = await self.items.delete_many(query)
        return result.deleted_count
