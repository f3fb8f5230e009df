"""Order ledger: append-only purchase records, one row per checked-out cart line.

Each record carries a ``stock_applied`` flag. Checkout claims the flag before
touching inventory, so a line's stock is taken at most once however many
times checkout runs for it.
"""

from __future__ import annotations
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import BulkWriteError

from bookstore.database import get_documents

COLLECTION = "orders"

DUPLICATE_KEY = 11000


class OrderLedger:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.orders = db[COLLECTION]

    async def append(self, records: list[dict[str, Any]]) -> int:
        """Insert a batch of records, skipping any whose ``line_id`` is already present.

        Returns the number of records newly written.
        """
        if not records:
            return 0
        line_ids = [record["line_id"] for record in records]
        existing = {doc["line_id"] async for doc in self.orders.find({"line_id": {"$in": line_ids}}, {"line_id": 1})}
        fresh = [{**record, "stock_applied": False} for record in records if record["line_id"] not in existing]
        return await self._insert_fresh(fresh)

    async def _insert_fresh(self, fresh: list[dict[str, Any]]) -> int:
        if not fresh:
            return 0
        try:
            result = await self.orders.insert_many(fresh, ordered=False)
        except BulkWriteError as exc:
            # A concurrent checkout got there first; the unique line_id index rejects the copy.
            write_errors = exc.details.get("writeErrors", [])
            if any(error.get("code") != DUPLICATE_KEY for error in write_errors):
                raise
            return exc.details.get("nInserted", 0)
        return len(result.inserted_ids)

    async def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        return await get_documents(self.db, COLLECTION, {"user_id": user_id}, sort=[("date", 1), ("_id", 1)])

    async def unapplied(self, user_id: str) -> list[dict[str, Any]]:
        """Records for the user whose stock has not been taken yet."""
        return await get_documents(self.db, COLLECTION, {"user_id": user_id, "stock_applied": False}, sort=[("_id", 1)])

    async def claim_stock(self, line_id: str) -> bool:
        """Atomically flag the line as applied. Only one caller ever gets True."""
        doc = await self.orders.find_one_and_update(
            {"line_id": line_id, "stock_applied": {"$ne": True}},
            {"$set": {"stock_applied": True}},
        )
        return doc is not None

    async def release_stock_claim(self, line_id: str) -> None:
        await self.orders.update_one({"line_id": line_id}, {"$set": {"stock_applied": False}})
