from __future__ import annotations
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from bookstore.database import create_document, get_documents
from bookstore.schemas import ContactIn

COLLECTION = "contacts"


class ContactStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def submit(self, message: ContactIn) -> dict[str, Any]:
        return await create_document(self.db, COLLECTION, message.model_dump())

    async def list_messages(self) -> list[dict[str, Any]]:
        return await get_documents(self.db, COLLECTION, sort=[("_id", 1)])
