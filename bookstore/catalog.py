"""Catalog store: book records keyed by their human-chosen ``book_id``."""

from __future__ import annotations
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
import structlog

from bookstore.database import create_document, get_documents, to_client
from bookstore.errors import Conflict, NotFound
from bookstore.schemas import Book, BookType

logger = structlog.get_logger(__name__)

COLLECTION = "books"


class CatalogStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.books = db[COLLECTION]

    async def list_books(self) -> list[dict[str, Any]]:
        return await get_documents(self.db, COLLECTION, sort=[("_id", 1)])

    async def list_by_type(self, book_type: BookType) -> list[dict[str, Any]]:
        return await get_documents(self.db, COLLECTION, {"book_type": BookType(book_type).value}, sort=[("_id", 1)])

    async def get_book(self, book_id: str) -> Optional[dict[str, Any]]:
        doc = await self.books.find_one({"book_id": book_id})
        return to_client(doc) if doc else None

    async def add_book(self, book: Book) -> dict[str, Any]:
        if await self.books.find_one({"book_id": book.book_id}) is not None:
            raise Conflict(f"Book {book.book_id} already exists")
        try:
            saved = await create_document(self.db, COLLECTION, book.model_dump(mode="json"))
        except DuplicateKeyError as exc:
            raise Conflict(f"Book {book.book_id} already exists") from exc
        logger.info("book_added", book_id=book.book_id, quantity=book.quantity)
        return saved

    async def set_quantity(self, book_id: str, quantity: int) -> dict[str, Any]:
        doc = await self.books.find_one_and_update(
            {"book_id": book_id},
            {"$set": {"quantity": quantity}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound("Book not found")
        logger.info("book_quantity_set", book_id=book_id, quantity=quantity)
        return to_client(doc)

    async def decrement_quantity(self, book_id: str, amount: int) -> bool:
        """Subtract ``amount`` from the book's stock.

        There is no stock check, so quantity can go negative. An unknown
        ``book_id`` matches nothing and is silently ignored. Returns whether
        the book was modified.
        """
        result = await self.books.update_one({"book_id": book_id}, {"$inc": {"quantity": -amount}})
        applied = result.modified_count == 1
        if not applied:
            logger.debug("book_decrement_skipped", book_id=book_id)
        return applied
