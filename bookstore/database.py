from __future__ import annotations
from typing import Any, Optional
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo import ASCENDING
import structlog

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "bookstore"
    SESSION_COOKIE_NAME: str = "bookstore_session"
    SESSION_COOKIE_SECURE: bool = False
    # Checkout may drive stock below zero unless this is switched off
    ALLOW_OVERSELL: bool = True
    ENVIRONMENT: str = "development"
    LOG_LEVEL: Optional[str] = None
    PORT: int = 8000
    # Admin account created at startup when both are set
    ADMIN_NAME: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None


settings = Settings()

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def get_settings() -> Settings:
    return settings


async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(settings.DATABASE_URL)
        _db = _client[settings.DATABASE_NAME]
        logger.info("database_client_created", database=settings.DATABASE_NAME)
    return _db


def close_db() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the stores rely on. Safe to run on every startup."""
    await db["books"].create_index([("book_id", ASCENDING)], unique=True)
    await db["books"].create_index([("book_type", ASCENDING)])
    await db["cart_items"].create_index([("user_id", ASCENDING)])
    await db["orders"].create_index([("user_id", ASCENDING), ("date", ASCENDING)])
    await db["orders"].create_index([("line_id", ASCENDING)], unique=True)
    await db["users"].create_index([("firstname", ASCENDING)], unique=True)
    await db["admins"].create_index([("name", ASCENDING)], unique=True)
    await db["sessions"].create_index([("token", ASCENDING)], unique=True)


def to_client(doc: dict[str, Any]) -> dict[str, Any]:
    """Replace Mongo's ``_id`` with a string ``id``."""
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


async def create_document(db: AsyncIOMotorDatabase, collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    data_with_meta = {**data, "created_at": now, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = await db[collection_name].find_one({"_id": result.inserted_id})
    return to_client(inserted) if inserted else {}


async def get_documents(
    db: AsyncIOMotorDatabase,
    collection_name: str,
    filter_dict: dict[str, Any] | None = None,
    limit: int = 0,
    sort: list[tuple[str, int]] | None = None,
) -> list[dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {}, sort=sort, limit=limit)
    docs = []
    async for d in cursor:
        docs.append(to_client(d))
    return docs
