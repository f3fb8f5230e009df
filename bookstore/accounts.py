"""User and admin accounts. Passwords are only ever stored hashed."""

from __future__ import annotations
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
import structlog

from bookstore.database import create_document, get_documents, to_client
from bookstore.errors import Conflict, InvalidCredentials
from bookstore.schemas import AdminRegistration, Registration
from bookstore.security import hash_password, verify_password

logger = structlog.get_logger(__name__)

USERS = "users"
ADMINS = "admins"


def _public(doc: dict[str, Any]) -> dict[str, Any]:
    doc = to_client(doc)
    doc.pop("password_hash", None)
    return doc


def _object_id(account_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(account_id)
    except (InvalidId, TypeError):
        return None


class AccountStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _create(self, collection: str, name_field: str, data: dict[str, Any]) -> dict[str, Any]:
        if await self.db[collection].find_one({name_field: data[name_field]}) is not None:
            raise Conflict(f"{data[name_field]} is already registered")
        try:
            saved = await create_document(self.db, collection, data)
        except DuplicateKeyError as exc:
            raise Conflict(f"{data[name_field]} is already registered") from exc
        saved.pop("password_hash", None)
        return saved

    async def register_user(self, registration: Registration) -> dict[str, Any]:
        data = registration.model_dump(exclude={"password"})
        data["password_hash"] = hash_password(registration.password)
        saved = await self._create(USERS, "firstname", data)
        logger.info("user_registered", account_id=saved["id"])
        return saved

    async def create_admin(self, registration: AdminRegistration) -> dict[str, Any]:
        data = registration.model_dump(exclude={"password"})
        data["password_hash"] = hash_password(registration.password)
        saved = await self._create(ADMINS, "name", data)
        logger.info("admin_created", account_id=saved["id"])
        return saved

    async def ensure_admin(self, name: str, password: str) -> Optional[dict[str, Any]]:
        """Create the named admin unless one already exists. Returns the new admin or None."""
        if await self.db[ADMINS].find_one({"name": name}) is not None:
            return None
        try:
            return await self.create_admin(AdminRegistration(name=name, psw=password))
        except Conflict:
            return None

    async def _authenticate(self, collection: str, name_field: str, name: str, password: str) -> dict[str, Any]:
        doc = await self.db[collection].find_one({name_field: name})
        if doc is None or not verify_password(password, doc.get("password_hash")):
            logger.info("login_rejected", collection=collection)
            raise InvalidCredentials()
        return _public(doc)

    async def authenticate_user(self, name: str, password: str) -> dict[str, Any]:
        return await self._authenticate(USERS, "firstname", name, password)

    async def authenticate_admin(self, name: str, password: str) -> dict[str, Any]:
        return await self._authenticate(ADMINS, "name", name, password)

    async def _get(self, collection: str, account_id: str) -> Optional[dict[str, Any]]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        doc = await self.db[collection].find_one({"_id": oid})
        return _public(doc) if doc else None

    async def get_user(self, account_id: str) -> Optional[dict[str, Any]]:
        return await self._get(USERS, account_id)

    async def get_admin(self, account_id: str) -> Optional[dict[str, Any]]:
        return await self._get(ADMINS, account_id)

    async def list_users(self) -> list[dict[str, Any]]:
        docs = await get_documents(self.db, USERS, sort=[("_id", 1)])
        for doc in docs:
            doc.pop("password_hash", None)
        return docs

