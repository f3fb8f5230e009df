"""Server-side sessions.

A session maps an opaque cookie token to an account id and role, nothing
more. Profiles are read from the account store on every request so they
never go stale.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Literal, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
import structlog

from bookstore.security import new_session_token

logger = structlog.get_logger(__name__)

COLLECTION = "sessions"

Role = Literal["user", "admin"]


class SessionStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.sessions = db[COLLECTION]

    async def create(self, account_id: str, role: Role) -> str:
        token = new_session_token()
        await self.sessions.insert_one(
            {
                "token": token,
                "account_id": account_id,
                "role": role,
                "created_at": datetime.now(timezone.utc),
            }
        )
        logger.info("session_created", account_id=account_id, role=role)
        return token

    async def resolve(self, token: Optional[str], role: Role) -> Optional[str]:
        """Return the account id behind ``token`` if it is a live session for ``role``."""
        if not token:
            return None
        doc = await self.sessions.find_one({"token": token, "role": role})
        return doc["account_id"] if doc else None

    async def destroy(self, token: Optional[str]) -> None:
        if token:
            await self.sessions.delete_one({"token": token})
