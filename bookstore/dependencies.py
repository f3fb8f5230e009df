"""FastAPI dependencies: stores bound to the request's database, and session lookups."""

from __future__ import annotations
from typing import Optional

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from bookstore.accounts import AccountStore
from bookstore.cart import CartStore
from bookstore.catalog import CatalogStore
from bookstore.checkout import CheckoutSequencer
from bookstore.contacts import ContactStore
from bookstore.database import Settings, get_db, get_settings
from bookstore.errors import AuthenticationRequired
from bookstore.logging import add_context
from bookstore.orders import OrderLedger
from bookstore.sessions import SessionStore


def get_catalog(db: AsyncIOMotorDatabase = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


def get_cart(db: AsyncIOMotorDatabase = Depends(get_db)) -> CartStore:
    return CartStore(db)


def get_ledger(db: AsyncIOMotorDatabase = Depends(get_db)) -> OrderLedger:
    return OrderLedger(db)


def get_accounts(db: AsyncIOMotorDatabase = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_sessions(db: AsyncIOMotorDatabase = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_contacts(db: AsyncIOMotorDatabase = Depends(get_db)) -> ContactStore:
    return ContactStore(db)


def get_checkout(
    cart: CartStore = Depends(get_cart),
    ledger: OrderLedger = Depends(get_ledger),
    catalog: CatalogStore = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> CheckoutSequencer:
    return CheckoutSequencer(cart, ledger, catalog, allow_oversell=settings.ALLOW_OVERSELL)


def session_token(request: Request, settings: Settings = Depends(get_settings)) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def current_user_id(
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_sessions),
) -> str:
    account_id = await sessions.resolve(token, "user")
    if account_id is None:
        raise AuthenticationRequired("User not authenticated")
    add_context(account_id=account_id)
    return account_id


async def current_admin_id(
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_sessions),
) -> str:
    account_id = await sessions.resolve(token, "admin")
    if account_id is None:
        raise AuthenticationRequired("Admin not authenticated")
    add_context(admin_id=account_id)
    return account_id
