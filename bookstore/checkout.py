"""Checkout: turn a user's cart into order records and adjust inventory.

Sequence:
    1. read the cart (empty cart fails with no side effects)
    2. optionally refuse lines that exceed current stock
    3. flag the cart rows as in checkout, so they can no longer be removed
    4. append one order record per cart line to the ledger, in one batch
    5. take stock for every ledger line of the user not yet applied
    6. remove the checked-out lines from the cart

Each cart line's id is the order's ``line_id``. The ledger holds a per-line
``stock_applied`` flag that is claimed before the book is decremented, so
replays and concurrent checkouts never take stock twice. If the sequence
dies part way the rows stay in the cart, and buying again finishes the work.

A process killed between a claim and its decrement loses that decrement;
stock updates are at most once.
"""

from __future__ import annotations
import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable

from pymongo.errors import PyMongoError
import structlog

from bookstore.cart import CartStore
from bookstore.catalog import CatalogStore
from bookstore.errors import EmptyCart, InsufficientStock, store_operation
from bookstore.orders import OrderLedger

logger = structlog.get_logger(__name__)

SUCCESS_MESSAGE = "Purchase successful!"


@dataclass
class CheckoutResult:
    message: str
    lines: int
    items: int
    total: float


def order_record(item: dict[str, Any], placed_at: datetime) -> dict[str, Any]:
    return {
        "user_id": item["user_id"],
        "line_id": item["id"],
        "book_id": item["book_id"],
        "book_name": item["book_name"],
        "price": item["price"],
        "quantity": item["quantity"],
        "image": item.get("image"),
        "date": placed_at,
    }


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Wait for every awaitable, then raise the first failure if there was one."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class CheckoutSequencer:
    def __init__(self, cart: CartStore, ledger: OrderLedger, catalog: CatalogStore, allow_oversell: bool = True):
        self.cart = cart
        self.ledger = ledger
        self.catalog = catalog
        self.allow_oversell = allow_oversell

    async def _check_stock(self, items: list[dict[str, Any]]) -> None:
        requested: dict[str, int] = defaultdict(int)
        for item in items:
            requested[item["book_id"]] += item["quantity"]

        for book_id, quantity in requested.items():
            book = await self.catalog.get_book(book_id)
            available = book.get("quantity", 0) if book else 0
            if quantity > available:
                raise InsufficientStock(book_id, quantity, available)

    async def _settle_line(self, record: dict[str, Any]) -> bool:
        if not await self.ledger.claim_stock(record["line_id"]):
            return False
        try:
            await self.catalog.decrement_quantity(record["book_id"], record["quantity"])
        except PyMongoError:
            await self.ledger.release_stock_claim(record["line_id"])
            raise
        return True

    async def checkout(self, user_id: str) -> CheckoutResult:
        log = logger.bind(user_id=user_id)

        with store_operation("checkout.read_cart"):
            items = await self.cart.list_items(user_id)
        if not items:
            raise EmptyCart()

        if not self.allow_oversell:
            # Rows flagged by an earlier attempt already passed this check.
            with store_operation("checkout.check_stock"):
                await self._check_stock([item for item in items if "checkout_at" not in item])

        item_ids = [item["id"] for item in items]
        placed_at = datetime.now(timezone.utc)
        records = [order_record(item, placed_at) for item in items]

        with store_operation("checkout.reserve_cart"):
            await self.cart.mark_checking_out(user_id, item_ids)

        with store_operation("checkout.append_orders"):
            written = await self.ledger.append(records)

        with store_operation("checkout.update_inventory"):
            pending = await self.ledger.unapplied(user_id)
            applied = await gather_all(*(self._settle_line(record) for record in pending))

        with store_operation("checkout.clear_cart"):
            await self.cart.clear(user_id, item_ids=item_ids)

        result = CheckoutResult(
            message=SUCCESS_MESSAGE,
            lines=len(records),
            items=sum(record["quantity"] for record in records),
            total=round(sum(record["price"] * record["quantity"] for record in records), 2),
        )
        log.info(
            "checkout_completed",
            lines=result.lines,
            items=result.items,
            total=result.total,
            orders_written=written,
            decrements_applied=sum(applied),
        )
        return result
