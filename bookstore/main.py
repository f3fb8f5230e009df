from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
import uuid

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
import structlog

from bookstore.accounts import AccountStore
from bookstore.cart import CartStore
from bookstore.catalog import CatalogStore
from bookstore.checkout import CheckoutSequencer
from bookstore.contacts import ContactStore
from bookstore.database import Settings, close_db, ensure_indexes, get_db, get_settings, settings
from bookstore.dependencies import (
    current_admin_id,
    current_user_id,
    get_accounts,
    get_cart,
    get_catalog,
    get_checkout,
    get_contacts,
    get_ledger,
    get_sessions,
    session_token,
)
from bookstore.errors import AuthenticationRequired, BookstoreError, StoreFailure
from bookstore.logging import add_context, clear_context, configure_logging
from bookstore.orders import OrderLedger
from bookstore.schemas import (
    AdminProfile,
    Book,
    BookType,
    CartItem,
    CartItemIn,
    CheckoutOut,
    ContactIn,
    ContactMessage,
    Credentials,
    MessageOut,
    OrderRecord,
    QuantityUpdate,
    RegisteredOut,
    Registration,
    SeedResponse,
    UserProfile,
)
from bookstore.sessions import SessionStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    db = await get_db()
    await ensure_indexes(db)
    if settings.ADMIN_NAME and settings.ADMIN_PASSWORD:
        if await AccountStore(db).ensure_admin(settings.ADMIN_NAME, settings.ADMIN_PASSWORD):
            logger.info("admin_seeded", name=settings.ADMIN_NAME)
    logger.info("server_started", port=settings.PORT)
    yield
    close_db()


app = FastAPI(title="Bookstore API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    clear_context()
    add_context(request_id=uuid.uuid4().hex, path=request.url.path, method=request.method)
    return await call_next(request)


@app.exception_handler(BookstoreError)
async def bookstore_error_handler(request: Request, exc: BookstoreError):
    if isinstance(exc, StoreFailure):
        logger.error("store_failure", operation=exc.operation, error=repr(exc.__cause__))
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    # Driver messages stay in the logs; clients get a generic message.
    logger.error("store_failure", error=repr(exc))
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


# Seed data: a handful of titles per category
SEED_BOOKS: list[dict] = [
    {"book_id": "B1001", "book_name": "Atomic Habits", "author_name": "James Clear", "price": 16.99, "quantity": 25, "book_type": "inspiration", "image": "images/atomic-habits.jpg", "description": "Small changes, remarkable results."},
    {"book_id": "B1002", "book_name": "Man's Search for Meaning", "author_name": "Viktor E. Frankl", "price": 11.5, "quantity": 18, "book_type": "inspiration", "image": "images/search-for-meaning.jpg", "description": "A psychiatrist's memoir of survival and purpose."},
    {"book_id": "B2001", "book_name": "Treasure Island", "author_name": "Robert Louis Stevenson", "price": 8.99, "quantity": 30, "book_type": "adventure", "image": "images/treasure-island.jpg", "description": "Pirates, maps and buried gold."},
    {"book_id": "B2002", "book_name": "The Call of the Wild", "author_name": "Jack London", "price": 7.25, "quantity": 22, "book_type": "adventure", "image": "images/call-of-the-wild.jpg", "description": "A sled dog's journey through the Yukon."},
    {"book_id": "B3001", "book_name": "The Hobbit", "author_name": "J. R. R. Tolkien", "price": 14.0, "quantity": 40, "book_type": "fantasy", "image": "images/the-hobbit.jpg", "description": "There and back again."},
    {"book_id": "B3002", "book_name": "A Wizard of Earthsea", "author_name": "Ursula K. Le Guin", "price": 12.75, "quantity": 15, "book_type": "fantasy", "image": "images/earthsea.jpg", "description": "A young mage and the shadow he unleashed."},
    {"book_id": "B4001", "book_name": "Rebecca", "author_name": "Daphne du Maurier", "price": 10.99, "quantity": 12, "book_type": "suspense", "image": "images/rebecca.jpg", "description": "Last night I dreamt I went to Manderley again."},
    {"book_id": "B4002", "book_name": "The Talented Mr. Ripley", "author_name": "Patricia Highsmith", "price": 13.5, "quantity": 10, "book_type": "suspense", "image": "images/mr-ripley.jpg", "description": "A charming impostor on the Italian coast."},
]


@app.post("/seed", response_model=SeedResponse)
async def seed_books(db: AsyncIOMotorDatabase = Depends(get_db), catalog: CatalogStore = Depends(get_catalog)):
    # Insert only if the catalog is empty
    count = await db["books"].count_documents({})
    if count == 0:
        for b in SEED_BOOKS:
            await catalog.add_book(Book(**b))
        return SeedResponse(inserted=len(SEED_BOOKS))
    return SeedResponse(inserted=0)


@app.get("/test")
async def test(db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        collections = await db.list_collection_names()
    except PyMongoError as e:
        return {"backend": "Running", "database": "Not Available", "error": type(e).__name__}
    return {
        "backend": "Running",
        "database": "Available",
        "database_name": db.name,
        "collections": sorted(collections),
    }


# Accounts and sessions


@app.post("/register", response_model=RegisteredOut, status_code=201)
async def register(registration: Registration, accounts: AccountStore = Depends(get_accounts)):
    saved = await accounts.register_user(registration)
    return RegisteredOut(id=saved["id"], message="Registration successful!")


@app.post("/login", response_model=UserProfile)
async def login(
    credentials: Credentials,
    response: Response,
    accounts: AccountStore = Depends(get_accounts),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    user = await accounts.authenticate_user(credentials.name, credentials.password)
    token = await sessions.create(user["id"], "user")
    _set_session_cookie(response, token, settings)
    return UserProfile(**user)


@app.post("/logout", response_model=MessageOut)
async def logout(
    response: Response,
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    await sessions.destroy(token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageOut(message="Logged out")


@app.post("/adminlogin", response_model=AdminProfile)
async def admin_login(
    credentials: Credentials,
    response: Response,
    accounts: AccountStore = Depends(get_accounts),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    admin = await accounts.authenticate_admin(credentials.name, credentials.password)
    token = await sessions.create(admin["id"], "admin")
    _set_session_cookie(response, token, settings)
    return AdminProfile(**admin)


@app.get("/admin/logout", response_model=MessageOut, dependencies=[Depends(current_admin_id)])
async def admin_logout(
    response: Response,
    token: Optional[str] = Depends(session_token),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    await sessions.destroy(token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageOut(message="Logged out")


@app.get("/api/user", response_model=UserProfile)
async def get_user(user_id: str = Depends(current_user_id), accounts: AccountStore = Depends(get_accounts)):
    user = await accounts.get_user(user_id)
    if user is None:
        raise AuthenticationRequired("User not authenticated")
    return UserProfile(**user)


@app.get("/api/admin", response_model=AdminProfile)
async def get_admin(admin_id: str = Depends(current_admin_id), accounts: AccountStore = Depends(get_accounts)):
    admin = await accounts.get_admin(admin_id)
    if admin is None:
        raise AuthenticationRequired("Admin not authenticated")
    return AdminProfile(**admin)


@app.get("/users", response_model=list[UserProfile], dependencies=[Depends(current_admin_id)])
async def list_users(accounts: AccountStore = Depends(get_accounts)):
    return [UserProfile(**u) for u in await accounts.list_users()]


# Catalog


@app.post("/books/add", response_model=Book, status_code=201, dependencies=[Depends(current_admin_id)])
async def add_book(book: Book, catalog: CatalogStore = Depends(get_catalog)):
    return Book(**await catalog.add_book(book))


@app.get("/books", response_model=list[Book])
@app.get("/api/books", response_model=list[Book])
async def list_books(catalog: CatalogStore = Depends(get_catalog)):
    return [Book(**b) for b in await catalog.list_books()]


@app.get("/api/books/{book_type}", response_model=list[Book])
async def list_books_by_type(book_type: BookType, catalog: CatalogStore = Depends(get_catalog)):
    return [Book(**b) for b in await catalog.list_by_type(book_type)]


@app.put("/books/update/{book_id}", response_model=Book)
async def update_book_quantity(book_id: str, update: QuantityUpdate, catalog: CatalogStore = Depends(get_catalog)):
    return Book(**await catalog.set_quantity(book_id, update.quantity))


# Contact form


@app.post("/contact", response_model=MessageOut, status_code=201)
async def submit_contact(message: ContactIn, contacts: ContactStore = Depends(get_contacts)):
    await contacts.submit(message)
    return MessageOut(message="Thanks for getting in touch!")


@app.get("/api/contacts", response_model=list[ContactMessage], dependencies=[Depends(current_admin_id)])
async def list_contacts(contacts: ContactStore = Depends(get_contacts)):
    return [ContactMessage(**c) for c in await contacts.list_messages()]


# Cart and orders


@app.post("/api/cart/add", response_model=MessageOut)
async def add_to_cart(item: CartItemIn, user_id: str = Depends(current_user_id), cart: CartStore = Depends(get_cart)):
    await cart.add_item(user_id, item)
    return MessageOut(message="Item added to cart successfully!")


@app.get("/api/cart", response_model=list[CartItem])
async def list_cart(user_id: str = Depends(current_user_id), cart: CartStore = Depends(get_cart)):
    return [CartItem(**i) for i in await cart.list_items(user_id)]


@app.delete("/api/cart/remove/{book_id}", response_model=MessageOut)
async def remove_from_cart(book_id: str, user_id: str = Depends(current_user_id), cart: CartStore = Depends(get_cart)):
    await cart.remove_item(user_id, book_id)
    return MessageOut(message="Book removed from cart successfully!")


@app.post("/api/cart/buy", response_model=CheckoutOut)
async def buy_cart(user_id: str = Depends(current_user_id), checkout: CheckoutSequencer = Depends(get_checkout)):
    result = await checkout.checkout(user_id)
    return CheckoutOut(message=result.message, lines=result.lines, items=result.items, total=result.total)


@app.get("/api/orders", response_model=list[OrderRecord])
async def list_orders(user_id: str = Depends(current_user_id), ledger: OrderLedger = Depends(get_ledger)):
    return [OrderRecord(**o) for o in await ledger.list_for_user(user_id)]


def run() -> None:
    import uvicorn

    uvicorn.run("bookstore.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
