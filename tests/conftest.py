import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from bookstore.accounts import AccountStore
from bookstore.catalog import CatalogStore
from bookstore.database import Settings, get_db, get_settings
from bookstore.main import app
from bookstore.schemas import AdminRegistration, Book


def pytest_collection_modifyitems(config, items):
    """Mark tests that go through the HTTP layer."""
    for item in items:
        if Path(item.fspath).stem.endswith("_api"):
            item.add_marker(pytest.mark.api)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def db():
    return AsyncMongoMockClient()["bookstore_test"]


@pytest.fixture()
def settings():
    return Settings(ENVIRONMENT="test", ALLOW_OVERSELL=True)


@pytest.fixture()
def client(db, settings):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_book(book_id="B1", quantity=5, price=10.0, book_type="fantasy", **overrides):
    data = {
        "book_id": book_id,
        "book_name": f"Book {book_id}",
        "price": price,
        "author_name": "Anon",
        "quantity": quantity,
        "image": f"images/{book_id}.jpg",
        "book_type": book_type,
    }
    data.update(overrides)
    return Book(**data)


@pytest.fixture()
def add_books(db):
    """Insert books synchronously for HTTP tests."""

    def _add(*books):
        catalog = CatalogStore(db)
        for book in books:
            asyncio.run(catalog.add_book(book))

    return _add


@pytest.fixture()
def admin(db):
    registration = AdminRegistration(name="root", psw="s3cret", email="root@example.com")
    return asyncio.run(AccountStore(db).create_admin(registration))


def register_and_login(client, name="alice", password="wonderland"):
    response = client.post(
        "/register",
        json={"name": name, "lastname": "Liddell", "email": f"{name}@example.com", "age": "30", "psw": password},
    )
    assert response.status_code == 201
    response = client.post("/login", json={"name": name, "psw": password})
    assert response.status_code == 200
    return response.json()


def book_quantity(db, book_id):
    return asyncio.run(CatalogStore(db).get_book(book_id))["quantity"]
