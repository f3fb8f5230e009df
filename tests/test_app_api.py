"""Application startup and shutdown via TestClient."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from bookstore import database
from bookstore.main import app


@pytest.fixture()
def startup_db(db, monkeypatch):
    monkeypatch.setattr(database, "_db", db)
    monkeypatch.setattr(database.settings, "ENVIRONMENT", "test")
    return db


def test_startup_creates_indexes(startup_db):
    with TestClient(app) as client:
        assert client.get("/test").status_code == 200

    orders = asyncio.run(startup_db["orders"].index_information())
    assert orders["line_id_1"]["unique"]
    books = asyncio.run(startup_db["books"].index_information())
    assert books["book_id_1"]["unique"]


def test_startup_seeds_admin_from_settings(startup_db, monkeypatch):
    monkeypatch.setattr(database.settings, "ADMIN_NAME", "owner")
    monkeypatch.setattr(database.settings, "ADMIN_PASSWORD", "keys-to-the-shop")

    with TestClient(app) as client:
        response = client.post("/adminlogin", json={"name": "owner", "psw": "keys-to-the-shop"})
        assert response.status_code == 200
        assert response.json()["name"] == "owner"

    # A second start leaves the existing admin alone.
    monkeypatch.setattr(database, "_db", startup_db)
    with TestClient(app):
        pass
    assert asyncio.run(startup_db["admins"].count_documents({"name": "owner"})) == 1


def test_no_admin_without_settings(startup_db):
    with TestClient(app):
        pass
    assert asyncio.run(startup_db["admins"].count_documents({})) == 0


def test_shutdown_drops_client(startup_db):
    with TestClient(app):
        assert database._db is startup_db
    assert database._db is None
