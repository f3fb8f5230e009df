"""Catalog endpoints via TestClient."""

from conftest import make_book

BOOK_FORM = {
    "bookId": "B42",
    "bookName": "The Hitchhiker's Guide",
    "price": 9.5,
    "description": "Don't panic.",
    "authorName": "Douglas Adams",
    "quantity": 4,
    "image": "images/b42.jpg",
    "bookType": "adventure",
}


def _login_admin(client):
    response = client.post("/adminlogin", json={"name": "root", "psw": "s3cret"})
    assert response.status_code == 200


def test_list_books_empty(client):
    assert client.get("/books").json() == []
    assert client.get("/api/books").json() == []


def test_list_books_by_category(client, add_books):
    add_books(make_book("F1", book_type="fantasy"), make_book("S1", book_type="suspense"))

    fantasy = client.get("/api/books/fantasy").json()
    assert [b["bookId"] for b in fantasy] == ["F1"]
    assert client.get("/api/books/inspiration").json() == []
    assert len(client.get("/api/books").json()) == 2


def test_unknown_category_is_rejected(client):
    assert client.get("/api/books/romance").status_code == 422


def test_admin_adds_book(client, admin):
    _login_admin(client)

    response = client.post("/books/add", json=BOOK_FORM)

    assert response.status_code == 201
    assert response.json() == BOOK_FORM
    assert client.get("/books").json() == [BOOK_FORM]


def test_add_book_requires_admin(client):
    assert client.post("/books/add", json=BOOK_FORM).status_code == 401


def test_add_duplicate_book_is_409(client, admin):
    _login_admin(client)
    client.post("/books/add", json=BOOK_FORM)
    assert client.post("/books/add", json=BOOK_FORM).status_code == 409


def test_update_quantity(client, add_books):
    add_books(make_book("B1", quantity=5))

    response = client.put("/books/update/B1", json={"quantity": 11})

    assert response.status_code == 200
    assert response.json()["quantity"] == 11
    assert response.json()["bookId"] == "B1"


def test_update_missing_book_is_404(client):
    response = client.put("/books/update/nope", json={"quantity": 1})
    assert response.status_code == 404
    assert response.json() == {"message": "Book not found"}


def test_seed_only_fills_empty_catalog(client):
    first = client.post("/seed").json()
    assert first["inserted"] > 0
    assert client.post("/seed").json() == {"inserted": 0}
    assert len(client.get("/books").json()) == first["inserted"]
