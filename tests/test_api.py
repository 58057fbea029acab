import pytest
from fastapi.testclient import TestClient

from api import create_app
from database import StoreError
from library import SAMPLE_BOOKS


@pytest.fixture
def client(lib):
    # Serve the per-test store instead of the configured database file
    with TestClient(create_app(library=lib)) as test_client:
        yield test_client


@pytest.fixture
def seeded(client):
    response = client.post("/seed")
    assert response.status_code == 200
    return response.json()["data"]


def _create(client, dune_fields):
    response = client.post("/books", json=dune_fields)
    assert response.status_code == 201
    return response.json()["data"]


def test_list_empty(client):
    response = client.get("/books")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": []}


def test_seed(client):
    response = client.post("/seed")
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["message"] == f"Inserted {len(SAMPLE_BOOKS)} books"
    assert len(body["data"]) == len(SAMPLE_BOOKS)


def test_create_and_get(client, dune_fields):
    created = _create(client, dune_fields)
    assert created["availableCopies"] == 3
    assert set(created) == {
        "id", "title", "author", "category", "publishedYear", "availableCopies", "createdAt", "updatedAt",
    }

    response = client.get(f"/books/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": created}


def test_create_invalid(client):
    response = client.post("/books", json={"title": "Dune", "category": "Poetry"})
    body = response.json()
    assert response.status_code == 400
    assert body["success"] is False
    assert "Author is required" in body["error"]
    assert "Poetry is not a valid category" in body["error"]
    assert "data" not in body


def test_create_malformed_json(client):
    response = client.post("/books", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_get_missing(client):
    response = client.get("/books/unknown-id")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Book not found"}


def test_list_by_category(client, seeded):
    response = client.get("/books/category/Fiction")
    assert response.status_code == 200
    titles = {b["title"] for b in response.json()["data"]}
    assert titles == {"The Great Gatsby", "To Kill a Mockingbird", "The Midnight Library"}

    response = client.get("/books/category/Poetry")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_list_by_year(client, seeded):
    response = client.get("/books/year/2015")
    assert response.status_code == 200
    titles = {b["title"] for b in response.json()["data"]}
    assert titles == {r["title"] for r in SAMPLE_BOOKS if r["publishedYear"] > 2015}


def test_list_by_year_not_a_number(client):
    response = client.get("/books/year/recent")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_update(client, dune_fields):
    created = _create(client, dune_fields)
    response = client.put(f"/books/{created['id']}", json={"title": "Dune Messiah", "publishedYear": 1969})
    data = response.json()["data"]
    assert response.status_code == 200
    assert data["title"] == "Dune Messiah"
    assert data["publishedYear"] == 1969
    assert data["author"] == "Frank Herbert"


def test_update_invalid_category(client, dune_fields):
    created = _create(client, dune_fields)
    response = client.put(f"/books/{created['id']}", json={"category": "InvalidCategory"})
    assert response.status_code == 400
    assert "InvalidCategory is not a valid category" in response.json()["error"]
    assert client.get(f"/books/{created['id']}").json()["data"]["category"] == "Fiction"


def test_update_null_copies_is_rejected(client, dune_fields):
    dune_fields["availableCopies"] = 0
    created = _create(client, dune_fields)
    response = client.put(f"/books/{created['id']}", json={"availableCopies": None})
    assert response.status_code == 400
    assert "Available copies is required" in response.json()["error"]
    assert client.get(f"/books/{created['id']}").json()["data"]["availableCopies"] == 0


def test_create_huge_copies_is_400(client, dune_fields):
    dune_fields["availableCopies"] = 10**20
    response = client.post("/books", json=dune_fields)
    assert response.status_code == 400
    assert "Available copies cannot exceed" in response.json()["error"]
    assert client.get("/books").json()["data"] == []


@pytest.mark.parametrize("change,message", [
    (-10**20, "Cannot have negative copies"),
    (10**20, "Cannot have more than"),
])
def test_copies_huge_change_is_400(client, dune_fields, change, message):
    book_id = _create(client, dune_fields)["id"]
    response = client.patch(f"/books/{book_id}/copies", json={"change": change})
    assert response.status_code == 400
    assert message in response.json()["error"]
    assert client.get(f"/books/{book_id}").json()["data"]["availableCopies"] == 3


def test_update_missing(client):
    response = client.put("/books/nope", json={"title": "X"})
    assert response.status_code == 404


def test_copies_lifecycle(client, dune_fields):
    book_id = _create(client, dune_fields)["id"]

    response = client.patch(f"/books/{book_id}/copies", json={"change": -5})
    assert response.status_code == 400
    assert "Cannot have negative copies" in response.json()["error"]
    assert client.get(f"/books/{book_id}").json()["data"]["availableCopies"] == 3

    response = client.patch(f"/books/{book_id}/copies", json={"change": 2})
    assert response.status_code == 200
    assert response.json()["data"]["availableCopies"] == 5

    response = client.delete(f"/books/{book_id}")
    assert response.status_code == 400
    assert "still has 5 copies" in response.json()["error"]

    response = client.patch(f"/books/{book_id}/copies", json={"change": -5})
    assert response.json()["data"]["availableCopies"] == 0

    response = client.delete(f"/books/{book_id}")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Book deleted successfully"
    assert body["data"]["id"] == book_id

    assert client.get(f"/books/{book_id}").status_code == 404
    assert client.get("/books").json()["data"] == []


@pytest.mark.parametrize("payload", [{}, {"change": "two"}, {"change": 1.5}])
def test_copies_requires_integer_change(client, dune_fields, payload):
    book_id = _create(client, dune_fields)["id"]
    response = client.patch(f"/books/{book_id}/copies", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_copies_missing_book(client):
    response = client.patch("/books/nope/copies", json={"change": 1})
    assert response.status_code == 404


def test_delete_missing(client):
    response = client.delete("/books/nope")
    assert response.status_code == 404


def test_store_failure_is_500(client, lib, monkeypatch):
    def broken():
        raise StoreError("Book store is not open")

    monkeypatch.setattr(lib.store, "find_all", broken)
    response = client.get("/books")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Book store is not open"}


def test_health(client, seeded):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["total_books"] == len(SAMPLE_BOOKS)
