import pytest

from database import BookStore
from library import Library


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file per test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def store(db_file):
    store = BookStore(db_file).open()
    yield store
    store.close()


@pytest.fixture
def lib(store):
    return Library(store)


@pytest.fixture
def dune_fields():
    return {
        "title": "Dune",
        "author": "Frank Herbert",
        "category": "Fiction",
        "publishedYear": 1965,
        "availableCopies": 3,
    }
