import io

import pytest
from rich.console import Console

from database import BookStore
from demo import DemoRunner, run_demo
from library import InvalidOperationError, Library, NotFoundError


def _console():
    return Console(file=io.StringIO(), width=120, color_system=None)


def test_run_demo_final_state(db_file):
    console = _console()
    assert run_demo(BookStore(db_file), console) is True
    output = console.file.getvalue()

    assert "DEMO COMPLETED SUCCESSFULLY" in output
    assert "Caught: Invalid update: Cannot have negative copies" in output
    assert "Caught: Book not found: Non Existent Book" in output
    assert "Caught: Book validation failed: InvalidCategory is not a valid category" in output
    assert "Caught: Invalid delete: Book \"Atomic Habits\" still has 10 copies available" in output
    assert "Database connection closed" in output

    with BookStore(db_file) as store:
        books = {b.title: b for b in Library(store).list_books()}
    assert "A Brief History of Time" not in books
    assert books["Atomic Habits"].available_copies == 10
    assert books["The Great Gatsby"].available_copies == 4
    assert books["Sapiens"].category == "History"
    assert len(books) == 7


def test_run_demo_closes_store(db_file):
    store = BookStore(db_file)
    run_demo(store, _console())
    assert not store.is_open


def test_run_demo_reports_failure(db_file, monkeypatch):
    def broken(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(DemoRunner, "show_all", broken)
    console = _console()
    store = BookStore(db_file)
    assert run_demo(store, console) is False
    assert "DEMO FAILED" in console.file.getvalue()
    assert not store.is_open


def test_steps_reraise_after_reporting(lib):
    console = _console()
    runner = DemoRunner(lib, console)
    runner.insert_books()

    with pytest.raises(NotFoundError):
        runner.update_copies("Missing", 1)
    with pytest.raises(InvalidOperationError):
        runner.delete_if_no_copies("Sapiens")
    assert "✗ Error deleting book" in console.file.getvalue()


def test_empty_category_message(lib):
    console = _console()
    assert DemoRunner(lib, console).show_category("Poetry") == []
    assert "No books found in category: Poetry" in console.file.getvalue()
