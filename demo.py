"""
Scripted walkthrough of the inventory rules.

Seeds the sample set, runs the read queries, applies a few updates, exercises
each guard rule and finally deletes a book once its copies reach zero. Books
are addressed by title, the way a librarian would. Every result is printed;
failures inside a step are reported and re-raised to the caller.
"""

import logging
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from book import Book
from database import BookStore
from library import Library, LibraryError

logger = logging.getLogger(__name__)

RULE = "=" * 60


class DemoRunner:
    def __init__(self, library: Library, console: Optional[Console] = None) -> None:
        self.library = library
        self.console = console or Console()

    def _fail(self, action: str, error: Exception) -> None:
        self.console.print(f"[red]✗ Error {action}:[/] {escape(str(error))}")

    def _print_books(self, heading: str, books: List[Book], detail) -> None:
        self.console.print(f"\n[bold]{escape(heading)} ({len(books)} found):[/]")
        for book in books:
            self.console.print(f"  - {escape(detail(book))}")

    # ------------------------- Steps ------------------------- #
    def insert_books(self) -> List[Book]:
        try:
            books = self.library.seed_sample()
        except LibraryError as e:
            self._fail("inserting books", e)
            raise
        self.console.print(f"[green]✓ Successfully inserted {len(books)} books[/]")
        return books

    def show_all(self) -> List[Book]:
        books = self.library.list_books()
        self._print_books(
            "📚 All Books", books,
            lambda b: f"{b.title} by {b.author} ({b.published_year}) - {b.available_copies} copies",
        )
        return books

    def show_category(self, category: str) -> List[Book]:
        books = self.library.list_by_category(category)
        if not books:
            self.console.print(f"\n📖 No books found in category: {escape(category)}")
            return books
        self._print_books(f"📖 Books in {category}", books, lambda b: f"{b.title} by {b.author}")
        return books

    def show_published_after(self, year: int) -> List[Book]:
        books = self.library.list_published_after(year)
        self._print_books(
            f"📅 Books published after {year}", books,
            lambda b: f"{b.title} ({b.published_year}) - {b.available_copies} copies",
        )
        return books

    def update_copies(self, title: str, change: int) -> Book:
        try:
            before = self.library.find_by_title(title)
            book = self.library.adjust_copies(before.id, change)
        except LibraryError as e:
            self._fail("updating copies", e)
            raise
        self.console.print(
            f"[green]✓ Updated \"{escape(title)}\": {before.available_copies} → {book.available_copies} copies[/]"
        )
        return book

    def change_category(self, title: str, category: str) -> Book:
        try:
            before = self.library.find_by_title(title)
            book = self.library.change_category(before.id, category)
        except LibraryError as e:
            self._fail("changing category", e)
            raise
        self.console.print(f"[green]✓ Updated \"{escape(title)}\": {before.category} → {book.category}[/]")
        return book

    def delete_if_no_copies(self, title: str) -> Book:
        try:
            book = self.library.find_by_title(title)
            deleted = self.library.delete_if_empty(book.id)
        except LibraryError as e:
            self._fail("deleting book", e)
            raise
        self.console.print(f"[green]✓ Deleted \"{escape(title)}\" (0 copies)[/]")
        return deleted

    def expect_failure(self, heading: str, step, *args) -> Optional[LibraryError]:
        """Run a step that must be refused; print what was caught."""
        self.console.print(f"\n[yellow]❌ {heading}:[/]")
        try:
            step(*args)
        except LibraryError as e:
            self.console.print(f"  Caught: {escape(str(e))}")
            return e
        logger.error(f"Expected failure did not happen: {heading}")
        return None

    # ------------------------- Walkthrough ------------------------- #
    def run(self) -> None:
        self.console.print(RULE)
        self.console.print("📚 LIBRARY BOOK MANAGEMENT SYSTEM DEMO")
        self.console.print(RULE)

        self.console.print("\n1️⃣  INSERTING BOOKS...")
        self.insert_books()

        self.console.print("\n2️⃣  READ OPERATIONS...")
        self.show_all()
        self.show_category("Fiction")
        self.show_published_after(2015)

        self.console.print("\n3️⃣  UPDATE OPERATIONS...")
        self.update_copies("Atomic Habits", 2)
        self.update_copies("The Great Gatsby", -1)
        self.change_category("A Brief History of Time", "Non-Fiction")

        self.console.print("\n4️⃣  ERROR HANDLING DEMONSTRATIONS...")
        self.expect_failure("Attempting negative stock", self.update_copies, "Atomic Habits", -100)
        self.expect_failure("Attempting to update non-existent book", self.update_copies, "Non Existent Book", 5)
        self.expect_failure("Attempting invalid category", self.change_category, "Sapiens", "InvalidCategory")

        self.console.print("\n5️⃣  DELETE OPERATIONS...")
        self.update_copies("A Brief History of Time", -2)
        self.delete_if_no_copies("A Brief History of Time")
        self.expect_failure("Attempting to delete book with copies", self.delete_if_no_copies, "Atomic Habits")

        self.console.print("\n" + RULE)
        self.console.print("[bold green]✓ DEMO COMPLETED SUCCESSFULLY[/]")
        self.console.print(RULE)


def run_demo(store: BookStore, console: Optional[Console] = None) -> bool:
    """Run the walkthrough against ``store`` and close it afterwards.

    Returns False when a step failed unexpectedly; the failure is printed, not raised.
    """
    console = console or Console()
    try:
        DemoRunner(Library(store.open()), console).run()
        return True
    except Exception as e:
        logger.exception("Demo failed")
        console.print(f"\n[bold red]✗ DEMO FAILED:[/] {escape(str(e))}")
        return False
    finally:
        store.close()
        console.print("\n🔌 Database connection closed")
