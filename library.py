import logging
from typing import Any, Dict, List, Optional

from book import MAX_AVAILABLE_COPIES, Book
from database import BookStore, StoreError
from utils.validators import IntegerValidator, validate_book_fields

logger = logging.getLogger(__name__)

SAMPLE_BOOKS: List[Dict[str, Any]] = [
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "category": "Fiction", "publishedYear": 1925, "availableCopies": 5},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "category": "Fiction", "publishedYear": 1960, "availableCopies": 3},
    {"title": "Sapiens", "author": "Yuval Noah Harari", "category": "History", "publishedYear": 2011, "availableCopies": 7},
    {"title": "Educated", "author": "Tara Westover", "category": "Biography", "publishedYear": 2018, "availableCopies": 4},
    {"title": "The Lean Startup", "author": "Eric Ries", "category": "Technology", "publishedYear": 2011, "availableCopies": 6},
    {"title": "Atomic Habits", "author": "James Clear", "category": "Self-Help", "publishedYear": 2018, "availableCopies": 8},
    {"title": "A Brief History of Time", "author": "Stephen Hawking", "category": "Science", "publishedYear": 1988, "availableCopies": 2},
    {"title": "The Midnight Library", "author": "Matt Haig", "category": "Fiction", "publishedYear": 2020, "availableCopies": 10},
]


class Library:
    """Validates and persists book records and enforces the inventory guard rules."""

    def __init__(self, store: BookStore) -> None:
        self.store = store

    # ------------------------- Create ------------------------- #
    def create_book(self, fields: Dict[str, Any]) -> Book:
        """Validate ``fields`` (wire names) and store a new book."""
        cleaned = self._validate(fields)
        book = self.store.insert(cleaned)
        logger.info(f"Created \"{book.title}\" ({book.id}) with {book.available_copies} copies")
        return book

    def seed_sample(self, records: Optional[List[Dict[str, Any]]] = None) -> List[Book]:
        """Replace every stored book with ``records`` (the demonstration set by default)."""
        records = SAMPLE_BOOKS if records is None else records
        cleaned = [self._validate(r) for r in records]
        removed = self.store.delete_all()
        books = self.store.insert_many(cleaned)
        logger.info(f"Seeded {len(books)} books (removed {removed})")
        return books

    # ------------------------- Read ------------------------- #
    def list_books(self) -> List[Book]:
        return self.store.find_all()

    def list_by_category(self, category: str) -> List[Book]:
        return self.store.find_by_category(category)

    def list_published_after(self, year: int) -> List[Book]:
        """Books published strictly after ``year``."""
        return self.store.find_published_after(year)

    def get_book(self, book_id: str) -> Book:
        book = self.store.find_by_id(book_id)
        if book is None:
            raise NotFoundError(f"Book not found: {book_id}")
        return book

    def find_by_title(self, title: str) -> Book:
        book = self.store.find_by_title(title)
        if book is None:
            raise NotFoundError(f"Book not found: {title}")
        return book

    # ------------------------- Update ------------------------- #
    def update_book(self, book_id: str, fields: Dict[str, Any]) -> Book:
        """Apply a partial update; the merged record must pass full validation."""
        if not isinstance(fields, dict):
            raise ValidationError(["Book data must be an object"])
        current = self.get_book(book_id)
        merged = current.fields()
        merged.update({k: v for k, v in fields.items() if k in merged})
        cleaned = self._validate(merged, for_create=False)
        book = self.store.update(book_id, cleaned)
        if book is None:
            # Deleted between the read and the write
            raise NotFoundError(f"Book not found: {book_id}")
        logger.info(f"Updated \"{book.title}\" ({book.id})")
        return book

    def change_category(self, book_id: str, category: str) -> Book:
        old = self.get_book(book_id).category
        book = self.update_book(book_id, {"category": category})
        logger.info(f"Updated \"{book.title}\": {old} → {book.category}")
        return book

    def adjust_copies(self, book_id: str, delta: Any) -> Book:
        """Add ``delta`` (may be negative) to the available copies."""
        change = IntegerValidator.to_int(delta)
        if isinstance(delta, str) or change is None:
            raise ValidationError(["Copy change must be an integer"])

        before = self.get_book(book_id)
        book = None
        # A change larger than the bound can never succeed and would not fit a store integer
        if abs(change) <= MAX_AVAILABLE_COPIES:
            book = self.store.adjust_copies(book_id, change)
        if book is None:
            current = self.get_book(book_id)
            logger.warning(
                f"Refused copy change for \"{current.title}\": "
                f"current {current.available_copies}, change {change}"
            )
            if current.available_copies + change < 0:
                raise InvalidOperationError(
                    f"Invalid update: Cannot have negative copies. "
                    f"Current: {current.available_copies}, Change: {change}"
                )
            raise InvalidOperationError(
                f"Invalid update: Cannot have more than {MAX_AVAILABLE_COPIES} copies. "
                f"Current: {current.available_copies}, Change: {change}"
            )
        logger.info(f"Updated \"{book.title}\": {before.available_copies} → {book.available_copies} copies")
        return book

    # ------------------------- Delete ------------------------- #
    def delete_if_empty(self, book_id: str) -> Book:
        """Remove a book that has no copies left; returns the deleted record."""
        book = self.get_book(book_id)
        if book.has_copies or not self.store.delete_if_empty(book_id):
            current = self.get_book(book_id)
            logger.warning(f"Refused delete of \"{current.title}\": {current.available_copies} copies available")
            raise InvalidOperationError(
                f"Invalid delete: Book \"{current.title}\" still has {current.available_copies} copies available"
            )
        logger.info(f"Deleted \"{book.title}\" ({book.id})")
        return book

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _validate(fields: Dict[str, Any], for_create: bool = True) -> Dict[str, Any]:
        if not isinstance(fields, dict):
            raise ValidationError(["Book data must be an object"])
        cleaned, errors = validate_book_fields(fields, for_create=for_create)
        if errors:
            logger.warning(f"Book validation failed: {', '.join(errors)}")
            raise ValidationError(errors)
        return cleaned

    def close(self) -> None:
        self.store.close()


class LibraryError(Exception):
    """Base class for inventory rule violations."""


class ValidationError(LibraryError):
    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Book validation failed: {', '.join(self.errors)}")


class NotFoundError(LibraryError):
    pass


class InvalidOperationError(LibraryError):
    pass


__all__ = [
    "Library",
    "LibraryError",
    "ValidationError",
    "NotFoundError",
    "InvalidOperationError",
    "StoreError",
    "SAMPLE_BOOKS",
]
