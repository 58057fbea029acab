import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from book import MAX_AVAILABLE_COPIES, Book
from config import settings

logger = logging.getLogger(__name__)

# Wire name -> column name
COLUMNS = {
    "title": "title",
    "author": "author",
    "category": "category",
    "publishedYear": "published_year",
    "availableCopies": "available_copies",
}

SELECT_BOOKS = """
    SELECT id, title, author, category, published_year, available_copies, created_at, updated_at
    FROM books
"""


class StoreError(Exception):
    """Unexpected failure of the underlying store (connectivity, I/O, corrupt file)."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return uuid.uuid4().hex


class BookStore:
    """Handle on the book store.

    Opened once, shared by every request, closed at shutdown. A single sqlite3
    connection is serialized by a lock so the handle is safe to use from
    FastAPI's worker threads. Records go in and come out as ``Book`` objects;
    the store does not validate, ``Library`` does.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or settings.database_file
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = RLock()

    # ------------------------- Lifecycle ------------------------- #
    def open(self) -> "BookStore":
        if self._conn is not None:
            return self
        try:
            conn = sqlite3.connect(self.db_file, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._conn = conn
            self._create_tables()
        except sqlite3.Error as e:
            self._conn = None
            raise StoreError(f"Could not open book store {self.db_file}: {e}") from e
        logger.info(f"Connected to book store: {self.db_file}")
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Book store connection closed")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "BookStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def _create_tables(self) -> None:
        with self._lock:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS books (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    author TEXT NOT NULL,
                    category TEXT NOT NULL,
                    published_year INTEGER NOT NULL,
                    available_copies INTEGER NOT NULL DEFAULT 1 CHECK(available_copies >= 0),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_books_category ON books(category)")
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_books_published_year ON books(published_year)")
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_books_title_author ON books(title, author)")
            self._conn.commit()

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        """Run one statement and commit. Caller must hold the lock."""
        if self._conn is None:
            raise StoreError("Book store is not open")
        try:
            cursor = self._conn.execute(sql, tuple(params))
            self._conn.commit()
            return cursor
        except (sqlite3.Error, OverflowError) as e:
            self._conn.rollback()
            logger.error(f"Book store query failed: {e}")
            raise StoreError(f"Book store query failed: {e}") from e

    def _fetch(self, sql: str, params: Iterable[Any] = ()) -> List[Book]:
        with self._lock:
            rows = self._execute(sql, params).fetchall()
        return [Book.from_row(row) for row in rows]

    def _fetch_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[Book]:
        books = self._fetch(sql, params)
        return books[0] if books else None

    # ------------------------- Writes ------------------------- #
    def insert(self, fields: Dict[str, Any]) -> Book:
        return self.insert_many([fields])[0]

    def insert_many(self, records: List[Dict[str, Any]]) -> List[Book]:
        """Insert already-validated records; all or nothing."""
        if self._conn is None:
            raise StoreError("Book store is not open")
        now = _now()
        rows = [
            (_new_id(), r["title"], r["author"], r["category"], r["publishedYear"], r["availableCopies"], now, now)
            for r in records
        ]
        with self._lock:
            try:
                self._conn.executemany(
                    "INSERT INTO books (id, title, author, category, published_year, available_copies, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
                self._conn.commit()
            except (sqlite3.Error, OverflowError) as e:
                self._conn.rollback()
                logger.error(f"Book store insert failed: {e}")
                raise StoreError(f"Book store insert failed: {e}") from e
        return [
            Book(id=r[0], title=r[1], author=r[2], category=r[3], published_year=r[4],
                 available_copies=r[5], created_at=r[6], updated_at=r[7])
            for r in rows
        ]

    def update(self, book_id: str, fields: Dict[str, Any]) -> Optional[Book]:
        """Set the given wire-named fields. Returns the updated Book or None if missing."""
        changes = {COLUMNS[k]: v for k, v in fields.items() if k in COLUMNS}
        with self._lock:
            if changes:
                set_clause = ", ".join(f"{column} = ?" for column in changes)
                cursor = self._execute(
                    f"UPDATE books SET {set_clause}, updated_at = ? WHERE id = ?",
                    list(changes.values()) + [_now(), book_id],
                )
                if cursor.rowcount == 0:
                    return None
            return self.find_by_id(book_id)

    def adjust_copies(self, book_id: str, delta: int) -> Optional[Book]:
        """Add ``delta`` to the copy count unless the result leaves ``0..MAX_AVAILABLE_COPIES``.

        The guard is part of the UPDATE itself, so concurrent adjustments of
        the same record cannot overwrite each other. Returns None when no row
        was changed (missing record or guard refused).
        """
        with self._lock:
            cursor = self._execute(
                "UPDATE books SET available_copies = available_copies + ?, updated_at = ? "
                "WHERE id = ? AND available_copies + ? BETWEEN 0 AND ?",
                (delta, _now(), book_id, delta, MAX_AVAILABLE_COPIES),
            )
            if cursor.rowcount == 0:
                return None
            return self.find_by_id(book_id)

    def delete_if_empty(self, book_id: str) -> bool:
        """Delete the record only while it has no copies left."""
        with self._lock:
            cursor = self._execute(
                "DELETE FROM books WHERE id = ? AND available_copies = 0", (book_id,)
            )
            return cursor.rowcount > 0

    def delete_all(self) -> int:
        with self._lock:
            return self._execute("DELETE FROM books").rowcount

    # ------------------------- Reads ------------------------- #
    def find_all(self) -> List[Book]:
        return self._fetch(SELECT_BOOKS + " ORDER BY rowid")

    def find_by_category(self, category: str) -> List[Book]:
        return self._fetch(SELECT_BOOKS + " WHERE category = ? ORDER BY rowid", (category,))

    def find_published_after(self, year: int) -> List[Book]:
        return self._fetch(SELECT_BOOKS + " WHERE published_year > ? ORDER BY rowid", (year,))

    def find_by_id(self, book_id: str) -> Optional[Book]:
        return self._fetch_one(SELECT_BOOKS + " WHERE id = ?", (book_id,))

    def find_by_title(self, title: str) -> Optional[Book]:
        return self._fetch_one(SELECT_BOOKS + " WHERE title = ? ORDER BY rowid LIMIT 1", (title,))

    def count(self) -> int:
        with self._lock:
            return self._execute("SELECT COUNT(*) FROM books").fetchone()[0]

    def ping(self) -> bool:
        """Cheap reachability check for health endpoints."""
        try:
            with self._lock:
                self._execute("SELECT 1")
            return True
        except StoreError:
            return False
