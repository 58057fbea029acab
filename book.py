from __future__ import annotations

CATEGORIES = (
    "Fiction",
    "Non-Fiction",
    "Science",
    "Technology",
    "History",
    "Biography",
    "Self-Help",
)

MIN_PUBLISHED_YEAR = 1000
DEFAULT_AVAILABLE_COPIES = 1
MAX_AVAILABLE_COPIES = 2**31 - 1

# Wire (JSON) name -> attribute name
FIELD_NAMES = {
    "title": "title",
    "author": "author",
    "category": "category",
    "publishedYear": "published_year",
    "availableCopies": "available_copies",
}


class Book:
    """A single title in the library inventory."""

    def __init__(self, title: str, author: str, category: str, published_year: int,
                 available_copies: int = DEFAULT_AVAILABLE_COPIES, id: str | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.category = category.strip()
        self.published_year = published_year
        self.available_copies = available_copies
        self.created_at = created_at
        self.updated_at = updated_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.published_year})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, copies={self.available_copies})"

    @property
    def has_copies(self) -> bool:
        return self.available_copies > 0

    def fields(self) -> dict:
        """Client-editable fields, keyed by wire name."""
        return {wire: getattr(self, attr) for wire, attr in FIELD_NAMES.items()}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "publishedYear": self.published_year,
            "availableCopies": self.available_copies,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @staticmethod
    def from_row(row) -> "Book":
        """Build a Book from a ``books`` table row (sqlite3.Row or mapping)."""
        return Book(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            category=row["category"],
            published_year=row["published_year"],
            available_copies=row["available_copies"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
