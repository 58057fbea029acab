from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from book import CATEGORIES, DEFAULT_AVAILABLE_COPIES, MAX_AVAILABLE_COPIES, MIN_PUBLISHED_YEAR


class TextValidator:
    """Required, non-empty text fields (title, author)."""

    @staticmethod
    def clean(value: Any, label: str, errors: List[str]) -> Optional[str]:
        if value is None:
            errors.append(f"{label} is required")
            return None
        if not isinstance(value, str):
            errors.append(f"{label} must be a string")
            return None
        text = value.strip()
        if not text:
            errors.append(f"{label} cannot be empty")
            return None
        return text


class CategoryValidator:
    """Category must belong to the fixed enumeration."""

    @staticmethod
    def is_valid_category(category: Any) -> bool:
        return isinstance(category, str) and category.strip() in CATEGORIES

    @staticmethod
    def clean(value: Any, errors: List[str]) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append("Category is required")
            return None
        if not CategoryValidator.is_valid_category(value):
            errors.append(f"{value} is not a valid category")
            return None
        return value.strip()


class IntegerValidator:
    """Whole numbers; accepts integral floats and integer strings the way a JSON form would send them."""

    @staticmethod
    def to_int(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None


def current_year() -> int:
    return datetime.now().year


def validate_book_fields(fields: Dict[str, Any], for_create: bool = True) -> Tuple[Dict[str, Any], List[str]]:
    """Validate a complete set of book fields keyed by wire name.

    Returns the cleaned fields (trimmed text, integer numbers) together with
    every violation found. Unknown keys are dropped. The same check runs on
    create and on the merged record of an update; only a create
    (``for_create``) fills in missing copies with the default.
    """
    errors: List[str] = []
    cleaned: Dict[str, Any] = {}

    cleaned["title"] = TextValidator.clean(fields.get("title"), "Title", errors)
    cleaned["author"] = TextValidator.clean(fields.get("author"), "Author", errors)
    cleaned["category"] = CategoryValidator.clean(fields.get("category"), errors)

    raw_year = fields.get("publishedYear")
    if raw_year is None:
        errors.append("Published year is required")
        cleaned["publishedYear"] = None
    else:
        year = IntegerValidator.to_int(raw_year)
        if year is None:
            errors.append("Published year must be an integer")
        elif year < MIN_PUBLISHED_YEAR:
            errors.append(f"Published year must be after {MIN_PUBLISHED_YEAR}")
        elif year > current_year():
            errors.append("Published year cannot be in the future")
        cleaned["publishedYear"] = year

    raw_copies = fields.get("availableCopies")
    if raw_copies is None:
        if for_create:
            cleaned["availableCopies"] = DEFAULT_AVAILABLE_COPIES
        else:
            errors.append("Available copies is required")
            cleaned["availableCopies"] = None
    else:
        copies = IntegerValidator.to_int(raw_copies)
        if copies is None:
            errors.append("Available copies must be an integer")
        elif copies < 0:
            errors.append("Available copies cannot be negative")
        elif copies > MAX_AVAILABLE_COPIES:
            errors.append(f"Available copies cannot exceed {MAX_AVAILABLE_COPIES}")
        cleaned["availableCopies"] = copies

    return cleaned, errors
