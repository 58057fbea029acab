from datetime import datetime

import pytest

from book import CATEGORIES, MAX_AVAILABLE_COPIES
from utils.validators import CategoryValidator, IntegerValidator, validate_book_fields


def _fields(**overrides):
    fields = {
        "title": "Dune",
        "author": "Frank Herbert",
        "category": "Fiction",
        "publishedYear": 1965,
        "availableCopies": 3,
    }
    fields.update(overrides)
    return fields


def test_valid_fields_are_cleaned():
    cleaned, errors = validate_book_fields(_fields(title="  Dune  ", category=" Fiction ", extra="ignored"))
    assert errors == []
    assert cleaned == {
        "title": "Dune",
        "author": "Frank Herbert",
        "category": "Fiction",
        "publishedYear": 1965,
        "availableCopies": 3,
    }


def test_copies_default_to_one():
    fields = _fields()
    del fields["availableCopies"]
    cleaned, errors = validate_book_fields(fields)
    assert errors == []
    assert cleaned["availableCopies"] == 1


def test_missing_fields_are_all_reported():
    _, errors = validate_book_fields({})
    assert errors == [
        "Title is required",
        "Author is required",
        "Category is required",
        "Published year is required",
    ]


def test_empty_text_is_rejected():
    _, errors = validate_book_fields(_fields(title="   ", author=""))
    assert "Title cannot be empty" in errors
    assert "Author cannot be empty" in errors


def test_non_string_title_is_rejected():
    _, errors = validate_book_fields(_fields(title=42))
    assert errors == ["Title must be a string"]


@pytest.mark.parametrize("category", ["InvalidCategory", "fiction", "Poetry"])
def test_unknown_category_is_rejected(category):
    _, errors = validate_book_fields(_fields(category=category))
    assert errors == [f"{category} is not a valid category"]


def test_every_listed_category_is_accepted():
    for category in CATEGORIES:
        assert CategoryValidator.is_valid_category(category)


def test_year_bounds():
    this_year = datetime.now().year
    assert validate_book_fields(_fields(publishedYear=1000))[1] == []
    assert validate_book_fields(_fields(publishedYear=this_year))[1] == []
    assert validate_book_fields(_fields(publishedYear=999))[1] == ["Published year must be after 1000"]
    assert validate_book_fields(_fields(publishedYear=this_year + 1))[1] == [
        "Published year cannot be in the future"
    ]


def test_year_must_be_integer():
    assert validate_book_fields(_fields(publishedYear=1965.5))[1] == ["Published year must be an integer"]
    assert validate_book_fields(_fields(publishedYear="soon"))[1] == ["Published year must be an integer"]


def test_negative_copies_rejected():
    _, errors = validate_book_fields(_fields(availableCopies=-1))
    assert errors == ["Available copies cannot be negative"]


def test_copies_upper_bound():
    assert validate_book_fields(_fields(availableCopies=MAX_AVAILABLE_COPIES))[1] == []
    _, errors = validate_book_fields(_fields(availableCopies=10**20))
    assert errors == [f"Available copies cannot exceed {MAX_AVAILABLE_COPIES}"]


def test_update_requires_copies():
    fields = _fields(availableCopies=None)
    _, errors = validate_book_fields(fields, for_create=False)
    assert errors == ["Available copies is required"]
    assert validate_book_fields(fields)[0]["availableCopies"] == 1


def test_integer_coercion():
    assert IntegerValidator.to_int(5) == 5
    assert IntegerValidator.to_int(5.0) == 5
    assert IntegerValidator.to_int(" 1965 ") == 1965
    assert IntegerValidator.to_int(True) is None
    assert IntegerValidator.to_int(2.5) is None
    assert IntegerValidator.to_int(None) is None
