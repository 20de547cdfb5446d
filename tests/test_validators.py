import pytest

from utils.validators import format_errors, validate_book_create, validate_book_update


def test_create_trims_fields():
    data, errors = validate_book_create({"title": "  Dune  ", "author": "\tFrank Herbert\n"})
    assert errors == []
    assert data.title == "Dune"
    assert data.author == "Frank Herbert"


def test_create_ignores_unknown_fields():
    data, errors = validate_book_create({"title": "Dune", "author": "Frank Herbert", "status": "checked_out"})
    assert errors == []
    assert not hasattr(data, "status")


def test_create_requires_both_fields():
    data, errors = validate_book_create({})
    assert data is None
    assert {"field": "title", "message": "Required"} in errors
    assert {"field": "author", "message": "Required"} in errors


def test_create_missing_body_reports_required_fields():
    _, errors = validate_book_create(None)
    assert sorted(e["field"] for e in errors) == ["author", "title"]


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"title": "", "author": "A"}, {"field": "title", "message": "Title is required"}),
        ({"title": "   ", "author": "A"}, {"field": "title", "message": "Title is required"}),
        ({"title": "T", "author": ""}, {"field": "author", "message": "Author is required"}),
        ({"title": "x" * 201, "author": "A"}, {"field": "title", "message": "Title must be less than 200 characters"}),
        ({"title": "T", "author": "x" * 101}, {"field": "author", "message": "Author must be less than 100 characters"}),
        ({"title": 42, "author": "A"}, {"field": "title", "message": "Title must be a string"}),
        ({"title": "T", "author": None}, {"field": "author", "message": "Author must be a string"}),
    ],
)
def test_create_field_errors(payload, expected):
    data, errors = validate_book_create(payload)
    assert data is None
    assert errors == [expected]


def test_length_limits_are_inclusive():
    data, errors = validate_book_create({"title": "x" * 200, "author": "y" * 100})
    assert errors == []
    assert len(data.title) == 200


def test_length_is_checked_after_trimming():
    data, errors = validate_book_create({"title": " " + "x" * 200 + " ", "author": "A"})
    assert errors == []
    assert len(data.title) == 200


def test_create_rejects_non_object_body():
    data, errors = validate_book_create(["Dune", "Frank Herbert"])
    assert data is None
    assert errors == [{"field": "", "message": "Expected object"}]


def test_update_allows_partial_payloads():
    data, errors = validate_book_update({"author": " Ursula K. Le Guin "})
    assert errors == []
    assert data.title is None
    assert data.author == "Ursula K. Le Guin"


def test_update_allows_empty_payload():
    data, errors = validate_book_update({})
    assert errors == []
    assert data.title is None and data.author is None


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"title": ""}, {"field": "title", "message": "Title cannot be empty"}),
        ({"author": "  "}, {"field": "author", "message": "Author cannot be empty"}),
        ({"title": None}, {"field": "title", "message": "Title must be a string"}),
    ],
)
def test_update_field_errors(payload, expected):
    data, errors = validate_book_update(payload)
    assert data is None
    assert errors == [expected]


def test_format_errors_strips_request_location():
    errors = format_errors([
        {"type": "missing", "loc": ("body", "title"), "msg": "Field required"},
        {"type": "json_invalid", "loc": ("body", 7), "msg": "JSON decode error"},
        {"type": "string_type", "loc": ("path", "book_id"), "msg": "Input should be a valid string"},
    ])
    assert errors == [
        {"field": "title", "message": "Required"},
        {"field": "body", "message": "Invalid JSON"},
        {"field": "book_id", "message": "Input should be a valid string"},
    ]
