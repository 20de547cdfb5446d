from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

TITLE_MAX_LENGTH = 200
AUTHOR_MAX_LENGTH = 100

FieldError = Dict[str, str]
ModelT = TypeVar("ModelT", bound=BaseModel)

# Messages for pydantic's built-in error types; our own checks raise custom errors with final text
_BUILTIN_MESSAGES = {
    "missing": "Required",
    "model_type": "Expected object",
    "model_attributes_type": "Expected object",
    "dict_type": "Expected object",
    "json_invalid": "Invalid JSON",
}


def _clean_text(value: Any, *, label: str, max_length: int, empty_message: str) -> str:
    """Trim a text field and enforce the non-empty and length rules."""
    if not isinstance(value, str):
        raise PydanticCustomError("string_type", f"{label} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise PydanticCustomError("string_too_short", empty_message)
    if len(cleaned) > max_length:
        raise PydanticCustomError(
            "string_too_long", f"{label} must be less than {max_length} characters"
        )
    return cleaned


class BookCreateModel(BaseModel):
    title: str
    author: str

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> str:
        return _clean_text(v, label="Title", max_length=TITLE_MAX_LENGTH, empty_message="Title is required")

    @field_validator("author", mode="before")
    @classmethod
    def check_author(cls, v: Any) -> str:
        return _clean_text(v, label="Author", max_length=AUTHOR_MAX_LENGTH, empty_message="Author is required")


class BookUpdateModel(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None

    # Defaults are not validated, so these only run for fields present in the body
    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> str:
        return _clean_text(v, label="Title", max_length=TITLE_MAX_LENGTH, empty_message="Title cannot be empty")

    @field_validator("author", mode="before")
    @classmethod
    def check_author(cls, v: Any) -> str:
        return _clean_text(v, label="Author", max_length=AUTHOR_MAX_LENGTH, empty_message="Author cannot be empty")


def format_errors(errors: Iterable[Dict[str, Any]]) -> List[FieldError]:
    """Flatten pydantic/FastAPI error dicts into ``{"field", "message"}`` pairs."""
    formatted: List[FieldError] = []
    for err in errors:
        err_type = err.get("type", "")
        loc = tuple(err.get("loc", ()))
        if err_type == "json_invalid":
            field = "body"
        else:
            # FastAPI prefixes request locations ("body", "path", ...); only the field path matters here
            if loc and loc[0] in ("body", "path", "query"):
                loc = loc[1:]
            field = ".".join(str(part) for part in loc)
        formatted.append({"field": field, "message": _BUILTIN_MESSAGES.get(err_type, err.get("msg", ""))})
    return formatted


def _validate(model: Type[ModelT], data: Any) -> Tuple[Optional[ModelT], List[FieldError]]:
    try:
        return model.model_validate({} if data is None else data), []
    except ValidationError as exc:
        return None, format_errors(exc.errors())


def validate_book_create(data: Any) -> Tuple[Optional[BookCreateModel], List[FieldError]]:
    """Validate a create payload. Returns the cleaned model, or None and the field errors."""
    return _validate(BookCreateModel, data)


def validate_book_update(data: Any) -> Tuple[Optional[BookUpdateModel], List[FieldError]]:
    """Validate an update payload; both fields optional, present ones must be valid."""
    return _validate(BookUpdateModel, data)
