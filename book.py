from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class BookStatus(str, Enum):
    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Book:
    """Immutable snapshot of a single book record in the library."""

    id: str
    title: str
    author: str
    status: BookStatus
    created_at: datetime
    updated_at: datetime
    checked_out_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        # Checkout/return timestamps stay out of the payload until they happen
        if self.checked_out_at is not None:
            data["checkedOutAt"] = format_timestamp(self.checked_out_at)
        if self.returned_at is not None:
            data["returnedAt"] = format_timestamp(self.returned_at)
        return data
