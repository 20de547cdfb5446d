import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Callable, Dict, List, Optional

from book import Book, BookStatus

logger = logging.getLogger(__name__)

ALREADY_CHECKED_OUT = "Book is already checked out"
ALREADY_AVAILABLE = "Book is already available"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutcomeKind(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


@dataclass(frozen=True)
class Outcome:
    """Result of a mutating repository call.

    Exactly one of three shapes: OK carrying the stored snapshot, NOT_FOUND for an
    unknown id, or INVALID_TRANSITION carrying a human readable reason.
    """

    kind: OutcomeKind
    book: Optional[Book] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, book: Book) -> "Outcome":
        return cls(OutcomeKind.OK, book=book)

    @classmethod
    def not_found(cls) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND)

    @classmethod
    def invalid_transition(cls, reason: str) -> "Outcome":
        return cls(OutcomeKind.INVALID_TRANSITION, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK


class Library:
    """Manages the in-memory collection of books and their checkout state."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utcnow
        # dict keeps insertion order, which is the listing order
        self._books: Dict[str, Book] = {}
        self._lock = RLock()

    def __len__(self) -> int:
        return self.count()

    # ------------------------- Core operations ------------------------- #
    def create(self, title: str, author: str) -> Book:
        """Add a new available book. Inputs are expected to be validated and trimmed already."""
        now = self._clock()
        with self._lock:
            book = Book(
                id=str(uuid.uuid4()),
                title=title,
                author=author,
                status=BookStatus.AVAILABLE,
                created_at=now,
                updated_at=now,
            )
            self._books[book.id] = book
        logger.info(f"Book created: id={book.id}, title={book.title!r}")
        return book

    def find_all(self) -> List[Book]:
        with self._lock:
            return list(self._books.values())

    def find_by_id(self, book_id: str) -> Optional[Book]:
        with self._lock:
            return self._books.get(book_id)

    def count(self) -> int:
        with self._lock:
            return len(self._books)

    def update(self, book_id: str, *, title: Optional[str] = None, author: Optional[str] = None) -> Outcome:
        """Update title and/or author. With neither given the stored book comes back untouched."""
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return Outcome.not_found()
            if title is None and author is None:
                return Outcome.ok(book)

            updated = replace(
                book,
                title=title if title is not None else book.title,
                author=author if author is not None else book.author,
                updated_at=self._next_timestamp(book),
            )
            self._books[book_id] = updated
        logger.info(f"Book updated: id={book_id}")
        return Outcome.ok(updated)

    # ------------------------- State transitions ------------------------- #
    def checkout(self, book_id: str) -> Outcome:
        """Move an available book to checked_out."""
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return Outcome.not_found()
            if book.status is BookStatus.CHECKED_OUT:
                logger.warning(f"Checkout rejected: id={book_id} is already checked out")
                return Outcome.invalid_transition(ALREADY_CHECKED_OUT)

            now = self._next_timestamp(book)
            updated = replace(book, status=BookStatus.CHECKED_OUT, checked_out_at=now, updated_at=now)
            self._books[book_id] = updated
        logger.info(f"Book checked out: id={book_id}")
        return Outcome.ok(updated)

    def return_book(self, book_id: str) -> Outcome:
        """Move a checked out book back to available."""
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return Outcome.not_found()
            if book.status is BookStatus.AVAILABLE:
                logger.warning(f"Return rejected: id={book_id} is already available")
                return Outcome.invalid_transition(ALREADY_AVAILABLE)

            now = self._next_timestamp(book)
            updated = replace(book, status=BookStatus.AVAILABLE, returned_at=now, updated_at=now)
            self._books[book_id] = updated
        logger.info(f"Book returned: id={book_id}")
        return Outcome.ok(updated)

    # ------------------------- Utilities ------------------------- #
    def clear(self) -> None:
        """Drop every book. Reset helper for tests, not exposed over HTTP."""
        with self._lock:
            self._books.clear()

    def _next_timestamp(self, book: Book) -> datetime:
        # updatedAt never moves backwards, even if the clock does
        return max(self._clock(), book.updated_at)
