import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from book import Book, format_timestamp
from config import settings
from library import Library, Outcome, OutcomeKind
from utils.validators import FieldError, format_errors, validate_book_create, validate_book_update

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

BOOK_NOT_FOUND = "Book not found"
NOTHING_TO_UPDATE = "At least one field (title or author) must be provided"

ENDPOINTS = {
    "health": "GET /health",
    "books": {
        "create": "POST /books",
        "getAll": "GET /books",
        "getOne": "GET /books/:id",
        "update": "PATCH /books/:id",
        "checkout": "PATCH /books/:id/checkout",
        "return": "PATCH /books/:id/return",
    },
}


class APIError(Exception):
    """An error that is rendered to the client as-is, with its own status code."""

    def __init__(self, message: str, status_code: int, errors: Optional[List[FieldError]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors


# --- Envelope helpers ---
def _envelope(
    status_code: int,
    *,
    success: bool,
    message: str,
    data: Any = None,
    errors: Optional[List[FieldError]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": success}
    if data is not None:
        content["data"] = data
    content["message"] = message
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def _ok(book: Book, message: str, status_code: int = 200) -> JSONResponse:
    return _envelope(status_code, success=True, data=book.to_dict(), message=message)


def _unwrap(outcome: Outcome) -> Book:
    """Return the book from a successful outcome or raise the matching APIError."""
    if outcome.kind is OutcomeKind.NOT_FOUND:
        raise APIError(BOOK_NOT_FOUND, 404)
    if outcome.kind is OutcomeKind.INVALID_TRANSITION:
        raise APIError(outcome.reason or "Invalid state transition", 400)
    return outcome.book


def get_library(request: Request) -> Library:
    """Dependency returning the repository the app was built with."""
    return request.app.state.library


# --- Exception handlers ---
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return _envelope(exc.status_code, success=False, message=exc.message, errors=exc.errors)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(400, success=False, message="Validation failed", errors=format_errors(exc.errors()))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and unsupported methods both read as a missing route
    if exc.status_code in (404, 405):
        return _envelope(404, success=False, message=f"Route {request.url.path} not found")
    return _envelope(exc.status_code, success=False, message=str(exc.detail))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(500, success=False, message="Internal server error")


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the API around a repository instance. A fresh ``Library`` is created when none is given."""
    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.library = library if library is not None else Library()

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception:
            logger.info(f"{request.method} {request.url.path} -> 500")
            raise
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # --- Service endpoints ---
    @app.get("/")
    def root(library: Library = Depends(get_library)):
        return {
            "success": True,
            "message": f"{settings.app_name} is running",
            "totalBooks": library.count(),
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    def health():
        """Liveness check."""
        return {
            "success": True,
            "message": "API is running successfully",
            "timestamp": format_timestamp(datetime.now(timezone.utc)),
        }

    # --- Book endpoints ---
    @app.post("/books", status_code=201)
    def create_book(payload: Any = Body(None), library: Library = Depends(get_library)):
        """Add a new book to the library."""
        data, errors = validate_book_create(payload)
        if errors:
            raise APIError("Validation failed", 400, errors=errors)
        book = library.create(data.title, data.author)
        return _ok(book, "Book created successfully", status_code=201)

    @app.get("/books")
    def list_books(library: Library = Depends(get_library)):
        """List every book in insertion order."""
        books = library.find_all()
        return _envelope(
            200,
            success=True,
            data=[b.to_dict() for b in books],
            message=f"Retrieved {len(books)} books",
        )

    @app.get("/books/{book_id}")
    def get_book(book_id: str, library: Library = Depends(get_library)):
        book = library.find_by_id(book_id)
        if book is None:
            raise APIError(BOOK_NOT_FOUND, 404)
        return _ok(book, "Book retrieved successfully")

    @app.patch("/books/{book_id}")
    def update_book(book_id: str, payload: Any = Body(None), library: Library = Depends(get_library)):
        """Update the title and/or author of a book."""
        data, errors = validate_book_update(payload)
        if errors:
            raise APIError("Validation failed", 400, errors=errors)
        if data.title is None and data.author is None:
            raise APIError(NOTHING_TO_UPDATE, 400)
        book = _unwrap(library.update(book_id, title=data.title, author=data.author))
        return _ok(book, "Book updated successfully")

    @app.patch("/books/{book_id}/checkout")
    def checkout_book(book_id: str, library: Library = Depends(get_library)):
        book = _unwrap(library.checkout(book_id))
        return _ok(book, "Book checked out successfully")

    @app.patch("/books/{book_id}/return")
    def return_book(book_id: str, library: Library = Depends(get_library)):
        book = _unwrap(library.return_book(book_id))
        return _ok(book, "Book returned successfully")

    return app


app = create_app()
