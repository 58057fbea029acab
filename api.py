import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import configure_logging, settings
from database import BookStore, StoreError
from library import InvalidOperationError, Library, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# --- Models ---
class BookPayload(BaseModel):
    """Request body for create/update. Field checks live in the Library, so everything is optional here."""

    title: Any = None
    author: Any = None
    category: Any = None
    publishedYear: Any = None
    availableCopies: Any = None


class CopiesChange(BaseModel):
    change: Any = None


# --- Envelope ---
def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _request_error_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


# --- Dependencies ---
def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the API. Pass ``library`` to serve an existing store (tests); otherwise
    a store on ``settings.database_file`` is opened at startup and closed at shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = library is None
        app.state.library = library or Library(BookStore(settings.database_file).open())
        try:
            yield
        finally:
            if owned:
                app.state.library.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    if library is not None:
        app.state.library = library

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error handlers ---
    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return error_response(400, str(exc))

    @app.exception_handler(InvalidOperationError)
    async def handle_invalid_operation(request: Request, exc: InvalidOperationError):
        return error_response(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "Book not found")

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return error_response(400, _request_error_message(exc))

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return error_response(500, str(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")

    # --- Health ---
    @app.get("/health")
    def health(lib: Library = Depends(get_library)):
        db_ok = lib.store.ping()
        return {
            "status": "healthy" if db_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": db_ok,
            "total_books": lib.store.count() if db_ok else None,
        }

    # --- Books ---
    @app.get("/books")
    def list_books(lib: Library = Depends(get_library)):
        return envelope([b.to_dict() for b in lib.list_books()])

    @app.get("/books/category/{category}")
    def list_books_by_category(category: str, lib: Library = Depends(get_library)):
        return envelope([b.to_dict() for b in lib.list_by_category(category)])

    @app.get("/books/year/{year}")
    def list_books_after_year(year: int, lib: Library = Depends(get_library)):
        return envelope([b.to_dict() for b in lib.list_published_after(year)])

    @app.get("/books/{book_id}")
    def get_book(book_id: str, lib: Library = Depends(get_library)):
        return envelope(lib.get_book(book_id).to_dict())

    @app.post("/books", status_code=201)
    def create_book(payload: BookPayload, lib: Library = Depends(get_library)):
        book = lib.create_book(payload.model_dump(exclude_unset=True))
        return envelope(book.to_dict())

    @app.put("/books/{book_id}")
    def update_book(book_id: str, payload: BookPayload, lib: Library = Depends(get_library)):
        book = lib.update_book(book_id, payload.model_dump(exclude_unset=True))
        return envelope(book.to_dict())

    @app.patch("/books/{book_id}/copies")
    def update_copies(book_id: str, payload: CopiesChange, lib: Library = Depends(get_library)):
        book = lib.adjust_copies(book_id, payload.change)
        return envelope(book.to_dict())

    @app.delete("/books/{book_id}")
    def delete_book(book_id: str, lib: Library = Depends(get_library)):
        book = lib.delete_if_empty(book_id)
        return envelope(book.to_dict(), message="Book deleted successfully")

    # --- Seed ---
    @app.post("/seed")
    def seed(lib: Library = Depends(get_library)):
        books = lib.seed_sample()
        return envelope([b.to_dict() for b in books], message=f"Inserted {len(books)} books")

    return app


configure_logging()
app = create_app()
