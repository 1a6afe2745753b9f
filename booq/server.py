"""
REST API for booq.

Serves the collection, shelves, dashboard layout, statistics, profile and the
lookup/chat features over HTTP.
"""

import dataclasses
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .tracker import BookTracker
from .config import load_config, Capabilities
from .exceptions import (
    BookNotFoundError, ShelfNotFoundError, ConfigurationError, LookupFailedError,
    ProviderError, NOT_CONFIGURED_MESSAGE, user_message_for,
)
from .models import Book, BookStatus
from .services import StatsFilter
from .lookup import GoogleBooksSearch, LookupResult
from .ai import AIBookSearch, RecommendationChat, generate_book_spark
from .ai.book_search import NO_RESULTS_MESSAGE
from .ai.recommendations import GENERIC_CHAT_ERROR
from .ai.llm_providers import BaseLLMProvider, create_provider

logger = logging.getLogger(__name__)


# Pydantic models for API
class BookResponse(BaseModel):
    id: str
    title: str
    author: str
    status: str
    rating: Optional[float] = None
    pages: Optional[int] = None
    current_page: Optional[int] = None
    progress_percent: Optional[int] = None
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    notes: Optional[str] = None
    review: Optional[str] = None
    contains_spoilers: bool = False
    description: Optional[str] = None
    genres: List[str] = []
    published_date: Optional[str] = None
    isbn: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_favorite: bool = False
    custom_shelf_ids: List[str] = []


class BookCreateRequest(BaseModel):
    title: str
    author: str
    status: str = BookStatus.TBR.value
    rating: Optional[float] = None
    pages: Optional[int] = None
    current_page: Optional[int] = None
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    notes: Optional[str] = None
    review: Optional[str] = None
    contains_spoilers: bool = False
    description: Optional[str] = None
    genres: List[str] = []
    published_date: Optional[str] = None
    isbn: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_favorite: bool = False
    custom_shelf_ids: List[str] = []


class BookUpdateRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    status: Optional[str] = None
    rating: Optional[float] = None
    pages: Optional[int] = None
    current_page: Optional[int] = None
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    notes: Optional[str] = None
    review: Optional[str] = None
    contains_spoilers: Optional[bool] = None
    description: Optional[str] = None
    genres: Optional[List[str]] = None
    published_date: Optional[str] = None
    isbn: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_favorite: Optional[bool] = None
    custom_shelf_ids: Optional[List[str]] = None


class StatusRequest(BaseModel):
    status: str


class ProgressRequest(BaseModel):
    current_page: int


class RatingRequest(BaseModel):
    rating: Optional[float] = None


class ShelfRequest(BaseModel):
    name: str


class ShelfResponse(BaseModel):
    id: str
    name: str
    book_count: int = 0


class ReorderRequest(BaseModel):
    dragged: str
    target: str


class ProfileUpdateRequest(BaseModel):
    username: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    pronouns: Optional[str] = None
    birth_year: Optional[int] = None


class ChatRequest(BaseModel):
    message: str


# Global instances
_tracker: Optional[BookTracker] = None
_google: Optional[GoogleBooksSearch] = None
_ai_search: Optional[AIBookSearch] = None
_chat: Optional[RecommendationChat] = None
_provider: Optional[BaseLLMProvider] = None
_capabilities: Capabilities = Capabilities()

# PATCH fields where an explicit null means "leave unchanged"
NON_NULLABLE_FIELDS = {
    "title", "author", "status", "contains_spoilers", "is_favorite", "genres", "custom_shelf_ids",
}


def get_tracker() -> BookTracker:
    """Get the current tracker instance."""
    if _tracker is None:
        raise HTTPException(status_code=500, detail="Library not initialized")
    return _tracker


def set_tracker(
    tracker: BookTracker,
    google: Optional[GoogleBooksSearch] = None,
    provider: Optional[BaseLLMProvider] = None,
    capabilities: Optional[Capabilities] = None,
):
    """
    Set the tracker and lookup components directly (for testing).

    Args:
        tracker: Open BookTracker
        google: Google Books search (a keyless one by default)
        provider: LLM provider for AI search, sparks and chat (None disables them)
        capabilities: Feature flags; derived from ``provider`` when omitted
    """
    global _tracker, _google, _ai_search, _chat, _provider, _capabilities
    _tracker = tracker
    _google = google or GoogleBooksSearch()
    _provider = provider
    _ai_search = AIBookSearch(provider)
    _chat = RecommendationChat(provider)
    if capabilities is None:
        ai_ready = provider is not None
        capabilities = Capabilities(metadata_search=True, ai_search=ai_ready, chat=ai_ready)
    _capabilities = capabilities


def create_app(library_path: Path) -> FastAPI:
    """Create FastAPI application with an opened library and configured lookups."""
    config = load_config()
    set_tracker(
        BookTracker.open(library_path),
        google=GoogleBooksSearch(api_key=config.metadata.resolved_api_key()),
        provider=create_provider(config.llm),
        capabilities=Capabilities.from_config(config),
    )
    return app


async def shutdown():
    """Close the provider's HTTP client and the library."""
    global _tracker
    if _provider is not None:
        await _provider.cleanup()
    if _tracker is not None:
        _tracker.close()
        _tracker = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown()


# Create FastAPI app
app = FastAPI(
    title="booq",
    description="Personal book tracker API",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookNotFoundError)
@app.exception_handler(ShelfNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def invalid_input_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def not_configured_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=503, content={"detail": NOT_CONFIGURED_MESSAGE})


@app.exception_handler(LookupFailedError)
@app.exception_handler(ProviderError)
async def provider_failed_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=502, content={"detail": user_message_for(exc, "Upstream request failed.")})


def _book_to_response(book: Book) -> BookResponse:
    data = book.to_dict()
    data["progress_percent"] = book.progress_percent
    return BookResponse(**data)


def _require_book(book_id: str) -> Book:
    book = get_tracker().books.get(book_id)
    if book is None:
        raise BookNotFoundError(book_id)
    return book


# ============================================================================
# Books
# ============================================================================

@app.get("/api/books", response_model=List[BookResponse])
async def list_books(
    status: Optional[str] = None,
    shelf_id: Optional[str] = None,
    favorites: bool = False,
):
    """List books, optionally filtered by status, shelf or favorite mark."""
    books = get_tracker().books.list(
        status=BookStatus.parse(status) if status else None,
        shelf_id=shelf_id,
        favorites_only=favorites,
    )
    return [_book_to_response(b) for b in books]


@app.post("/api/books", response_model=BookResponse, status_code=201)
async def create_book(request: BookCreateRequest):
    """Add a book."""
    book = get_tracker().books.add(request.model_dump())
    return _book_to_response(book)


@app.get("/api/books/{book_id}", response_model=BookResponse)
async def get_book(book_id: str):
    """Get a specific book by ID."""
    return _book_to_response(_require_book(book_id))


@app.patch("/api/books/{book_id}", response_model=BookResponse)
async def update_book(book_id: str, update: BookUpdateRequest):
    """Update book fields; omitted fields keep their value."""
    book = _require_book(book_id)
    changes = {
        key: value for key, value in update.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    if "status" in changes:
        changes["status"] = BookStatus.parse(changes["status"])
    updated = get_tracker().books.update(dataclasses.replace(book, **changes))
    return _book_to_response(updated)


@app.delete("/api/books/{book_id}")
async def delete_book(book_id: str):
    """Delete a book from the collection."""
    if not get_tracker().books.delete(book_id):
        raise BookNotFoundError(book_id)
    return {"message": "Book deleted successfully"}


@app.post("/api/books/{book_id}/favorite", response_model=BookResponse)
async def toggle_favorite(book_id: str):
    """Flip a book's favorite mark."""
    book = get_tracker().books.toggle_favorite(book_id)
    if book is None:
        raise BookNotFoundError(book_id)
    return _book_to_response(book)


@app.put("/api/books/{book_id}/status", response_model=BookResponse)
async def set_status(book_id: str, request: StatusRequest):
    """Set a book's reading status."""
    book = get_tracker().books.set_status(book_id, BookStatus.parse(request.status))
    return _book_to_response(book)


@app.put("/api/books/{book_id}/progress", response_model=BookResponse)
async def set_progress(book_id: str, request: ProgressRequest):
    """Record the current page."""
    book = get_tracker().books.update_progress(book_id, request.current_page)
    return _book_to_response(book)


@app.put("/api/books/{book_id}/rating", response_model=BookResponse)
async def set_rating(book_id: str, request: RatingRequest):
    """Rate a book; 0 or null clears the rating."""
    book = get_tracker().books.set_rating(book_id, request.rating)
    return _book_to_response(book)


@app.get("/api/books/{book_id}/spark")
async def book_spark(book_id: str):
    """A discussion question about a book."""
    book = _require_book(book_id)
    question = await generate_book_spark(_provider, book.title, book.author)
    return {"book_id": book.id, "spark": question}


# ============================================================================
# Shelves
# ============================================================================

def _shelf_counts() -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for book in get_tracker().books.list():
        for shelf_id in book.custom_shelf_ids:
            counts[shelf_id] = counts.get(shelf_id, 0) + 1
    return counts


@app.get("/api/shelves", response_model=List[ShelfResponse])
async def list_shelves():
    """List custom shelves with their book counts."""
    counts = _shelf_counts()
    return [
        ShelfResponse(id=s.id, name=s.name, book_count=counts.get(s.id, 0))
        for s in get_tracker().shelves.list()
    ]


@app.post("/api/shelves", response_model=ShelfResponse, status_code=201)
async def create_shelf(request: ShelfRequest):
    """Create a custom shelf."""
    shelf = get_tracker().shelves.add_shelf(request.name)
    if shelf is None:
        raise ValueError("Shelf name cannot be empty")
    return ShelfResponse(id=shelf.id, name=shelf.name)


@app.patch("/api/shelves/{shelf_id}", response_model=ShelfResponse)
async def rename_shelf(shelf_id: str, request: ShelfRequest):
    """Rename a custom shelf."""
    tracker = get_tracker()
    if tracker.shelves.get(shelf_id) is None:
        raise ShelfNotFoundError(shelf_id)
    shelf = tracker.shelves.rename_shelf(shelf_id, request.name)
    if shelf is None:
        raise ValueError("Shelf name cannot be empty")
    return ShelfResponse(id=shelf.id, name=shelf.name, book_count=_shelf_counts().get(shelf.id, 0))


@app.delete("/api/shelves/{shelf_id}")
async def delete_shelf(shelf_id: str):
    """Delete a custom shelf and remove it from every book."""
    if not get_tracker().shelves.delete_shelf(shelf_id):
        raise ShelfNotFoundError(shelf_id)
    return {"message": "Shelf deleted successfully"}


@app.get("/api/shelves/{shelf_id}/books", response_model=List[BookResponse])
async def shelf_books(shelf_id: str):
    """Books on a custom shelf."""
    tracker = get_tracker()
    if tracker.shelves.get(shelf_id) is None:
        raise ShelfNotFoundError(shelf_id)
    return [_book_to_response(b) for b in tracker.shelves.books_on_shelf(shelf_id)]


# ============================================================================
# Dashboard, statistics, profile and activity
# ============================================================================

@app.get("/api/layout")
async def get_layout():
    """Current dashboard section order."""
    return {"order": get_tracker().layout.get_order()}


@app.post("/api/layout/reorder")
async def reorder_layout(request: ReorderRequest):
    """Move ``dragged`` to ``target``'s position."""
    return {"order": get_tracker().layout.reorder(request.dragged, request.target)}


@app.get("/api/stats")
async def get_stats(filter_type: StatsFilter = Query(StatsFilter.ALL_TIME, alias="filter")):
    """Reading statistics (``filter=all-time`` or ``filter=ytd``)."""
    return get_tracker().stats(filter_type).to_dict()


@app.get("/api/profile")
async def get_profile():
    """The reader profile."""
    return get_tracker().profile.get().to_dict()


@app.patch("/api/profile")
async def update_profile(request: ProfileUpdateRequest):
    """Edit the reader profile; the favorites list is not editable here."""
    profile = get_tracker().profile.update(**request.model_dump(exclude_unset=True))
    return profile.to_dict()


@app.get("/api/activity")
async def list_activity(limit: Optional[int] = Query(None, ge=1)):
    """Activity log, newest first."""
    return [item.to_dict() for item in get_tracker().activity.list(limit=limit)]


# ============================================================================
# Lookups and chat
# ============================================================================

@app.get("/api/capabilities")
async def get_capabilities():
    """Which optional features are available."""
    return _capabilities.to_dict()


@app.get("/api/lookup/google")
async def lookup_google(q: str = "", max_results: int = Query(10, ge=1, le=40)):
    """Search Google Books; failures are reported in the ``error`` field."""
    result = await _google.search(q, max_results=max_results)
    return result.to_dict()


@app.get("/api/lookup/ai")
async def lookup_ai(q: str = Query(..., min_length=1)):
    """Ask the AI provider for up to three matching books."""
    if not _capabilities.ai_search:
        raise ConfigurationError("AI search is disabled")
    books = await _ai_search.search(q)
    if not books:
        return LookupResult(message=NO_RESULTS_MESSAGE).to_dict()
    return LookupResult(books=books).to_dict()


@app.post("/api/chat")
async def chat(request: ChatRequest):
    """
    Send a message to Q Bot and stream the reply as plain text.

    A failure after streaming started ends the body with the error message.
    """
    if not _capabilities.chat:
        raise ConfigurationError("Chat is disabled")
    session = _chat.get_or_create_session()

    async def relay():
        try:
            async for chunk in session.send(request.message):
                yield chunk
        except ProviderError as e:
            logger.error(f"Chat stream failed: {e}")
            yield f"\n\n{user_message_for(e, GENERIC_CHAT_ERROR)}"

    return StreamingResponse(relay(), media_type="text/plain")
