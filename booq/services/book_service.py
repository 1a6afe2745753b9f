"""
Book collection service.

Handles adding, updating, deleting and favoriting books. The user profile
keeps a favorites index (``favorite_book_ids``); every mutation here writes
the books slot and the profile slot in one store transaction, so the index
always matches the books' ``is_favorite`` flags.
"""

from typing import List, Optional, Dict, Any
from datetime import date
import dataclasses
import logging

from ..exceptions import BookNotFoundError
from ..models import (
    Book, BookStatus, UserProfile, ActivityItem, ActivityType,
    PLACEHOLDER_COVER_URL, validate_rating,
)
from ..store import PersistentStore, BOOKS_KEY, PROFILE_KEY, ACTIVITY_KEY
from .activity_service import ActivityService
from .ids import new_id

logger = logging.getLogger(__name__)


class BookService:
    """Service for CRUD operations on the book collection."""

    def __init__(self, store: PersistentStore):
        """
        Initialize the book service.

        Args:
            store: Persistent store holding the books and profile slots
        """
        self.store = store
        self.activity = ActivityService(store)

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def _load_books(self) -> List[Book]:
        books = []
        for data in self.store.read(BOOKS_KEY, []):
            try:
                books.append(Book.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed book record: {e}")
        return books

    def _load_profile(self) -> UserProfile:
        return UserProfile.from_dict(self.store.read(PROFILE_KEY, {}))

    def _save(self, books: List[Book], profile: UserProfile,
              activity: Optional[List[ActivityItem]] = None) -> None:
        slots = {
            BOOKS_KEY: [b.to_dict() for b in books],
            PROFILE_KEY: profile.to_dict(),
        }
        if activity:
            slots[ACTIVITY_KEY] = self.activity.pending_log(activity)
        self.store.write_many(slots)

    @staticmethod
    def _sync_favorite(profile: UserProfile, book: Book) -> None:
        """Bring the favorites index in line with one book's flag."""
        listed = book.id in profile.favorite_book_ids
        if book.is_favorite and not listed:
            profile.favorite_book_ids.append(book.id)
        elif not book.is_favorite and listed:
            profile.favorite_book_ids = [
                i for i in profile.favorite_book_ids if i != book.id
            ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, book_id: str) -> Optional[Book]:
        """
        Get a book by id.

        Args:
            book_id: Book ID

        Returns:
            Book or None if not found
        """
        return next((b for b in self._load_books() if b.id == book_id), None)

    def list(
        self,
        status: Optional[BookStatus] = None,
        shelf_id: Optional[str] = None,
        favorites_only: bool = False,
    ) -> List[Book]:
        """
        List books in insertion order, optionally filtered.

        Args:
            status: Only books with this reading status
            shelf_id: Only books on this custom shelf
            favorites_only: Only favorite books

        Returns:
            List of books
        """
        books = self._load_books()
        if status is not None:
            status = BookStatus.parse(status)
            books = [b for b in books if b.status == status]
        if shelf_id is not None:
            books = [b for b in books if shelf_id in b.custom_shelf_ids]
        if favorites_only:
            books = [b for b in books if b.is_favorite]
        return books

    def favorites(self) -> List[Book]:
        """Get favorite books in the order they were favorited."""
        by_id = {b.id: b for b in self._load_books()}
        profile = self._load_profile()
        return [by_id[i] for i in profile.favorite_book_ids if i in by_id]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, draft: Dict[str, Any]) -> Book:
        """
        Add a book to the collection.

        Args:
            draft: Book fields; ``title`` and ``author`` are required, ``id``
                is always assigned here. Unknown keys (e.g. ``publisher`` from
                a lookup) are ignored.

        Returns:
            The created book

        Raises:
            ValueError: If title or author is missing
        """
        title = (draft.get("title") or "").strip()
        author = (draft.get("author") or "").strip()
        if not title or not author:
            raise ValueError("Title and author are required")

        book_id = new_id()
        fields = {k: v for k, v in draft.items() if v is not None}
        fields.update(
            id=book_id,
            title=title,
            author=author,
            rating=validate_rating(draft.get("rating")),
            cover_image_url=draft.get("cover_image_url") or PLACEHOLDER_COVER_URL.format(book_id=book_id),
            is_favorite=bool(draft.get("is_favorite", False)),
            custom_shelf_ids=list(draft.get("custom_shelf_ids") or []),
            contains_spoilers=bool(draft.get("contains_spoilers", False)),
        )
        book = Book.from_dict(fields)

        books = self._load_books()
        books.append(book)
        profile = self._load_profile()
        self._sync_favorite(profile, book)

        self._save(books, profile, [self.activity.build(ActivityType.ADDED_BOOK, book)])
        logger.info(f"Added book {book.id}: {book.title}")
        return book

    def update(self, book: Book) -> Book:
        """
        Replace a book with a new full record.

        Args:
            book: Updated record; its ``id`` selects the book to replace

        Returns:
            The stored book

        Raises:
            BookNotFoundError: If no book has that id
            ValueError: If title or author is blank or the rating is invalid
        """
        if not book.title.strip() or not book.author.strip():
            raise ValueError("Title and author are required")
        book = dataclasses.replace(book, rating=validate_rating(book.rating))

        books = self._load_books()
        index = next((i for i, b in enumerate(books) if b.id == book.id), None)
        if index is None:
            raise BookNotFoundError(book.id)

        old = books[index]
        books[index] = book
        profile = self._load_profile()
        self._sync_favorite(profile, book)

        self._save(books, profile, self._changes(old, book))
        logger.debug(f"Updated book {book.id}")
        return book

    def _changes(self, old: Book, new: Book) -> List[ActivityItem]:
        """Activity entries describing the difference between two records."""
        items = []
        if new.status != old.status:
            if new.status == BookStatus.IN_PROGRESS:
                items.append(self.activity.build(ActivityType.STARTED_BOOK, new))
            elif new.status == BookStatus.READ:
                items.append(self.activity.build(ActivityType.FINISHED_BOOK, new))
        if new.rating != old.rating and new.rating:
            items.append(self.activity.build(ActivityType.RATED_BOOK, new, f"{new.rating:g}"))
        if new.notes and new.notes != old.notes:
            items.append(self.activity.build(ActivityType.ADDED_NOTE, new, new.notes[:80]))
        if new.is_favorite != old.is_favorite:
            kind = ActivityType.MARKED_FAVORITE if new.is_favorite else ActivityType.UNMARKED_FAVORITE
            items.append(self.activity.build(kind, new))
        return items

    def delete(self, book_id: str) -> bool:
        """
        Delete a book and drop it from the favorites index.

        Args:
            book_id: Book ID

        Returns:
            True if a book was removed, False if none had that id
        """
        books = self._load_books()
        remaining = [b for b in books if b.id != book_id]
        profile = self._load_profile()
        profile.favorite_book_ids = [i for i in profile.favorite_book_ids if i != book_id]

        self._save(remaining, profile)
        removed = len(remaining) != len(books)
        if removed:
            logger.info(f"Deleted book {book_id}")
        return removed

    def toggle_favorite(self, book_id: str) -> Optional[Book]:
        """
        Flip a book's favorite flag.

        Args:
            book_id: Book ID

        Returns:
            The updated book, or None if no book has that id
        """
        book = self.get(book_id)
        if book is None:
            return None
        return self.update(dataclasses.replace(book, is_favorite=not book.is_favorite))

    def set_status(self, book_id: str, status: BookStatus) -> Book:
        """
        Set a book's reading status.

        Starting a book fills in its start date and finishing it fills in its
        finish date, unless those are already set.

        Raises:
            BookNotFoundError: If no book has that id
            ValueError: If the status is unknown
        """
        status = BookStatus.parse(status)
        book = self._require(book_id)
        changes = {"status": status}
        today = date.today().isoformat()
        if status == BookStatus.IN_PROGRESS and not book.start_date:
            changes["start_date"] = today
        elif status == BookStatus.READ and not book.finish_date:
            changes["finish_date"] = today
        return self.update(dataclasses.replace(book, **changes))

    def update_progress(self, book_id: str, current_page: int) -> Book:
        """
        Record the page the reader is on.

        The page is clamped to ``[0, pages]``.

        Raises:
            BookNotFoundError: If no book has that id
            ValueError: If the book has no page count
        """
        book = self._require(book_id)
        if not book.pages:
            raise ValueError("Book has no page count; set pages before tracking progress")
        current_page = max(0, min(int(current_page), book.pages))
        return self.update(dataclasses.replace(book, current_page=current_page))

    def set_rating(self, book_id: str, rating: Optional[float]) -> Book:
        """
        Rate a book (0-5 in half points; 0 or None clears the rating).

        Raises:
            BookNotFoundError: If no book has that id
            ValueError: If the rating is invalid
        """
        book = self._require(book_id)
        return self.update(dataclasses.replace(book, rating=validate_rating(rating)))

    def _require(self, book_id: str) -> Book:
        book = self.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book
