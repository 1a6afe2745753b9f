"""Service for managing custom shelves.

Shelves are user-defined tags separate from the fixed reading statuses. Books
reference shelves by id through ``custom_shelf_ids``.
"""

from typing import List, Optional
import logging

from ..models import Book, CustomShelf
from ..store import PersistentStore, SHELVES_KEY, BOOKS_KEY
from .book_service import BookService
from .ids import new_id

logger = logging.getLogger(__name__)

SHELF_ID_PREFIX = "custom-"


class ShelfService:
    """Service for CRUD operations on custom shelves."""

    def __init__(self, store: PersistentStore):
        """Initialize shelf service.

        Args:
            store: Persistent store holding the shelves and books slots
        """
        self.store = store

    def list(self) -> List[CustomShelf]:
        """Get all shelves in creation order."""
        shelves = []
        for data in self.store.read(SHELVES_KEY, []):
            try:
                shelves.append(CustomShelf.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed shelf record: {e}")
        return shelves

    def get(self, shelf_id: str) -> Optional[CustomShelf]:
        """Get a shelf by id, or None."""
        return next((s for s in self.list() if s.id == shelf_id), None)

    def _save(self, shelves: List[CustomShelf]) -> None:
        self.store.write(SHELVES_KEY, [s.to_dict() for s in shelves])

    def add_shelf(self, name: str) -> Optional[CustomShelf]:
        """Create a shelf.

        Args:
            name: Shelf name; surrounding whitespace is trimmed

        Returns:
            The new shelf, or None if the name is blank
        """
        name = (name or "").strip()
        if not name:
            return None

        shelf = CustomShelf(id=new_id(SHELF_ID_PREFIX), name=name)
        shelves = self.list()
        shelves.append(shelf)
        self._save(shelves)
        logger.info(f"Created shelf {shelf.id}: {name}")
        return shelf

    def rename_shelf(self, shelf_id: str, new_name: str) -> Optional[CustomShelf]:
        """Rename a shelf.

        Args:
            shelf_id: Shelf to rename
            new_name: New name; surrounding whitespace is trimmed

        Returns:
            The renamed shelf, or None if the name is blank or the shelf
            doesn't exist
        """
        new_name = (new_name or "").strip()
        if not new_name:
            return None

        shelves = self.list()
        renamed = None
        for shelf in shelves:
            if shelf.id == shelf_id:
                shelf.name = new_name
                renamed = shelf

        if renamed:
            self._save(shelves)
            logger.info(f"Renamed shelf {shelf_id} to {new_name}")
        return renamed

    def delete_shelf(self, shelf_id: str) -> bool:
        """Delete a shelf and remove it from every book.

        The shelf list and the books are written in one transaction.

        Args:
            shelf_id: Shelf to delete

        Returns:
            True if the shelf existed
        """
        shelves = self.list()
        remaining = [s for s in shelves if s.id != shelf_id]

        books = self.store.read(BOOKS_KEY, [])
        for book in books:
            if not isinstance(book, dict):
                continue
            ids = book.get("custom_shelf_ids") or []
            book["custom_shelf_ids"] = [i for i in ids if i != shelf_id]

        self.store.write_many({
            SHELVES_KEY: [s.to_dict() for s in remaining],
            BOOKS_KEY: books,
        })

        deleted = len(remaining) != len(shelves)
        if deleted:
            logger.info(f"Deleted shelf {shelf_id}")
        return deleted

    def books_on_shelf(self, shelf_id: str) -> List[Book]:
        """Get the books assigned to a shelf."""
        return [b for b in BookService(self.store).list() if shelf_id in b.custom_shelf_ids]
