"""
BookTracker: the main entry point to a booq library.

Bundles the persistent store with the services that work on it.
"""

from pathlib import Path
from typing import Optional
from datetime import date
import logging

from .store import PersistentStore
from .services import (
    BookService, ShelfService, LayoutService, ProfileService, ActivityService,
    StatsFilter, ReadingStats, compute_reading_stats,
)

logger = logging.getLogger(__name__)


class BookTracker:
    """
    A personal book collection.

    Usage:
        tracker = BookTracker.open("~/booq")
        book = tracker.books.add({"title": "Dune", "author": "Frank Herbert"})
        tracker.books.toggle_favorite(book.id)
        stats = tracker.stats(StatsFilter.YEAR_TO_DATE)
        tracker.close()
    """

    def __init__(self, library_path: Path, store: PersistentStore):
        self.library_path = Path(library_path)
        self.store = store
        self.books = BookService(store)
        self.shelves = ShelfService(store)
        self.layout = LayoutService(store)
        self.profile = ProfileService(store)
        self.activity = ActivityService(store)

    @classmethod
    def open(cls, library_path: Path, echo: bool = False) -> 'BookTracker':
        """
        Open or create a library.

        Args:
            library_path: Path to library directory
            echo: If True, log all SQL statements

        Returns:
            BookTracker instance
        """
        library_path = Path(library_path).expanduser()
        store = PersistentStore.open(library_path, echo=echo)
        logger.info(f"Opened library at {library_path}")
        return cls(library_path, store)

    def close(self):
        """Close the library and its database connection."""
        self.store.close()
        logger.info("Closed library")

    def stats(self, filter_type: StatsFilter = StatsFilter.ALL_TIME,
              today: Optional[date] = None) -> ReadingStats:
        """Reading statistics over the whole collection."""
        return compute_reading_stats(self.books.list(), filter_type, today=today)

    def __enter__(self) -> 'BookTracker':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
