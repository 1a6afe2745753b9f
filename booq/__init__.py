"""
booq - a personal book tracker with a SQLAlchemy + SQLite backend.

Main API:
    from booq import BookTracker
    from pathlib import Path

    # Open or create a library
    tracker = BookTracker.open(Path("~/booq"))

    # Add a book and mark it as a favorite
    book = tracker.books.add({"title": "Dune", "author": "Frank Herbert", "pages": 412})
    tracker.books.toggle_favorite(book.id)

    # Track reading
    tracker.books.set_status(book.id, "In Progress")
    tracker.books.update_progress(book.id, 120)

    # Organize
    shelf = tracker.shelves.add_shelf("Sci-fi classics")

    # Statistics
    stats = tracker.stats()

    # Always close when done
    tracker.close()
"""

from .tracker import BookTracker

__version__ = "0.1.0"
__all__ = ["BookTracker"]
