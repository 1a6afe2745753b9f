"""
Activity log service.

The activity log is append-only: entries are recorded, never edited or removed.
"""

from typing import List, Optional, Dict, Any
from datetime import datetime
import logging

from ..models import ActivityItem, ActivityType, Book
from ..store import PersistentStore, ACTIVITY_KEY
from .ids import new_id

logger = logging.getLogger(__name__)


class ActivityService:
    """Service for recording and reading the activity log."""

    def __init__(self, store: PersistentStore):
        """
        Initialize the activity service.

        Args:
            store: Persistent store holding the activity slot
        """
        self.store = store

    def build(
        self,
        activity_type: ActivityType,
        book: Optional[Book] = None,
        details: Optional[str] = None,
    ) -> ActivityItem:
        """Build an entry without persisting it (for batched writes)."""
        return ActivityItem(
            id=new_id(),
            type=activity_type,
            timestamp=datetime.now().isoformat(),
            book_id=book.id if book else None,
            book_title=book.title if book else None,
            details=details,
        )

    def pending_log(self, items: List[ActivityItem]) -> List[Dict[str, Any]]:
        """Return the stored log with ``items`` appended, ready to write."""
        log = self.store.read(ACTIVITY_KEY, [])
        log.extend(item.to_dict() for item in items)
        return log

    def record(
        self,
        activity_type: ActivityType,
        book: Optional[Book] = None,
        details: Optional[str] = None,
    ) -> ActivityItem:
        """
        Append an entry to the activity log.

        Args:
            activity_type: Kind of activity
            book: Book the activity refers to, if any
            details: Free-text details (rating given, note snippet, ...)

        Returns:
            The recorded entry
        """
        item = self.build(activity_type, book, details)
        self.store.write(ACTIVITY_KEY, self.pending_log([item]))
        logger.debug(f"Recorded activity {activity_type.value}")
        return item

    def list(self, limit: Optional[int] = None) -> List[ActivityItem]:
        """
        Get activity entries, newest first.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of activity entries
        """
        items = []
        for data in self.store.read(ACTIVITY_KEY, []):
            try:
                items.append(ActivityItem.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed activity entry: {e}")

        items.reverse()
        if limit is not None:
            items = items[:limit]
        return items
