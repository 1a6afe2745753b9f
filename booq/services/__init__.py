"""
Services for booq business logic.

Provides a unified service layer over the persistent store.
"""

from .book_service import BookService
from .shelf_service import ShelfService
from .layout_service import LayoutService, DragState, move_before
from .stats_service import StatsFilter, ReadingStats, compute_reading_stats
from .profile_service import ProfileService
from .activity_service import ActivityService

__all__ = [
    # Collection
    'BookService',
    'ShelfService',

    # Personal/user services
    'ProfileService',
    'ActivityService',

    # Dashboard
    'LayoutService',
    'DragState',
    'move_before',
    'StatsFilter',
    'ReadingStats',
    'compute_reading_stats',
]
