"""
SQLite persistence for booq slots.
"""

from .models import Base, Slot
from .session import init_db, close_db, session_scope

__all__ = [
    'Base',
    'Slot',
    'init_db',
    'close_db',
    'session_scope',
]
