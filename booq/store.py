"""
Persistent key-value store for booq state.

Each piece of application state lives in a named slot holding a JSON value.
Reads never fail: a missing slot, an unparseable value, or a value whose
container type differs from the default's (a dict where a list belongs)
yields the default.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict

from .db.models import Slot
from .db.session import init_db, close_db, session_scope

logger = logging.getLogger(__name__)

# Slot keys
BOOKS_KEY = 'booq-books'
PROFILE_KEY = 'booq-user-profile'
ACTIVITY_KEY = 'booq-activity-log'
SHELVES_KEY = 'booq-custom-shelves'
SECTION_ORDER_KEY = 'booq-homepage-section-order-v2'


class PersistentStore:
    """
    SQLite-backed slot store.

    Usage:
        store = PersistentStore.open(Path("~/booq"))
        books = store.read(BOOKS_KEY, [])
        store.write(BOOKS_KEY, books)
        store.close()
    """

    def __init__(self, library_path: Path):
        self.library_path = Path(library_path)

    @classmethod
    def open(cls, library_path: Path, echo: bool = False) -> 'PersistentStore':
        """
        Open or create the store inside a library directory.

        Args:
            library_path: Path to library directory
            echo: If True, log all SQL statements

        Returns:
            PersistentStore instance
        """
        init_db(Path(library_path), echo=echo)
        logger.debug(f"Opened store at {library_path}")
        return cls(library_path)

    def close(self):
        """Release the database connection."""
        close_db()

    def read(self, key: str, default: Any = None) -> Any:
        """
        Read a slot.

        Args:
            key: Slot key
            default: Value returned when the slot is missing or corrupt; a list
                or dict default also rejects a stored value of another type

        Returns:
            The stored value, or a copy of the default
        """
        with session_scope() as session:
            slot = session.get(Slot, key)
            raw = slot.value if slot else None

        if raw is None:
            return copy.deepcopy(default)

        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored value for '{key}' is not valid JSON, using default: {e}")
            return copy.deepcopy(default)

        if isinstance(default, (list, dict)) and not isinstance(value, type(default)):
            logger.warning(
                f"Stored value for '{key}' is a {type(value).__name__}, "
                f"expected a {type(default).__name__}; using default"
            )
            return copy.deepcopy(default)
        return value

    def write(self, key: str, value: Any) -> None:
        """
        Write a slot; durable when this returns.

        Args:
            key: Slot key
            value: JSON-serializable value
        """
        self.write_many({key: value})

    def write_many(self, values: Dict[str, Any]) -> None:
        """
        Write several slots in a single transaction.

        Either every slot is written or none is.

        Args:
            values: Mapping of slot key to JSON-serializable value
        """
        # Serialize everything first so a bad value aborts before touching the db
        encoded = {key: json.dumps(value) for key, value in values.items()}

        with session_scope() as session:
            for key, raw in encoded.items():
                session.merge(Slot(key=key, value=raw))

        logger.debug(f"Wrote slots: {', '.join(encoded)}")
