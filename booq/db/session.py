"""
SQLite engine for a booq library.

A single engine is open per process; ``init_db`` points it at a library
directory and ``session_scope`` hands out transactional sessions.
"""

from pathlib import Path
from typing import Iterator, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine

from .models import Base

DB_FILENAME = 'booq.db'

_SessionFactory: Optional[sessionmaker] = None
_engine: Optional[Engine] = None


def init_db(library_path: Path, echo: bool = False) -> Engine:
    """
    Open (creating if needed) ``booq.db`` inside the library directory.

    Args:
        library_path: Library directory; created when missing
        echo: Log every SQL statement

    Returns:
        The process-wide engine
    """
    global _engine, _SessionFactory

    library_path = Path(library_path)
    library_path.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(f'sqlite:///{library_path / DB_FILENAME}', echo=echo)
    Base.metadata.create_all(_engine)
    _SessionFactory = sessionmaker(bind=_engine)
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session that commits on success and rolls back on any error.

    Raises:
        RuntimeError: If no library is open
    """
    if _SessionFactory is None:
        raise RuntimeError("No library is open. Call init_db() first.")

    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_db():
    """Dispose of the engine; safe to call when nothing is open."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
