"""
SQLAlchemy models for the booq store.

The store is a key-value table: every named slot (books, profile, activity
log, shelves, section order) is one row holding JSON text.
"""

from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Slot(Base):
    """One named persistent slot."""
    __tablename__ = 'slots'

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)  # JSON document
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Slot(key='{self.key}', updated_at={self.updated_at})>"
