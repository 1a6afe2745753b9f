"""
Book metadata lookups.

Provides free-text search against the Google Books API. The AI-assisted
search lives in ``booq.ai.book_search`` and returns the same result shape.
"""

from .result import LookupResult
from .google_books import GoogleBooksSearch

__all__ = ['LookupResult', 'GoogleBooksSearch']
