"""Result shape shared by the book lookups."""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class LookupResult:
    """
    Outcome of a book lookup.

    ``books`` holds draft records (dicts of Book fields) for pre-filling the
    add form. ``error`` is set when the lookup failed; ``message`` is set when
    it succeeded but found nothing.
    """
    books: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {"books": self.books, "error": self.error, "message": self.message}
