"""
Record types for booq.

Books, the user profile, custom shelves and activity entries are plain
dataclasses. They are persisted as JSON dicts with snake_case keys; loading
ignores unknown keys and fills missing optional fields with defaults.
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional


PLACEHOLDER_COVER_URL = "https://picsum.photos/seed/{book_id}/400/600"
DEFAULT_AVATAR_URL = (
    "https://ui-avatars.com/api/?name={name}&background=e2e8f0"
    "&color=10B981&size=128&font-size=0.33&bold=true"
)


class BookStatus(Enum):
    """Reading status of a book."""
    TBR = "To Be Read"
    IN_PROGRESS = "In Progress"
    READ = "Read"
    DNF = "Did Not Finish"

    @property
    def display_name(self) -> str:
        return STATUS_DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Any) -> 'BookStatus':
        """
        Parse a status from its value, enum name or display name.

        Raises:
            ValueError: If the value matches no status
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for status in cls:
            if text == status.value or text.upper().replace("-", "_") == status.name:
                return status
            if text.lower() == status.display_name.lower():
                return status
        valid = ", ".join(s.name for s in cls)
        raise ValueError(f"Unknown status '{value}'. Valid statuses: {valid}")


STATUS_DISPLAY_NAMES = {
    BookStatus.TBR: "Want to Read",
    BookStatus.IN_PROGRESS: "Reading",
    BookStatus.READ: "Done",
    BookStatus.DNF: "DNF",
}


class ActivityType(Enum):
    """Kinds of activity log entries."""
    ADDED_BOOK = "added_book"
    FINISHED_BOOK = "finished_book"
    RATED_BOOK = "rated_book"
    ADDED_NOTE = "added_note"
    STARTED_BOOK = "started_book"
    MARKED_FAVORITE = "marked_favorite"
    UNMARKED_FAVORITE = "unmarked_favorite"
    UPDATED_PROFILE = "updated_profile"


def validate_rating(rating: Optional[float]) -> Optional[float]:
    """
    Validate a star rating.

    Ratings run from 0 to 5 in half-point steps. A rating of 0 means
    "unrated" and is normalized to None.

    Raises:
        ValueError: If the rating is out of range or not a half-point value
    """
    if rating is None:
        return None
    rating = float(rating)
    if rating < 0 or rating > 5:
        raise ValueError("Rating must be between 0 and 5")
    if (rating * 2) != int(rating * 2):
        raise ValueError("Rating must use half-point steps (e.g. 3.5)")
    return rating or None


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"Expected an object, got {type(data).__name__}")
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Book:
    """A book in the collection."""
    id: str
    title: str
    author: str
    status: BookStatus = BookStatus.TBR
    rating: Optional[float] = None
    pages: Optional[int] = None
    current_page: Optional[int] = None
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    notes: Optional[str] = None
    review: Optional[str] = None
    contains_spoilers: bool = False
    description: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    published_date: Optional[str] = None
    isbn: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_favorite: bool = False
    custom_shelf_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.status = BookStatus.parse(self.status)
        self.genres = list(self.genres or [])
        # Shelf membership is a set; keep first-seen order for stable output
        self.custom_shelf_ids = list(dict.fromkeys(self.custom_shelf_ids or []))

    @property
    def progress_percent(self) -> Optional[int]:
        """Reading progress as a whole percentage, if page counts allow."""
        if not self.pages:
            return None
        return round(((self.current_page or 0) / self.pages) * 100)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Book':
        """Create from a dictionary, ignoring unknown keys."""
        return cls(**_known_fields(cls, data))


@dataclass
class UserProfile:
    """The single user profile."""
    username: str = "Voracious Reader"
    bio: str = (
        "Exploring universes one book at a time. Coffee, blankets, and good "
        "stories are my perfect combo."
    )
    profile_image_url: Optional[str] = None
    favorite_book_ids: List[str] = field(default_factory=list)
    pronouns: Optional[str] = None
    birth_year: Optional[int] = None

    def __post_init__(self):
        if self.profile_image_url is None:
            self.profile_image_url = DEFAULT_AVATAR_URL.format(
                name="+".join(self.username.split())
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        return cls(**_known_fields(cls, data))


@dataclass
class CustomShelf:
    """A user-defined shelf that books can be assigned to."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomShelf':
        return cls(**_known_fields(cls, data))


@dataclass(frozen=True)
class ActivityItem:
    """An immutable activity log entry."""
    id: str
    type: ActivityType
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    book_id: Optional[str] = None
    book_title: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActivityItem':
        data = _known_fields(cls, data)
        data["type"] = ActivityType(data["type"])
        return cls(**data)
