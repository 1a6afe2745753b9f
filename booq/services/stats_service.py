"""
Reading statistics.

Statistics are a pure function of the book collection. Date-bound metrics
(books read, pages read, books in progress) can be limited to the current
calendar year; the other counts are always all-time.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Dict, Any, Iterable, List, Optional

from ..models import Book, BookStatus


class StatsFilter(Enum):
    ALL_TIME = "all-time"
    YEAR_TO_DATE = "ytd"


@dataclass
class ReadingStats:
    """Aggregated reading statistics."""
    filter_type: StatsFilter
    total_books: int = 0
    read_count: int = 0
    pages_read: int = 0
    in_progress_count: int = 0
    tbr_count: int = 0
    dnf_count: int = 0
    average_rating: Optional[float] = None
    status_distribution: Dict[BookStatus, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["filter_type"] = self.filter_type.value
        data["status_distribution"] = {
            status.value: count for status, count in self.status_distribution.items()
        }
        return data


def _year_of(date_str: Optional[str]) -> Optional[int]:
    """Year of an ISO-like date string ("2024", "2024-05-01"), if any."""
    if not date_str or len(date_str) < 4:
        return None
    try:
        return int(date_str[:4])
    except ValueError:
        return None


def compute_reading_stats(
    books: Iterable[Book],
    filter_type: StatsFilter = StatsFilter.ALL_TIME,
    today: Optional[date] = None,
) -> ReadingStats:
    """
    Compute statistics over a collection.

    Args:
        books: The book collection
        filter_type: ALL_TIME, or YEAR_TO_DATE to count only books finished
            (Read) or started (In Progress) this calendar year
        today: Reference date for the current year (defaults to today)

    Returns:
        ReadingStats
    """
    books = list(books)
    filter_type = StatsFilter(filter_type)
    year = (today or date.today()).year

    def with_status(status: BookStatus, date_attr: str) -> List[Book]:
        matching = [b for b in books if b.status == status]
        if filter_type == StatsFilter.YEAR_TO_DATE:
            matching = [b for b in matching if _year_of(getattr(b, date_attr)) == year]
        return matching

    read = with_status(BookStatus.READ, "finish_date")
    in_progress = with_status(BookStatus.IN_PROGRESS, "start_date")

    rated = [b.rating for b in read if b.rating]
    average = round(sum(rated) / len(rated), 1) if rated else None

    distribution = {status: 0 for status in BookStatus}
    for book in books:
        distribution[book.status] += 1

    return ReadingStats(
        filter_type=filter_type,
        total_books=len(books),
        read_count=len(read),
        pages_read=sum(b.pages for b in read if b.pages),
        in_progress_count=len(in_progress),
        tbr_count=distribution[BookStatus.TBR],
        dnf_count=distribution[BookStatus.DNF],
        average_rating=average,
        status_distribution=distribution,
    )
