"""
Tests for booq record types.
"""

import pytest

from booq.models import (
    Book, BookStatus, UserProfile, CustomShelf, ActivityItem, ActivityType,
    validate_rating,
)


class TestBookStatus:

    @pytest.mark.parametrize("text, expected", [
        ("To Be Read", BookStatus.TBR),
        ("tbr", BookStatus.TBR),
        ("in-progress", BookStatus.IN_PROGRESS),
        ("Reading", BookStatus.IN_PROGRESS),
        ("read", BookStatus.READ),
        ("Done", BookStatus.READ),
        ("DNF", BookStatus.DNF),
        ("Did Not Finish", BookStatus.DNF),
    ])
    def test_parse(self, text, expected):
        assert BookStatus.parse(text) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown status"):
            BookStatus.parse("shelved")

    def test_display_names(self):
        assert BookStatus.TBR.display_name == "Want to Read"
        assert BookStatus.IN_PROGRESS.display_name == "Reading"


class TestValidateRating:

    def test_half_points_allowed(self):
        assert validate_rating(3.5) == 3.5
        assert validate_rating(5) == 5.0

    def test_zero_means_unrated(self):
        assert validate_rating(0) is None
        assert validate_rating(None) is None

    @pytest.mark.parametrize("rating", [-1, 5.5, 3.3])
    def test_invalid(self, rating):
        with pytest.raises(ValueError):
            validate_rating(rating)


class TestBook:

    def test_defaults(self):
        book = Book(id="1", title="Dune", author="Frank Herbert")
        assert book.status is BookStatus.TBR
        assert book.genres == []
        assert book.custom_shelf_ids == []
        assert book.is_favorite is False

    def test_status_string_is_parsed(self):
        book = Book(id="1", title="Dune", author="Frank Herbert", status="Read")
        assert book.status is BookStatus.READ

    def test_shelf_ids_are_deduplicated(self):
        book = Book(id="1", title="T", author="A", custom_shelf_ids=["custom-2", "custom-1", "custom-2"])
        assert book.custom_shelf_ids == ["custom-2", "custom-1"]

    def test_progress_percent(self):
        assert Book(id="1", title="T", author="A", pages=200, current_page=50).progress_percent == 25
        assert Book(id="1", title="T", author="A", pages=200).progress_percent == 0
        assert Book(id="1", title="T", author="A").progress_percent is None

    def test_to_dict_stores_status_value(self):
        data = Book(id="1", title="T", author="A", status=BookStatus.DNF).to_dict()
        assert data["status"] == "Did Not Finish"

    def test_from_dict_ignores_unknown_keys(self):
        book = Book.from_dict({
            "id": "1", "title": "T", "author": "A",
            "publisher": "Ace", "status": "In Progress",
        })
        assert book.status is BookStatus.IN_PROGRESS
        assert not hasattr(book, "publisher")

    def test_from_dict_requires_title(self):
        with pytest.raises(TypeError):
            Book.from_dict({"id": "1", "author": "A"})


class TestUserProfile:

    def test_default_profile(self):
        profile = UserProfile()
        assert profile.username == "Voracious Reader"
        assert profile.favorite_book_ids == []
        assert "name=Voracious+Reader" in profile.profile_image_url

    def test_explicit_image_kept(self):
        profile = UserProfile(username="Ana", profile_image_url="https://example.com/a.png")
        assert profile.profile_image_url == "https://example.com/a.png"


class TestActivityItem:

    def test_from_dict(self):
        item = ActivityItem.from_dict({
            "id": "1", "type": "rated_book", "timestamp": "2024-05-01T10:00:00",
            "book_id": "7", "book_title": "Dune", "details": "4.5", "extra": True,
        })
        assert item.type is ActivityType.RATED_BOOK
        assert item.to_dict()["type"] == "rated_book"

    def test_is_immutable(self):
        item = ActivityItem(id="1", type=ActivityType.ADDED_BOOK)
        with pytest.raises(Exception):
            item.details = "changed"


def test_custom_shelf_from_dict():
    shelf = CustomShelf.from_dict({"id": "custom-1", "name": "Summer"})
    assert shelf.to_dict() == {"id": "custom-1", "name": "Summer"}
