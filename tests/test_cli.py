"""
Tests for the booq command line interface.
"""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from booq import config as config_module
from booq.ai import llm_providers
from booq.cli import app
from booq.exceptions import InvalidCredentialError, ProviderError
from booq.lookup import GoogleBooksSearch
from booq.models import BookStatus
from booq.tracker import BookTracker


runner = CliRunner()


@pytest.fixture
def temp_dir():
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir, monkeypatch):
    """Keep the user's real configuration and API keys out of the tests."""
    for var in ("GEMINI_API_KEY", "API_KEY", "GOOGLE_BOOKS_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    path = temp_dir / "config" / "config.json"
    with patch.object(config_module, "get_config_path", return_value=path):
        yield path


@pytest.fixture
def library(temp_dir):
    """Library holding two books; returns (path, {title: id})."""
    path = temp_dir / "library"
    tracker = BookTracker.open(path)
    dune = tracker.books.add({"title": "Dune", "author": "Frank Herbert", "pages": 400})
    piranesi = tracker.books.add({
        "title": "Piranesi", "author": "Susanna Clarke", "status": BookStatus.READ, "rating": 4.5,
    })
    tracker.close()
    return path, {"Dune": dune.id, "Piranesi": piranesi.id}


def reopen(path):
    return BookTracker.open(path)


def with_provider(provider):
    return patch.object(llm_providers, "create_provider", return_value=provider)


class TestCollectionCommands:

    def test_init(self, temp_dir):
        path = temp_dir / "new-library"
        result = runner.invoke(app, ["init", str(path)])
        assert result.exit_code == 0
        assert (path / "booq.db").exists()

    def test_add(self, library):
        path, _ = library
        result = runner.invoke(app, [
            "add", str(path), "--title", "The Hobbit", "--author", "J.R.R. Tolkien",
            "--status", "in-progress", "--pages", "310", "--genre", "Fantasy", "--favorite",
        ])
        assert result.exit_code == 0
        assert "Added 'The Hobbit'" in result.stdout

        with reopen(path) as tracker:
            hobbit = next(b for b in tracker.books.list() if b.title == "The Hobbit")
            assert hobbit.status == BookStatus.IN_PROGRESS
            assert hobbit.genres == ["Fantasy"]
            assert tracker.profile.get().favorite_book_ids == [hobbit.id]

    def test_add_bad_status(self, library):
        path, _ = library
        result = runner.invoke(app, ["add", str(path), "-t", "X", "-a", "Y", "-s", "someday"])
        assert result.exit_code == 1
        assert "Invalid input" in result.stdout

    def test_missing_library(self, temp_dir):
        result = runner.invoke(app, ["list", str(temp_dir / "nowhere")])
        assert result.exit_code == 1
        assert "Library not found" in result.stdout

    def test_list(self, library):
        path, _ = library
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "Dune" in result.stdout
        assert "Piranesi" in result.stdout

    def test_list_page_size_from_config(self, library):
        path, _ = library
        runner.invoke(app, ["config", "--page-size", "1"])

        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "Showing 1 of 2 books" in result.stdout

        result = runner.invoke(app, ["list", str(path), "--limit", "5"])
        assert "Showing 2 of 2 books" in result.stdout

    def test_list_by_status(self, library):
        path, _ = library
        result = runner.invoke(app, ["list", str(path), "--status", "read"])
        assert result.exit_code == 0
        assert "Piranesi" in result.stdout
        assert "Dune" not in result.stdout

    def test_list_favorites_empty(self, library):
        path, _ = library
        result = runner.invoke(app, ["list", str(path), "--favorites"])
        assert result.exit_code == 0
        assert "No books found" in result.stdout

    def test_show(self, library):
        path, ids = library
        result = runner.invoke(app, ["show", ids["Dune"], str(path)])
        assert result.exit_code == 0
        assert "Frank Herbert" in result.stdout

    def test_show_unknown_book(self, library):
        path, _ = library
        result = runner.invoke(app, ["show", "nope", str(path)])
        assert result.exit_code == 1
        assert "Book not found" in result.stdout


class TestReadingCommands:

    def test_status(self, library):
        path, ids = library
        result = runner.invoke(app, ["status", ids["Dune"], str(path), "--status", "reading"])
        assert result.exit_code == 0

        with reopen(path) as tracker:
            book = tracker.books.get(ids["Dune"])
            assert book.status == BookStatus.IN_PROGRESS
            assert book.start_date

    def test_progress(self, library):
        path, ids = library
        result = runner.invoke(app, ["progress", ids["Dune"], str(path), "--page", "100"])
        assert result.exit_code == 0
        assert "25%" in result.stdout

    def test_progress_without_pages(self, library):
        path, ids = library
        result = runner.invoke(app, ["progress", ids["Piranesi"], str(path), "--page", "10"])
        assert result.exit_code == 1

    def test_rate(self, library):
        path, ids = library
        result = runner.invoke(app, ["rate", ids["Dune"], str(path), "--rating", "3.5"])
        assert result.exit_code == 0
        with reopen(path) as tracker:
            assert tracker.books.get(ids["Dune"]).rating == 3.5

    def test_rate_invalid(self, library):
        path, ids = library
        result = runner.invoke(app, ["rate", ids["Dune"], str(path), "--rating", "7"])
        assert result.exit_code == 1

    def test_favorite_toggles(self, library):
        path, ids = library
        first = runner.invoke(app, ["favorite", ids["Dune"], str(path)])
        assert "Added to favorites" in first.stdout
        second = runner.invoke(app, ["favorite", ids["Dune"], str(path)])
        assert "Removed from favorites" in second.stdout

        with reopen(path) as tracker:
            assert tracker.profile.get().favorite_book_ids == []

    def test_favorite_unknown(self, library):
        path, _ = library
        result = runner.invoke(app, ["favorite", "nope", str(path)])
        assert result.exit_code == 1

    def test_delete(self, library):
        path, ids = library
        result = runner.invoke(app, ["delete", ids["Dune"], str(path), "--yes"])
        assert result.exit_code == 0
        with reopen(path) as tracker:
            assert tracker.books.get(ids["Dune"]) is None


class TestShelfCommands:

    def test_add_and_list(self, library):
        path, _ = library
        result = runner.invoke(app, ["shelf", "add", str(path), "Beach reads"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["shelf", "list", str(path)])
        assert result.exit_code == 0
        assert "Beach reads" in result.stdout

    def test_add_blank_name(self, library):
        path, _ = library
        result = runner.invoke(app, ["shelf", "add", str(path), "   "])
        assert result.exit_code == 1
        assert "cannot be empty" in result.stdout

    def test_rename_and_delete(self, library):
        path, ids = library
        with reopen(path) as tracker:
            shelf = tracker.shelves.add_shelf("Summer")
            book = tracker.books.get(ids["Dune"])
            book.custom_shelf_ids = [shelf.id]
            tracker.books.update(book)

        result = runner.invoke(app, ["shelf", "rename", shelf.id, str(path), "Winter"])
        assert result.exit_code == 0
        assert "Winter" in result.stdout

        result = runner.invoke(app, ["shelf", "delete", shelf.id, str(path)])
        assert result.exit_code == 0

        with reopen(path) as tracker:
            assert tracker.shelves.list() == []
            assert tracker.books.get(ids["Dune"]).custom_shelf_ids == []

    def test_rename_unknown(self, library):
        path, _ = library
        result = runner.invoke(app, ["shelf", "rename", "nope", str(path), "Winter"])
        assert result.exit_code == 1


class TestLayoutCommands:

    def test_show(self, library):
        path, _ = library
        result = runner.invoke(app, ["layout", "show", str(path)])
        assert result.exit_code == 0
        assert "1. reading-status" in result.stdout
        assert "2. my-library" in result.stdout

    def test_move(self, library):
        path, _ = library
        result = runner.invoke(app, ["layout", "move", "my-library", str(path), "--to", "reading-status"])
        assert result.exit_code == 0
        with reopen(path) as tracker:
            assert tracker.layout.get_order() == ["my-library", "reading-status"]


class TestStatsProfileActivity:

    def test_stats(self, library):
        path, _ = library
        result = runner.invoke(app, ["stats", str(path)])
        assert result.exit_code == 0
        assert "Reading Statistics" in result.stdout
        assert "Books Read" in result.stdout

    def test_stats_ytd(self, library):
        path, _ = library
        result = runner.invoke(app, ["stats", str(path), "--ytd"])
        assert result.exit_code == 0
        assert "this year" in result.stdout

    def test_profile_set_and_show(self, library):
        path, ids = library
        runner.invoke(app, ["favorite", ids["Piranesi"], str(path)])
        result = runner.invoke(app, ["profile", "set", str(path), "--username", "Sam", "--pronouns", "they/them"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["profile", "show", str(path)])
        assert result.exit_code == 0
        assert "Sam" in result.stdout
        assert "they/them" in result.stdout
        assert "Piranesi" in result.stdout

    def test_profile_set_nothing(self, library):
        path, _ = library
        result = runner.invoke(app, ["profile", "set", str(path)])
        assert result.exit_code == 0
        assert "Nothing to change" in result.stdout

    def test_activity(self, library):
        path, _ = library
        result = runner.invoke(app, ["activity", str(path)])
        assert result.exit_code == 0
        assert "added book" in result.stdout


class TestLookupCommands:

    VOLUMES = {"totalItems": 1, "items": [{"volumeInfo": {"title": "Kindred", "authors": ["Octavia E. Butler"]}}]}

    def test_search(self):
        with patch.object(GoogleBooksSearch, "_fetch", AsyncMock(return_value=self.VOLUMES)):
            result = runner.invoke(app, ["search", "kindred"])
        assert result.exit_code == 0
        assert "Kindred" in result.stdout

    def test_search_and_add(self, library):
        path, _ = library
        with patch.object(GoogleBooksSearch, "_fetch", AsyncMock(return_value=self.VOLUMES)):
            result = runner.invoke(app, ["search", "kindred", str(path), "--add", "1"])
        assert result.exit_code == 0
        with reopen(path) as tracker:
            assert any(b.title == "Kindred" for b in tracker.books.list())

    def test_search_add_out_of_range(self, library):
        path, _ = library
        with patch.object(GoogleBooksSearch, "_fetch", AsyncMock(return_value=self.VOLUMES)):
            result = runner.invoke(app, ["search", "kindred", str(path), "--add", "5"])
        assert result.exit_code == 1
        assert "No result #5" in result.stdout

    def test_search_no_results(self):
        with patch.object(GoogleBooksSearch, "_fetch", AsyncMock(return_value={"totalItems": 0})):
            result = runner.invoke(app, ["search", "zzzz"])
        assert result.exit_code == 0
        assert "No books found" in result.stdout

    def test_ai_search(self, scripted_provider):
        reply = json.dumps([{"title": "Dune", "author": "Frank Herbert", "description": "Spice."}])
        with with_provider(scripted_provider(reply=reply)):
            result = runner.invoke(app, ["ai-search", "dune"])
        assert result.exit_code == 0
        assert "Spice." in result.stdout

    def test_ai_search_not_configured(self):
        result = runner.invoke(app, ["ai-search", "dune"])
        assert result.exit_code == 1
        assert "not configured" in result.stdout

    def test_ai_search_invalid_key(self, scripted_provider):
        with with_provider(scripted_provider(error=InvalidCredentialError("401"))):
            result = runner.invoke(app, ["ai-search", "dune"])
        assert result.exit_code == 1
        assert "rejected" in result.stdout

    def test_spark(self, library, scripted_provider):
        path, ids = library
        with with_provider(scripted_provider(reply="Is the spice worth it?")):
            result = runner.invoke(app, ["spark", ids["Dune"], str(path)])
        assert result.exit_code == 0
        assert "Is the spice worth it?" in result.stdout

    def test_spark_not_configured(self, library):
        path, ids = library
        result = runner.invoke(app, ["spark", ids["Dune"], str(path)])
        assert result.exit_code == 1
        assert "not configured" in result.stdout


class TestChatCommand:

    def test_one_shot(self, scripted_provider):
        provider = scripted_provider(chunks=["Try", " **Kindred**."])
        with with_provider(provider):
            result = runner.invoke(app, ["chat", "-m", "Something moving?"])
        assert result.exit_code == 0
        assert "**Kindred**." in result.stdout
        assert provider.chat_calls[0]["messages"] == [{"role": "user", "content": "Something moving?"}]

    def test_one_shot_error(self, scripted_provider):
        with with_provider(scripted_provider(error=ProviderError("stream broke"))):
            result = runner.invoke(app, ["chat", "-m", "Hello"])
        assert result.exit_code == 1
        assert "stream broke" in result.stdout

    def test_not_configured(self):
        result = runner.invoke(app, ["chat"])
        assert result.exit_code == 1
        assert "not configured" in result.stdout

    def test_interactive(self, scripted_provider):
        provider = scripted_provider(chunks=["Read Piranesi."])
        with with_provider(provider):
            result = runner.invoke(app, ["chat"], input="I like mazes\n\nexit\n")
        assert result.exit_code == 0
        assert "Read Piranesi." in result.stdout
        assert len(provider.chat_calls) == 1


class TestConfigCommand:

    def test_show_defaults(self, isolated_config):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "gemini-2.5-flash" in result.stdout
        assert "not set" in result.stdout

    def test_set_values(self, isolated_config):
        result = runner.invoke(app, ["config", "--llm-api-key", "abcd1234efgh", "--server-port", "9000"])
        assert result.exit_code == 0

        saved = json.loads(isolated_config.read_text())
        assert saved["llm"]["api_key"] == "abcd1234efgh"
        assert saved["server"]["port"] == 9000

        result = runner.invoke(app, ["config", "--show"])
        assert "abcd...efgh" in result.stdout

    def test_verbose_from_config(self, isolated_config):
        runner.invoke(app, ["config", "--cli-verbose"])
        assert json.loads(isolated_config.read_text())["cli"]["verbose"] is True

        result = runner.invoke(app, ["config", "--show"])
        assert "Verbose mode enabled" in result.stdout

    def test_init(self, isolated_config):
        result = runner.invoke(app, ["config", "--init"])
        assert result.exit_code == 0
        assert isolated_config.exists()


def test_serve_without_library():
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 1
    assert "No library path specified" in result.stdout
