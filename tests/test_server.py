"""
Tests for the REST API.
"""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from booq.exceptions import INVALID_KEY_MESSAGE, NOT_CONFIGURED_MESSAGE, ProviderError, InvalidCredentialError
from booq.lookup import GoogleBooksSearch
from booq.models import BookStatus
from booq import server as server_module
from booq.server import app, set_tracker
from booq.tracker import BookTracker


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def tracker():
    """Create a temporary library for testing."""
    temp_dir = tempfile.mkdtemp()
    tracker = BookTracker.open(Path(temp_dir))

    yield tracker

    tracker.close()
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def client(tracker):
    """Test client without an AI provider."""
    set_tracker(tracker)
    return TestClient(app)


@pytest.fixture
def dune(tracker):
    return tracker.books.add({"title": "Dune", "author": "Frank Herbert", "pages": 400})


def ai_client(tracker, provider):
    set_tracker(tracker, provider=provider)
    return TestClient(app)


# ============================================================================
# Books
# ============================================================================

class TestBooks:

    def test_create_and_get(self, client):
        response = client.post("/api/books", json={
            "title": "Piranesi", "author": "Susanna Clarke", "pages": 272, "is_favorite": True,
        })
        assert response.status_code == 201
        book = response.json()
        assert book["status"] == BookStatus.TBR.value
        assert book["progress_percent"] == 0
        assert book["cover_image_url"].startswith("https://picsum.photos/seed/")

        response = client.get(f"/api/books/{book['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Piranesi"

        profile = client.get("/api/profile").json()
        assert profile["favorite_book_ids"] == [book["id"]]

    def test_create_requires_title(self, client):
        response = client.post("/api/books", json={"title": "  ", "author": "Someone"})
        assert response.status_code == 422

    def test_get_missing(self, client):
        response = client.get("/api/books/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Book not found: nope"

    def test_list_filters(self, client, tracker, dune):
        tracker.books.add({"title": "Kindred", "author": "Octavia E. Butler", "status": BookStatus.READ})

        assert len(client.get("/api/books").json()) == 2
        read = client.get("/api/books", params={"status": "read"}).json()
        assert [b["title"] for b in read] == ["Kindred"]
        assert client.get("/api/books", params={"favorites": True}).json() == []

    def test_list_bad_status(self, client):
        assert client.get("/api/books", params={"status": "someday"}).status_code == 422

    def test_patch(self, client, dune):
        response = client.patch(f"/api/books/{dune.id}", json={
            "notes": "Spice must flow", "status": "In Progress", "title": None,
        })
        assert response.status_code == 200
        book = response.json()
        assert book["notes"] == "Spice must flow"
        assert book["status"] == "In Progress"
        assert book["title"] == "Dune"

    def test_patch_clears_optional_field(self, client, tracker):
        book = tracker.books.add({"title": "Dune", "author": "Frank Herbert", "isbn": "123"})
        response = client.patch(f"/api/books/{book.id}", json={"isbn": None})
        assert response.json()["isbn"] is None

    def test_delete(self, client, dune):
        assert client.delete(f"/api/books/{dune.id}").status_code == 200
        assert client.delete(f"/api/books/{dune.id}").status_code == 404

    def test_favorite_toggle(self, client, dune):
        assert client.post(f"/api/books/{dune.id}/favorite").json()["is_favorite"] is True
        assert client.get("/api/profile").json()["favorite_book_ids"] == [dune.id]

        assert client.post(f"/api/books/{dune.id}/favorite").json()["is_favorite"] is False
        assert client.get("/api/profile").json()["favorite_book_ids"] == []

    def test_favorite_missing(self, client):
        assert client.post("/api/books/nope/favorite").status_code == 404

    def test_status_progress_rating(self, client, dune):
        book = client.put(f"/api/books/{dune.id}/status", json={"status": "Read"}).json()
        assert book["status"] == "Read"
        assert book["finish_date"]

        book = client.put(f"/api/books/{dune.id}/progress", json={"current_page": 500}).json()
        assert book["current_page"] == 400
        assert book["progress_percent"] == 100

        book = client.put(f"/api/books/{dune.id}/rating", json={"rating": 4.5}).json()
        assert book["rating"] == 4.5

        response = client.put(f"/api/books/{dune.id}/rating", json={"rating": 4.3})
        assert response.status_code == 422


# ============================================================================
# Shelves
# ============================================================================

class TestShelves:

    def test_shelf_lifecycle(self, client, tracker, dune):
        shelf = client.post("/api/shelves", json={"name": "  Desert  "}).json()
        assert shelf["name"] == "Desert"

        client.patch(f"/api/books/{dune.id}", json={"custom_shelf_ids": [shelf["id"]]})
        shelves = client.get("/api/shelves").json()
        assert shelves == [{"id": shelf["id"], "name": "Desert", "book_count": 1}]

        books = client.get(f"/api/shelves/{shelf['id']}/books").json()
        assert [b["title"] for b in books] == ["Dune"]

        renamed = client.patch(f"/api/shelves/{shelf['id']}", json={"name": "Sand"}).json()
        assert renamed["name"] == "Sand"
        assert renamed["book_count"] == 1

        assert client.delete(f"/api/shelves/{shelf['id']}").status_code == 200
        assert client.get(f"/api/books/{dune.id}").json()["custom_shelf_ids"] == []

    def test_blank_names_rejected(self, client):
        assert client.post("/api/shelves", json={"name": " "}).status_code == 422

        shelf = client.post("/api/shelves", json={"name": "Keep"}).json()
        assert client.patch(f"/api/shelves/{shelf['id']}", json={"name": ""}).status_code == 422

    def test_missing_shelf(self, client):
        assert client.patch("/api/shelves/nope", json={"name": "X"}).status_code == 404
        assert client.delete("/api/shelves/nope").status_code == 404
        assert client.get("/api/shelves/nope/books").status_code == 404


# ============================================================================
# Layout, stats, profile, activity
# ============================================================================

class TestDashboard:

    def test_layout(self, client):
        assert client.get("/api/layout").json() == {"order": ["reading-status", "my-library"]}

        response = client.post("/api/layout/reorder", json={"dragged": "my-library", "target": "reading-status"})
        assert response.json() == {"order": ["my-library", "reading-status"]}
        assert client.get("/api/layout").json()["order"] == ["my-library", "reading-status"]

    def test_layout_unknown_section(self, client):
        response = client.post("/api/layout/reorder", json={"dragged": "sidebar", "target": "my-library"})
        assert response.json() == {"order": ["reading-status", "my-library"]}

    def test_stats(self, client, tracker):
        tracker.books.add({
            "title": "Kindred", "author": "Octavia E. Butler", "status": BookStatus.READ,
            "pages": 264, "rating": 5,
        })
        stats = client.get("/api/stats").json()
        assert stats["filter_type"] == "all-time"
        assert stats["read_count"] == 1
        assert stats["pages_read"] == 264
        assert stats["status_distribution"]["Read"] == 1

        assert client.get("/api/stats", params={"filter": "ytd"}).json()["filter_type"] == "ytd"
        assert client.get("/api/stats", params={"filter": "decade"}).status_code == 422

    def test_profile(self, client):
        response = client.patch("/api/profile", json={"username": "Sam", "pronouns": "they/them"})
        assert response.status_code == 200
        assert response.json()["username"] == "Sam"
        assert client.get("/api/profile").json()["pronouns"] == "they/them"

    def test_profile_blank_username(self, client):
        assert client.patch("/api/profile", json={"username": " "}).status_code == 422

    def test_activity(self, client, dune):
        client.put(f"/api/books/{dune.id}/status", json={"status": "In Progress"})
        items = client.get("/api/activity").json()
        assert [i["type"] for i in items] == ["started_book", "added_book"]
        assert len(client.get("/api/activity", params={"limit": 1}).json()) == 1


# ============================================================================
# Lookups and chat
# ============================================================================

class TestLookups:

    def test_capabilities_without_provider(self, client):
        assert client.get("/api/capabilities").json() == {
            "metadata_search": True, "ai_search": False, "chat": False,
        }

    def test_capabilities_with_provider(self, tracker, scripted_provider):
        client = ai_client(tracker, scripted_provider())
        assert client.get("/api/capabilities").json()["chat"] is True

    def test_google_lookup(self, client):
        volumes = {"items": [{"volumeInfo": {"title": "Kindred", "authors": ["Octavia E. Butler"]}}]}
        with patch.object(GoogleBooksSearch, "_fetch", AsyncMock(return_value=volumes)):
            result = client.get("/api/lookup/google", params={"q": "kindred"}).json()
        assert result["error"] is None
        assert result["books"][0]["author"] == "Octavia E. Butler"

    def test_google_lookup_blank(self, client):
        result = client.get("/api/lookup/google", params={"q": " "}).json()
        assert result["error"] == "Please enter a search term."

    def test_ai_lookup_disabled(self, client):
        response = client.get("/api/lookup/ai", params={"q": "dune"})
        assert response.status_code == 503
        assert response.json()["detail"] == NOT_CONFIGURED_MESSAGE

    def test_ai_lookup(self, tracker, scripted_provider):
        reply = json.dumps([{"title": "Dune", "author": "Frank Herbert"}])
        client = ai_client(tracker, scripted_provider(reply=reply))
        result = client.get("/api/lookup/ai", params={"q": "dune"}).json()
        assert result["books"][0]["title"] == "Dune"

    def test_ai_lookup_nothing_found(self, tracker, scripted_provider):
        client = ai_client(tracker, scripted_provider(reply="[]"))
        result = client.get("/api/lookup/ai", params={"q": "zzz"}).json()
        assert result["books"] == []
        assert result["message"]

    def test_ai_lookup_invalid_key(self, tracker, scripted_provider):
        client = ai_client(tracker, scripted_provider(error=InvalidCredentialError("401")))
        response = client.get("/api/lookup/ai", params={"q": "dune"})
        assert response.status_code == 502
        assert response.json()["detail"] == INVALID_KEY_MESSAGE

    def test_spark(self, tracker, dune, scripted_provider):
        client = ai_client(tracker, scripted_provider(reply="Why the desert?"))
        assert client.get(f"/api/books/{dune.id}/spark").json() == {"book_id": dune.id, "spark": "Why the desert?"}

    def test_spark_disabled(self, client, dune):
        assert client.get(f"/api/books/{dune.id}/spark").status_code == 503


class TestChat:

    def test_chat_disabled(self, client):
        assert client.post("/api/chat", json={"message": "Hi"}).status_code == 503

    def test_chat_streams_and_remembers(self, tracker, scripted_provider):
        provider = scripted_provider(chunks=["Try ", "**Kindred**."])
        client = ai_client(tracker, provider)

        response = client.post("/api/chat", json={"message": "Something moving?"})
        assert response.status_code == 200
        assert response.text == "Try **Kindred**."

        client.post("/api/chat", json={"message": "Another?"})
        history = provider.chat_calls[1]["messages"]
        assert [m["role"] for m in history] == ["user", "assistant", "user"]

    def test_chat_error_mid_stream(self, tracker, scripted_provider):
        provider = scripted_provider(chunks=["Try "], error=ProviderError("connection reset"))
        client = ai_client(tracker, provider)

        response = client.post("/api/chat", json={"message": "Hi"})
        assert response.text == "Try \n\nconnection reset"


# ============================================================================
# Shutdown
# ============================================================================

class TestShutdown:

    def test_closes_provider_and_library(self, tracker, scripted_provider):
        provider = scripted_provider()
        provider._client = httpx.AsyncClient()
        set_tracker(tracker, provider=provider)

        with TestClient(app) as client:
            assert client.get("/api/books").status_code == 200

        assert provider._client is None
        assert server_module._tracker is None

    def test_without_provider(self, tracker):
        set_tracker(tracker)
        with patch.object(tracker, "close", wraps=tracker.close) as close:
            with TestClient(app):
                pass
        close.assert_called_once()
