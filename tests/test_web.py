"""Tests for the web API."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from manga_tracker.anilist_client import AniListError
from manga_tracker.auth import AuthManager
from manga_tracker.models import AniListStats, ProcessImageResult
from manga_tracker.stats import StatsService
from manga_tracker.stats_cache import StatsCache
from manga_tracker.store import EntryStore
from manga_tracker.web import app, get_auth, get_image_processor, get_stats_service, get_store

RESULT = ProcessImageResult(
    original_url="https://files.catbox.moe/orig.jpg",
    compressed_url="https://files.catbox.moe/small.jpg",
)


@pytest.fixture
def store():
    return EntryStore("sqlite://")


@pytest.fixture
def anilist():
    client = MagicMock()
    client.get_user_manga_stats.return_value = AniListStats(count=10, chapters_read=500, mean_score=80.0)
    return client


@pytest.fixture
def processor():
    processor = MagicMock()
    processor.process_image.return_value = RESULT
    return processor


@pytest.fixture
def client(store, anilist, processor, tmp_path):
    auth = AuthManager("editor", "pw")
    stats = StatsService(client=anilist, cache=StatsCache(tmp_path / "cache.json"), username="someone")
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_auth] = lambda: auth
    app.dependency_overrides[get_stats_service] = lambda: stats
    app.dependency_overrides[get_image_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(client):
    token = client.post("/api/login", json={"username": "editor", "password": "pw"}).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def create(client, headers, **fields):
    response = client.post("/api/entries", json={"title": "Berserk", **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_dashboard_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Manga Tracker" in response.text


class TestAuth:

    def test_bad_login(self, client):
        response = client.post("/api/login", json={"username": "editor", "password": "nope"})
        assert response.status_code == 401

    def test_mutations_require_login(self, client):
        assert client.post("/api/entries", json={"title": "x"}).status_code == 401
        assert client.delete("/api/entries/abc").status_code == 401
        assert client.post("/api/images/process", json={"image_url": "u", "title": "t"}).status_code == 401

    def test_session_and_logout(self, client, headers):
        assert client.get("/api/session", headers=headers).json() == {"authenticated": True}

        assert client.post("/api/logout", headers=headers).status_code == 200

        assert client.get("/api/session", headers=headers).json() == {"authenticated": False}
        assert client.post("/api/entries", json={"title": "x"}, headers=headers).status_code == 401


class TestEntries:

    def test_crud(self, client, headers):
        entry = create(client, headers, tags="Seinen, Dark Fantasy", rating=9.5)
        assert entry["tags"] == ["seinen", "dark fantasy"]
        assert entry["status"] == "Plan to Read"

        fetched = client.get(f"/api/entries/{entry['id']}").json()
        assert fetched["title"] == "Berserk"

        updated = client.put(
            f"/api/entries/{entry['id']}",
            json={"title": "Berserk", "status": "Reading", "chapters_read": 40},
            headers=headers,
        )
        assert updated.json()["chapters_read"] == 40

        assert client.delete(f"/api/entries/{entry['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/entries/{entry['id']}").status_code == 404

    def test_validation_errors(self, client, headers):
        response = client.post(
            "/api/entries", json={"title": "x", "chapters_read": 12, "total_chapters": 10}, headers=headers,
        )
        assert response.status_code == 422

        response = client.post(
            "/api/entries",
            json={"title": "x", "chapters_read": 12, "total_chapters": 10, "allow_chapter_overflow": True},
            headers=headers,
        )
        assert response.status_code == 201

        assert client.post("/api/entries", json={"title": "  "}, headers=headers).status_code == 422
        assert client.post("/api/entries", json={"title": "x", "rating": 7.3}, headers=headers).status_code == 422

    def test_list_filters_and_counts(self, client, headers):
        create(client, headers, title="Berserk", status="Completed", rating=10)
        create(client, headers, title="Vagabond", status="Completed", rating=9)
        create(client, headers, title="Slam Dunk", status="Reading")

        data = client.get("/api/entries", params={"status": "Completed"}).json()

        assert [e["title"] for e in data["entries"]] == ["Berserk", "Vagabond"]
        assert data["counts"]["Completed"] == 2
        assert data["counts"]["Reading"] == 1
        assert data["total"] == 2

        searched = client.get("/api/entries", params={"search": "slam"}).json()
        assert [e["title"] for e in searched["entries"]] == ["Slam Dunk"]

    def test_increment(self, client, headers):
        entry = create(client, headers, status="Reading", chapters_read=9, total_chapters=10)

        data = client.post(f"/api/entries/{entry['id']}/increment", headers=headers).json()

        assert data["completed"] is True
        assert data["entry"]["status"] == "Completed"
        assert data["entry"]["chapters_read"] == 10

    def test_increment_missing(self, client, headers):
        assert client.post("/api/entries/missing/increment", headers=headers).status_code == 404


class TestStats:

    def test_blended(self, client, headers):
        create(client, headers, chapters_read=20, rating=6)
        create(client, headers, chapters_read=10, rating=8)

        data = client.get("/api/stats").json()

        assert data["total"] == 12
        assert data["chapters_read"] == 530
        assert data["mean_score"] == pytest.approx(7.83, abs=0.01)
        assert data["remote_available"] is True

    def test_remote_down(self, client, anilist):
        anilist.get_user_manga_stats.side_effect = AniListError("down")

        data = client.get("/api/stats").json()

        assert data["total"] == 0
        assert data["remote_available"] is False
        assert data["warning"]

    def test_refresh_bypasses_cache(self, client, anilist):
        client.get("/api/stats")
        client.post("/api/stats/refresh")
        assert anilist.get_user_manga_stats.call_count == 2


class TestImages:

    def test_process_without_entry(self, client, headers, processor):
        response = client.post(
            "/api/images/process", json={"image_url": "https://x/a.jpg", "title": "Berserk"}, headers=headers,
        )

        assert response.json() == RESULT.model_dump()
        processor.process_image.assert_called_once_with("https://x/a.jpg", "Berserk")

    def test_process_attaches_to_entry(self, client, headers):
        entry = create(client, headers)

        client.post(
            "/api/images/process",
            json={"image_url": "https://x/a.jpg", "title": "Berserk", "entry_id": entry["id"]},
            headers=headers,
        )

        stored = client.get(f"/api/entries/{entry['id']}").json()
        assert stored["cover_url"] == RESULT.compressed_url
        assert stored["original_image_url"] == RESULT.original_url
        assert stored["compressed_image_url"] == RESULT.compressed_url

    def test_unknown_entry_fails_before_processing(self, client, headers, processor):
        response = client.post(
            "/api/images/process",
            json={"image_url": "https://x/a.jpg", "title": "Berserk", "entry_id": "missing"},
            headers=headers,
        )

        assert response.status_code == 404
        processor.process_image.assert_not_called()

    def test_failure_is_bad_gateway(self, client, headers, processor):
        processor.process_image.return_value = None

        response = client.post(
            "/api/images/process", json={"image_url": "https://x/a.jpg", "title": "Berserk"}, headers=headers,
        )

        assert response.status_code == 502


def test_parse_tags(client):
    response = client.post("/api/tags/parse", json={"text": "Action\n1.2k\nRomance 340\naction", "existing": ["drama"]})
    assert response.json()["tags"] == ["drama", "action", "romance"]
