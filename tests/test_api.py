from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_cache, get_data_context
from app.database import Database, get_database
from app.main import app
from app.mock_data.context import SessionDataContext
from app.mock_data.generator import MockDataGenerator
from app.storage.local_cache import USER_ID_KEY

MEMORY_URL = "sqlite+aiosqlite:///:memory:"
U1 = {"X-User-Id": "u1"}
U2 = {"X-User-Id": "u2"}


@pytest.fixture
def client(cache):
    db = Database(MEMORY_URL)
    context = SessionDataContext(cache, MockDataGenerator(seed=3, platforms=["instagram", "twitter"]))
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_data_context] = lambda: context
    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(db.dispose)
    app.dependency_overrides.clear()


def _add_twitter(client, headers=U1):
    return client.post(
        "/api/social-profiles",
        json={"platform": "twitter", "username": "x", "profileUrl": "https://twitter.com/x"},
        headers=headers,
    )


# ── System ──


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_db_status(client):
    data = client.get("/api/db-status").json()
    assert data["isConnected"] is True
    assert data["status"]["backend"] == "sqlite"


def test_requests_without_identity_are_unauthorized(client):
    assert client.get("/api/social-profiles").status_code == 401


def test_session_cookie_identifies_user(client):
    _add_twitter(client)
    client.cookies.set("pulseboard_session", "u1")
    resp = client.get("/api/social-profiles")
    client.cookies.clear()
    assert resp.status_code == 200
    assert len(resp.json()) == 1


# ── Social profiles ──


def test_profile_lifecycle(client):
    created = _add_twitter(client)
    assert created.status_code == 201
    body = created.json()
    assert body["followers"] == 0
    assert body["connected"] is True
    assert body["userId"] == "u1"

    assert _add_twitter(client).status_code == 409

    profile_id = body["id"]
    updated = client.put(f"/api/social-profiles/{profile_id}", json={"followers": 250}, headers=U1)
    assert updated.status_code == 200
    assert updated.json()["followers"] == 250

    # another user cannot see or touch it
    assert client.get("/api/social-profiles", headers=U2).json() == []
    assert client.put(f"/api/social-profiles/{profile_id}", json={"followers": 1}, headers=U2).status_code == 404

    deleted = client.delete(f"/api/social-profiles/{profile_id}", headers=U1)
    assert deleted.json() == {"success": True, "message": "Profile deleted successfully"}
    assert client.get("/api/social-profiles", headers=U1).json() == []


def test_profile_with_unknown_platform_is_rejected(client):
    resp = client.post(
        "/api/social-profiles",
        json={"platform": "myspace", "username": "x", "profileUrl": "https://myspace.com/x"},
        headers=U1,
    )
    assert resp.status_code == 422


def test_malformed_id_is_rejected(client):
    assert client.delete("/api/social-profiles/not-an-id", headers=U1).status_code == 422


# ── Content suggestions ──


def test_suggestion_status_flow(client):
    created = client.post(
        "/api/content/suggestions",
        json={"title": "Poll", "content": "Ask a question", "platform": "twitter", "suggestedTags": ["b", "a"]},
        headers=U1,
    ).json()
    assert created["status"] == "pending"
    assert created["suggestedTags"] == ["a", "b"]

    sid = created["id"]
    for status in ("approved", "published"):
        resp = client.patch(f"/api/content/suggestions/{sid}/status", json={"status": status}, headers=U1)
        assert resp.status_code == 200
    assert resp.json()["publishedAt"] is not None

    back = client.patch(f"/api/content/suggestions/{sid}/status", json={"status": "pending"}, headers=U1)
    assert back.status_code == 422

    listed = client.get("/api/content/suggestions", params={"status": "published"}, headers=U1).json()
    assert [s["id"] for s in listed] == [sid]


def test_suggestion_score_above_100_is_rejected(client):
    resp = client.post(
        "/api/content/suggestions",
        json={"title": "t", "content": "c", "aiGeneratedScore": 150},
        headers=U1,
    )
    assert resp.status_code == 422


def test_status_update_on_missing_suggestion(client):
    resp = client.patch(f"/api/content/suggestions/{'e' * 32}/status", json={"status": "approved"}, headers=U1)
    assert resp.status_code == 404


def test_generate_suggestion(client):
    resp = client.post(
        "/api/content/suggestions/generate",
        json={"platform": "instagram", "topic": "Launch day", "tone": "casual"},
        headers=U1,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Launch day for instagram"
    assert body["aiGenerated"] is True
    assert len(client.get("/api/content/suggestions", headers=U1).json()) == 1


# ── Metrics ──


def test_metrics_time_range_and_follower_growth(client):
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    stats = [
        {"date": (today - timedelta(days=d)).isoformat(), "followers": 1000 - d}
        for d in (40, 20, 5, 1)
    ]
    resp = client.post(
        "/api/metrics",
        json={"platform": "twitter", "followers": 999, "engagementRate": 0.04, "dailyStats": stats},
        headers=U1,
    )
    assert resp.status_code == 200
    assert len(resp.json()["dailyStats"]) == 4

    week = client.get("/api/metrics", params={"timeRange": "7d"}, headers=U1).json()
    assert [s["followers"] for s in week[0]["dailyStats"]] == [995, 999]

    growth = client.get("/api/metrics/follower-growth", params={"days": 30}, headers=U1).json()
    assert [p["followers"] for p in growth] == [980, 995, 999]

    assert client.get("/api/metrics", params={"timeRange": "2w"}, headers=U1).status_code == 422
    assert client.get("/api/metrics/follower-growth", params={"days": 14}, headers=U1).status_code == 422


# ── Auth ──


def test_register_and_me(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "New@Example.com", "password": "long enough", "name": "New"},
    )
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["email"] == "new@example.com"
    assert "password" not in user

    again = client.post("/api/auth/register", json={"email": "new@example.com", "password": "long enough"})
    assert again.status_code == 409

    me = client.get("/api/auth/me", headers={"X-User-Id": user["id"]})
    assert me.json()["name"] == "New"


def test_register_requires_eight_character_password(client):
    resp = client.post("/api/auth/register", json={"email": "a@example.com", "password": "short"})
    assert resp.status_code == 422


# ── Dev tooling ──


def test_import_mock_data(client, cache):
    assert client.get("/api/dev/import-mock-data").json() == {"imported": False}

    resp = client.post("/api/dev/import-mock-data")
    assert resp.status_code == 200
    body = resp.json()
    assert body["progress"] == [25, 50, 75, 100]
    assert body["imported"]["profiles"] == 2

    user_id = cache.get_json(USER_ID_KEY)
    profiles = client.get("/api/social-profiles", headers={"X-User-Id": user_id}).json()
    assert sorted(p["platform"] for p in profiles) == ["instagram", "twitter"]
    assert client.get("/api/dev/import-mock-data").json() == {"imported": True}
