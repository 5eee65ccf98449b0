"""HTTP tests for the FastAPI routes."""

from pathlib import Path

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from siteadmin.context import ActorContext
from siteadmin.database import get_db
from siteadmin.dependencies import get_ai_settings_store, get_chat_store, get_current_user
from siteadmin.main import app
from siteadmin.models import AuditLog
from siteadmin.services.ai_settings import AISettingsStore
from siteadmin.services.chat_history import ChatHistoryStore


@pytest.fixture
def client(session_factory, tmp_path: Path):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_chat_store(actor: ActorContext = Depends(get_current_user)):
        return ChatHistoryStore.for_user(tmp_path / "chat", actor.actor_id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_settings_store] = lambda: AISettingsStore(
        tmp_path / "ai" / "settings.json"
    )
    app.dependency_overrides[get_chat_store] = override_chat_store

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client) -> dict:
    response = client.post("/api/auth/login", json={"password": "test-password"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _create(client, headers, **overrides) -> dict:
    payload = {
        "title": "Rooftop Basics",
        "body": "<p>Everything about rooftop solar.</p>",
        "status": "published",
        "tags": "Solar, Savings",
    }
    payload.update(overrides)
    response = client.post("/api/admin/blog/posts", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_wrong_password(self, client):
        response = client.post("/api/auth/login", json={"password": "nope"})
        assert response.status_code == 401

    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.json() == {"authenticated": True, "actor_id": 1}

    def test_logout_revokes_token(self, client, auth_headers):
        assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_admin_routes_require_token(self, client):
        assert client.get("/api/admin/blog/posts").status_code in (401, 403)
        assert client.get("/api/admin/ai/settings").status_code in (401, 403)


class TestAdminBlog:
    def test_create_and_fetch(self, client, auth_headers):
        created = _create(client, auth_headers)

        assert created["slug"] == "rooftop-basics"
        assert created["status"] == "published"
        assert [t["name"] for t in created["tags"]] == ["Savings", "Solar"]

        fetched = client.get(f"/api/admin/blog/posts/{created['id']}", headers=auth_headers)
        assert fetched.json()["body_html"] == "<p>Everything about rooftop solar.</p>"

    def test_missing_title_is_400(self, client, auth_headers):
        response = client.post(
            "/api/admin/blog/posts", json={"title": "", "body": "<p>x</p>"}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_duplicate_slug_is_409(self, client, auth_headers):
        _create(client, auth_headers)
        response = client.post(
            "/api/admin/blog/posts",
            json={"title": "Rooftop basics!", "body": "<p>Again</p>"},
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert "rooftop-basics" in response.json()["detail"]

    def test_unknown_post_is_404(self, client, auth_headers):
        assert client.get("/api/admin/blog/posts/999", headers=auth_headers).status_code == 404
        response = client.post(
            "/api/admin/blog/posts/999/publish", json={"publish": True}, headers=auth_headers
        )
        assert response.status_code == 404
        assert client.post("/api/admin/blog/posts/999/archive", headers=auth_headers).status_code == 404

    def test_list_all_includes_drafts(self, client, auth_headers):
        _create(client, auth_headers)
        _create(client, auth_headers, title="Draft Idea", status="draft")

        response = client.get("/api/admin/blog/posts", headers=auth_headers)

        assert {p["title"] for p in response.json()} == {"Rooftop Basics", "Draft Idea"}

    def test_unpublish_and_archive(self, client, auth_headers):
        created = _create(client, auth_headers)

        response = client.post(
            f"/api/admin/blog/posts/{created['id']}/publish",
            json={"publish": False},
            headers=auth_headers,
        )
        assert response.json()["status"] == "draft"
        assert response.json()["published_at"] is None

        response = client.post(f"/api/admin/blog/posts/{created['id']}/archive", headers=auth_headers)
        assert response.json()["status"] == "archived"

    def test_actions_are_audited_with_actor(self, client, auth_headers, db):
        created = _create(client, auth_headers)
        client.post(f"/api/admin/blog/posts/{created['id']}/archive", headers=auth_headers)

        entries = db.query(AuditLog).order_by(AuditLog.id).all()
        assert [e.action for e in entries] == ["blog.save", "blog.archive"]
        assert {e.actor_id for e in entries} == {1}

    def test_draft_generation_needs_ai_enabled(self, client, auth_headers):
        response = client.post(
            "/api/admin/blog/drafts", json={"prompt": "solar tips"}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_draft_generation_needs_prompt(self, client, auth_headers):
        response = client.post("/api/admin/blog/drafts", json={"prompt": "  "}, headers=auth_headers)
        assert response.status_code == 400


class TestPublicBlog:
    def test_lists_only_published(self, client, auth_headers):
        _create(client, auth_headers)
        _create(client, auth_headers, title="Hidden Draft", status="draft")

        body = client.get("/api/blog/posts").json()

        assert body["total"] == 1
        assert body["has_more"] is False
        assert body["posts"][0]["slug"] == "rooftop-basics"

    def test_pagination_has_more(self, client, auth_headers):
        for title in ["One", "Two", "Three"]:
            _create(client, auth_headers, title=title)

        body = client.get("/api/blog/posts", params={"limit": 2}).json()

        assert body["total"] == 3
        assert len(body["posts"]) == 2
        assert body["has_more"] is True

    def test_search_and_tag_filters(self, client, auth_headers):
        _create(client, auth_headers)
        _create(client, auth_headers, title="Panel Cleaning", tags=["Maintenance"])

        assert client.get("/api/blog/posts", params={"search": "ROOFTOP"}).json()["total"] == 1
        assert client.get("/api/blog/posts", params={"tag": "maintenance"}).json()["total"] == 1

    def test_post_page_with_related(self, client, auth_headers):
        _create(client, auth_headers)
        _create(client, auth_headers, title="Net Metering", tags=["Solar"])

        body = client.get("/api/blog/posts/rooftop-basics").json()

        assert body["post"]["title"] == "Rooftop Basics"
        assert [p["slug"] for p in body["related"]] == ["net-metering"]
        assert set(body["adjacent"]) == {"previous", "next"}

    def test_draft_is_not_public(self, client, auth_headers):
        _create(client, auth_headers, title="Hidden Draft", status="draft")
        assert client.get("/api/blog/posts/hidden-draft").status_code == 404

    def test_tags(self, client, auth_headers):
        _create(client, auth_headers)

        tags = client.get("/api/blog/tags").json()

        assert {t["slug"]: t["post_count"] for t in tags} == {"solar": 1, "savings": 1}


class TestAISettingsRoutes:
    def test_defaults(self, client, auth_headers):
        body = client.get("/api/admin/ai/settings", headers=auth_headers).json()

        assert body["enabled"] is False
        assert body["has_api_key"] is False
        assert body["models"]["text"] == "gemini-2.5-flash"

    def test_update_masks_key(self, client, auth_headers, db):
        response = client.put(
            "/api/admin/ai/settings",
            json={"enabled": True, "api_key": "AIzaSecretValue9999", "temperature": 7},
            headers=auth_headers,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["has_api_key"] is True
        assert body["api_key_masked"].endswith("9999")
        assert "AIzaSecret" not in response.text
        assert body["temperature"] == 2.0
        assert db.query(AuditLog).filter(AuditLog.action == "ai.settings").count() == 1

    def test_connection_test_reports_failure_when_disabled(self, client, auth_headers):
        body = client.post("/api/admin/ai/test", headers=auth_headers).json()
        assert body["status"] == "fail"


class TestChatRoutes:
    def test_history_append_and_clear(self, client, auth_headers):
        assert client.get("/api/admin/ai/chat", headers=auth_headers).json() == []

        response = client.post(
            "/api/admin/ai/chat/messages",
            json={"role": "user", "text": "Remember this"},
            headers=auth_headers,
        )
        assert [m["text"] for m in response.json()] == ["Remember this"]

        assert client.delete("/api/admin/ai/chat", headers=auth_headers).status_code == 200
        assert client.get("/api/admin/ai/chat", headers=auth_headers).json() == []

    def test_chat_turn_requires_ai(self, client, auth_headers):
        response = client.post("/api/admin/ai/chat", json={"text": "Hi"}, headers=auth_headers)

        assert response.status_code == 400
        assert client.get("/api/admin/ai/chat", headers=auth_headers).json() == []

    def test_chat_turn_rejects_empty_text(self, client, auth_headers):
        response = client.post("/api/admin/ai/chat", json={"text": ""}, headers=auth_headers)
        assert response.status_code == 422
