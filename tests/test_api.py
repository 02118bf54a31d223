import asyncio

import pytest
from fastapi.testclient import TestClient

from streamsite.main import create_app
from streamsite.schemas import UserCreate
from streamsite.storage import MemStorage, StorageError

ANNOUNCEMENT = {"title": "A", "content": "B", "type": "NEW", "published": True}
SCHEDULE_ITEM = {
    "title": "Late Show",
    "description": "Chill",
    "dayOfWeek": 5,
    "startTime": "22:00",
    "endTime": "23:30",
    "timeZone": "EST",
}
VIDEO = {
    "title": "Clip",
    "thumbnailUrl": "https://img.example/1.jpg",
    "videoUrl": "https://video.example/1",
    "duration": "0:45",
    "type": "Clips",
}
SOCIAL_LINK = {"platform": "Kick", "displayName": "Rennsz", "url": "https://kick.com/rennsz"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# --- Auth ---

def test_login(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "Rennsz5842"})
    assert response.status_code == 200
    assert response.json() == {"token": "admin", "isAdmin": True}


def test_login_wrong_password(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}


def test_login_requires_both_fields(client):
    response = client.post("/api/auth/login", json={"username": "admin"})
    assert response.status_code == 400
    assert response.json()["errors"]


@pytest.mark.parametrize("method,path,body", [
    ("post", "/api/announcements", ANNOUNCEMENT),
    ("put", "/api/announcements/1", {"title": "x"}),
    ("delete", "/api/announcements/1", None),
    ("post", "/api/schedule", SCHEDULE_ITEM),
    ("delete", "/api/schedule/1", None),
    ("post", "/api/videos", VIDEO),
    ("put", "/api/videos/1", {"views": 1}),
    ("post", "/api/social-links", SOCIAL_LINK),
    ("delete", "/api/social-links/1", None),
    ("put", "/api/about", {"content": "hacked"}),
    ("post", "/api/settings", {"key": "currentChannel", "value": "x"}),
    ("put", "/api/settings/channel", {"channel": "x"}),
])
def test_mutations_require_auth(client, method, path, body):
    before = {p: client.get(p).json() for p in ("/api/announcements", "/api/schedule", "/api/videos",
                                                  "/api/social-links", "/api/about", "/api/settings")}
    kwargs = {"json": body} if body is not None else {}

    response = client.request(method.upper(), path, **kwargs)
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}

    after = {p: client.get(p).json() for p in before}
    assert after == before


def test_malformed_authorization_header(client):
    response = client.post("/api/announcements", json=ANNOUNCEMENT, headers={"Authorization": "admin"})
    assert response.status_code == 401


def test_unknown_user_is_denied(client):
    response = client.post("/api/announcements", json=ANNOUNCEMENT, headers={"Authorization": "Bearer ghost"})
    assert response.status_code == 403
    assert response.json() == {"message": "Access denied"}


def test_non_admin_is_denied(client, mem_storage):
    asyncio.run(mem_storage.create_user(UserCreate(username="viewer", password="pw")))
    response = client.post("/api/announcements", json=ANNOUNCEMENT, headers={"Authorization": "Bearer viewer"})
    assert response.status_code == 403


def test_token_is_case_insensitive(client):
    response = client.post("/api/announcements", json=ANNOUNCEMENT, headers={"Authorization": "Bearer ADMIN"})
    assert response.status_code == 201


# --- Settings ---

def test_site_settings(client):
    response = client.get("/api/settings")
    assert response.status_code == 200
    body = response.json()
    assert body["twitchUsername"] == "Rennsz"
    assert body["twitchAltUsername"] == "Rennszino"
    assert body["currentChannel"] == "Rennsz"
    assert body["social"]["twitch"] == "https://twitch.tv/Rennsz"


def test_site_settings_fall_back_on_empty_store():
    client = TestClient(create_app(storage=MemStorage(webhook_url="", seed_data=False)))
    body = client.get("/api/settings").json()
    assert body["twitchUsername"] == "Rennsz"
    assert body["currentChannel"] == "Rennsz"
    assert body["social"] == {}


def test_switch_channel(client, admin_headers):
    response = client.put("/api/settings/channel", json={"channel": "Rennszino"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Channel updated successfully", "channel": "Rennszino"}
    assert client.get("/api/settings").json()["currentChannel"] == "Rennszino"


def test_switch_channel_without_auth_keeps_channel(client):
    response = client.put("/api/settings/channel", json={"channel": "Rennszino"})
    assert response.status_code == 401
    assert client.get("/api/settings").json()["currentChannel"] == "Rennsz"


def test_switch_channel_requires_name(client, admin_headers):
    response = client.put("/api/settings/channel", json={"channel": ""}, headers=admin_headers)
    assert response.status_code == 400


def test_raw_setting_upsert(client, admin_headers):
    response = client.post("/api/settings", json={"key": "twitchUsername", "value": "NewName"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["key"] == "twitchUsername"
    assert response.json()["value"] == "NewName"
    assert client.get("/api/settings").json()["twitchUsername"] == "NewName"


# --- Announcements ---

def test_create_announcement_listed_first(client, admin_headers):
    response = client.post("/api/announcements", json=ANNOUNCEMENT, headers=admin_headers)
    assert response.status_code == 201
    created = response.json()
    assert created["id"] == 4
    assert created["createdAt"]
    assert created["title"] == "A"

    listed = client.get("/api/announcements").json()
    assert listed[0]["id"] == created["id"]


def test_announcement_limit_hides_drafts(client, admin_headers):
    draft = dict(ANNOUNCEMENT, published=False)
    client.post("/api/announcements", json=draft, headers=admin_headers)

    latest = client.get("/api/announcements", params={"limit": 2}).json()
    assert len(latest) == 2
    assert all(a["published"] for a in latest)
    assert len(client.get("/api/announcements").json()) == 4


def test_announcement_crud(client, admin_headers):
    assert client.get("/api/announcements/1").json()["title"] == "New Emotes Released!"

    response = client.put("/api/announcements/1", json={"published": False}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["published"] is False
    assert response.json()["title"] == "New Emotes Released!"

    response = client.delete("/api/announcements/1", headers=admin_headers)
    assert response.json() == {"success": True}
    assert client.get("/api/announcements/1").status_code == 404
    assert client.delete("/api/announcements/1", headers=admin_headers).status_code == 404


def test_announcement_errors(client, admin_headers):
    assert client.get("/api/announcements/abc").status_code == 400
    response = client.get("/api/announcements/99")
    assert response.status_code == 404
    assert response.json() == {"message": "Announcement not found"}

    response = client.post("/api/announcements", json={"title": "only"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request data"
    assert isinstance(response.json()["errors"], list)

    response = client.put("/api/announcements/1", json={"title": None}, headers=admin_headers)
    assert response.status_code == 400


# --- Schedule ---

def test_schedule(client, admin_headers):
    response = client.post("/api/schedule", json=SCHEDULE_ITEM, headers=admin_headers)
    assert response.status_code == 201
    item_id = response.json()["id"]

    days = [i["dayOfWeek"] for i in client.get("/api/schedule").json()]
    assert days == [1, 2, 5]
    assert [i["id"] for i in client.get("/api/schedule", params={"day": 5}).json()] == [item_id]
    assert client.get("/api/schedule", params={"day": 0}).json() == []

    response = client.put(f"/api/schedule/{item_id}", json={"startTime": "21:00"}, headers=admin_headers)
    assert response.json()["startTime"] == "21:00"
    assert response.json()["endTime"] == "23:30"


@pytest.mark.parametrize("params", [{"day": 7}, {"day": -1}, {"day": "monday"}])
def test_schedule_bad_day(client, params):
    assert client.get("/api/schedule", params=params).status_code == 400


@pytest.mark.parametrize("field,value", [
    ("dayOfWeek", 7),
    ("startTime", "25:00"),
    ("startTime", "6pm"),
    ("endTime", "9:00"),
])
def test_schedule_validation(client, admin_headers, field, value):
    body = dict(SCHEDULE_ITEM, **{field: value})
    assert client.post("/api/schedule", json=body, headers=admin_headers).status_code == 400


# --- Videos ---

def test_video_defaults_and_filters(client, admin_headers):
    response = client.post("/api/videos", json=VIDEO, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["views"] == 0
    assert response.json()["published"] is True

    assert [v["type"] for v in client.get("/api/videos", params={"type": "Clips"}).json()] == ["Clips"]
    assert len(client.get("/api/videos", params={"type": "Highlights", "limit": 1}).json()) == 1
    assert len(client.get("/api/videos", params={"limit": 2}).json()) == 2
    assert len(client.get("/api/videos").json()) == 4


def test_video_partial_update(client, admin_headers):
    before = client.get("/api/videos/1").json()
    response = client.put("/api/videos/1", json={"views": 10}, headers=admin_headers)
    assert response.status_code == 200
    after = response.json()
    assert after["views"] == 10
    assert {k: v for k, v in after.items() if k != "views"} == {k: v for k, v in before.items() if k != "views"}


def test_video_negative_views_rejected(client, admin_headers):
    response = client.put("/api/videos/1", json={"views": -5}, headers=admin_headers)
    assert response.status_code == 400


def test_delete_video(client, admin_headers):
    assert client.delete("/api/videos/2", headers=admin_headers).json() == {"success": True}
    assert client.get("/api/videos/2").status_code == 404


# --- About ---

def test_about(client, admin_headers):
    assert client.get("/api/about").json()["content"].startswith("Hey everyone!")

    response = client.put("/api/about", json={"content": "New bio"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["id"] == 1
    assert response.json()["updatedAt"]
    assert client.get("/api/about").json()["content"] == "New bio"

    assert client.put("/api/about", json={"content": ""}, headers=admin_headers).status_code == 400


def test_about_when_empty():
    client = TestClient(create_app(storage=MemStorage(webhook_url="", seed_data=False)))
    assert client.get("/api/about").json() == {"content": ""}


# --- Social links ---

def test_social_links(client, admin_headers):
    response = client.post("/api/social-links", json=SOCIAL_LINK, headers=admin_headers)
    assert response.status_code == 201
    link = response.json()
    assert link["isActive"] is True
    assert link["icon"] is None
    assert client.get(f"/api/social-links/{link['id']}").json()["platform"] == "Kick"

    response = client.put(f"/api/social-links/{link['id']}", json={"isActive": False}, headers=admin_headers)
    assert response.json()["isActive"] is False
    assert "kick" not in client.get("/api/settings").json()["social"]
    assert len(client.get("/api/social-links").json()) == 6

    response = client.delete(f"/api/social-links/{link['id']}", headers=admin_headers)
    assert response.json() == {"message": "Social link deleted"}
    assert client.get(f"/api/social-links/{link['id']}").status_code == 404
    assert client.delete(f"/api/social-links/{link['id']}", headers=admin_headers).status_code == 404


def test_social_link_url_must_parse(client, admin_headers):
    body = dict(SOCIAL_LINK, url="not a url")
    assert client.post("/api/social-links", json=body, headers=admin_headers).status_code == 400
    response = client.put("/api/social-links/1", json={"url": "nope"}, headers=admin_headers)
    assert response.status_code == 400


# --- Contact ---

def test_contact(client):
    body = {"name": "Fan", "email": "fan@example.com", "subject": "Hi", "message": "Great stream"}
    response = client.post("/api/contact", json=body)
    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_contact_is_rate_limited(client):
    body = {"name": "Fan", "email": "fan@example.com", "message": "spam"}
    codes = [client.post("/api/contact", json=body).status_code for _ in range(6)]
    assert codes[:5] == [200] * 5
    assert codes[5] == 429


# --- Failures ---

class BrokenStorage(MemStorage):
    async def list_announcements(self):
        raise StorageError("connection refused by db.internal:5432")


def test_backend_failure_is_generic_500():
    client = TestClient(create_app(storage=BrokenStorage(webhook_url="")))
    response = client.get("/api/announcements")
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
    assert "db.internal" not in response.text
