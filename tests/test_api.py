"""HTTP surface: routes, session cookie, and the JSON error body."""

import pytest

from soundshare.utils import new_id

UPLOAD = {
    "title": "Morning Meditation",
    "description": "Ten calm minutes",
    "category": "wellness",
    "tags": "calm, Focus",
    "thumbnailUrl": "https://media.example.com/t.jpg",
    "audioUrl": "https://media.example.com/a.mp3",
    "duration": 600,
}


@pytest.fixture
def signed_up(client):
    """A user signed up (and therefore logged in) through the API."""
    response = client.post(
        "/api/users/signup",
        json={"username": "listener", "name": "Listener", "email": "listener@example.com", "password": "secret123"},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture
def uploaded(client, signed_up):
    response = client.post("/api/audios", json=UPLOAD)
    assert response.status_code == 201, response.text
    return response.json()["audio"]


class TestRoot:
    def test_root_and_health(self, client):
        assert client.get("/").json()["name"] == "Soundshare API"
        health = client.get("/api/health").json()
        assert health["status"] == "healthy"
        assert health["stores"]["audios"] == "JsonAudioStore"


class TestSession:
    def test_signup_sets_session_cookie(self, client, signed_up):
        assert "token" in client.cookies
        me = client.get("/api/users/authenticate")
        assert me.status_code == 200
        assert me.json()["user"]["id"] == signed_up["id"]
        assert me.json()["user"]["savedAudios"] == []

    def test_logout_clears_session(self, client, signed_up):
        assert client.post("/api/users/logout").status_code == 200
        response = client.get("/api/users/authenticate")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Unauthorized. Please log in."}

    def test_login_restores_session(self, client, signed_up, login):
        client.post("/api/users/logout")
        user = login("listener@example.com")
        assert user["id"] == signed_up["id"]
        assert client.get("/api/users/authenticate").status_code == 200

    def test_bad_login(self, client, signed_up):
        client.post("/api/users/logout")
        response = client.post("/api/users/login", json={"email": "listener@example.com", "password": "nope123"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_duplicate_signup(self, client, signed_up):
        response = client.post(
            "/api/users/signup",
            json={"username": "other", "name": "Other", "email": "LISTENER@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestAudios:
    def test_upload_normalizes_tags(self, uploaded, signed_up):
        assert uploaded["tags"] == ["calm", "focus"]
        assert uploaded["author"]["id"] == signed_up["id"]
        assert uploaded["viewCount"] == 0

    def test_upload_requires_login(self, client):
        response = client.post("/api/audios", json=UPLOAD)
        assert response.status_code == 401

    def test_upload_missing_field_is_400(self, client, signed_up):
        body = {k: v for k, v in UPLOAD.items() if k != "audioUrl"}
        response = client.post("/api/audios", json=body)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_listing_envelope(self, client, uploaded):
        body = client.get("/api/audios", params={"limit": 6}).json()
        assert body["success"] is True
        assert body["totalAudios"] == 1
        assert body["totalPages"] == 1
        assert body["page"] == 1
        assert body["limit"] == 6
        assert body["firstQueryTime"]
        assert body["audios"][0]["id"] == uploaded["id"]

    def test_listing_resends_horizon(self, client, uploaded):
        first = client.get("/api/audios", params={"limit": 1}).json()
        client.post("/api/audios", json={**UPLOAD, "title": "Later"})
        second = client.get(
            "/api/audios", params={"limit": 1, "page": 2, "firstQueryTime": first["firstQueryTime"]}
        ).json()
        assert second["totalAudios"] == 1
        assert second["audios"] == []
        assert second["firstQueryTime"] == first["firstQueryTime"]

    def test_listing_search_case_insensitive(self, client, uploaded):
        for term in ("morning", "MORNING", "medit"):
            body = client.get("/api/audios", params={"search": term}).json()
            assert [a["id"] for a in body["audios"]] == [uploaded["id"]]

    def test_listing_bad_page(self, client):
        assert client.get("/api/audios", params={"page": 0}).status_code == 400
        assert client.get("/api/audios", params={"page": "two"}).status_code == 400

    def test_get_audio(self, client, uploaded):
        body = client.get(f"/api/audios/{uploaded['id']}").json()
        assert body["audio"]["title"] == "Morning Meditation"
        assert body["audio"]["comments"] == []

    def test_get_audio_errors(self, client):
        assert client.get(f"/api/audios/{new_id()}").status_code == 404
        assert client.get("/api/audios/xyz").status_code == 400


class TestEngagement:
    def test_like_toggle(self, client, uploaded, signed_up):
        liked = client.put(f"/api/audios/{uploaded['id']}/like").json()
        assert liked["liked"] is True
        assert liked["totalLikes"] == 1
        assert liked["userId"] == signed_up["id"]
        assert liked["user"]["likedAudios"][0]["audioId"] == uploaded["id"]

        unliked = client.put(f"/api/audios/{uploaded['id']}/like").json()
        assert unliked["liked"] is False
        assert unliked["totalLikes"] == 0

    def test_like_requires_login(self, client, uploaded):
        client.post("/api/users/logout")
        response = client.put(f"/api/audios/{uploaded['id']}/like")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_bookmark_toggle(self, client, uploaded):
        saved = client.put(f"/api/audios/{uploaded['id']}/bookmark").json()
        assert saved["bookmarked"] is True
        assert saved["audioId"] == uploaded["id"]
        assert [s["audioId"] for s in saved["user"]["savedAudios"]] == [uploaded["id"]]
        unsaved = client.put(f"/api/audios/{uploaded['id']}/bookmark").json()
        assert unsaved["bookmarked"] is False

    def test_viewed_counts_once(self, client, uploaded):
        first = client.put(f"/api/audios/{uploaded['id']}/viewed").json()
        assert first["audio"]["viewCount"] == 1
        second = client.put(f"/api/audios/{uploaded['id']}/viewed").json()
        assert second == {"success": True, "message": "already viewed"}
        assert client.get(f"/api/audios/{uploaded['id']}").json()["audio"]["viewCount"] == 1

    def test_viewed_missing_audio(self, client, signed_up):
        assert client.put(f"/api/audios/{new_id()}/viewed").status_code == 404

    def test_comment(self, client, uploaded, signed_up):
        response = client.post(f"/api/audios/{uploaded['id']}/comment", json={"content": "Beautiful"})
        assert response.status_code == 201
        comment = response.json()["comment"]
        assert comment["author"]["id"] == signed_up["id"]
        comments = client.get(f"/api/audios/{uploaded['id']}").json()["audio"]["comments"]
        assert [c["id"] for c in comments] == [comment["id"]]

    def test_blank_comment_is_400(self, client, uploaded):
        response = client.post(f"/api/audios/{uploaded['id']}/comment", json={"content": "   "})
        assert response.status_code == 400
        assert client.get(f"/api/audios/{uploaded['id']}").json()["audio"]["comments"] == []


class TestSearch:
    def test_search_found(self, client, uploaded):
        body = client.get("/api/searches/search", params={"q": "wellness"}).json()
        assert [a["id"] for a in body["data"]] == [uploaded["id"]]

    def test_search_nothing(self, client, uploaded):
        response = client.get("/api/searches/search", params={"q": "heavy metal"})
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestAccountRoutes:
    def test_update_self(self, client, signed_up):
        response = client.put(f"/api/users/{signed_up['id']}", json={"name": "Renamed", "profileImage": "p.png"})
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Renamed"
        assert response.json()["user"]["profileImage"] == "p.png"

    def test_update_other_is_forbidden(self, client, signed_up, make_user):
        other = make_user()
        response = client.put(f"/api/users/{other['id']}", json={"name": "Hijack"})
        assert response.status_code == 403

    def test_delete_self_ends_session(self, client, signed_up, uploaded, state):
        response = client.delete(f"/api/users/{signed_up['id']}")
        assert response.status_code == 200
        assert state.audio_store.get_by_id(uploaded["id"]) is None
        assert client.get("/api/users/authenticate").status_code == 401
