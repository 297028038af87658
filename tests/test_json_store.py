"""JSON file stores: persistence across reloads and atomic set updates."""

import json
import threading

import pytest

from soundshare.config import ServerConfig
from soundshare.errors import StoreFailure
from soundshare.services import AudioQuery, JsonAudioStore, JsonUserStore
from soundshare.services.json_collection import JsonCollection
from soundshare.state import AppState
from soundshare.utils import new_id


def _audio(**fields):
    doc = {
        "id": new_id(),
        "author_id": new_id(),
        "title": "Track",
        "description": "",
        "category": "music",
        "tags": [],
        "likes": [],
        "viewed_by": [],
        "view_count": 0,
        "comment_ids": [],
        "created_at": "2024-01-01T00:00:00.000+00:00",
    }
    doc.update(fields)
    return doc


def test_documents_survive_reload(tmp_path):
    path = tmp_path / "audios.json"
    store = JsonAudioStore(path)
    audio = store.create(_audio(title="Persisted"))
    store.add_like(audio["id"], "u1")

    reloaded = JsonAudioStore(path)
    assert reloaded.get_by_id(audio["id"])["likes"] == ["u1"]
    with open(path) as f:
        assert [d["id"] for d in json.load(f)["audios"]] == [audio["id"]]


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("{not json")
    assert JsonUserStore(path).get_by_email("a@example.com") is None


def test_duplicate_insert_fails():
    table = JsonCollection("things")
    table.insert({"id": "x"})
    with pytest.raises(StoreFailure):
        table.insert({"id": "x"})


def test_returned_documents_are_copies():
    store = JsonAudioStore()
    audio = store.create(_audio())
    audio["likes"].append("intruder")
    assert store.get_by_id(audio["id"])["likes"] == []


def test_concurrent_views_count_once_per_user():
    store = JsonAudioStore()
    audio = store.create(_audio())
    users = [f"user{i}" for i in range(20)]

    def view(user_id):
        for _ in range(5):
            store.record_view(audio["id"], user_id, "2024-01-02T00:00:00.000+00:00")

    threads = [threading.Thread(target=view, args=(u,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = store.get_by_id(audio["id"])
    assert stored["view_count"] == 20
    assert len(stored["viewed_by"]) == 20


def test_concurrent_likes_lose_no_updates():
    store = JsonAudioStore()
    audio = store.create(_audio())
    threads = [threading.Thread(target=store.add_like, args=(audio["id"], f"u{i}")) for i in range(25)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store.get_by_id(audio["id"])["likes"]) == 25


def test_query_horizon_is_inclusive():
    store = JsonAudioStore()
    at = store.create(_audio(created_at="2024-01-01T00:00:05.000+00:00"))
    store.create(_audio(created_at="2024-01-01T00:00:06.000+00:00"))
    page, total = store.query(AudioQuery(created_before="2024-01-01T00:00:05.000+00:00"), offset=0, limit=10)
    assert total == 1
    assert page[0]["id"] == at["id"]


def test_json_app_state_writes_under_data_dir(tmp_path):
    config = ServerConfig(data_source="json", data_dir=tmp_path)
    state = AppState(config)
    user = state.accounts.signup(username="writer", name="Writer", email="w@example.com", password="secret123")

    assert (tmp_path / "users.json").exists()
    again = AppState(ServerConfig(data_source="json", data_dir=tmp_path))
    assert again.user_store.get_by_id(user["id"])["username"] == "writer"


def test_firebase_without_credentials_falls_back_to_json(tmp_path):
    config = ServerConfig(data_source="firebase", data_dir=tmp_path, firebase_credentials_path=tmp_path / "missing.json")
    state = AppState(config)
    assert isinstance(state.audio_store, JsonAudioStore)
    assert state.config.data_source == "json"
