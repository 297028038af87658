"""
Shared fixtures: an in-memory AppState driven by a stepping clock, a
TestClient over the FastAPI app, and user / audio factories.

Run:
    pytest tests -v
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ["DATA_SOURCE"] = "memory"

from fastapi.testclient import TestClient  # noqa: E402

from soundshare.app import create_app  # noqa: E402
from soundshare.config import ServerConfig  # noqa: E402
from soundshare.state import AppState, set_state  # noqa: E402

PASSWORD = "secret123"


class StepClock:
    """Returns a strictly increasing UTC time, one second per call."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def config():
    return ServerConfig(data_source="memory", session_secret="test-secret")


@pytest.fixture
def state(config, clock):
    s = AppState(config, clock=clock)
    yield s
    set_state(None)


@pytest.fixture
def client(state):
    return TestClient(create_app(state))


@pytest.fixture
def make_user(state):
    counter = {"n": 0}

    def _make(username=None, email=None, name="Test User", password=PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        return state.accounts.signup(
            username=username or f"user{n}",
            name=name,
            email=email or f"user{n}@example.com",
            password=password,
        )

    return _make


@pytest.fixture
def make_audio(state):
    def _make(author_id, title="Untitled Track", description="A recording", category="music", tags=None):
        return state.uploads.upload_audio(
            author_id,
            title=title,
            description=description,
            category=category,
            thumbnail_url="https://media.example.com/thumb.jpg",
            audio_url="https://media.example.com/audio.mp3",
            tags=tags,
        )

    return _make


@pytest.fixture
def login(client):
    """Log the TestClient in; the session cookie stays on the client."""

    def _login(email, password=PASSWORD):
        response = client.post("/api/users/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["user"]

    return _login
