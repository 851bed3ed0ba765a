"""Shared fixtures: a controllable clock, test settings and app factories."""

from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app
from services import InMemoryMessageStore

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"
WEBHOOK_SECRET = "s3cr3t"
DESTINATIONS = "https://hooks.example.com/a,https://hooks.example.com/b"


class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    """httpx handler that records requests and answers with per-URL status codes."""

    def __init__(self, statuses: dict[str, int] | None = None):
        self.statuses = statuses or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.statuses.get(str(request.url), 200), json={"ok": True})


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret": JWT_SECRET,
        "webhook_secret": WEBHOOK_SECRET,
        "app_basic_auth": "admin:adminpass,alice:alicepass",
        "webhook_urls": DESTINATIONS,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def make_app(clock, transport, store) -> Callable:
    """Factory building an app wired to the fake clock, recording transport and in-memory store."""

    def _make(**overrides):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return create_app(make_settings(**overrides), message_store=store, http_client=http_client, clock=clock)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, username: str, password: str) -> dict:
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client) -> str:
    return login(client, "admin", "adminpass")["token"]


@pytest.fixture
def user_token(client) -> str:
    return login(client, "alice", "alicepass")["token"]
