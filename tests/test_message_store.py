"""Tests for the message store collaborators."""

import re

import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

from conftest import bearer, login, make_settings
from core.errors import UpstreamUnavailable
from main import create_app
from services import (
    InMemoryMessageStore,
    SupabaseMessageStore,
    build_record,
    create_message_store,
    generate_message_id,
)


def record(jid: str, message_id: str, timestamp: str) -> dict:
    return {"jid": jid, "message_id": message_id, "message_data": {}, "timestamp": timestamp}


class TestHelpers:
    def test_message_id_format(self):
        assert re.fullmatch(r"msg_\d{17}_[0-9a-f]{4}", generate_message_id())

    def test_message_ids_differ(self):
        assert len({generate_message_id() for _ in range(50)}) > 1

    def test_build_record(self):
        row = build_record("5511", "m1", {"type": "text"})

        assert row["jid"] == "5511"
        assert row["message_id"] == "m1"
        assert row["message_data"] == {"type": "text"}
        assert "timestamp" in row


class TestInMemoryStore:
    async def test_newest_first_with_filter_and_limit(self):
        store = InMemoryMessageStore()
        await store.store_message(record("a", "1", "2025-01-01T00:00:01"))
        await store.store_message(record("b", "2", "2025-01-01T00:00:02"))
        await store.store_message(record("a", "3", "2025-01-01T00:00:03"))

        assert [r["message_id"] for r in await store.fetch_records()] == ["3", "2", "1"]
        assert [r["message_id"] for r in await store.fetch_records(jid="a")] == ["3", "1"]
        assert [r["message_id"] for r in await store.fetch_records(limit=1)] == ["3"]
        assert store.is_available


class TestSupabaseStore:
    async def test_store_posts_record(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = SupabaseMessageStore(client, "https://project.supabase.co/", "anon-key")
            await store.store_message(record("5511", "m1", "2025-01-01T00:00:00"))

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://project.supabase.co/rest/v1/chat_storage"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"
        assert request.headers["Prefer"] == "return=minimal"
        assert orjson.loads(request.content)["message_id"] == "m1"

    async def test_fetch_filters_and_orders(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[record("5511", "m1", "2025-01-01T00:00:00")])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = SupabaseMessageStore(client, "https://project.supabase.co", "anon-key", table="messages")
            rows = await store.fetch_records(jid="5511", limit=10)

        assert rows[0]["message_id"] == "m1"
        params = seen[0].url.params
        assert seen[0].url.path == "/rest/v1/messages"
        assert params["jid"] == "eq.5511"
        assert params["order"] == "timestamp.desc"
        assert params["limit"] == "10"

    async def test_errors_become_upstream_unavailable(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))) as client:
            store = SupabaseMessageStore(client, "https://project.supabase.co", "anon-key")

            with pytest.raises(UpstreamUnavailable):
                await store.store_message(record("5511", "m1", "2025-01-01T00:00:00"))
            with pytest.raises(UpstreamUnavailable):
                await store.fetch_records()

    async def test_transport_errors_become_upstream_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = SupabaseMessageStore(client, "https://project.supabase.co", "anon-key")

            with pytest.raises(UpstreamUnavailable):
                await store.store_message(record("5511", "m1", "2025-01-01T00:00:00"))


class TestFactory:
    async def test_selection(self):
        async with httpx.AsyncClient() as client:
            assert isinstance(create_message_store(make_settings(), client), InMemoryMessageStore)

            settings = make_settings(supabase_url="https://project.supabase.co", supabase_anon_key="anon-key")
            assert isinstance(create_message_store(settings, client), SupabaseMessageStore)


class FailingStore(InMemoryMessageStore):
    async def store_message(self, record: dict) -> None:
        raise UpstreamUnavailable()


class TestStoreFailureOverHttp:
    def test_send_reports_service_unavailable(self, clock):
        app = create_app(make_settings(), message_store=FailingStore(), clock=clock)

        with TestClient(app) as client:
            token = login(client, "alice", "alicepass")["token"]
            response = client.post(
                "/api/protected/send",
                json={"phone": "5511", "message": "hi"},
                headers=bearer(token),
            )

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "upstream_unavailable", "message": "Service unavailable"}

    def test_send_and_history(self, client, user_token):
        sent = client.post(
            "/api/protected/send",
            json={"phone": "5511", "message": "hi", "duration": 60},
            headers=bearer(user_token),
        )
        assert sent.status_code == 200

        history = client.get("/api/protected/history", params={"phone": "5511"}, headers=bearer(user_token)).json()
        assert history["count"] == 1
        data = history["messages"][0]["message_data"]
        assert data["content"] == "hi"
        assert data["sent_by"] == "alice"
        assert data["duration"] == 60

    def test_send_requires_phone_and_message(self, client, user_token):
        response = client.post("/api/protected/send", json={"phone": "5511"}, headers=bearer(user_token))
        assert response.status_code == 400
