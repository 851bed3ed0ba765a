"""Tests for the /api/webhook endpoints."""

import orjson
from fastapi.testclient import TestClient

from conftest import WEBHOOK_SECRET, bearer, login
from webhooks import WebhookSigner

SIGNER = WebhookSigner(WEBHOOK_SECRET)

INBOUND = orjson.dumps(
    {
        "from": "5511999999999@s.whatsapp.net",
        "message_id": "wamid.ABC123",
        "message_type": "text",
        "content": "hello",
        "timestamp": 1700000000,
        "sender_name": "Bob",
    }
)


def signed(body: bytes) -> dict[str, str]:
    return {"X-Hub-Signature-256": SIGNER.header(body), "Content-Type": "application/json"}


class TestReceive:
    def test_valid_delivery_is_stored_and_fanned_out(self, make_app, transport):
        with TestClient(make_app()) as client:
            response = client.post("/api/webhook/receive", content=INBOUND, headers=signed(INBOUND))

            assert response.status_code == 200
            assert response.json()["success"] is True

            token = login(client, "alice", "alicepass")["token"]
            history = client.get(
                "/api/protected/history",
                params={"phone": "5511999999999@s.whatsapp.net"},
                headers=bearer(token),
            ).json()

        assert history["count"] == 1
        record = history["messages"][0]
        assert record["message_id"] == "wamid.ABC123"
        assert record["message_data"]["content"] == "hello"
        assert record["message_data"]["received"] is True

        # Shutdown drained the background fan-out
        assert sorted(str(r.url) for r in transport.requests) == [
            "https://hooks.example.com/a",
            "https://hooks.example.com/b",
        ]
        for request in transport.requests:
            assert SIGNER.verify(request.headers["X-Hub-Signature-256"], request.content)
            event = orjson.loads(request.content)
            assert event["type"] == "message_received"
            assert event["from"] == "5511999999999@s.whatsapp.net"
            assert event["message_id"] == "wamid.ABC123"

    def test_missing_signature(self, make_app, transport, store):
        with TestClient(make_app()) as client:
            response = client.post("/api/webhook/receive", content=INBOUND)

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_signature"
        assert transport.requests == []
        assert store._records == []

    def test_tampered_body(self, client):
        headers = signed(INBOUND)
        tampered = INBOUND.replace(b"hello", b"HELLO")

        response = client.post("/api/webhook/receive", content=tampered, headers=headers)
        assert response.status_code == 401

    def test_signature_without_prefix(self, client):
        headers = {"X-Hub-Signature-256": SIGNER.sign(INBOUND)}
        assert client.post("/api/webhook/receive", content=INBOUND, headers=headers).status_code == 200

    def test_signed_invalid_json(self, client):
        body = b"{not json"
        response = client.post("/api/webhook/receive", content=body, headers=signed(body))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_signed_payload_missing_fields(self, client):
        body = orjson.dumps({"from": "5511"})
        assert client.post("/api/webhook/receive", content=body, headers=signed(body)).status_code == 400


class TestSend:
    def test_requires_authentication(self, client, transport):
        response = client.post("/api/webhook/send", json={"type": "custom"})

        assert response.status_code == 401
        assert transport.requests == []

    def test_delivers_to_every_destination(self, client, transport, user_token):
        response = client.post(
            "/api/webhook/send",
            json={"type": "custom", "from": "5511", "message_id": "m1", "data": {"k": "v"}},
            headers=bearer(user_token),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["webhook_urls"] == 2
        assert all(result["success"] for result in body["results"])

        for request in transport.requests:
            event = orjson.loads(request.content)
            assert event["user"] == "alice"
            assert event["data"] == {"k": "v"}
            assert SIGNER.verify(request.headers["X-Hub-Signature-256"], request.content)

    def test_partial_failure_is_reported(self, client, transport, user_token):
        transport.statuses["https://hooks.example.com/b"] = 500

        response = client.post("/api/webhook/send", json={"type": "custom"}, headers=bearer(user_token))

        assert response.status_code == 200
        results = {result["url"]: result for result in response.json()["results"]}
        assert results["https://hooks.example.com/a"]["success"] is True
        assert results["https://hooks.example.com/b"]["success"] is False
        assert results["https://hooks.example.com/b"]["error"] == "HTTP 500"

    def test_no_destinations(self, make_app):
        with TestClient(make_app(webhook_urls="")) as client:
            token = login(client, "alice", "alicepass")["token"]
            response = client.post("/api/webhook/send", json={"type": "custom"}, headers=bearer(token))

        assert response.status_code == 503
        assert response.json()["error"] == "no_destinations"

    def test_missing_type(self, client, user_token):
        response = client.post("/api/webhook/send", json={"data": {}}, headers=bearer(user_token))
        assert response.status_code == 400


class TestManage:
    def test_list(self, client, user_token):
        response = client.get("/api/webhook/manage", headers=bearer(user_token))

        assert response.status_code == 200
        assert response.json() == {
            "webhooks": ["https://hooks.example.com/a", "https://hooks.example.com/b"],
            "count": 2,
            "secret_configured": True,
        }

    def test_list_requires_authentication(self, client):
        assert client.get("/api/webhook/manage").status_code == 401

    def test_user_cannot_add(self, client, user_token):
        response = client.post(
            "/api/webhook/manage", json={"url": "https://hooks.example.com/c"}, headers=bearer(user_token)
        )
        assert response.status_code == 403

    def test_admin_adds_destination(self, client, admin_token):
        response = client.post(
            "/api/webhook/manage", json={"url": "https://hooks.example.com/c"}, headers=bearer(admin_token)
        )

        assert response.status_code == 200
        listed = client.get("/api/webhook/manage", headers=bearer(admin_token)).json()
        assert listed["count"] == 3
        assert "https://hooks.example.com/c" in listed["webhooks"]

    def test_admin_invalid_url(self, client, admin_token):
        for url in ("ftp://hooks.example.com", "", "hooks.example.com"):
            response = client.post("/api/webhook/manage", json={"url": url}, headers=bearer(admin_token))
            assert response.status_code == 400
