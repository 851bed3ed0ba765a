"""Tests for the /api/auth endpoints."""

from fastapi.testclient import TestClient

from conftest import bearer, login


class TestLogin:
    def test_success_returns_token_pair(self, client):
        body = login(client, "admin", "adminpass")

        assert body["success"] is True
        assert body["token"] and body["refresh_token"]
        assert body["token"] != body["refresh_token"]
        assert body["expires_in"] == 3600
        assert body["user"]["username"] == "admin"
        assert body["user"]["role"] == "admin"

    def test_regular_user(self, client):
        body = login(client, "alice", "alicepass")
        assert body["user"]["role"] == "user"

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"username": "admin"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_wrong_password(self, client):
        response = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "unauthorized", "message": "Invalid credentials"}

    def test_unknown_user(self, client):
        response = client.post("/api/auth/login", json={"username": "mallory", "password": "adminpass"})
        assert response.status_code == 401

    def test_invalid_json(self, client):
        response = client.post(
            "/api/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON"

    def test_sixth_attempt_is_rate_limited(self, client):
        for _ in range(4):
            client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert client.post("/api/auth/login", json={"username": "admin", "password": "adminpass"}).status_code == 200

        response = client.post("/api/auth/login", json={"username": "admin", "password": "adminpass"})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_auth_tier_does_not_consume_global_quota(self, make_app):
        with TestClient(make_app(rate_limit_global_requests=1)) as client:
            token = login(client, "alice", "alicepass")["token"]
            login(client, "alice", "alicepass")

            assert client.get("/api/protected/profile", headers=bearer(token)).status_code == 200


class TestRefresh:
    def test_refresh_returns_new_pair(self, client, clock):
        pair = login(client, "alice", "alicepass")
        clock.advance(10)

        response = client.post("/api/auth/refresh", json={"refresh_token": pair["refresh_token"]})

        assert response.status_code == 200
        body = response.json()
        assert body["token"] != pair["token"]
        validated = client.get("/api/auth/validate", headers=bearer(body["token"])).json()
        assert validated["username"] == "alice"

    def test_refresh_after_access_expiry(self, client, clock):
        pair = login(client, "alice", "alicepass")
        clock.advance(2 * 3600)

        assert client.get("/api/protected/profile", headers=bearer(pair["token"])).status_code == 401
        response = client.post("/api/auth/refresh", json={"refresh_token": pair["refresh_token"]})
        assert response.status_code == 200

    def test_invalid_refresh_token(self, client):
        response = client.post("/api/auth/refresh", json={"refresh_token": "garbage"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"

    def test_missing_refresh_token(self, client):
        assert client.post("/api/auth/refresh", json={}).status_code == 400


class TestValidate:
    def test_valid_token(self, client, admin_token):
        response = client.get("/api/auth/validate", headers=bearer(admin_token))

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["username"] == "admin"
        assert body["role"] == "admin"
        assert body["expires"] - body["issued_at"] == 3600

    def test_without_token(self, client):
        response = client.get("/api/auth/validate")
        assert response.status_code == 401


class TestLogout:
    def test_logout_revokes_token(self, client, user_token):
        response = client.post("/api/auth/logout", headers=bearer(user_token))

        assert response.status_code == 200
        assert client.get("/api/protected/profile", headers=bearer(user_token)).status_code == 401

    def test_other_tokens_stay_valid(self, client, user_token, admin_token):
        client.post("/api/auth/logout", headers=bearer(user_token))
        assert client.get("/api/protected/profile", headers=bearer(admin_token)).status_code == 200
