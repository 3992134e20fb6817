"""Router tests for the session authentication endpoints."""

from fastapi.testclient import TestClient

from src.library.core.models.actor import Role


class TestRegister:
    def test_register(self, client: TestClient):
        response = client.post(
            "/api/auth/register", json={"username": "alice", "password": "secret123"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "alice"
        assert body["role"] == "user"
        assert "password" not in body
        assert "password_hash" not in body

    def test_duplicate_username(self, client: TestClient):
        payload = {"username": "alice", "password": "secret123"}
        client.post("/api/auth/register", json=payload)

        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    def test_admin_self_registration_forbidden(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={"username": "root", "password": "secret123", "role": "admin"},
        )

        assert response.status_code == 403

    def test_malformed_body_is_a_bad_request(self, client: TestClient):
        response = client.post("/api/auth/register", json={"username": "al"})

        assert response.status_code == 400
        assert "request_id" in response.json()


class TestSession:
    def test_login_sets_http_only_cookie(self, client: TestClient):
        client.post(
            "/api/auth/register", json={"username": "alice", "password": "secret123"}
        )

        response = client.post(
            "/api/auth/login", json={"username": "alice", "password": "secret123"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"
        set_cookie = response.headers["set-cookie"].lower()
        assert set_cookie.startswith("token=")
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie

    def test_cookie_session_roundtrip(self, client: TestClient):
        client.post(
            "/api/auth/register", json={"username": "alice", "password": "secret123"}
        )
        client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})

        response = client.get("/api/auth/check-session")

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"

    def test_bearer_session(self, client: TestClient, login):
        headers = login("root", Role.ADMIN)

        response = client.get("/api/auth/check-session", headers=headers)

        assert response.json()["user"]["role"] == "admin"

    def test_bad_credentials(self, client: TestClient):
        response = client.post(
            "/api/auth/login", json={"username": "ghost", "password": "secret123"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_check_session_without_token(self, client: TestClient):
        response = client.get("/api/auth/check-session")

        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient):
        response = client.get(
            "/api/auth/check-session", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401

    def test_logout_clears_cookie(self, client: TestClient):
        client.post(
            "/api/auth/register", json={"username": "alice", "password": "secret123"}
        )
        client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})

        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert client.get("/api/auth/check-session").status_code == 401
