"""
Integration tests for authentication and the error envelope

Tests login, the current-user endpoint, role guards and that every failure
is rendered as {"error": ..., "code": ...}.
"""
import pytest

pytestmark = pytest.mark.integration


class TestLogin:
    """POST /api/v1/auth/login"""

    async def test_login_returns_token_and_user(self, client, people):
        response = await client.post(
            "/api/v1/auth/login", json={"username": "tutor", "password": people.password}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["username"] == "tutor"
        assert data["user"]["role"] == "TUTOR"
        assert "password_hash" not in data["user"]

    async def test_username_is_case_insensitive(self, client, people):
        response = await client.post(
            "/api/v1/auth/login", json={"username": "Tutor", "password": people.password}
        )
        assert response.status_code == 200

    async def test_wrong_password(self, client, people):
        response = await client.post(
            "/api/v1/auth/login", json={"username": "tutor", "password": "nope"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    async def test_token_from_login_works(self, client, people):
        login = await client.post(
            "/api/v1/auth/login", json={"username": "student", "password": people.password}
        )
        token = login.json()["access_token"]

        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["id"] == str(people.student.id)


class TestCurrentUser:
    async def test_missing_header(self, client, people):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header missing", "code": "AUTH_MISSING"}

    async def test_garbage_token(self, client, people):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    async def test_change_own_password(self, client, people, auth):
        response = await client.post(
            "/api/v1/auth/password",
            json={"current_password": people.password, "new_password": "brand-new-pass"},
            headers=auth(people.student),
        )
        assert response.status_code == 200

        old = await client.post("/api/v1/auth/login", json={"username": "student", "password": people.password})
        new = await client.post("/api/v1/auth/login", json={"username": "student", "password": "brand-new-pass"})
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_change_password_needs_current_one(self, client, people, auth):
        response = await client.post(
            "/api/v1/auth/password",
            json={"current_password": "wrong", "new_password": "brand-new-pass"},
            headers=auth(people.student),
        )
        assert response.status_code == 401


class TestErrorEnvelope:
    async def test_role_guard(self, client, people, auth):
        response = await client.get("/api/v1/periods", headers=auth(people.student))

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "HTTP_404"

    async def test_validation_error(self, client, people):
        response = await client.post("/api/v1/auth/login", json={"username": "tutor"})

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["error"] == "Request validation failed"
        assert any("password" in error["loc"] for error in data["details"])

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
