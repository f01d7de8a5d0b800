"""Tests for account and credential routes."""

import pytest
from httpx import AsyncClient

PASSWORD = "secret123"


async def _register(client: AsyncClient, name: str = "Alice", **overrides):
    payload = {"name": name, "email": f"{name.lower()}@example.com", "password": PASSWORD}
    payload.update(overrides)
    return await client.post("/api/v1/auth/register", json=payload)


class TestRegister:
    async def test_register_returns_credentials(self, client: AsyncClient):
        response = await _register(client, email="  Alice@Example.com ")
        assert response.status_code == 201
        data = response.json()

        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["current_workspace_id"] is None
        assert "password_hash" not in data["user"]
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] > 0
        assert data["refresh_token"]

        me = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert me.status_code == 200
        assert me.json()["id"] == data["user"]["id"]

    async def test_duplicate_email(self, client: AsyncClient):
        await _register(client)
        response = await _register(client, name="Other", email="ALICE@example.com")
        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_email"

    @pytest.mark.parametrize("email", ["not-an-email", "x@...", "a@b.c,d", "a b@example.com"])
    async def test_invalid_email(self, client: AsyncClient, email: str):
        response = await _register(client, email=email)
        assert response.status_code == 422

    async def test_short_password(self, client: AsyncClient):
        response = await _register(client, password="abc")
        assert response.status_code == 422


class TestLogin:
    async def test_login(self, client: AsyncClient):
        await _register(client)
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["user"]["last_login"] is not None

    async def test_login_normalizes_email(self, client: AsyncClient):
        await _register(client)
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": " ALICE@Example.com", "password": PASSWORD},
        )
        assert response.status_code == 200

    async def test_wrong_password(self, client: AsyncClient):
        await _register(client)
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": "wrong-one"},
        )
        assert response.status_code == 401
        assert response.json() == {
            "detail": "Invalid credentials",
            "code": "invalid_credentials",
        }

    async def test_unknown_email_looks_the_same(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@example.com", "password": PASSWORD},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_credentials"


class TestRefreshAndLogout:
    async def test_refresh_then_logout(self, client: AsyncClient):
        data = (await _register(client)).json()
        headers = {"Authorization": f"Bearer {data['access_token']}"}

        refreshed = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]}
        )
        assert refreshed.status_code == 200
        new_headers = {"Authorization": f"Bearer {refreshed.json()['access_token']}"}
        assert (await client.get("/api/v1/auth/me", headers=new_headers)).status_code == 200

        logout = await client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": data["refresh_token"]},
            headers=headers,
        )
        assert logout.status_code == 200

        again = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]}
        )
        assert again.status_code == 401
        assert again.json()["code"] == "invalid_or_expired_token"

    async def test_logout_requires_auth(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/logout", json={"refresh_token": "whatever"}
        )
        assert response.status_code == 401


class TestProfile:
    async def test_update_profile(self, client: AsyncClient, register):
        _, headers = await register("Alice")
        response = await client.put(
            "/api/v1/auth/profile",
            json={"theme": "dark", "timezone": "Europe/Stockholm"},
            headers=headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["theme"] == "dark"
        assert data["timezone"] == "Europe/Stockholm"
        assert data["name"] == "Alice"

    async def test_invalid_theme(self, client: AsyncClient, register):
        _, headers = await register("Alice")
        response = await client.put(
            "/api/v1/auth/profile", json={"theme": "neon"}, headers=headers
        )
        assert response.status_code == 422

    async def test_stats_start_at_zero(self, client: AsyncClient, register):
        _, headers = await register("Alice")
        response = await client.get("/api/v1/auth/stats", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_tasks"] == 0
        assert data["total_focus_time"] == 0
