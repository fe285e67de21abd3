import pytest
from httpx import AsyncClient


class TestUserMe:
    """Tests for current user endpoint."""

    @pytest.mark.asyncio
    async def test_get_current_user(self, client: AsyncClient, test_user, auth_headers):
        """Test getting current user info."""
        response = await client.get("/api/v1/users/me", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(test_user.id)
        assert data["email"] == test_user.email
        assert data["display_name"] == test_user.display_name
        assert data["gender"] is None

    @pytest.mark.asyncio
    async def test_get_current_user_unauthorized(self, client: AsyncClient):
        """Test that unauthorized request returns 401."""
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401


class TestUserUpdate:
    """Tests for user update endpoint."""

    @pytest.mark.asyncio
    async def test_update_user(self, client: AsyncClient, test_user, auth_headers):
        response = await client.patch(
            "/api/v1/users/me",
            json={"display_name": "Updated Name", "gender": "female"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Updated Name"
        assert data["gender"] == "female"

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, client: AsyncClient, test_user, auth_headers):
        await client.patch("/api/v1/users/me", json={"gender": "male"}, headers=auth_headers)
        response = await client.patch(
            "/api/v1/users/me", json={"display_name": "Sam"}, headers=auth_headers
        )
        data = response.json()
        assert data["display_name"] == "Sam"
        assert data["gender"] == "male"

    @pytest.mark.asyncio
    async def test_invalid_gender(self, client: AsyncClient, test_user, auth_headers):
        response = await client.patch(
            "/api/v1/users/me", json={"gender": "robot"}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"].endswith("gender")

    @pytest.mark.asyncio
    async def test_empty_display_name(self, client: AsyncClient, test_user, auth_headers):
        response = await client.patch(
            "/api/v1/users/me", json={"display_name": ""}, headers=auth_headers
        )
        assert response.status_code == 422
