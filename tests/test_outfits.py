from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient

from stylebook.exceptions import ExternalServiceError
from stylebook.services.rate_limit_service import LIMITS, ActionType, RateLimitService


@pytest_asyncio.fixture
async def wardrobe(test_user, make_item):
    return [
        await make_item(test_user, category="top", description="blue oxford shirt", colors=["Blue"]),
        await make_item(test_user, category="bottom", description="grey chinos", colors=["Grey"]),
        await make_item(test_user, category="shoes", description="white sneakers", colors=["White"]),
    ]


class TestGenerate:
    """Tests for the outfit generation endpoint."""

    @pytest.mark.asyncio
    async def test_generate(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        fake_ai.queue(outfit_json)

        response = await client.post(
            "/api/v1/outfits/generate",
            json={"occasion": "brunch", "weather": {"temp": 72, "condition": "sunny"}},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert len(data["selected_items"]) == 3
        assert data["selected_items"][0]["description"] == "blue oxford shirt"
        assert data["weather"]["temp"] == 72
        assert data["rating"] is None

    @pytest.mark.asyncio
    async def test_empty_wardrobe(self, client: AsyncClient, test_user, auth_headers):
        response = await client.post("/api/v1/outfits/generate", json={}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_ai_unavailable(self, client: AsyncClient, auth_headers, wardrobe, fake_ai):
        fake_ai.queue(ExternalServiceError("all endpoints failed"))

        response = await client.post("/api/v1/outfits/generate", json={}, headers=auth_headers)
        assert response.status_code == 502

        usage = await client.get("/api/v1/usage", headers=auth_headers)
        assert usage.json()["usage"]["OUTFIT_GENERATION"] == 0

    @pytest.mark.asyncio
    async def test_quota_exhausted(
        self, client: AsyncClient, test_user, auth_headers, wardrobe, db_session
    ):
        limits = RateLimitService(db_session)
        for _ in range(LIMITS[ActionType.OUTFIT_GENERATION]):
            await limits.increment_usage(test_user.id, ActionType.OUTFIT_GENERATION)

        response = await client.post("/api/v1/outfits/generate", json={}, headers=auth_headers)
        assert response.status_code == 429
        data = response.json()
        assert data["action"] == "OUTFIT_GENERATION"
        assert data["limit"] == 10
        assert data["current"] == 10

    @pytest.mark.asyncio
    async def test_unknown_anchor(self, client: AsyncClient, auth_headers, wardrobe):
        response = await client.post(
            "/api/v1/outfits/generate",
            json={"anchor_item_id": str(uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestHistory:
    async def _generate(self, client, auth_headers, fake_ai, outfit_json) -> dict:
        fake_ai.queue(outfit_json)
        response = await client.post("/api/v1/outfits/generate", json={}, headers=auth_headers)
        assert response.status_code == 201
        return response.json()

    @pytest.mark.asyncio
    async def test_list_and_get(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        outfit = await self._generate(client, auth_headers, fake_ai, outfit_json)

        response = await client.get("/api/v1/outfits", headers=auth_headers)
        assert response.json()["total"] == 1

        response = await client.get(f"/api/v1/outfits/{outfit['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == outfit["id"]

    @pytest.mark.asyncio
    async def test_favorites_filter(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        first = await self._generate(client, auth_headers, fake_ai, outfit_json)
        await self._generate(client, auth_headers, fake_ai, outfit_json)

        response = await client.post(f"/api/v1/outfits/{first['id']}/favorite", headers=auth_headers)
        assert response.json()["favorite"] is True

        response = await client.get(
            "/api/v1/outfits", params={"favorites_only": "true"}, headers=auth_headers
        )
        data = response.json()
        assert data["total"] == 1
        assert data["outfits"][0]["id"] == first["id"]

    @pytest.mark.asyncio
    async def test_rate(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        outfit = await self._generate(client, auth_headers, fake_ai, outfit_json)

        response = await client.post(
            f"/api/v1/outfits/{outfit['id']}/rate",
            json={"rating": 5, "worn_at": "2024-06-01"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["rating"] == 5
        assert data["worn_at"] == "2024-06-01"

        response = await client.get("/api/v1/preferences/color-combinations", headers=auth_headers)
        assert response.json()["combinations"][0]["colors"] == "Blue-Grey-White"

    @pytest.mark.asyncio
    async def test_rate_out_of_range(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        outfit = await self._generate(client, auth_headers, fake_ai, outfit_json)
        response = await client.post(
            f"/api/v1/outfits/{outfit['id']}/rate", json={"rating": 6}, headers=auth_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, auth_headers, wardrobe, fake_ai, outfit_json):
        outfit = await self._generate(client, auth_headers, fake_ai, outfit_json)

        response = await client.delete(f"/api/v1/outfits/{outfit['id']}", headers=auth_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/outfits/{outfit['id']}", headers=auth_headers)
        assert response.status_code == 404
