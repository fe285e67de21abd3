import pytest
from httpx import AsyncClient

from stylebook.exceptions import ExternalServiceError
from stylebook.schemas.recommendation import ShoppingRecommendation
from stylebook.services.recommendation_service import filter_by_category

RECOMMENDATIONS = """```json
{"recommendations": [
    {"category": "shoes", "itemType": "loafers", "description": "brown suede loafers",
     "suggestedColors": ["Brown"], "priority": "high"},
    {"category": "outerwear", "itemType": "rain jacket", "priority": "medium"},
    {"category": "Shoes", "itemType": "boots", "priority": "low"}
]}
```"""


class TestWardrobeAnalysis:
    @pytest.mark.asyncio
    async def test_analysis(self, client: AsyncClient, test_user, auth_headers, make_item):
        await make_item(test_user, category="top", colors=["Blue"], season=["summer"])
        await make_item(test_user, category="top", colors=["White"], season=["summer"])

        response = await client.get("/api/v1/wardrobe/analysis", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 2
        assert data["category_counts"]["top"] == 2
        assert "bottom" in data["missing_categories"]
        assert data["strengths"] == []
        assert data["current_season"] in ("spring", "summer", "fall", "winter")


class TestShoppingRecommendations:
    @pytest.mark.asyncio
    async def test_recommendations(self, client: AsyncClient, test_user, auth_headers, make_item, fake_ai):
        await make_item(test_user, category="top")
        fake_ai.queue(RECOMMENDATIONS)

        response = await client.post("/api/v1/recommendations/shopping", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert len(data["recommendations"]) == 3
        assert data["recommendations"][0]["itemType"] == "loafers"
        assert data["wardrobe_analysis"]["total_items"] == 1

        usage = await client.get("/api/v1/usage", headers=auth_headers)
        assert usage.json()["usage"]["SHOPPING_RECOMMENDATIONS"] == 1
        assert usage.json()["remaining"]["SHOPPING_RECOMMENDATIONS"] == 4

    @pytest.mark.asyncio
    async def test_category_filter(self, client: AsyncClient, test_user, auth_headers, fake_ai):
        fake_ai.queue(RECOMMENDATIONS)

        response = await client.post(
            "/api/v1/recommendations/shopping", params={"category": "shoes"}, headers=auth_headers
        )
        items = response.json()["recommendations"]
        assert [r["itemType"] for r in items] == ["loafers", "boots"]

    @pytest.mark.asyncio
    async def test_daily_limit(self, client: AsyncClient, test_user, auth_headers, fake_ai):
        for _ in range(5):
            fake_ai.queue(RECOMMENDATIONS)
            response = await client.post("/api/v1/recommendations/shopping", headers=auth_headers)
            assert response.status_code == 200

        response = await client.post("/api/v1/recommendations/shopping", headers=auth_headers)
        assert response.status_code == 429
        assert response.json()["action"] == "SHOPPING_RECOMMENDATIONS"

    @pytest.mark.asyncio
    async def test_ai_failure_not_charged(self, client: AsyncClient, test_user, auth_headers, fake_ai):
        fake_ai.queue(ExternalServiceError("bad gateway"))

        response = await client.post("/api/v1/recommendations/shopping", headers=auth_headers)
        assert response.status_code == 502

        usage = await client.get("/api/v1/usage", headers=auth_headers)
        assert usage.json()["usage"]["SHOPPING_RECOMMENDATIONS"] == 0


def test_filter_all_keeps_everything():
    recs = [ShoppingRecommendation(category="top"), ShoppingRecommendation(category="shoes")]
    assert filter_by_category(recs, "all") == recs
    assert filter_by_category(recs, None) == recs
    assert filter_by_category(recs, "shoes") == recs[1:]
