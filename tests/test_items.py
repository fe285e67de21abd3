from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.exceptions import ExternalServiceError
from stylebook.schemas.item import ItemAttributes
from stylebook.services.image_service import ImageService
from stylebook.services.item_service import ItemService

DETECTION = """{"items": [
    {"category": "top", "colors": ["Blue"], "season": ["summer"], "style": ["casual"],
     "description": "blue linen shirt", "confidence": 0.92},
    {"category": "bottom", "colors": ["Beige"], "description": "beige shorts", "confidence": 0.8}
]}"""


class TestItemList:
    """Tests for item listing endpoint."""

    @pytest.mark.asyncio
    async def test_list_items_empty(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get("/api/v1/items", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    @pytest.mark.asyncio
    async def test_list_newest_first(self, client: AsyncClient, test_user, auth_headers, make_item):
        older = await make_item(test_user, description="older")
        newer = await make_item(test_user, description="newer")

        response = await client.get("/api/v1/items", headers=auth_headers)
        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["items"]]
        assert ids == [str(newer.id), str(older.id)]

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, test_user, auth_headers, make_item):
        await make_item(test_user, category="top")
        shoes = await make_item(test_user, category="shoes", favorite=True)
        await make_item(test_user, category="shoes", in_laundry=True)

        response = await client.get(
            "/api/v1/items",
            params={"category": "shoes", "in_laundry": "false"},
            headers=auth_headers,
        )
        assert [i["id"] for i in response.json()["items"]] == [str(shoes.id)]

        response = await client.get("/api/v1/items", params={"favorite": "true"}, headers=auth_headers)
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_item_urls(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user, thumbnail_path=f"{test_user.id}/thumb.jpg")

        response = await client.get(f"/api/v1/items/{item.id}", headers=auth_headers)
        data = response.json()
        assert data["image_url"] == f"/api/v1/images/{item.image_path}"
        assert data["thumbnail_url"] == f"/api/v1/images/{test_user.id}/thumb.jpg"

    @pytest.mark.asyncio
    async def test_get_missing_item(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get(f"/api/v1/items/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404


class TestItemCreate:
    """Uploading a photo creates an item from the first detection."""

    @pytest.mark.asyncio
    async def test_create_from_detection(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue(DETECTION)

        response = await client.post(
            "/api/v1/items",
            files={"image": ("shirt.png", png_bytes, "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["category"] == "top"
        assert data["description"] == "blue linen shirt"
        assert data["confidence"] == pytest.approx(0.92)
        assert data["image_path"].startswith(f"{test_user.id}/")
        assert ImageService().get_image_path(data["image_path"]).exists()

    @pytest.mark.asyncio
    async def test_explicit_fields_win(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue(DETECTION)

        response = await client.post(
            "/api/v1/items",
            files={"image": ("shirt.png", png_bytes, "image/png")},
            data={"category": "outerwear", "colors": "Navy, White"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["category"] == "outerwear"
        assert data["colors"] == ["Navy", "White"]
        assert data["description"] == "blue linen shirt"

    @pytest.mark.asyncio
    async def test_nothing_detected(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue('{"items": []}')

        response = await client.post(
            "/api/v1/items",
            files={"image": ("blank.png", png_bytes, "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["category"] == "other"

    @pytest.mark.asyncio
    async def test_ai_down_returns_502(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue(ExternalServiceError("timeout"))

        response = await client.post(
            "/api/v1/items",
            files={"image": ("shirt.png", png_bytes, "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 502

        listing = await client.get("/api/v1/items", headers=auth_headers)
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_rejects_non_image(self, client: AsyncClient, test_user, auth_headers):
        response = await client.post(
            "/api/v1/items",
            files={"image": ("notes.png", b"not really a png", "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 400


class TestBulkUpload:
    @pytest.mark.asyncio
    async def test_analyze_then_save(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue(DETECTION)

        response = await client.post(
            "/api/v1/items/analyze",
            files=[("images", ("outfit.png", png_bytes, "image/png"))],
            headers=auth_headers,
        )
        assert response.status_code == 200
        analysis = response.json()
        assert analysis["total_detected"] == 2
        assert analysis["failed"] == 0

        image = analysis["images"][0]
        payload = {
            "items": [
                {**detected, "image_path": image["image_path"], "thumbnail_path": image["thumbnail_path"]}
                for detected in image["items"]
            ]
        }
        response = await client.post("/api/v1/items/bulk", json=payload, headers=auth_headers)
        assert response.status_code == 201
        saved = response.json()["items"]
        assert len(saved) == 2
        assert saved[0]["image_path"] == saved[1]["image_path"]

    @pytest.mark.asyncio
    async def test_analyze_reports_bad_files(self, client: AsyncClient, test_user, auth_headers, fake_ai, png_bytes):
        fake_ai.queue(DETECTION)

        response = await client.post(
            "/api/v1/items/analyze",
            files=[
                ("images", ("broken.png", b"garbage", "image/png")),
                ("images", ("good.png", png_bytes, "image/png")),
            ],
            headers=auth_headers,
        )
        data = response.json()
        assert data["failed"] == 1
        assert data["images"][0]["error"]
        assert len(data["images"][1]["items"]) == 2

    @pytest.mark.asyncio
    async def test_save_rejects_foreign_image(self, client: AsyncClient, test_user, auth_headers):
        response = await client.post(
            "/api/v1/items/bulk",
            json={"items": [{"category": "top", "image_path": f"{uuid4()}/stolen.jpg"}]},
            headers=auth_headers,
        )
        assert response.status_code == 400


class TestItemUpdate:
    @pytest.mark.asyncio
    async def test_update_fields(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user, description="old")

        response = await client.patch(
            f"/api/v1/items/{item.id}",
            json={"description": "new", "season": ["fall", "winter"]},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["description"] == "new"
        assert data["season"] == ["fall", "winter"]

    @pytest.mark.asyncio
    async def test_unknown_season_rejected(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user)
        response = await client.patch(
            f"/api/v1/items/{item.id}", json={"season": ["monsoon"]}, headers=auth_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_toggle_favorite(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user)

        response = await client.post(f"/api/v1/items/{item.id}/favorite", headers=auth_headers)
        assert response.json()["favorite"] is True
        response = await client.post(f"/api/v1/items/{item.id}/favorite", headers=auth_headers)
        assert response.json()["favorite"] is False

    @pytest.mark.asyncio
    async def test_laundry(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user)

        response = await client.post(f"/api/v1/items/{item.id}/laundry", headers=auth_headers)
        data = response.json()
        assert data["in_laundry"] is True
        assert data["laundry_date"] is not None

        # setting the current state explicitly is a no-op
        response = await client.post(
            f"/api/v1/items/{item.id}/laundry", params={"in_laundry": "true"}, headers=auth_headers
        )
        assert response.json()["in_laundry"] is True

        response = await client.post(
            f"/api/v1/items/{item.id}/laundry", params={"in_laundry": "false"}, headers=auth_headers
        )
        assert response.json()["in_laundry"] is False
        assert response.json()["laundry_date"] is None


class TestItemDelete:
    @pytest.mark.asyncio
    async def test_shared_image_kept_until_last_item(
        self, db_session: AsyncSession, test_user, png_bytes
    ):
        image_service = ImageService()
        paths = image_service.process_and_store(test_user.id, png_bytes, "look.png")
        service = ItemService(db_session, image_service)

        first = await service.create_item(test_user.id, paths, ItemAttributes(category="top"))
        second = await service.create_item(test_user.id, paths, ItemAttributes(category="bottom"))

        assert await service.delete_item(first) is False
        assert image_service.get_image_path(paths["image_path"]).exists()

        assert await service.delete_item(second) is True
        assert not image_service.get_image_path(paths["image_path"]).exists()
        assert not image_service.get_image_path(paths["thumbnail_path"]).exists()

    @pytest.mark.asyncio
    async def test_delete_endpoint(self, client: AsyncClient, test_user, auth_headers, make_item):
        item = await make_item(test_user)

        response = await client.delete(f"/api/v1/items/{item.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"deleted": True, "image_deleted": True}

        response = await client.get(f"/api/v1/items/{item.id}", headers=auth_headers)
        assert response.status_code == 404


class TestImages:
    @pytest.mark.asyncio
    async def test_owner_can_fetch(self, client: AsyncClient, test_user, auth_headers, png_bytes):
        paths = ImageService().process_and_store(test_user.id, png_bytes, "look.png")

        response = await client.get(f"/api/v1/images/{paths['image_path']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_other_users_images_forbidden(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get(f"/api/v1/images/{uuid4()}/photo.jpg", headers=auth_headers)
        assert response.status_code == 403
