import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.exceptions import ExternalServiceError, NotFoundError
from stylebook.models.item import ClothingItem
from stylebook.schemas.item import (
    AnalyzedImage,
    BulkAnalyzeResponse,
    DetectedItem,
    DetectedItemSave,
    ItemAttributes,
    ItemUpdate,
)
from stylebook.services.ai_service import AIService
from stylebook.services.image_service import ImageService

logger = logging.getLogger(__name__)


class ItemService:
    def __init__(
        self,
        db: AsyncSession,
        image_service: ImageService | None = None,
        ai_service: AIService | None = None,
    ):
        self.db = db
        self._image_service = image_service
        self.ai_service = ai_service

    @property
    def image_service(self) -> ImageService:
        if self._image_service is None:
            self._image_service = ImageService()
        return self._image_service

    def _require_ai(self) -> AIService:
        if self.ai_service is None:
            raise RuntimeError("ItemService was created without an AI service")
        return self.ai_service

    async def get_by_id(self, item_id: UUID, user_id: UUID) -> ClothingItem | None:
        result = await self.db.execute(
            select(ClothingItem).where(
                and_(ClothingItem.id == item_id, ClothingItem.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_item(self, item_id: UUID, user_id: UUID) -> ClothingItem:
        item = await self.get_by_id(item_id, user_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    async def list_items(
        self,
        user_id: UUID,
        category: str | None = None,
        favorite: bool | None = None,
        in_laundry: bool | None = None,
    ) -> list[ClothingItem]:
        """User's catalog, newest first."""
        query = select(ClothingItem).where(ClothingItem.user_id == user_id)

        if category:
            query = query.where(ClothingItem.category == category)
        if favorite is not None:
            query = query.where(ClothingItem.favorite == favorite)
        if in_laundry is not None:
            query = query.where(ClothingItem.in_laundry == in_laundry)

        query = query.order_by(ClothingItem.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_item(
        self,
        user_id: UUID,
        image_paths: dict[str, str | None],
        attributes: ItemAttributes,
        confidence: float = 1.0,
        ai_analysis: dict | None = None,
    ) -> ClothingItem:
        item = ClothingItem(
            user_id=user_id,
            image_path=image_paths["image_path"],
            thumbnail_path=image_paths.get("thumbnail_path"),
            category=attributes.category,
            colors=list(attributes.colors),
            season=list(attributes.season),
            style=list(attributes.style),
            description=attributes.description,
            favorite=attributes.favorite,
            confidence=confidence,
            ai_analysis=ai_analysis,
        )

        self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item)
        logger.info(f"Created {item.category} item {item.id} for user {user_id}")
        return item

    async def add_item_from_image(
        self,
        user_id: UUID,
        image_data: bytes,
        filename: str,
        overrides: ItemAttributes | None = None,
    ) -> ClothingItem:
        """
        Store a photo and create one item from the first detected garment.

        Fields the caller set explicitly in ``overrides`` win over detection.
        When nothing is detected the item is created from ``overrides`` alone
        (category ``other`` unless given).
        """
        ai = self._require_ai()
        image_paths = self.image_service.process_and_store(user_id, image_data, filename)

        try:
            detected = await ai.analyze_image(image_data)
        except ExternalServiceError:
            self.image_service.delete_images(list(image_paths.values()))
            raise

        explicit = overrides.model_dump(exclude_unset=True) if overrides else {}
        if detected:
            first = detected[0]
            attributes = ItemAttributes(
                **{**first.model_dump(exclude={"confidence"}), **explicit}
            )
            return await self.create_item(
                user_id,
                image_paths,
                attributes,
                confidence=first.confidence,
                ai_analysis={"items": [d.model_dump(mode="json") for d in detected]},
            )

        logger.info(f"No clothing detected in {filename}; creating item from supplied attributes")
        return await self.create_item(user_id, image_paths, ItemAttributes(**explicit))

    async def analyze_images(
        self,
        user_id: UUID,
        uploads: list[tuple[str, bytes, str | None]],
    ) -> BulkAnalyzeResponse:
        """
        Store and analyze a batch of photos without creating items.

        ``uploads`` is a list of (filename, data, content_type). A failing file
        is reported in its entry and does not stop the batch.
        """
        ai = self._require_ai()
        results: list[AnalyzedImage] = []

        for filename, data, content_type in uploads:
            if not self.image_service.validate_image(data, content_type):
                results.append(AnalyzedImage(filename=filename, error="Invalid or unsupported image"))
                continue

            try:
                paths = self.image_service.process_and_store(user_id, data, filename)
            except ValueError as e:
                results.append(AnalyzedImage(filename=filename, error=str(e)))
                continue

            try:
                detected: list[DetectedItem] = await ai.analyze_image(data)
            except ExternalServiceError as e:
                logger.warning(f"Analysis failed for {filename}: {e}")
                self.image_service.delete_images(list(paths.values()))
                results.append(AnalyzedImage(filename=filename, error=str(e)))
                continue

            results.append(AnalyzedImage(filename=filename, items=detected, **paths))

        return BulkAnalyzeResponse(
            images=results,
            total_detected=sum(len(r.items) for r in results),
            failed=sum(1 for r in results if r.error),
        )

    async def save_detected_items(
        self, user_id: UUID, detections: list[DetectedItemSave]
    ) -> list[ClothingItem]:
        """Create one item per detection; detections from one photo share its image."""
        owner_prefix = f"{user_id}/"
        for detection in detections:
            if not detection.image_path.startswith(owner_prefix):
                raise ValueError(f"Image {detection.image_path} does not belong to this user")

        items = []
        for detection in detections:
            attributes = ItemAttributes(
                category=detection.category,
                colors=detection.colors,
                season=detection.season,
                style=detection.style,
                description=detection.description,
                favorite=detection.favorite,
            )
            items.append(
                await self.create_item(
                    user_id,
                    {"image_path": detection.image_path, "thumbnail_path": detection.thumbnail_path},
                    attributes,
                    confidence=detection.confidence,
                )
            )
        return items

    async def update_item(self, item: ClothingItem, item_data: ItemUpdate) -> ClothingItem:
        update_data = item_data.model_dump(exclude_unset=True)

        if "in_laundry" in update_data and update_data["in_laundry"] != item.in_laundry:
            item.laundry_date = datetime.now(UTC) if update_data["in_laundry"] else None

        for field, value in update_data.items():
            if value is None:
                continue
            setattr(item, field, value)

        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def toggle_favorite(self, item: ClothingItem) -> ClothingItem:
        item.favorite = not item.favorite
        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def toggle_laundry(self, item: ClothingItem) -> ClothingItem:
        item.in_laundry = not item.in_laundry
        item.laundry_date = datetime.now(UTC) if item.in_laundry else None
        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def count_image_references(self, image_path: str, exclude_id: UUID | None = None) -> int:
        query = select(func.count(ClothingItem.id)).where(ClothingItem.image_path == image_path)
        if exclude_id is not None:
            query = query.where(ClothingItem.id != exclude_id)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def delete_item(self, item: ClothingItem) -> bool:
        """
        Delete an item. Its image files are removed only when no other item
        still references the same photo. Returns whether the files were removed.
        """
        others = await self.count_image_references(item.image_path, exclude_id=item.id)
        paths = [item.image_path, item.thumbnail_path]

        await self.db.delete(item)
        await self.db.flush()

        if others:
            logger.info(f"Kept image {item.image_path}: still used by {others} other item(s)")
            return False

        self.image_service.delete_images(paths)
        return True


