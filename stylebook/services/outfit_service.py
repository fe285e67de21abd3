import logging
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.exceptions import NotFoundError, PersistenceError
from stylebook.models.item import ClothingItem
from stylebook.models.outfit import OutfitRecord
from stylebook.models.user import User
from stylebook.schemas.item import image_url_for
from stylebook.schemas.outfit import GenerateOutfitRequest, SelectedItemSnapshot
from stylebook.services.ai_service import (
    AIService,
    ComboHint,
    LearnedPreferences,
    OutfitConstraints,
    PreferenceHint,
    describe_catalog,
)
from stylebook.services.item_service import ItemService
from stylebook.services.outfit_matcher import match_outfit
from stylebook.services.preference_service import (
    PreferenceService,
    low_rated_items,
    top_color_combinations,
    top_rated_items,
    validate_rating,
)
from stylebook.services.rate_limit_service import ActionType, RateLimitService

logger = logging.getLogger(__name__)

# How much learned taste goes into a generation prompt
PROMPT_TOP_ITEMS = 5
PROMPT_TOP_COLOR_COMBOS = 3
PROMPT_LOW_RATED_ITEMS = 3


def snapshot_item(item: ClothingItem) -> SelectedItemSnapshot:
    return SelectedItemSnapshot(
        id=str(item.id),
        image_url=image_url_for(item.image_path),
        description=item.description or "",
        category=item.category,
        colors=list(item.colors or []),
        style=list(item.style or []),
    )


class OutfitService:
    def __init__(
        self,
        db: AsyncSession,
        ai_service: AIService | None = None,
        rate_limits: RateLimitService | None = None,
    ):
        self.db = db
        self.ai_service = ai_service
        self.rate_limits = rate_limits or RateLimitService(db)
        self.preferences = PreferenceService(db)
        self.items = ItemService(db)

    async def _learned_preferences(
        self, user_id: UUID, catalog: list[ClothingItem]
    ) -> LearnedPreferences | None:
        lookup = await self.preferences.lookup_preferences(user_id)
        if not lookup.available:
            logger.warning(f"Generating without learned preferences for user {user_id}: {lookup.error}")
            return None

        snapshot = lookup.preferences
        descriptions = {str(item.id): item.description for item in catalog}

        def hints(ranked) -> list[PreferenceHint]:
            return [
                PreferenceHint(
                    description=descriptions.get(r.id) or "Unknown item",
                    avg_rating=r.avg_rating,
                )
                for r in ranked
            ]

        return LearnedPreferences(
            total_ratings=snapshot.total_ratings,
            top_items=hints(top_rated_items(snapshot, PROMPT_TOP_ITEMS)),
            top_color_combos=[
                ComboHint(colors=c.colors, avg_rating=c.avg_rating)
                for c in top_color_combinations(snapshot, PROMPT_TOP_COLOR_COMBOS)
            ],
            low_rated_items=hints(low_rated_items(snapshot, PROMPT_LOW_RATED_ITEMS)),
        )

    async def generate_outfit(self, user: User, request: GenerateOutfitRequest) -> OutfitRecord:
        """
        Generate, match and record one outfit.

        The quota is checked before the AI is called and charged only after
        the record is stored, so failed generations cost nothing.
        """
        if self.ai_service is None:
            raise RuntimeError("OutfitService was created without an AI service")

        await self.rate_limits.enforce_limit(user.id, ActionType.OUTFIT_GENERATION)

        catalog = await self.items.list_items(user.id, in_laundry=False)
        if not catalog:
            raise ValueError("No clean items available. Add items or take some out of the laundry.")

        anchor = None
        if request.anchor_item_id:
            anchor = await self.items.get_item(request.anchor_item_id, user.id)

        constraints = OutfitConstraints(
            weather=request.weather,
            occasion=request.occasion,
            anchor_description=anchor.description if anchor else None,
            style=request.style,
            preferences=await self._learned_preferences(user.id, catalog),
        )

        generated = await self.ai_service.generate_outfit_text(describe_catalog(catalog), constraints)
        selected = match_outfit(generated.outfit, catalog, anchor)

        record = OutfitRecord(
            user_id=user.id,
            source_item_ids=[str(item.id) for item in catalog],
            selected_items=[snapshot_item(item).model_dump(mode="json") for item in selected],
            occasion=request.occasion,
            weather=request.weather.model_dump(mode="json") if request.weather else None,
            ai_suggestion=generated.model_dump(mode="json"),
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        await self.db.commit()

        try:
            await self.rate_limits.increment_usage(user.id, ActionType.OUTFIT_GENERATION)
        except PersistenceError:
            logger.exception(f"Failed to record usage for outfit {record.id}")

        logger.info(f"Generated outfit {record.id} with {len(selected)} items for user {user.id}")
        return record

    async def get_by_id(self, outfit_id: UUID, user_id: UUID) -> OutfitRecord | None:
        result = await self.db.execute(
            select(OutfitRecord).where(
                and_(OutfitRecord.id == outfit_id, OutfitRecord.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_outfit(self, outfit_id: UUID, user_id: UUID) -> OutfitRecord:
        outfit = await self.get_by_id(outfit_id, user_id)
        if outfit is None:
            raise NotFoundError(f"Outfit {outfit_id} not found")
        return outfit

    async def list_history(
        self,
        user_id: UUID,
        favorites_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[OutfitRecord], int]:
        query = select(OutfitRecord).where(OutfitRecord.user_id == user_id)
        if favorites_only:
            query = query.where(OutfitRecord.favorite.is_(True))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(OutfitRecord.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def toggle_favorite(self, outfit: OutfitRecord) -> OutfitRecord:
        outfit.favorite = not outfit.favorite
        await self.db.flush()
        await self.db.refresh(outfit)
        return outfit

    async def attach_image(self, outfit: OutfitRecord, image_url: str) -> OutfitRecord:
        outfit.image_url = image_url
        await self.db.flush()
        await self.db.refresh(outfit)
        return outfit

    async def rate_outfit(
        self,
        user: User,
        outfit_id: UUID,
        rating: int,
        worn_at: date | None = None,
    ) -> OutfitRecord:
        """
        Store a rating and fold it into the preference model in one
        transaction. Re-rating counts as a new rating event.
        """
        validate_rating(rating)
        outfit = await self.get_outfit(outfit_id, user.id)

        outfit.rating = rating
        outfit.rated_at = datetime.now(UTC)
        if worn_at is not None:
            outfit.worn_at = worn_at

        style_notes = (outfit.ai_suggestion or {}).get("style_notes")
        await self.preferences.record_rating(user.id, outfit.selected_items, rating, style_notes)

        await self.db.flush()
        await self.db.refresh(outfit)
        return outfit

    async def delete_outfit(self, outfit: OutfitRecord) -> None:
        await self.db.delete(outfit)
        await self.db.flush()
