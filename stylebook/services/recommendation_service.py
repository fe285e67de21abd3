import logging

from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.exceptions import PersistenceError
from stylebook.models.user import User
from stylebook.schemas.recommendation import RecommendationsResponse, ShoppingRecommendation
from stylebook.services.ai_service import (
    AIService,
    ComboHint,
    LearnedPreferences,
    PreferenceHint,
    ShoppingContext,
)
from stylebook.services.item_service import ItemService
from stylebook.services.preference_service import (
    PreferenceService,
    low_rated_items,
    top_color_combinations,
    top_rated_items,
)
from stylebook.services.rate_limit_service import ActionType, RateLimitService
from stylebook.services.wardrobe_analyzer import analyze_wardrobe

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATION_COUNT = 8


def filter_by_category(
    recommendations: list[ShoppingRecommendation], category: str | None
) -> list[ShoppingRecommendation]:
    if not category or category == "all":
        return recommendations
    return [rec for rec in recommendations if rec.category == category]


class RecommendationService:
    """Shopping suggestions from wardrobe gaps and learned taste."""

    def __init__(
        self,
        db: AsyncSession,
        ai_service: AIService,
        rate_limits: RateLimitService | None = None,
    ):
        self.db = db
        self.ai_service = ai_service
        self.rate_limits = rate_limits or RateLimitService(db)
        self.preferences = PreferenceService(db)
        self.items = ItemService(db)

    async def generate_recommendations(
        self, user: User, limit: int = DEFAULT_RECOMMENDATION_COUNT
    ) -> RecommendationsResponse:
        await self.rate_limits.enforce_limit(user.id, ActionType.SHOPPING_RECOMMENDATIONS)

        catalog = await self.items.list_items(user.id)
        analysis = analyze_wardrobe(catalog)
        by_id = {str(item.id): item for item in catalog}

        learned = LearnedPreferences()
        lookup = await self.preferences.lookup_preferences(user.id)
        if lookup.available:
            snapshot = lookup.preferences
            learned = LearnedPreferences(
                total_ratings=snapshot.total_ratings,
                top_items=[
                    PreferenceHint(
                        description=by_id[r.id].description if r.id in by_id else "Unknown item",
                        avg_rating=r.avg_rating,
                    )
                    for r in top_rated_items(snapshot, 5)
                ],
                top_color_combos=[
                    ComboHint(colors=c.colors, avg_rating=c.avg_rating)
                    for c in top_color_combinations(snapshot, 3)
                ],
                low_rated_items=[
                    PreferenceHint(
                        description=by_id[r.id].description if r.id in by_id else "Unknown item",
                        avg_rating=r.avg_rating,
                    )
                    for r in low_rated_items(snapshot, 3)
                ],
            )
        else:
            logger.warning(f"Recommending without learned preferences for user {user.id}")

        context = ShoppingContext(
            analysis=analysis,
            limit=limit,
            gender=user.gender,
            preferences=learned,
            favorite_descriptions=[item.description for item in catalog if item.favorite and item.description],
        )
        recommendations = await self.ai_service.generate_shopping_text(context)

        try:
            await self.rate_limits.increment_usage(user.id, ActionType.SHOPPING_RECOMMENDATIONS)
        except PersistenceError:
            logger.exception(f"Failed to record recommendation usage for user {user.id}")

        logger.info(f"Generated {len(recommendations)} recommendations for user {user.id}")
        return RecommendationsResponse(recommendations=recommendations, wardrobe_analysis=analysis)
