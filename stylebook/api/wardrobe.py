from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import get_db
from stylebook.schemas.analysis import WardrobeAnalysisResponse
from stylebook.schemas.recommendation import RecommendationsResponse
from stylebook.schemas.usage import DailyUsageResponse
from stylebook.services.ai_service import AIService, get_ai_service
from stylebook.services.item_service import ItemService
from stylebook.services.rate_limit_service import RateLimitService
from stylebook.services.recommendation_service import RecommendationService, filter_by_category
from stylebook.services.wardrobe_analyzer import analyze_wardrobe, get_current_season
from stylebook.utils.auth import CurrentUser

router = APIRouter(tags=["Wardrobe"])


@router.get("/wardrobe/analysis", response_model=WardrobeAnalysisResponse)
async def get_wardrobe_analysis(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> WardrobeAnalysisResponse:
    items = await ItemService(db).list_items(current_user.id)
    analysis = analyze_wardrobe(items)
    return WardrobeAnalysisResponse(**analysis.model_dump(), current_season=get_current_season())


@router.post("/recommendations/shopping", response_model=RecommendationsResponse)
async def generate_shopping_recommendations(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    ai_service: Annotated[AIService, Depends(get_ai_service)],
    limit: int = Query(8, ge=1, le=20),
    category: str | None = Query(None, description="Only return this category ('all' for every one)"),
) -> RecommendationsResponse:
    result = await RecommendationService(db, ai_service).generate_recommendations(current_user, limit)
    result.recommendations = filter_by_category(result.recommendations, category)
    return result


@router.get("/usage", response_model=DailyUsageResponse)
async def get_daily_usage(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> DailyUsageResponse:
    return await RateLimitService(db).get_daily_usage(current_user.id)
