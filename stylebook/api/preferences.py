from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import get_db
from stylebook.schemas.preference import (
    ItemSuccessResponse,
    PreferenceLookup,
    RankedCombinationsResponse,
    RankedItemsResponse,
)
from stylebook.services.preference_service import PreferenceService
from stylebook.utils.auth import CurrentUser

router = APIRouter(prefix="/preferences", tags=["Preferences"])


@router.get("", response_model=PreferenceLookup)
async def get_preferences(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> PreferenceLookup:
    return await PreferenceService(db).get_preferences(current_user.id)


@router.get("/top-items", response_model=RankedItemsResponse)
async def get_top_rated_items(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    limit: int = Query(10, ge=1, le=100),
) -> RankedItemsResponse:
    items = await PreferenceService(db).get_top_rated_items(current_user.id, limit)
    return RankedItemsResponse(items=items)


@router.get("/low-rated-items", response_model=RankedItemsResponse)
async def get_low_rated_items(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    limit: int = Query(5, ge=1, le=100),
) -> RankedItemsResponse:
    items = await PreferenceService(db).get_low_rated_items(current_user.id, limit)
    return RankedItemsResponse(items=items)


@router.get("/color-combinations", response_model=RankedCombinationsResponse)
async def get_top_color_combinations(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    limit: int = Query(5, ge=1, le=100),
) -> RankedCombinationsResponse:
    combos = await PreferenceService(db).get_top_color_combinations(current_user.id, limit)
    return RankedCombinationsResponse(combinations=combos)


@router.get("/items/{item_id}", response_model=ItemSuccessResponse)
async def get_item_success_rate(
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ItemSuccessResponse:
    stats = await PreferenceService(db).calculate_item_success_rate(current_user.id, item_id)
    return ItemSuccessResponse(item_id=str(item_id), **stats.model_dump())
