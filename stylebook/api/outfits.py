import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.config import get_settings
from stylebook.database import get_db
from stylebook.schemas.outfit import (
    GenerateOutfitRequest,
    OutfitListResponse,
    OutfitResponse,
    RateOutfitRequest,
)
from stylebook.services.ai_service import AIService, get_ai_service
from stylebook.services.outfit_service import OutfitService
from stylebook.utils.auth import CurrentUser
from stylebook.workers.outfit_images import enqueue_outfit_image

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/outfits", tags=["Outfits"])


@router.post("/generate", response_model=OutfitResponse, status_code=status.HTTP_201_CREATED)
async def generate_outfit(
    request: GenerateOutfitRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    ai_service: Annotated[AIService, Depends(get_ai_service)],
) -> OutfitResponse:
    try:
        outfit = await OutfitService(db, ai_service).generate_outfit(current_user, request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    if settings.outfit_images_enabled:
        try:
            await enqueue_outfit_image(outfit.id)
        except Exception as e:
            # The outfit stands without a picture
            logger.warning(f"Failed to queue image job for outfit {outfit.id}: {e}")

    return OutfitResponse.model_validate(outfit)


@router.get("", response_model=OutfitListResponse)
async def list_outfits(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    favorites_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> OutfitListResponse:
    outfits, total = await OutfitService(db).list_history(
        current_user.id, favorites_only=favorites_only, limit=limit, offset=offset
    )
    return OutfitListResponse(
        outfits=[OutfitResponse.model_validate(o) for o in outfits],
        total=total,
    )


@router.get("/{outfit_id}", response_model=OutfitResponse)
async def get_outfit(
    outfit_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> OutfitResponse:
    outfit = await OutfitService(db).get_outfit(outfit_id, current_user.id)
    return OutfitResponse.model_validate(outfit)


@router.post("/{outfit_id}/rate", response_model=OutfitResponse)
async def rate_outfit(
    outfit_id: UUID,
    data: RateOutfitRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> OutfitResponse:
    outfit = await OutfitService(db).rate_outfit(
        current_user, outfit_id, data.rating, worn_at=data.worn_at
    )
    return OutfitResponse.model_validate(outfit)


@router.post("/{outfit_id}/favorite", response_model=OutfitResponse)
async def toggle_favorite(
    outfit_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> OutfitResponse:
    service = OutfitService(db)
    outfit = await service.get_outfit(outfit_id, current_user.id)
    return OutfitResponse.model_validate(await service.toggle_favorite(outfit))


@router.delete("/{outfit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_outfit(
    outfit_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> None:
    service = OutfitService(db)
    outfit = await service.get_outfit(outfit_id, current_user.id)
    await service.delete_outfit(outfit)
