import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import get_db
from stylebook.models.item import ItemCategory
from stylebook.schemas.item import (
    BulkAnalyzeResponse,
    BulkSaveRequest,
    DeleteItemResponse,
    ItemAttributes,
    ItemListResponse,
    ItemResponse,
    ItemUpdate,
)
from stylebook.services.ai_service import AIService, get_ai_service
from stylebook.services.image_service import ImageService
from stylebook.services.item_service import ItemService
from stylebook.utils.auth import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/items", tags=["Items"])


def _split(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


@router.get("", response_model=ItemListResponse)
async def list_items(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    category: ItemCategory | None = None,
    favorite: bool | None = None,
    in_laundry: bool | None = None,
) -> ItemListResponse:
    items = await ItemService(db).list_items(
        current_user.id, category=category, favorite=favorite, in_laundry=in_laundry
    )
    return ItemListResponse(
        items=[ItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    ai_service: Annotated[AIService, Depends(get_ai_service)],
    image: UploadFile = File(...),
    category: ItemCategory | None = Form(None),  # Optional - AI will detect if not provided
    colors: str | None = Form(None),
    season: str | None = Form(None),
    style: str | None = Form(None),
    description: str | None = Form(None),
    favorite: bool | None = Form(None),
) -> ItemResponse:
    image_service = ImageService()
    content = await image.read()

    if not image_service.validate_image(content, image.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid image file. Supported formats: JPEG, PNG, WebP",
        )

    provided = {
        "category": category,
        "colors": _split(colors),
        "season": _split(season),
        "style": _split(style),
        "description": description,
        "favorite": favorite,
    }
    try:
        overrides = ItemAttributes(**{k: v for k, v in provided.items() if v is not None})
        item = await ItemService(db, image_service, ai_service).add_item_from_image(
            current_user.id,
            content,
            image.filename or "upload.jpg",
            overrides,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    return ItemResponse.model_validate(item)


@router.post("/analyze", response_model=BulkAnalyzeResponse)
async def analyze_images(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    ai_service: Annotated[AIService, Depends(get_ai_service)],
    images: list[UploadFile] = File(..., description="Photos to analyze"),
) -> BulkAnalyzeResponse:
    uploads = [
        (upload.filename or "upload.jpg", await upload.read(), upload.content_type)
        for upload in images
    ]
    return await ItemService(db, ai_service=ai_service).analyze_images(current_user.id, uploads)


@router.post("/bulk", response_model=ItemListResponse, status_code=status.HTTP_201_CREATED)
async def save_detected_items(
    data: BulkSaveRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ItemListResponse:
    try:
        items = await ItemService(db).save_detected_items(current_user.id, data.items)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    return ItemListResponse(
        items=[ItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ItemResponse:
    item = await ItemService(db).get_item(item_id, current_user.id)
    return ItemResponse.model_validate(item)


@router.patch("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: UUID,
    data: ItemUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ItemResponse:
    item_service = ItemService(db)
    item = await item_service.get_item(item_id, current_user.id)
    item = await item_service.update_item(item, data)
    return ItemResponse.model_validate(item)


@router.delete("/{item_id}", response_model=DeleteItemResponse)
async def delete_item(
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> DeleteItemResponse:
    item_service = ItemService(db)
    item = await item_service.get_item(item_id, current_user.id)
    image_deleted = await item_service.delete_item(item)
    return DeleteItemResponse(image_deleted=image_deleted)


@router.post("/{item_id}/favorite", response_model=ItemResponse)
async def toggle_favorite(
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> ItemResponse:
    item_service = ItemService(db)
    item = await item_service.get_item(item_id, current_user.id)
    return ItemResponse.model_validate(await item_service.toggle_favorite(item))


@router.post("/{item_id}/laundry", response_model=ItemResponse)
async def toggle_laundry(
    item_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    in_laundry: bool | None = Query(None, description="Set explicitly instead of toggling"),
) -> ItemResponse:
    item_service = ItemService(db)
    item = await item_service.get_item(item_id, current_user.id)
    if in_laundry is None or in_laundry != item.in_laundry:
        item = await item_service.toggle_laundry(item)
    return ItemResponse.model_validate(item)
