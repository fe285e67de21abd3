import re

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from stylebook.services.image_service import ImageService
from stylebook.utils.auth import CurrentUser

router = APIRouter(prefix="/images", tags=["Images"])

FILENAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+\.(jpg|jpeg|png|webp)$")


@router.get("/{user_id}/{filename}")
async def get_image(
    user_id: str,
    filename: str,
    current_user: CurrentUser,
) -> FileResponse:
    # Images are private to their owner
    if str(current_user.id) != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    if not FILENAME_PATTERN.match(filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid path",
        )

    image_service = ImageService()
    image_path = image_service.get_image_path(f"{user_id}/{filename}")

    if not image_path.resolve().is_relative_to(image_service.storage_path.resolve()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid path",
        )

    if not image_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )

    return FileResponse(
        path=str(image_path),
        media_type="image/jpeg",
        headers={"Cache-Control": "private, max-age=31536000"},
    )
