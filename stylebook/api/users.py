from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import get_db
from stylebook.schemas.user import UserResponse, UserUpdate
from stylebook.services.user_service import UserService
from stylebook.utils.auth import CurrentUser

router = APIRouter(prefix="/users/me", tags=["Users"])


@router.get("", response_model=UserResponse)
async def get_profile(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> UserResponse:
    user = await UserService(db).update(current_user, data)
    return UserResponse.model_validate(user)
