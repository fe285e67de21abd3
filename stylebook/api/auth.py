from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.config import get_settings
from stylebook.database import get_db
from stylebook.schemas.user import AuthStatusResponse, UserResponse, UserSyncRequest, UserSyncResponse
from stylebook.services.user_service import UserEmailConflictError, UserService
from stylebook.utils.auth import CurrentUser, create_access_token

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status() -> AuthStatusResponse:
    return AuthStatusResponse(mode=settings.get_auth_mode())


@router.post("/sync", response_model=UserSyncResponse)
async def sync_user(
    sync_data: UserSyncRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserSyncResponse:
    # Client-supplied claims are only trusted behind a proxy or in dev
    if settings.get_auth_mode() == "token":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User sync is disabled")

    try:
        user, created = await UserService(db).sync_from_provider(sync_data)
    except UserEmailConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from None

    return UserSyncResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        is_new_user=created,
        access_token=create_access_token(user.external_id),
    )


@router.get("/session", response_model=UserResponse)
async def get_session(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)
