from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.models.user import User
from stylebook.schemas.user import UserSyncRequest, UserUpdate


class UserEmailConflictError(Exception):
    pass


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()

    async def update(self, user: User, user_data: UserUpdate) -> User:
        for field, value in user_data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def sync_from_provider(self, sync_data: UserSyncRequest) -> tuple[User, bool]:
        """Create or refresh the user behind an external id. Returns (user, created)."""
        user = await self.get_by_external_id(sync_data.external_id)

        owner = await self.db.scalar(select(User.id).where(User.email == sync_data.email))
        if owner is not None and (user is None or owner != user.id):
            raise UserEmailConflictError(f"Email {sync_data.email} belongs to another account")

        created = user is None
        if created:
            user = User(external_id=sync_data.external_id)
            self.db.add(user)

        user.email = sync_data.email
        user.display_name = sync_data.display_name
        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()
        await self.db.refresh(user)
        return user, created
