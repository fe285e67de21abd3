import logging
import uuid
from collections.abc import Callable
from datetime import date
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import upsert_for
from stylebook.exceptions import PersistenceError, QuotaExceededError
from stylebook.models.usage import DailyUsage
from stylebook.schemas.usage import DailyUsageResponse, LimitCheck

logger = logging.getLogger(__name__)


class ActionType(StrEnum):
    OUTFIT_GENERATION = "OUTFIT_GENERATION"
    SHOPPING_RECOMMENDATIONS = "SHOPPING_RECOMMENDATIONS"


# Per-user daily allowance
LIMITS: dict[ActionType, int] = {
    ActionType.OUTFIT_GENERATION: 10,
    ActionType.SHOPPING_RECOMMENDATIONS: 5,
}


def _action(action: ActionType | str) -> ActionType:
    try:
        return ActionType(action)
    except ValueError:
        raise ValueError(f"Unknown action type: {action!r}") from None


class RateLimitService:
    """
    Daily per-action quotas.

    The day key is the server's local calendar date with no timezone
    handling, so quotas reset at server midnight.
    """

    def __init__(self, db: AsyncSession, today: Callable[[], date] = date.today):
        self.db = db
        self._today = today

    async def _current_usage(self, user_id: uuid.UUID, action: ActionType) -> int:
        try:
            result = await self.db.execute(
                select(DailyUsage.count).where(
                    DailyUsage.user_id == user_id,
                    DailyUsage.usage_date == self._today(),
                    DailyUsage.action_type == action.value,
                )
            )
            return result.scalar_one_or_none() or 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read usage: {e}") from e

    async def check_limit(self, user_id: uuid.UUID, action: ActionType | str) -> LimitCheck:
        action = _action(action)
        limit = LIMITS[action]

        try:
            current = await self._current_usage(user_id, action)
        except PersistenceError as e:
            # Fail open: an unreadable counter never blocks the user
            logger.warning(f"Rate limit check failed open for user {user_id} ({action}): {e}")
            return LimitCheck(allowed=True, remaining=limit, current=0, limit=limit, error=str(e))

        return LimitCheck(
            allowed=current < limit,
            remaining=max(0, limit - current),
            current=current,
            limit=limit,
        )

    async def enforce_limit(self, user_id: uuid.UUID, action: ActionType | str) -> LimitCheck:
        check = await self.check_limit(user_id, action)
        if not check.allowed:
            raise QuotaExceededError(str(_action(action)), check.limit, check.current)
        return check

    async def increment_usage(self, user_id: uuid.UUID, action: ActionType | str) -> None:
        """Add one to today's counter with a single atomic upsert."""
        action = _action(action)
        try:
            insert = upsert_for(self.db)
            stmt = insert(DailyUsage).values(
                user_id=user_id,
                usage_date=self._today(),
                action_type=action.value,
                count=1,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[DailyUsage.user_id, DailyUsage.usage_date, DailyUsage.action_type],
                set_={"count": DailyUsage.count + 1},
            )
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to increment usage: {e}") from e

        logger.info(f"Usage incremented for user {user_id}: {action}")

    async def get_daily_usage(self, user_id: uuid.UUID) -> DailyUsageResponse:
        today = self._today()
        try:
            result = await self.db.execute(
                select(DailyUsage.action_type, DailyUsage.count).where(
                    DailyUsage.user_id == user_id,
                    DailyUsage.usage_date == today,
                )
            )
            rows = dict(result.all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read usage: {e}") from e

        usage = {str(action): rows.get(action.value, 0) for action in ActionType}
        limits = {str(action): limit for action, limit in LIMITS.items()}
        return DailyUsageResponse(
            usage_date=today,
            usage=usage,
            limits=limits,
            remaining={key: max(0, limits[key] - usage[key]) for key in usage},
        )
