import datetime

from pydantic import BaseModel


class LimitCheck(BaseModel):
    allowed: bool
    remaining: int
    current: int
    limit: int
    # Set when the usage store could not be read and the check failed open
    error: str | None = None


class DailyUsageResponse(BaseModel):
    usage_date: datetime.date
    usage: dict[str, int]
    limits: dict[str, int]
    remaining: dict[str, int]
