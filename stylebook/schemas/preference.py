from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ItemPreference(BaseModel):
    times_worn: int = 0
    total_rating: int = 0
    avg_rating: float = 0
    success_rate: float = 0


class CombinationStat(BaseModel):
    count: int = 0
    total_rating: int = 0
    avg_rating: float = 0


class PreferenceSnapshot(BaseModel):
    """In-memory copy of a user's preference document."""

    item_preferences: dict[str, ItemPreference] = Field(default_factory=dict)
    color_combinations: dict[str, CombinationStat] = Field(default_factory=dict)
    style_pairings: dict[str, CombinationStat] = Field(default_factory=dict)
    category_pairings: dict[str, CombinationStat] = Field(default_factory=dict)
    updated_at: datetime | None = None

    @property
    def total_ratings(self) -> int:
        """Number of distinct items that have received at least one rating."""
        return len(self.item_preferences)


class LookupStatus(StrEnum):
    found = "found"
    empty = "empty"
    unavailable = "unavailable"


class PreferenceLookup(BaseModel):
    status: LookupStatus
    preferences: PreferenceSnapshot = Field(default_factory=PreferenceSnapshot)
    error: str | None = None

    @property
    def available(self) -> bool:
        return self.status != LookupStatus.unavailable


class RankedItem(ItemPreference):
    id: str


class RankedCombination(CombinationStat):
    colors: str


class RankedItemsResponse(BaseModel):
    items: list[RankedItem]


class RankedCombinationsResponse(BaseModel):
    combinations: list[RankedCombination]


class ItemSuccessResponse(ItemPreference):
    item_id: str
