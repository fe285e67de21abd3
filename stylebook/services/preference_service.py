"""
Running preference model learned from outfit ratings.

The aggregate is kept as one document per user. Updates read the document,
apply the rating in memory and write the whole document back with a single
upsert, so two ratings racing on the same user resolve last-write-wins.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import upsert_for
from stylebook.exceptions import PersistenceError
from stylebook.models.preference import PreferenceModel
from stylebook.schemas.outfit import SelectedItemSnapshot
from stylebook.schemas.preference import (
    CombinationStat,
    ItemPreference,
    LookupStatus,
    PreferenceLookup,
    PreferenceSnapshot,
    RankedCombination,
    RankedItem,
)

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "-"
MIN_RATING = 1
MAX_RATING = 5

# Ranking cutoffs
TOP_RATED_MIN_AVG = 4
LOW_RATED_MAX_AVG = 3
LOW_RATED_MIN_WEARS = 2


def canonical_key(values: Iterable[str | None]) -> str:
    """Order-independent key: deduplicate, sort, join. Empty values are dropped."""
    return KEY_SEPARATOR.join(sorted({v for v in values if v}))


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValueError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def _bump_combination(stats: dict[str, CombinationStat], key: str, rating: int) -> None:
    if not key:
        return
    stat = stats.setdefault(key, CombinationStat())
    stat.count += 1
    stat.total_rating += rating
    stat.avg_rating = stat.total_rating / stat.count


def apply_rating(
    snapshot: PreferenceSnapshot,
    selected_items: Sequence[SelectedItemSnapshot | dict],
    rating: int,
    style_notes: str | None = None,
) -> PreferenceSnapshot:
    """
    Fold one outfit rating into a copy of ``snapshot`` and return it.

    Item statistics are updated for every selected item. Color and category
    combinations are only tracked for outfits with more than one item, and
    style pairings only when the outfit carried style notes.
    """
    validate_rating(rating)
    updated = snapshot.model_copy(deep=True)
    items = [
        item if isinstance(item, SelectedItemSnapshot) else SelectedItemSnapshot.model_validate(item)
        for item in selected_items
    ]

    for item in items:
        pref = updated.item_preferences.setdefault(item.id, ItemPreference())
        pref.times_worn += 1
        pref.total_rating += rating
        pref.avg_rating = pref.total_rating / pref.times_worn
        pref.success_rate = pref.avg_rating / MAX_RATING

    if len(items) > 1:
        colors = canonical_key(color for item in items for color in item.colors)
        _bump_combination(updated.color_combinations, colors, rating)

        categories = canonical_key(item.category for item in items)
        _bump_combination(updated.category_pairings, categories, rating)

    if style_notes:
        styles = canonical_key(style for item in items for style in item.style)
        _bump_combination(updated.style_pairings, styles, rating)

    updated.updated_at = datetime.now(UTC)
    return updated


def top_rated_items(snapshot: PreferenceSnapshot, limit: int = 10) -> list[RankedItem]:
    ranked = [
        RankedItem(id=item_id, **pref.model_dump())
        for item_id, pref in snapshot.item_preferences.items()
        if pref.avg_rating >= TOP_RATED_MIN_AVG
    ]
    # sorted() is stable, so ties keep mapping order
    ranked = sorted(ranked, key=lambda item: item.avg_rating, reverse=True)
    return ranked[:limit]


def low_rated_items(snapshot: PreferenceSnapshot, limit: int = 5) -> list[RankedItem]:
    ranked = [
        RankedItem(id=item_id, **pref.model_dump())
        for item_id, pref in snapshot.item_preferences.items()
        if pref.avg_rating < LOW_RATED_MAX_AVG and pref.times_worn >= LOW_RATED_MIN_WEARS
    ]
    ranked = sorted(ranked, key=lambda item: item.avg_rating)
    return ranked[:limit]


def top_color_combinations(snapshot: PreferenceSnapshot, limit: int = 5) -> list[RankedCombination]:
    ranked = [
        RankedCombination(colors=colors, **stat.model_dump())
        for colors, stat in snapshot.color_combinations.items()
        if stat.avg_rating >= TOP_RATED_MIN_AVG
    ]
    ranked = sorted(ranked, key=lambda combo: combo.avg_rating, reverse=True)
    return ranked[:limit]


class PreferenceService:
    """Store access for the per-user preference document.

    Writes are flushed but not committed; the caller owns the transaction so a
    rating and the preference update land together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_model(self, user_id: uuid.UUID) -> PreferenceSnapshot | None:
        try:
            result = await self.db.execute(
                select(PreferenceModel)
                .where(PreferenceModel.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load preferences: {e}") from e

        if row is None:
            return None
        return PreferenceSnapshot.model_validate(
            {
                "item_preferences": row.item_preferences or {},
                "color_combinations": row.color_combinations or {},
                "style_pairings": row.style_pairings or {},
                "category_pairings": row.category_pairings or {},
                "updated_at": row.updated_at,
            }
        )

    async def save_model(self, user_id: uuid.UUID, snapshot: PreferenceSnapshot) -> None:
        """Write the whole document in one statement (insert or replace)."""
        document = snapshot.model_dump(mode="json", exclude={"updated_at"})
        updated_at = snapshot.updated_at or datetime.now(UTC)

        try:
            insert = upsert_for(self.db)
            stmt = insert(PreferenceModel).values(
                user_id=user_id, updated_at=updated_at, **document
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[PreferenceModel.user_id],
                set_={
                    "item_preferences": stmt.excluded.item_preferences,
                    "color_combinations": stmt.excluded.color_combinations,
                    "style_pairings": stmt.excluded.style_pairings,
                    "category_pairings": stmt.excluded.category_pairings,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save preferences: {e}") from e

    async def get_preferences(self, user_id: uuid.UUID) -> PreferenceLookup:
        """Tagged lookup; a missing document is ``empty``, not an error."""
        snapshot = await self.load_model(user_id)
        if snapshot is None:
            return PreferenceLookup(status=LookupStatus.empty)
        return PreferenceLookup(status=LookupStatus.found, preferences=snapshot)

    async def lookup_preferences(self, user_id: uuid.UUID) -> PreferenceLookup:
        """Like ``get_preferences`` but reports store failures as ``unavailable``."""
        try:
            return await self.get_preferences(user_id)
        except PersistenceError as e:
            logger.warning(f"Preferences unavailable for user {user_id}: {e}")
            return PreferenceLookup(status=LookupStatus.unavailable, error=str(e))

    async def record_rating(
        self,
        user_id: uuid.UUID,
        selected_items: Sequence[SelectedItemSnapshot | dict],
        rating: int,
        style_notes: str | None = None,
    ) -> PreferenceSnapshot:
        validate_rating(rating)

        snapshot = await self.load_model(user_id) or PreferenceSnapshot()
        updated = apply_rating(snapshot, selected_items, rating, style_notes)
        await self.save_model(user_id, updated)

        logger.info(
            f"Recorded rating {rating} for user {user_id} across {len(selected_items)} items"
        )
        return updated

    async def get_top_rated_items(self, user_id: uuid.UUID, limit: int = 10) -> list[RankedItem]:
        lookup = await self.get_preferences(user_id)
        return top_rated_items(lookup.preferences, limit)

    async def get_low_rated_items(self, user_id: uuid.UUID, limit: int = 5) -> list[RankedItem]:
        lookup = await self.get_preferences(user_id)
        return low_rated_items(lookup.preferences, limit)

    async def get_top_color_combinations(
        self, user_id: uuid.UUID, limit: int = 5
    ) -> list[RankedCombination]:
        lookup = await self.get_preferences(user_id)
        return top_color_combinations(lookup.preferences, limit)

    async def calculate_item_success_rate(
        self, user_id: uuid.UUID, item_id: uuid.UUID | str
    ) -> ItemPreference:
        lookup = await self.get_preferences(user_id)
        return lookup.preferences.item_preferences.get(str(item_id), ItemPreference())
