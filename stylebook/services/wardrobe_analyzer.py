from collections import Counter
from collections.abc import Iterable
from datetime import date

from stylebook.models.item import ClothingItem, ItemCategory
from stylebook.schemas.analysis import WardrobeAnalysis

ANALYZED_CATEGORIES = (
    ItemCategory.top,
    ItemCategory.bottom,
    ItemCategory.shoes,
    ItemCategory.outerwear,
    ItemCategory.accessory,
    ItemCategory.dress,
    ItemCategory.suit,
)
SEASONS = ("spring", "summer", "fall", "winter")

# A season with fewer items than this is a gap
SEASONAL_GAP_THRESHOLD = 3
# A category with at least this many items is a strength
STRENGTH_THRESHOLD = 3


def analyze_wardrobe(items: Iterable[ClothingItem]) -> WardrobeAnalysis:
    """Category, color, style and season coverage of a catalog snapshot."""
    items = list(items)

    category_counts = {str(cat): 0 for cat in ANALYZED_CATEGORIES}
    colors: Counter[str] = Counter()
    styles: Counter[str] = Counter()
    season_counts = {season: 0 for season in SEASONS}

    for item in items:
        if item.category in category_counts:
            category_counts[item.category] += 1
        colors.update(item.colors or [])
        styles.update(item.style or [])
        for season in set(item.season or []):
            if season in season_counts:
                season_counts[season] += 1

    return WardrobeAnalysis(
        total_items=len(items),
        category_counts=category_counts,
        color_distribution=dict(colors),
        style_distribution=dict(styles),
        missing_categories=[cat for cat, count in category_counts.items() if count == 0],
        seasonal_gaps=[
            season for season, count in season_counts.items() if count < SEASONAL_GAP_THRESHOLD
        ],
        strengths=[cat for cat, count in category_counts.items() if count >= STRENGTH_THRESHOLD],
    )


def get_current_season(today: date | None = None) -> str:
    month = (today or date.today()).month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"
