"""Resolve an AI outfit suggestion to concrete catalog items."""

from collections.abc import Sequence

from stylebook.models.item import ClothingItem, ItemCategory
from stylebook.schemas.outfit import OUTFIT_SLOTS, OutfitSuggestion

DESCRIPTION_HIT_SCORE = 2
COLOR_HIT_SCORE = 3
FAVORITE_BOOST = 1
MAX_ACCESSORIES = 2


def tokenize(text: str) -> list[str]:
    return text.lower().split()


def score_item(item: ClothingItem, tokens: Sequence[str]) -> int:
    description = (item.description or "").lower()
    colors = [c.lower() for c in (item.colors or []) if c]

    score = 0
    for token in tokens:
        if token in description:
            score += DESCRIPTION_HIT_SCORE
        if any(color in token or token in color for color in colors):
            score += COLOR_HIT_SCORE
    if item.favorite:
        score += FAVORITE_BOOST
    return score


def _best_match(
    category: str,
    text: str,
    catalog: Sequence[ClothingItem],
    anchor: ClothingItem | None,
) -> ClothingItem | None:
    candidates = [item for item in catalog if item.category == category]
    if not candidates:
        return None

    if anchor is not None and anchor.category == category:
        return anchor

    tokens = tokenize(text)
    scores = [score_item(item, tokens) for item in candidates]
    best = max(scores)
    if best > 0:
        # first in catalog order wins ties
        return candidates[scores.index(best)]

    for item in candidates:
        if item.favorite:
            return item
    return candidates[0]


def match_outfit(
    suggestion: OutfitSuggestion,
    catalog: Sequence[ClothingItem],
    anchor: ClothingItem | None = None,
) -> list[ClothingItem]:
    """
    Pick one item per suggested slot (top, bottom, shoes, outerwear) plus up
    to two accessories.

    Slots whose category is absent from the catalog are skipped. An anchor of
    the slot's category always wins; otherwise items are scored on token
    overlap with the slot text and the highest score is taken, falling back to
    the category's favorite (or first item) when nothing overlaps.
    Accessories are taken in catalog order without scoring. The anchor is
    appended when no slot picked it, so it is always part of the result.

    The result depends only on the arguments, including catalog order.
    """
    selected: list[ClothingItem] = []

    for slot in OUTFIT_SLOTS:
        text = getattr(suggestion, slot)
        if not text:
            continue
        match = _best_match(slot, text, catalog, anchor)
        if match is not None:
            selected.append(match)

    wanted = min(MAX_ACCESSORIES, len(suggestion.accessories))
    if wanted:
        accessories = [item for item in catalog if item.category == ItemCategory.accessory]
        selected.extend(accessories[:wanted])

    if anchor is not None and all(item.id != anchor.id for item in selected):
        selected.append(anchor)

    return selected
