from datetime import date

import pytest

from stylebook.models.item import ClothingItem
from stylebook.services.wardrobe_analyzer import analyze_wardrobe, get_current_season


def make(category: str, colors=None, style=None, season=None) -> ClothingItem:
    return ClothingItem(
        category=category,
        colors=colors or [],
        style=style or [],
        season=season or [],
    )


class TestAnalyzeWardrobe:
    def test_empty_catalog(self):
        analysis = analyze_wardrobe([])
        assert analysis.total_items == 0
        assert len(analysis.missing_categories) == 7
        assert analysis.seasonal_gaps == ["spring", "summer", "fall", "winter"]
        assert analysis.strengths == []

    def test_two_tops(self):
        analysis = analyze_wardrobe([make("top"), make("top")])

        assert analysis.category_counts["top"] == 2
        assert set(analysis.missing_categories) == {
            "bottom", "shoes", "outerwear", "accessory", "dress", "suit",
        }
        assert analysis.strengths == []

    def test_strength_at_threshold(self):
        analysis = analyze_wardrobe([make("bottom")] * 3)
        assert analysis.strengths == ["bottom"]

    def test_other_category_counted_in_total_only(self):
        analysis = analyze_wardrobe([make("other")])
        assert analysis.total_items == 1
        assert "other" not in analysis.category_counts

    def test_distributions(self):
        items = [
            make("top", colors=["Blue", "White"], style=["casual"]),
            make("bottom", colors=["Blue"], style=["casual", "smart"]),
        ]
        analysis = analyze_wardrobe(items)
        assert analysis.color_distribution == {"Blue": 2, "White": 1}
        assert analysis.style_distribution == {"casual": 2, "smart": 1}

    def test_seasonal_gaps(self):
        items = [make("top", season=["summer", "spring"]) for _ in range(3)]
        items.append(make("outerwear", season=["winter"]))
        analysis = analyze_wardrobe(items)
        assert analysis.seasonal_gaps == ["fall", "winter"]


@pytest.mark.parametrize(
    "month,season",
    [(1, "winter"), (3, "spring"), (6, "summer"), (8, "summer"), (9, "fall"), (11, "fall"), (12, "winter")],
)
def test_current_season(month, season):
    assert get_current_season(date(2024, month, 15)) == season
