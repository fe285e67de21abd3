"""Database models."""

from stylebook.models.item import ClothingItem, ItemCategory
from stylebook.models.outfit import OutfitRecord
from stylebook.models.preference import PreferenceModel
from stylebook.models.usage import DailyUsage
from stylebook.models.user import User

__all__ = [
    "User",
    "ClothingItem",
    "ItemCategory",
    "OutfitRecord",
    "PreferenceModel",
    "DailyUsage",
]
