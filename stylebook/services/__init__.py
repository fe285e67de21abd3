"""Service layer for business logic."""

from stylebook.services.ai_service import AIService, get_ai_service
from stylebook.services.image_service import ImageService
from stylebook.services.item_service import ItemService
from stylebook.services.outfit_service import OutfitService
from stylebook.services.preference_service import PreferenceService
from stylebook.services.rate_limit_service import RateLimitService
from stylebook.services.recommendation_service import RecommendationService
from stylebook.services.user_service import UserService

__all__ = [
    "AIService",
    "get_ai_service",
    "ImageService",
    "ItemService",
    "OutfitService",
    "PreferenceService",
    "RateLimitService",
    "RecommendationService",
    "UserService",
]
