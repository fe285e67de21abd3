from fastapi import APIRouter

from stylebook.api.auth import router as auth_router
from stylebook.api.health import router as health_router
from stylebook.api.images import router as images_router
from stylebook.api.items import router as items_router
from stylebook.api.outfits import router as outfits_router
from stylebook.api.preferences import router as preferences_router
from stylebook.api.users import router as users_router
from stylebook.api.wardrobe import router as wardrobe_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(items_router)
api_router.include_router(images_router)
api_router.include_router(outfits_router)
api_router.include_router(preferences_router)
api_router.include_router(wardrobe_router)
