import logging
from typing import Any
from uuid import UUID

from arq import create_pool
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.database import async_session_maker
from stylebook.models.outfit import OutfitRecord
from stylebook.schemas.item import image_url_for
from stylebook.services.ai_service import AIService
from stylebook.services.image_service import ImageService
from stylebook.workers.settings import OUTFIT_IMAGE_QUEUE, get_redis_settings

logger = logging.getLogger(__name__)


async def render_outfit_image(
    db: AsyncSession,
    ai_service: AIService,
    image_service: ImageService,
    outfit_id: UUID,
) -> dict[str, Any]:
    """Render the outfit's visual prompt and attach the stored picture."""
    outfit = await db.get(OutfitRecord, outfit_id)
    if outfit is None:
        return {"status": "missing", "outfit_id": str(outfit_id)}

    visual_prompt = (outfit.ai_suggestion or {}).get("visual_prompt")
    if not visual_prompt:
        return {"status": "skipped", "outfit_id": str(outfit_id), "reason": "no visual prompt"}

    image_data = await ai_service.generate_image(visual_prompt)
    if image_data is None:
        return {"status": "skipped", "outfit_id": str(outfit_id), "reason": "image generation unavailable"}

    key = image_service.store_generated(outfit.user_id, image_data)
    outfit.image_url = image_url_for(key)
    await db.commit()

    logger.info(f"Attached generated image to outfit {outfit_id}")
    return {"status": "success", "outfit_id": str(outfit_id), "image_url": outfit.image_url}


async def generate_outfit_image(ctx: dict, outfit_id: str) -> dict[str, Any]:
    """arq job: generate and attach the picture for one outfit."""
    try:
        async with async_session_maker() as db:
            return await render_outfit_image(
                db, ctx["ai_service"], ctx["image_service"], UUID(outfit_id)
            )
    except Exception as e:
        logger.exception(f"Error generating image for outfit {outfit_id}: {e}")
        return {"status": "error", "outfit_id": outfit_id, "error": str(e)}


async def enqueue_outfit_image(outfit_id: UUID) -> None:
    redis = await create_pool(get_redis_settings())
    try:
        await redis.enqueue_job("generate_outfit_image", str(outfit_id), _queue_name=OUTFIT_IMAGE_QUEUE)
        logger.info(f"Queued image job for outfit {outfit_id}")
    finally:
        await redis.aclose()


async def startup(ctx: dict) -> None:
    """Worker startup hook."""
    logger.info("Outfit image worker starting up...")
    ctx["ai_service"] = AIService()
    ctx["image_service"] = ImageService()


async def shutdown(ctx: dict) -> None:
    """Worker shutdown hook."""
    logger.info("Outfit image worker shutting down...")


class WorkerSettings:
    """arq worker settings for outfit image generation."""

    functions = [generate_outfit_image]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = get_redis_settings()

    max_jobs = 5
    job_timeout = 300
    max_tries = 3
    health_check_interval = 30

    queue_name = OUTFIT_IMAGE_QUEUE
