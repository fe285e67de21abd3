from arq.connections import RedisSettings

from stylebook.config import get_settings

settings = get_settings()

# Queue shared by the API (enqueue) and the worker (consume)
OUTFIT_IMAGE_QUEUE = "arq:outfit-images"


def get_redis_settings() -> RedisSettings:
    return RedisSettings.from_dsn(str(settings.redis_url))
