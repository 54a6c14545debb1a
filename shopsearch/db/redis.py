# shopsearch/db/redis.py
import logging
import redis.asyncio as redis
from shopsearch.core.config import get_settings

logger = logging.getLogger(__name__)

redis_client: redis.Redis | None = None


async def connect():
    """
    Connect Redis when REDIS_URL is set.
    Unset or unreachable only logs a warning: the cache port then bypasses itself.
    """
    global redis_client
    settings = get_settings()
    if not settings.REDIS_URL:
        logger.warning("No REDIS_URL configured, skipping Redis connection")
        redis_client = None
        return

    try:
        logger.info("Connecting to Redis")
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        await redis_client.ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.warning("Failed to connect to Redis: %s", e)
        redis_client = None  # fallback: cache disabled


async def disconnect():
    """Close the Redis connection if any."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> redis.Redis | None:
    """
    Redis getter. Returns None when Redis is not configured or unavailable;
    callers go through `utils.cache.Cache`, which treats None as a permanent miss.
    """
    return redis_client
