# shopsearch/db/mongo.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from shopsearch.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def connect():
    """
    Motor connects lazily, so a failed startup ping only gets logged:
    the first real query retries once the cluster is reachable.
    """
    global _client, _db
    settings = get_settings()
    _client = AsyncIOMotorClient(
        settings.MONGO_URI,
        tlsCAFile=certifi.where(),
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
    )
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except Exception as e:
        logger.warning("Mongo ping at startup failed, connecting on first query: %s", e)


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
