import logging
from typing import Optional
from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class Cache:
    """
    Cache Port over Redis. Values are JSON strings written with a TTL.

    Cache trouble never reaches the caller: a missing client or any Redis error
    is a miss on read and a no-op on write. Every entry can be recomputed from
    the index, so losing one is harmless.
    """

    def __init__(self, redis: Optional[Redis]):
        self.redis = redis

    async def get(self, key: str) -> Optional[str]:
        if self.redis is None:
            return None
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.warning("cache get error key=%s err=%s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, value, ex=ttl)
        except Exception as e:
            logger.warning("cache set error key=%s err=%s", key, e)

    async def delete(self, key: str) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.delete(key)
        except Exception as e:
            logger.warning("cache delete error key=%s err=%s", key, e)

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`; returns how many were removed."""
        if self.redis is None:
            return 0
        deleted = 0
        try:
            batch = []
            async for key in self.redis.scan_iter(match=f"{prefix}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self.redis.delete(*batch)
                    batch.clear()
            if batch:
                deleted += await self.redis.delete(*batch)
        except Exception as e:
            logger.warning("cache delete_by_prefix error prefix=%s err=%s", prefix, e)
        return deleted
