import pytest
from unittest.mock import AsyncMock

from shopsearch.utils.cache import Cache


@pytest.mark.asyncio
async def test_round_trip_with_ttl(cache, redis):
    await cache.set("search:abc", '{"total":1}', 600)
    assert await cache.get("search:abc") == '{"total":1}'
    assert redis.ttls["search:abc"] == 600

    await cache.delete("search:abc")
    assert await cache.get("search:abc") is None


@pytest.mark.asyncio
async def test_without_redis_everything_is_a_miss():
    cache = Cache(None)
    await cache.set("k", "v", 10)
    assert await cache.get("k") is None
    await cache.delete("k")
    assert await cache.delete_by_prefix("search:") == 0


@pytest.mark.asyncio
async def test_redis_errors_are_swallowed():
    broken = AsyncMock()
    broken.get.side_effect = ConnectionError("redis down")
    broken.set.side_effect = ConnectionError("redis down")
    broken.delete.side_effect = ConnectionError("redis down")
    cache = Cache(broken)

    assert await cache.get("k") is None
    await cache.set("k", "v", 10)
    await cache.delete("k")


@pytest.mark.asyncio
async def test_delete_by_prefix(cache, redis):
    for key in ("search:1", "search:2", "autocomplete:ab:10", "related:1:anonymous:10"):
        await redis.set(key, "x")

    assert await cache.delete_by_prefix("search:") == 2
    assert sorted(redis.store) == ["autocomplete:ab:10", "related:1:anonymous:10"]
