"""
Module: redis_store.py
Description: Redis-backed event queue and due-schedule.

The queue is a Redis list (RPUSH / BLPOP). The due-schedule is a sorted
set scored by due timestamp; claiming due entries runs as one Lua script
so ZRANGEBYSCORE and ZREM happen atomically with respect to every other
worker.

Key Components:
- connect_redis(): Create the shared client and verify it with PING
- RedisEventQueue: EventQueue on a Redis list
- RedisDueSchedule: DueSchedule on a Redis sorted set

Dependencies: redis (redis.asyncio), tenacity
"""

from typing import List

from redis.asyncio import Redis
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from eventrelay.storage.base import DueSchedule, EventQueue, StoreError
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)

# KEYS[1] = schedule key, ARGV[1] = max score, ARGV[2] = limit
POP_DUE_SCRIPT = """
local items = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1], 'LIMIT', 0, ARGV[2])
if #items > 0 then
    redis.call('ZREM', KEYS[1], unpack(items))
end
return items
"""


async def connect_redis(url: str, attempts: int = 3, wait_seconds: float = 1.0) -> Redis:
    """
    Create the process-wide Redis client and verify connectivity.

    Args:
        url: Redis connection URL
        attempts: PING attempts before giving up
        wait_seconds: Pause between attempts

    Returns:
        Connected Redis client

    Raises:
        RedisError: If the server is still unreachable after all attempts
    """
    client = Redis.from_url(url)

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(wait_seconds),
            retry=retry_if_exception_type(RedisError),
            reraise=True,
        ):
            with attempt:
                await client.ping()
    except RedisError as e:
        logger.error("Failed to connect to Redis", url=url, attempts=attempts, error=str(e))
        await client.aclose()
        raise

    logger.info("Redis connection established", url=url)
    return client


class RedisEventQueue(EventQueue):
    """Event queue on a Redis list."""

    def __init__(self, client: Redis, key: str = "events"):
        if not key or not isinstance(key, str):
            raise ValueError("key must be a non-empty string")

        self.client = client
        self.key = key

    async def push(self, item: bytes) -> None:
        try:
            await self.client.rpush(self.key, item)
        except RedisError as e:
            raise StoreError(f"Failed to push to {self.key}: {e}") from e

    async def blocking_pop(self) -> bytes:
        while True:
            try:
                result = await self.client.blpop([self.key], timeout=0)
            except RedisError as e:
                raise StoreError(f"Failed to pop from {self.key}: {e}") from e

            # BLPOP returns (key, value); None only if the server timed out
            if result is not None:
                return result[1]

    async def length(self) -> int:
        try:
            return await self.client.llen(self.key)
        except RedisError as e:
            raise StoreError(f"Failed to read length of {self.key}: {e}") from e


class RedisDueSchedule(DueSchedule):
    """Due-schedule on a Redis sorted set."""

    def __init__(self, client: Redis, key: str = "retry_events"):
        if not key or not isinstance(key, str):
            raise ValueError("key must be a non-empty string")

        self.client = client
        self.key = key

    async def add(self, priority: float, payload: bytes) -> None:
        try:
            await self.client.zadd(self.key, {payload: priority})
        except RedisError as e:
            raise StoreError(f"Failed to add to {self.key}: {e}") from e

    async def pop_due(self, max_priority: float, limit: int) -> List[bytes]:
        if limit < 1:
            return []

        try:
            items = await self.client.eval(
                POP_DUE_SCRIPT, 1, self.key, repr(float(max_priority)), limit
            )
        except RedisError as e:
            raise StoreError(f"Failed to claim due entries from {self.key}: {e}") from e

        return [item.encode("utf-8") if isinstance(item, str) else item for item in items or []]

    async def count(self) -> int:
        try:
            return await self.client.zcard(self.key)
        except RedisError as e:
            raise StoreError(f"Failed to count {self.key}: {e}") from e
