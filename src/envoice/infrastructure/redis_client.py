"""
Redis client service - handles only Redis connection management.
"""

from typing import Optional

import redis.asyncio as redis
from loguru import logger


class RedisClient:
    """Simple Redis client wrapper - only handles connection and basic operations."""

    def __init__(self, redis_url: str = "redis://localhost:6379"):
        self._redis_url = redis_url
        self._client: Optional[redis.Redis] = None

    async def get_async_client(self) -> redis.Redis:
        """Get async Redis client."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url, decode_responses=True, health_check_interval=30
            )
        return self._client

    async def set_if_absent(self, key: str, value: str, ex: int) -> bool:
        """Atomically create a key with expiry; False if it already exists."""
        client = await self.get_async_client()
        result = await client.set(key, value, ex=ex, nx=True)
        return bool(result)

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        try:
            client = await self.get_async_client()
            return bool(await client.delete(key))
        except Exception as e:
            logger.error(f"Error deleting key {key}: {e}")
            return False

    async def ping(self) -> bool:
        """Check connectivity."""
        try:
            client = await self.get_async_client()
            return bool(await client.ping())
        except Exception as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self):
        """Close connections."""
        if self._client:
            await self._client.close()
            self._client = None
