"""
Redis client adapter for the cache-backed session store.

This module adapts ``redis.asyncio`` to the KeyValueClient capability that
CacheSessionStore consumes. It adds no session semantics: keys, TTLs and
record bytes come from the store. Redis errors propagate unchanged and the
store converts them into BackendUnavailableError.
"""

from typing import Any, Optional

import redis.asyncio as redis


class RedisCacheClient:
    """
    KeyValueClient backed by Redis.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
        client: Redis async client instance (initialized via connect())
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[Any] = None):
        """
        Initialize the adapter.

        Args:
            redis_url: Redis connection URL, used by connect().
            client: An already constructed async Redis client; takes
                precedence over redis_url.
        """
        if redis_url is None and client is None:
            raise ValueError("RedisCacheClient needs a redis_url or a client")
        self.redis_url = redis_url
        self.client = client

    async def connect(self) -> None:
        """
        Create the async Redis client from the configured URL.

        Responses stay as bytes; session records are opaque to Redis.
        """
        if self.client is None:
            self.client = redis.from_url(self.redis_url, decode_responses=False)

    async def disconnect(self) -> None:
        """
        Close the Redis connection.

        Should be called during application shutdown to cleanly
        release resources.
        """
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def _require_client(self):
        if self.client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self.client

    async def get(self, key: str) -> Optional[bytes]:
        return await self._require_client().get(key)

    async def put(self, key: str, value: bytes, ttl: int) -> None:
        await self._require_client().setex(key, ttl, value)

    async def add(self, key: str, value: bytes, ttl: int) -> bool:
        """SET NX EX: store only when the key is absent."""
        return bool(await self._require_client().set(key, value, ex=ttl, nx=True))

    async def delete(self, key: str) -> bool:
        return await self._require_client().delete(key) > 0

    async def ping(self) -> bool:
        if self.client is None:
            return False
        return bool(await self.client.ping())
