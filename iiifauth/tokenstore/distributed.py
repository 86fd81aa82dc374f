"""
Redis-backed access token storage for iiifauth.

Lets several loader processes share tokens, so a login completed by one
worker is reused by the others until the token expires.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..core.errors import TokenStoreError
from ..core.types import AccessToken
from .memory import MemoryAccessTokenStore
from .store import AccessTokenStore


logger = logging.getLogger(__name__)


class DistributedConfig:
    """Configuration for distributed token storage."""

    def __init__(self,
                 url: str = "redis://localhost:6379/0",
                 key_prefix: str = "iiifauth:token:",
                 default_ttl: Optional[int] = None,
                 connection_kwargs: Dict[str, Any] = None):
        """
        Initialize distributed configuration.

        Args:
            url: Redis connection URL
            key_prefix: Prefix for Redis keys
            default_ttl: TTL in seconds for tokens without ``expires_in``
            connection_kwargs: Additional arguments for the Redis client
        """
        self.url = url
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        self.connection_kwargs = connection_kwargs or {}


class RedisAccessTokenStore(AccessTokenStore):
    """
    Redis-based token store implementation.

    Tokens are stored as JSON with a TTL matching their ``expires_in``.
    If the server cannot be reached on connect, the store falls back to
    process-local memory and logs a warning.
    """

    def __init__(self, config: Optional[DistributedConfig] = None,
                 client: Optional[redis.Redis] = None):
        self.config = config or DistributedConfig()
        self._redis = client
        self._connected = client is not None
        self._lock = asyncio.Lock()

        self._fallback_store = MemoryAccessTokenStore()
        self._using_fallback = False

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    async def connect(self) -> None:
        """Connect to Redis."""
        async with self._lock:
            if self._connected or self._using_fallback:
                return

            try:
                self._redis = redis.from_url(
                    self.config.url,
                    decode_responses=True,
                    **self.config.connection_kwargs
                )
                await self._redis.ping()
                self._connected = True
                logger.info(f"Connected to Redis at {self.config.url}")

            except (RedisError, OSError) as e:
                logger.error(f"Failed to connect to Redis: {e}")
                logger.warning("Falling back to memory token store")
                self._using_fallback = True

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._redis is not None and self._connected:
            await self._redis.aclose()
            self._connected = False
            logger.info("Disconnected from Redis")

    def _get_key(self, key: str) -> str:
        return f"{self.config.key_prefix}{key}"

    def _ttl_for(self, token: AccessToken) -> Optional[int]:
        remaining = token.time_until_expiry()
        if remaining is None:
            return self.config.default_ttl
        return int(remaining.total_seconds())

    async def get(self, key: str) -> Optional[AccessToken]:
        await self.connect()

        if self._using_fallback:
            return await self._fallback_store.get(key)

        try:
            value = await self._redis.get(self._get_key(key))
        except RedisError as e:
            raise TokenStoreError(f"Failed to get token for {key}: {e}") from e

        if not value:
            return None

        token = AccessToken.from_json(value)
        if token.is_expired():
            await self.delete(key)
            return None
        return token

    async def put(self, key: str, token: AccessToken) -> None:
        await self.connect()

        if self._using_fallback:
            await self._fallback_store.put(key, token)
            return

        ttl = self._ttl_for(token)
        if ttl is not None and ttl <= 0:
            logger.debug(f"Not storing already expired token for {key}")
            return

        try:
            if ttl is None:
                await self._redis.set(self._get_key(key), token.to_json())
            else:
                await self._redis.setex(self._get_key(key), ttl, token.to_json())
        except RedisError as e:
            raise TokenStoreError(f"Failed to store token for {key}: {e}") from e

        logger.debug(f"Stored token for {key}")

    async def delete(self, key: str) -> bool:
        await self.connect()

        if self._using_fallback:
            return await self._fallback_store.delete(key)

        try:
            return await self._redis.delete(self._get_key(key)) > 0
        except RedisError as e:
            raise TokenStoreError(f"Failed to delete token for {key}: {e}") from e

    async def clear(self) -> int:
        await self.connect()

        if self._using_fallback:
            return await self._fallback_store.clear()

        count = 0
        try:
            async for redis_key in self._redis.scan_iter(match=f"{self.config.key_prefix}*"):
                count += await self._redis.delete(redis_key)
        except RedisError as e:
            raise TokenStoreError(f"Failed to clear tokens: {e}") from e

        logger.info(f"Cleared {count} tokens from Redis store")
        return count


def create_distributed_store(url: str = "redis://localhost:6379/0",
                             **kwargs) -> RedisAccessTokenStore:
    """
    Create a Redis token store.

    Args:
        url: Redis connection URL
        **kwargs: Further DistributedConfig arguments

    Returns:
        RedisAccessTokenStore instance
    """
    return RedisAccessTokenStore(DistributedConfig(url=url, **kwargs))
