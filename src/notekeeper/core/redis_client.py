"""Redis client for caching and token blacklisting."""

import logging
from typing import Optional

import redis.asyncio as redis

from ..config import get_settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Thin best-effort wrapper over redis.asyncio.

    Every command swallows and logs Redis errors: the cache is never the
    source of truth, so a failing Redis degrades to cache misses.
    """

    def __init__(self, redis_conn: Optional[redis.Redis] = None):
        self.settings = get_settings()
        self.redis: Optional[redis.Redis] = redis_conn

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.redis = redis.from_url(
                self.settings.redis_url,
                max_connections=self.settings.redis_max_connections,
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Disconnected from Redis")

    async def ping(self) -> bool:
        if not self.redis:
            return False
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error(f"Redis PING error: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        """Get value from Redis."""
        if not self.redis:
            return None
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None

    async def set(self, key: str, value: str, expire: Optional[int] = None) -> bool:
        """Set value in Redis with optional expiration."""
        if not self.redis:
            return False
        try:
            if expire:
                return bool(await self.redis.setex(key, expire, value))
            return bool(await self.redis.set(key, value))
        except Exception as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys. True when Redis acknowledged the command."""
        if not self.redis or not keys:
            return False
        try:
            await self.redis.delete(*keys)
            return True
        except Exception as e:
            logger.error(f"Redis DELETE error for keys {keys}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> bool:
        """Delete every key matching a glob pattern, using SCAN rather than KEYS."""
        if not self.redis:
            return False
        try:
            batch = []
            async for key in self.redis.scan_iter(match=pattern, count=100):
                batch.append(key)
                if len(batch) >= 100:
                    await self.redis.delete(*batch)
                    batch = []
            if batch:
                await self.redis.delete(*batch)
            return True
        except Exception as e:
            logger.error(f"Redis pattern DELETE error for {pattern}: {e}")
            return False

    async def exists(self, key: str) -> bool:
        """Check if key exists in Redis."""
        if not self.redis:
            return False
        try:
            return await self.redis.exists(key) > 0
        except Exception as e:
            logger.error(f"Redis EXISTS error for key {key}: {e}")
            return False

    async def add_to_blacklist(self, token_jti: str, expire: int = 900) -> bool:
        """Add token to blacklist (for secure logout)."""
        return await self.set(f"blacklist:{token_jti}", "blacklisted", expire)

    async def is_token_blacklisted(self, token_jti: str) -> bool:
        return await self.exists(f"blacklist:{token_jti}")


# Singleton instance
_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """Get Redis client singleton."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client
