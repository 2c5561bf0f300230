"""
Redis utility module: cache key scheme and connection logic.

Keys look like `<prefix>:<part1>:<part2>:...` with one fixed prefix per
artifact kind and a per-key TTL.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import redis.asyncio as redis

from tftmeta.config import Config
from tftmeta.constants import CacheKeyPrefix

logger = logging.getLogger(__name__)


def default_ttl(prefix: CacheKeyPrefix) -> int:
    """TTL in seconds configured for an artifact kind."""
    match prefix:
        case CacheKeyPrefix.COMPOSITION:
            return Config.CACHE_COMPOSITION_TTL
        case CacheKeyPrefix.COMPOSITION_DETAIL:
            return Config.CACHE_COMPOSITION_TTL
        case CacheKeyPrefix.LEADERBOARD:
            return Config.CACHE_LEADERBOARD_TTL
        case CacheKeyPrefix.PLAYER:
            return Config.CACHE_PLAYER_TTL
        case CacheKeyPrefix.META:
            return Config.CACHE_META_TTL
        case CacheKeyPrefix.FILTER_OPTIONS:
            return Config.CACHE_FILTERS_TTL
    return Config.CACHE_DEFAULT_TTL


@dataclass(frozen=True)
class CacheKey:
    prefix: CacheKeyPrefix
    parts: Tuple[str, ...] = ()
    ttl: Optional[int] = None

    @classmethod
    def of(cls, prefix: CacheKeyPrefix, *parts) -> "CacheKey":
        return cls(prefix=prefix, parts=tuple(str(p) for p in parts))

    def with_ttl(self, ttl: int) -> "CacheKey":
        return CacheKey(prefix=self.prefix, parts=self.parts, ttl=ttl)

    @property
    def effective_ttl(self) -> int:
        return self.ttl if self.ttl is not None else default_ttl(self.prefix)

    def __str__(self) -> str:
        if not self.parts:
            return self.prefix.value
        return f"{self.prefix.value}:{':'.join(self.parts)}"


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""

    @staticmethod
    def get_secure_redis_url() -> Optional[str]:
        """Get Redis URL with security validation for production deployments."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            return None

        if RedisUtils._validate_redis_security(redis_url):
            return redis_url
        logger.error("REDIS_URL contains insecure configuration")
        return None

    @staticmethod
    def _validate_redis_security(redis_url: str) -> bool:
        """Validate that Redis URL meets security requirements."""
        if not Config.is_production():
            if not redis_url.startswith(('redis://', 'rediss://')):
                logger.warning(f"Unrecognized Redis URL scheme in development: {redis_url}")
                return False
            return True

        if not redis_url.startswith('rediss://'):
            logger.error("Production Redis must use rediss:// (TLS) protocol")
            return False
        if '@' not in redis_url:
            logger.error("Production Redis must include authentication credentials")
            return False
        return True

    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create a Redis client, or None when Redis is not configured or unreachable."""
        redis_url = RedisUtils.get_secure_redis_url()
        if not redis_url:
            return None

        client = redis.from_url(redis_url)
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            await client.aclose()
            return None

        logger.info("Successfully connected to Redis")
        return client
