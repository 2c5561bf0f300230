"""
TTL cache for meta artifacts.

Entries live in process with a size bound; when a Redis client is supplied the
JSON form is mirrored there and read back on a local miss, so workers
sharing one Redis reuse each other's results.
"""

import asyncio
import json
import time
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as redis

from tftmeta.config import Config
from tftmeta.constants import CacheKeyPrefix
from tftmeta.data_models.response import to_jsonable
from tftmeta.utils.redis_utils import CacheKey

logger = logging.getLogger(__name__)


class MetaCache:
    """In-process TTL cache keyed by CacheKey, optionally mirrored to Redis."""

    def __init__(self, redis_client: Optional[redis.Redis] = None, max_size: Optional[int] = None):
        self.redis_client = redis_client
        self._cache: Dict[str, Tuple[float, Any]] = {}  # key -> (expires_at, value)
        self._cache_max_size = max_size or Config.CACHE_MAX_SIZE
        self._cache_lock = asyncio.Lock()

    async def get(self, key: CacheKey,
                  decode: Optional[Callable[[Any], Any]] = None) -> Optional[Any]:
        """
        Look up a key locally, then in Redis when a decode function is given.

        decode rebuilds the value from its JSON form; Redis hits are kept
        locally for the key's TTL.
        """
        name = str(key)
        async with self._cache_lock:
            entry = self._cache.get(name)
            if entry is not None:
                expires_at, value = entry
                if time.monotonic() < expires_at:
                    logger.debug(f"Cache hit for {name}")
                    return value
                self._cache.pop(name, None)

        if self.redis_client is not None and decode is not None:
            value = await self._get_shared(name, decode)
            if value is not None:
                async with self._cache_lock:
                    self._cache[name] = (time.monotonic() + key.effective_ttl, value)
                    if len(self._cache) > self._cache_max_size:
                        self._cleanup_locked()
                return value

        logger.debug(f"Cache miss for {name}")
        return None

    async def _get_shared(self, name: str, decode: Callable[[Any], Any]) -> Optional[Any]:
        try:
            raw = await self.redis_client.get(name)
        except redis.RedisError as e:
            logger.warning(f"Failed to read {name} from Redis: {e}")
            return None
        if raw is None:
            return None

        try:
            value = decode(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding undecodable Redis entry {name}: {e}")
            return None
        logger.debug(f"Redis hit for {name}")
        return value

    async def set(self, key: CacheKey, value: Any) -> None:
        name = str(key)
        ttl = key.effective_ttl
        async with self._cache_lock:
            self._cache[name] = (time.monotonic() + ttl, value)
            if len(self._cache) > self._cache_max_size:
                self._cleanup_locked()

        if self.redis_client is not None:
            try:
                await self.redis_client.set(name, json.dumps(to_jsonable(value)), ex=ttl)
            except redis.RedisError as e:
                logger.warning(f"Failed to mirror {name} to Redis: {e}")

    async def invalidate_prefix(self, prefix: CacheKeyPrefix, *parts) -> int:
        """Drop every key starting with prefix[:parts...]; returns local entries removed."""
        stem = str(CacheKey.of(prefix, *parts))
        async with self._cache_lock:
            doomed = [name for name in self._cache if name == stem or name.startswith(stem + ':')]
            for name in doomed:
                self._cache.pop(name, None)

        if self.redis_client is not None:
            try:
                async for name in self.redis_client.scan_iter(match=f"{stem}*"):
                    await self.redis_client.delete(name)
            except redis.RedisError as e:
                logger.warning(f"Failed to invalidate {stem}* in Redis: {e}")
        return len(doomed)

    async def clear(self) -> None:
        logger.info("Clearing entire meta cache")
        async with self._cache_lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def _cleanup_locked(self):
        """Remove expired entries, then the soonest-expiring ones, to stay within size."""
        now = time.monotonic()
        for name in [n for n, (expires_at, _) in self._cache.items() if expires_at <= now]:
            self._cache.pop(name, None)
        if len(self._cache) > self._cache_max_size:
            by_expiry = sorted(self._cache.items(), key=lambda item: item[1][0], reverse=True)
            self._cache = dict(by_expiry[:self._cache_max_size])
        logger.debug(f"Cleaned meta cache, kept {len(self._cache)} entries")
