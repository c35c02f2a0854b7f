"""
Hub cache backed by Redis.

Values are stored as JSON under a common key prefix. When Redis is
unreachable the cache degrades to a per-process TTL dictionary so panels
keep working (single-worker development, tests).
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

from infrastructure.config import settings

logger = logging.getLogger(__name__)


class HubCache:
    """Key/value cache with TTLs and a remember() helper."""

    PREFIX = "hub:"

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.redis_url
        self.redis: Optional[redis.Redis] = None
        self._connected = False
        self._local: dict[str, tuple[Optional[float], str]] = {}

    async def connect(self) -> None:
        """
        Connect to Redis.

        On failure the in-process fallback is used and a warning logged.
        """
        try:
            self.redis = redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            await self.redis.ping()
            self._connected = True
            logger.info("Redis connection established for hub cache")
        except (redis.RedisError, OSError) as e:
            logger.warning("Failed to connect to Redis: %s. Using in-process cache.", e)
            self.redis = None
            self._connected = False

    async def disconnect(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._connected and self.redis is not None

    def _key(self, key: str) -> str:
        return f"{self.PREFIX}{key}"

    def _local_get(self, key: str) -> Optional[str]:
        entry = self._local.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at is not None and expires_at <= time.monotonic():
            self._local.pop(key, None)
            return None
        return raw

    def _prune_local(self) -> None:
        now = time.monotonic()
        expired = [
            key
            for key, (expires_at, _) in self._local.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._local[key]

    async def get(self, key: str, default: Any = None) -> Any:
        full_key = self._key(key)
        raw: Optional[str]
        if self.is_connected:
            try:
                raw = await self.redis.get(full_key)
            except redis.RedisError as e:
                logger.warning("Cache get failed for %s: %s", key, e)
                raw = None
        else:
            raw = self._local_get(full_key)

        if raw is None:
            return default
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value for ttl seconds (forever when ttl is None)."""
        full_key = self._key(key)
        raw = json.dumps(value, default=str)
        if self.is_connected:
            try:
                await self.redis.set(full_key, raw, ex=ttl)
                return
            except redis.RedisError as e:
                logger.warning("Cache set failed for %s: %s", key, e)
        self._prune_local()
        expires_at = time.monotonic() + ttl if ttl else None
        self._local[full_key] = (expires_at, raw)

    async def delete(self, *keys: str) -> None:
        full_keys = [self._key(k) for k in keys]
        if not full_keys:
            return
        if self.is_connected:
            try:
                await self.redis.delete(*full_keys)
            except redis.RedisError as e:
                logger.warning("Cache delete failed: %s", e)
        for full_key in full_keys:
            self._local.pop(full_key, None)

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns the number removed."""
        full_prefix = self._key(prefix)
        removed = 0
        if self.is_connected:
            try:
                async for full_key in self.redis.scan_iter(match=f"{full_prefix}*"):
                    removed += await self.redis.delete(full_key)
            except redis.RedisError as e:
                logger.warning("Cache prefix delete failed for %s: %s", prefix, e)
        for full_key in [k for k in self._local if k.startswith(full_prefix)]:
            del self._local[full_key]
            removed += 1
        return removed

    async def remember(
        self,
        key: str,
        ttl: int,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        sentinel = object()
        cached = await self.get(key, sentinel)
        if cached is not sentinel:
            return cached
        value = await factory()
        await self.set(key, value, ttl)
        return value

    async def flush(self) -> int:
        """Remove every hub key (other Redis tenants are untouched)."""
        return await self.delete_prefix("")


# Global cache instance
cache = HubCache()
