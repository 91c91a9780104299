"""Caching layer: in-process preference profiles and redis-backed analyses."""

import asyncio
import hashlib
import json
import logging
import weakref
from typing import Any

import redis.asyncio as redis

from artcurator.config import get_settings

logger = logging.getLogger(__name__)


class ProfileCache:
    """
    In-memory ``user_id -> profile`` map with one lock per user.

    Writers hold ``lock(user_id)`` across read-modify-write; plain ``set`` is
    last-write-wins. There is no TTL: a profile lives until invalidated.
    Locks are held weakly and disappear once no coroutine uses them.
    """

    def __init__(self):
        self._profiles: dict[str, Any] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, user_id: str) -> Any | None:
        return self._profiles.get(user_id)

    def set(self, user_id: str, profile: Any) -> None:
        self._profiles[user_id] = profile

    def lock(self, user_id: str) -> asyncio.Lock:
        """The lock guarding updates to one user's profile."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def invalidate(self, user_id: str) -> None:
        self._profiles.pop(user_id, None)

    def clear(self) -> None:
        self._profiles.clear()

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)


class AnalysisCache:
    """Async Redis cache for combined image analyses.

    Every redis failure is logged and reported as a miss so analysis keeps
    working without the cache.
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int | None = None):
        self._redis = client
        self.ttl = ttl if ttl is not None else get_settings().analysis_cache_ttl_seconds

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                get_settings().redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()

    async def get(self, key: str) -> Any | None:
        """Get value from cache."""
        try:
            client = await self._get_redis()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set value in cache. Falls back to the cache-wide TTL."""
        ttl = ttl if ttl is not None else self.ttl
        try:
            client = await self._get_redis()
            serialized = json.dumps(value)
            if ttl:
                await client.setex(key, ttl, serialized)
            else:
                await client.set(key, serialized)
            return True
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    @staticmethod
    def analysis_key(image: bytes, config_fingerprint: str) -> str:
        digest = hashlib.sha256(image).hexdigest()
        return f"analysis:{config_fingerprint}:{digest}"
