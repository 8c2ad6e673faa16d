"""
Read-through/write-invalidate cache for user lookups and username search pages.

Two backends share one small key/value interface:
- RedisCacheBackend: shared across workers; used whenever CACHE_BACKEND=redis.
- MemoryCacheBackend: per-process TTL dict for local development and tests.

Values are JSON strings produced by the pydantic response schemas, so both
backends store exactly what the API would return. The database stays the
source of truth: a backend failure is logged and treated as a cache miss.
"""

import logging
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import redis

from userservice.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "user:"
SEARCH_KEY_PREFIX = "user-search:"

# Keys deleted per DEL call when evicting a whole key family.
_DELETE_BATCH_SIZE = 500

# Written in place of an invalidated user entry; read-through population cannot
# overwrite it, so a row loaded before the write is never cached after it.
INVALIDATED_MARKER = "__invalidated__"
INVALIDATION_GRACE_SECONDS = 5


class CacheBackend(Protocol):
    """Minimal key/value operations the user cache needs."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def add(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    def delete(self, *keys: str) -> None: ...

    def delete_prefix(self, prefix: str) -> int: ...

    def ping(self) -> bool: ...


class RedisCacheBackend:
    """Redis-backed cache; every operation degrades to a miss/no-op on RedisError."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float) -> "RedisCacheBackend":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache get failed for %s: %s", key, e)
            return None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            logger.warning("Cache set failed for %s: %s", key, e)

    def add(self, key: str, value: str, ttl_seconds: int) -> bool:
        """SET NX: store only if the key is absent. Returns whether it was stored."""
        try:
            return bool(self._client.set(key, value, ex=ttl_seconds, nx=True))
        except redis.RedisError as e:
            logger.warning("Cache add failed for %s: %s", key, e)
            return False

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self._client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache delete failed for %s: %s", ", ".join(keys), e)

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix using SCAN (never KEYS)."""
        deleted = 0
        batch: list[str] = []
        try:
            for key in self._client.scan_iter(match=f"{prefix}*", count=_DELETE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= _DELETE_BATCH_SIZE:
                    deleted += self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += self._client.delete(*batch)
        except redis.RedisError as e:
            logger.warning("Cache prefix eviction failed for %s: %s", prefix, e)
        return deleted

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Cache ping failed: %s", e)
            return False


@dataclass
class CacheEntry:
    """Cache entry with TTL tracking."""

    value: str
    expires_at: float

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class MemoryCacheBackend:
    """
    In-process TTL cache.

    Not shared between workers, so only suitable for a single process.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value, expires_at=time.monotonic() + ttl_seconds
            )

    def add(self, key: str, value: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired:
                return False
            self._entries[key] = CacheEntry(
                value=value, expires_at=time.monotonic() + ttl_seconds
            )
            return True

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class UserCache:
    """Domain-level cache operations keyed by user id and by search parameters."""

    def __init__(self, backend: CacheBackend, ttl_seconds: int) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def user_key(user_id: int) -> str:
        return f"{USER_KEY_PREFIX}{user_id}"

    @staticmethod
    def search_key(prefix: str, page: int, size: int) -> str:
        return f"{SEARCH_KEY_PREFIX}{prefix.strip().lower()}:{page}:{size}"

    def get_user(self, user_id: int) -> str | None:
        value = self.backend.get(self.user_key(user_id))
        if value == INVALIDATED_MARKER:
            return None
        return value

    def set_user(self, user_id: int, payload: str) -> None:
        self.backend.set(self.user_key(user_id), payload, self.ttl_seconds)

    def populate_user(self, user_id: int, payload: str) -> bool:
        """Read-through fill: stores only when no entry or invalidation marker exists."""
        return self.backend.add(self.user_key(user_id), payload, self.ttl_seconds)

    def invalidate_user(self, user_id: int) -> None:
        """Replace the entry with a short-lived marker that blocks stale population."""
        self.backend.set(self.user_key(user_id), INVALIDATED_MARKER, INVALIDATION_GRACE_SECONDS)
        logger.debug("Invalidated user cache: %s", user_id)

    def get_search(self, prefix: str, page: int, size: int) -> str | None:
        return self.backend.get(self.search_key(prefix, page, size))

    def set_search(self, prefix: str, page: int, size: int, payload: str) -> None:
        self.backend.set(self.search_key(prefix, page, size), payload, self.ttl_seconds)

    def invalidate_searches(self) -> None:
        """Evict every cached search page; any user write can change any page."""
        deleted = self.backend.delete_prefix(SEARCH_KEY_PREFIX)
        logger.debug("Evicted user search caches: %s", deleted)

    def invalidate_after_write(self, user_id: int) -> None:
        """Drop the user's entry and all search pages after a committed write."""
        self.invalidate_user(user_id)
        self.invalidate_searches()

    def ping(self) -> bool:
        return self.backend.ping()


def build_cache(settings: Settings) -> UserCache:
    """Create the cache configured by CACHE_BACKEND."""
    backend: CacheBackend
    if settings.CACHE_BACKEND == "memory":
        backend = MemoryCacheBackend()
    else:
        backend = RedisCacheBackend.from_url(
            settings.REDIS_URL, settings.REDIS_SOCKET_TIMEOUT_SEC
        )
    logger.info(
        "User cache initialized: backend=%s ttl=%ss",
        settings.CACHE_BACKEND,
        settings.CACHE_TTL_SECONDS,
    )
    return UserCache(backend, settings.CACHE_TTL_SECONDS)


@lru_cache
def get_cache() -> UserCache:
    """Dependency returning the process-wide user cache."""
    return build_cache(get_settings())
