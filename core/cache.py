# core/cache.py

"""
In-memory TTL cache for reference data (locations, brands, currencies,
hotels) and the Cache-Control policies sent with list responses.

Entries are per process and are invalidated by key prefix whenever the
underlying table is written through this API.
"""

from typing import Optional, Any, Callable
from datetime import datetime, timedelta
from threading import Lock
from core.logging_config import logger


# Cache-Control header values per kind of list
REFERENCE_DATA = "public, s-maxage=3600, stale-while-revalidate=7200"
USER_DATA = "private, max-age=30, stale-while-revalidate=60"
NO_STORE = "no-store"


class CacheEntry:
    """A cached value with expiration time."""

    def __init__(self, value: Any, ttl_seconds: int):
        self.value = value
        self.expires_at = datetime.now() + timedelta(seconds=ttl_seconds)

    def is_expired(self) -> bool:
        return datetime.now() >= self.expires_at


class SimpleCache:
    """
    Thread-safe in-memory cache with TTL support.
    """

    def __init__(self):
        self._cache: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None if missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                del self._cache[key]
                return None

            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: int = 300):
        with self._lock:
            self._cache[key] = CacheEntry(value, ttl_seconds)

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with `prefix`. Returns how many were removed."""
        with self._lock:
            keys = [key for key in self._cache if key.startswith(prefix)]
            for key in keys:
                del self._cache[key]
        return len(keys)

    def clear(self):
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        with self._lock:
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired()
            ]
            for key in expired_keys:
                del self._cache[key]
        return len(expired_keys)

    def size(self) -> int:
        with self._lock:
            return len(self._cache)


# Global cache instance
_cache = SimpleCache()


def get_cache() -> SimpleCache:
    return _cache


def cached_call(key: str, loader: Callable[[], Any], ttl_seconds: int = 300) -> Any:
    """
    Return the cached value for `key`, calling `loader` on a miss.

    Nothing is stored when the loader raises.
    """
    value = _cache.get(key)
    if value is not None:
        logger.debug(f"Cache hit: {key}")
        return value

    value = loader()
    _cache.set(key, value, ttl_seconds)
    logger.debug(f"Cache miss, stored: {key}")
    return value


def invalidate(prefix: str):
    removed = _cache.delete_prefix(prefix)
    if removed:
        logger.debug(f"Cache invalidated: {prefix}* ({removed} entries)")


def cache_clear():
    _cache.clear()
