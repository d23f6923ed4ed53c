"""TTL cache for package registry metadata."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from depresolver.constants import Constants, package_key

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class PackageCache:
    """TTL cache for registry lookups, keyed by case-folded package name.

    Shared by every job in the process. Writes are last-writer-wins; two jobs
    racing on the same name only cost a duplicate upstream fetch.
    """

    def __init__(
        self,
        default_ttl: int = Constants.PACKAGE_CACHE_TTL_SEC,
        max_entries: int = Constants.PACKAGE_CACHE_MAX_ENTRIES,
    ):
        """Initialize the package cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_entries: Entry count above which the oldest tenth is evicted.
        """
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._cache: Dict[str, CacheEntry[Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # Run cleanup every minute
        self._hits = 0
        self._misses = 0

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        """Get a cached lookup.

        Args:
            name: Package name, any casing.

        Returns:
            Cached lookup dict or None if not found/expired.
        """
        key = package_key(name)
        with self._lock:
            self._maybe_cleanup()
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired():
                del self._cache[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(self, name: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """Cache a lookup.

        Args:
            name: Package name, any casing.
            value: Serialized lookup to cache.
            ttl: Optional TTL override in seconds.
        """
        key = package_key(name)
        effective_ttl = ttl if ttl is not None else self._default_ttl
        with self._lock:
            self._maybe_cleanup()
            self._cache[key] = CacheEntry(value=value, expires_at=time.time() + effective_ttl)
            if len(self._cache) > self._max_entries:
                self._evict_oldest(max(1, self._max_entries // 10))

    def invalidate(self, name: str) -> None:
        """Drop the entry for ``name`` if present."""
        with self._lock:
            self._cache.pop(package_key(name), None)

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            expired_count = sum(1 for e in self._cache.values() if e.is_expired())
            return {
                "total_entries": len(self._cache),
                "expired_entries": expired_count,
                "active_entries": len(self._cache) - expired_count,
                "max_entries": self._max_entries,
                "default_ttl": self._default_ttl,
                "hits": self._hits,
                "misses": self._misses,
            }

    def _maybe_cleanup(self) -> None:
        """Run cleanup if enough time has passed. Caller holds the lock."""
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            expired = [k for k, v in self._cache.items() if v.is_expired()]
            for key in expired:
                del self._cache[key]
            self._last_cleanup = now

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries. Caller holds the lock."""
        sorted_keys = sorted(self._cache, key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            del self._cache[key]
