"""
In-process cache provider.

A dict guarded by a single lock. Expiry is lazy: get() and contains()
evict an expired entry when they touch it, and nothing else does. There
is no background sweep.
"""

import logging
import threading
import time
from typing import Any, Callable

from .base import CacheEntry, CacheProvider

logger = logging.getLogger(__name__)


class MemoryCacheProvider(CacheProvider):
    """
    Thread-safe in-memory cache.

    Usage:
        cache = MemoryCacheProvider()
        cache.set("prompt_ab12", "Hello!", ttl=3600)
        cache.get("prompt_ab12")      # "Hello!"
        cache.contains("missing")     # False

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake one.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any:
        if not key:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        if not key:
            return

        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            # Last writer wins
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def remove(self, key: str) -> None:
        if not key:
            return

        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cache cleared ({count} entries)")

    def contains(self, key: str) -> bool:
        if not key:
            return False

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def __len__(self) -> int:
        """Number of stored entries, expired ones included until touched."""
        with self._lock:
            return len(self._entries)
