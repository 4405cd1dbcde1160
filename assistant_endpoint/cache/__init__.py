"""Response caching for the session manager."""

from .base import CacheEntry, CacheProvider
from .memory import MemoryCacheProvider

__all__ = ["CacheEntry", "CacheProvider", "MemoryCacheProvider"]
