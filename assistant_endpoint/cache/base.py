"""Cache provider interface and entry type."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class CacheEntry:
    """One cached value with an optional absolute expiry (clock seconds)."""
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class CacheProvider(ABC):
    """
    String-keyed cache with optional per-entry expiration.

    Implementations must be safe under concurrent callers. Empty or None
    keys are misses for reads and no-ops for writes, never errors.
    """

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the cached value, or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value under key; ttl is in seconds, None means no expiry."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Drop key if present."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        """True if key holds a live (unexpired) entry."""
