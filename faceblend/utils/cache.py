"""Simple in-memory cache for per-day derived data."""
import time
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class SimpleCache:
    """
    A simple in-memory cache with TTL (time-to-live) support.

    Used to memoize enriched identity hints so every request for the same day
    sees the same hint text without repeating the metadata lookups.
    """

    def __init__(self, default_ttl: float = 30.0):
        self.default_ttl = default_ttl
        self._cache: Dict[str, tuple[Any, float]] = {}
        self._last_cleanup = time.time()
        self._cleanup_interval = 60.0

    def _cleanup_expired(self):
        """Remove expired entries from cache."""
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        expired_keys = [key for key, (_, expires_at) in self._cache.items() if current_time > expires_at]
        for key in expired_keys:
            self._cache.pop(key, None)

        self._last_cleanup = current_time

        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        self._cleanup_expired()

        if key not in self._cache:
            return None

        value, expires_at = self._cache[key]
        if time.time() > expires_at:
            self._cache.pop(key, None)
            return None

        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set value in cache with TTL."""
        if ttl is None:
            ttl = self.default_ttl

        self._cache[key] = (value, time.time() + ttl)

    def delete(self, key: str) -> None:
        """Remove key from cache."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def invalidate_except_day(self, day_key: str) -> None:
        """Drop every entry that does not belong to ``day_key``."""
        stale_keys = [key for key in self._cache if not key.endswith(f":{day_key}")]
        for key in stale_keys:
            self._cache.pop(key, None)

        if stale_keys:
            logger.debug(f"Invalidated {len(stale_keys)} cache entries from previous days")
