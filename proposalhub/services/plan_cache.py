"""
Plan cache — short-lived, in-process cache of subscription plan rows.

Plans change rarely but are read on every usage check, so lookups are cached
for ``ttl_seconds`` (5 minutes by default, ``PLAN_CACHE_TTL``).

The cache is an explicit object owned by the application
(``app.extensions["plan_cache"]``) rather than module state, so tests can
build one with a fake clock and invalidate it deterministically.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300  # 5 minutes


class PlanCache:
    """Key → value cache with per-entry expiry.

    Args:
        ttl_seconds: Lifetime of an entry after ``set``.
        clock: Zero-arg callable returning monotonic seconds.
    """

    def __init__(self, ttl_seconds=DEFAULT_TTL, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}  # key → (value, expires_at)
        self._lock = threading.Lock()

    def get(self, key):
        """Return the cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key, value):
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def get_or_load(self, key, loader):
        """Return the cached value or call ``loader()`` and cache a non-None result."""
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, key=None):
        """Drop one key, or everything when ``key`` is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
        logger.debug("Plan cache invalidated: %s", key or "*")

    def __len__(self):
        with self._lock:
            return len(self._entries)
