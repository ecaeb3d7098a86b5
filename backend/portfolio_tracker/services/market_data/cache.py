# backend/portfolio_tracker/services/market_data/cache.py
"""
Thread-safe TTL cache for market data responses.

Entries expire for normal reads after `ttl_seconds`, but are kept (up to
`maxsize`, least recently used evicted first) so the market data service
can serve the last known value when the provider fails.

Usage:
    cache = TTLCache(ttl_seconds=300)
    cache.set("AAPL", Decimal("190.12"))
    cache.get("AAPL")        # fresh value or None
    cache.get_stale("AAPL")  # last value regardless of age, or None
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable


class TTLCache:
    """
    Bounded LRU cache whose entries go stale after a TTL.

    Uses OrderedDict for O(1) access and eviction, guarded by a lock.
    """

    def __init__(
            self,
            ttl_seconds: float,
            maxsize: int = 1000,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            ttl_seconds: Age after which get() stops returning an entry
            maxsize: Maximum number of entries to keep
            clock: Time source (seconds); injectable for tests
        """
        self._ttl = ttl_seconds
        self._maxsize = maxsize
        self._clock = clock
        self._cache: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any | None:
        """Value if present and younger than the TTL, else None."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self._ttl:
                return None
            self._cache.move_to_end(key)
            return value

    def get_stale(self, key: Hashable) -> Any | None:
        """Last stored value regardless of age, or None."""
        with self._lock:
            entry = self._cache.get(key)
            return entry[1] if entry is not None else None

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the least recently used entry if full."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._maxsize:
                self._cache.popitem(last=False)
            self._cache[key] = (self._clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache
