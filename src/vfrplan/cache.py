"""
In-memory TTL cache for point forecasts.
"""

import logging
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 100
# Share of entries dropped when the cache is still full after cleanup
EVICTION_FRACTION = 0.2


def location_key(lat: float, lon: float) -> str:
    """Cache key for a location, rounded to 4 decimal places."""
    return f"{lat:.4f},{lon:.4f}"


class ForecastCache(Generic[T]):
    """
    Location-keyed cache with expiry.

    Entries expire ``ttl_s`` seconds after they are stored. When the cache
    is full, expired entries are removed first, then the oldest fifth.
    Instances are created and owned by callers.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")

        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, T]] = {}

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at > self.ttl_s

    def get(self, lat: float, lon: float) -> Optional[T]:
        key = location_key(lat, lon)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            del self._entries[key]
            return None
        return value

    def set(self, lat: float, lon: float, value: T) -> None:
        key = location_key(lat, lon)
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self.cleanup()
            if len(self._entries) >= self.max_entries:
                self._evict_oldest()

        self._entries[key] = (self._clock(), value)

    def cleanup(self) -> int:
        """Remove expired entries and return how many were removed."""
        now = self._clock()
        expired = [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired forecast cache entries")
        return len(expired)

    def _evict_oldest(self) -> None:
        count = max(1, int(len(self._entries) * EVICTION_FRACTION))
        oldest = sorted(self._entries.items(), key=lambda item: item[1][0])[:count]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"Evicted {count} oldest forecast cache entries")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, location: Tuple[float, float]) -> bool:
        lat, lon = location
        return self.get(lat, lon) is not None

    def __len__(self) -> int:
        return len(self._entries)
