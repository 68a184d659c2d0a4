"""
In-memory tile cache.

Raw tile bytes keyed by (z, x, y, url), bounded by total byte size and
expired lazily by age. Entries are immutable ``bytes`` objects, so readers
share the stored buffer without copying.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..constants import TILE_CACHE_MAX_BYTES, TILE_CACHE_TTL_S

logger = logging.getLogger(__name__)

CacheKey = tuple[int, int, int, str]


@dataclass(frozen=True)
class CacheEntry:
    """A cached tile buffer and when it was stored."""

    data: bytes
    stored_at: float
    size: int


class TileCache:
    """Size-bounded LRU cache with lazy TTL expiry.

    Dict insertion order doubles as recency order: reads move an entry to
    the end, eviction pops from the front. A single entry larger than the
    whole budget is still stored (after evicting everything else).
    """

    def __init__(
        self,
        max_size_bytes: int = TILE_CACHE_MAX_BYTES,
        ttl_seconds: float = TILE_CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_size_bytes = max_size_bytes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._total: int = 0
        self._lock = threading.Lock()

    def get(self, z: int, x: int, y: int, url: str) -> bytes | None:
        """Return cached bytes, or None when missing or expired."""
        key = (z, x, y, url)
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                self._total -= entry.size
                logger.debug(f"Tile expired: {z}/{x}/{y} {url}")
                return None
            self._entries[key] = entry
            return entry.data

    def put(self, z: int, x: int, y: int, url: str, data: bytes) -> None:
        """Store bytes, evicting least recently used entries to make room."""
        key = (z, x, y, url)
        data = bytes(data)
        size = len(data)
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total -= previous.size

            while self._entries and self._total + size > self.max_size_bytes:
                oldest_key = next(iter(self._entries))
                evicted = self._entries.pop(oldest_key)
                self._total -= evicted.size
                logger.debug(f"Evicted tile {oldest_key[:3]} ({evicted.size} bytes)")

            if size > self.max_size_bytes:
                logger.warning(
                    f"Tile {z}/{x}/{y} ({size} bytes) exceeds cache budget "
                    f"({self.max_size_bytes} bytes); storing anyway"
                )

            self._entries[key] = CacheEntry(data=data, stored_at=self._clock(), size=size)
            self._total += size

    def stats(self) -> dict:
        with self._lock:
            return {
                "size_bytes": self._total,
                "count": len(self._entries),
                "max_size_bytes": self.max_size_bytes,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
