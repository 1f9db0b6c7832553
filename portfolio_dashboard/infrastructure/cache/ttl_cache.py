"""
In-memory TTL cache for market data and computed portfolio responses.

Values are deep-copied in and out so a caller mutating a returned object
can never corrupt what the next reader sees. Expiry is checked lazily on
every read; the background sweeper only reclaims memory.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    keys: int


class TTLCache:
    def __init__(
        self,
        default_ttl: float = 15,
        check_period: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self.check_period = check_period if check_period is not None else default_ttl * 0.2
        self._clock = clock
        self._store: Dict[str, Tuple[Any, float]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                self._misses += 1
                logger.debug(f"Cache expired: {key}")
                return None
            self._hits += 1
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        snapshot = copy.deepcopy(value)
        with self._lock:
            self._store[key] = (snapshot, self._clock() + ttl)
        return True

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._clock() >= entry[1]:
                del self._store[key]
                return False
            return True

    def delete(self, key: str) -> int:
        with self._lock:
            return 1 if self._store.pop(key, None) is not None else 0

    def flush(self) -> None:
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, keys=len(self._store))

    def prune_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, expires_at) in self._store.items() if now >= expires_at]
            for key in expired:
                del self._store[key]
        if expired:
            logger.debug(f"Cache sweep evicted {len(expired)} entries")
        return len(expired)

    async def run_sweeper(self) -> None:
        """Periodic eviction loop; run as a background task and cancel to stop."""
        while True:
            await asyncio.sleep(self.check_period)
            self.prune_expired()
