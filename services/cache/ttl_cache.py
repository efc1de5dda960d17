# services/cache/ttl_cache.py
from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """
    In-process read-through cache with a fixed TTL.

    `clock` returns seconds; tests pass a fake one. Expired entries are kept
    so `get_stale` can serve them when the upstream is down.
    """

    def __init__(self, ttl_sec: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = ttl_sec
        self._clock = clock
        # key -> (stored_at, value)
        self._store: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        hit = self._store.get(key)
        if hit is None:
            return None
        stored_at, value = hit
        if self._clock() - stored_at >= self.ttl_sec:
            return None
        return value

    def get_stale(self, key: Hashable) -> Optional[V]:
        hit = self._store.get(key)
        return hit[1] if hit else None

    def set(self, key: Hashable, value: V) -> None:
        self._store[key] = (self._clock(), value)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
