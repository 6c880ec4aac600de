from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """Simple in-process TTL cache.

    - Stores values with an absolute expiry computed from ``ttl_seconds``.
    - Uses ``time.monotonic()`` for steady time measurement unless a clock is injected.
    - Not shared between processes; used for short-lived summaries, not for match results.
    """

    def __init__(
        self, ttl_seconds: float, *, clock: Optional[Callable[[], float]] = None
    ) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._store: Dict[K, Tuple[float, V]] = {}

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.monotonic()

    def get(self, key: K) -> Optional[V]:
        item = self._store.get(key)
        if item is None:
            return None
        expiry, value = item
        if self._now() >= expiry:
            # Expired
            self._store.pop(key, None)
            return None
        return value

    def set(self, key: K, value: V) -> None:
        self._store[key] = (self._now() + self._ttl, value)

    def invalidate(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
