"""Time-bounded membership sets used to rate-limit alerts."""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple


def notification_key(symbol: str, venue: str) -> str:
    """Cache key for a (symbol, venue) pair."""

    return f"{symbol}:{venue}"


class CooldownCache:
    """Mapping from key to ``(value, inserted_at)`` with a fixed time-to-live.

    An entry older than ``ttl`` seconds is treated as absent and evicted on
    the next lookup. :meth:`sweep` removes every expired entry at once for
    callers that prefer a periodic clean-up.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = float(ttl)
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _expired(self, inserted_at: float, now: float) -> bool:
        return now - inserted_at >= self.ttl

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, inserted_at = entry
            if self._expired(inserted_at, self._clock()):
                del self._entries[key]
                return None
            return value

    def contains(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._expired(entry[1], self._clock()):
                del self._entries[key]
                return False
            return True

    def add(self, key: str, value: Any = True) -> None:
        """Insert ``key`` or restart its cooldown."""

        with self._lock:
            self._entries[key] = (value, self._clock())

    def sweep(self) -> int:
        """Evict every expired entry and return how many were removed."""

        with self._lock:
            now = self._clock()
            expired = [key for key, (_, inserted_at) in self._entries.items() if self._expired(inserted_at, now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
