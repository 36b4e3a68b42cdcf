"""In-memory store of the latest order book per (symbol, venue)."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional, Tuple

from chainspread.src.scanner.models import OrderBookSnapshot, OrderLevel, normalise_levels

logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]


def _merge_side(
    current: Iterable[OrderLevel],
    updates: Iterable[Any],
    *,
    descending: bool,
) -> Tuple[OrderLevel, ...]:
    levels: Dict[float, float] = {level.price: level.size for level in current}
    for raw in updates or ():
        try:
            price = float(raw[0])
            size = float(raw[1])
        except (TypeError, ValueError, IndexError):
            continue
        if size <= 0:
            levels.pop(price, None)
        else:
            levels[price] = size
    return normalise_levels(levels.items(), descending=descending)


class OrderBookStore:
    """Latest known depth per (symbol, venue), written by the streaming feed.

    Snapshots are immutable and swapped in a single dictionary assignment, so
    readers never wait for writers. Writers are serialised per key only, which
    keeps an incremental merge on one pair from racing with another update to
    the same pair while leaving unrelated pairs untouched.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[PairKey, OrderBookSnapshot] = {}
        self._write_locks: Dict[PairKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: PairKey) -> threading.Lock:
        lock = self._write_locks.get(key)
        if lock is None:
            with self._locks_guard:
                lock = self._write_locks.setdefault(key, threading.Lock())
        return lock

    def apply_update(
        self,
        symbol: str,
        venue: str,
        asks: Optional[Iterable[Any]],
        bids: Optional[Iterable[Any]],
        *,
        replace: bool = True,
        timestamp: Optional[float] = None,
    ) -> OrderBookSnapshot:
        """Replace (or merge into) the snapshot for ``symbol`` on ``venue``.

        When ``replace`` is false the update is treated as a delta: a level
        with a size of zero removes that price and any other size overwrites
        it.
        """

        key = (symbol, venue)
        with self._lock_for(key):
            current = self._snapshots.get(key)
            if replace or current is None:
                snapshot = OrderBookSnapshot.from_levels(
                    symbol, venue, asks=asks, bids=bids, timestamp=timestamp
                )
            else:
                snapshot = OrderBookSnapshot(
                    symbol=symbol,
                    venue=venue,
                    bids=_merge_side(current.bids, bids, descending=True),
                    asks=_merge_side(current.asks, asks, descending=False),
                    timestamp=time.time() if timestamp is None else float(timestamp),
                )
            self._snapshots[key] = snapshot
        return snapshot

    def get_snapshot(
        self,
        symbol: str,
        venue: str,
        *,
        max_age: Optional[float] = None,
        now: Optional[float] = None,
    ) -> Optional[OrderBookSnapshot]:
        snapshot = self._snapshots.get((symbol, venue))
        if snapshot is None:
            return None
        if max_age is not None and snapshot.age(now) > max_age:
            logger.debug(f"Order book for {symbol} on {venue} is stale ({snapshot.age(now):.1f}s old)")
            return None
        return snapshot

    def remove(self, symbol: str, venue: str) -> None:
        with self._lock_for((symbol, venue)):
            self._snapshots.pop((symbol, venue), None)

    def __len__(self) -> int:
        return len(self._snapshots)
