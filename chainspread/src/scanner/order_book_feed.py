"""Streams venue order books into the :class:`OrderBookStore`."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Tuple

from chainspread.src.scanner.order_book_store import OrderBookStore

logger = logging.getLogger(__name__)

Subscription = Tuple[str, str]


class OrderBookFeed:
    """Long-lived subscriber keeping the store current for every (venue, symbol).

    One order book stream is opened per subscription. Whenever any stream
    produces a snapshot it is written to the store and the stream is re-armed.
    A stream that fails or ends has its book dropped from the store and is
    reopened after ``reconnect_delay``, so one bad market never stops the
    others. The feed is the only writer of the store it is given.
    """

    def __init__(
        self,
        venues: Mapping[str, Any],
        store: OrderBookStore,
        subscriptions: Mapping[str, Iterable[str]],
        *,
        depth: int = 20,
        websocket_timeout: Optional[float] = 30.0,
        reconnect_delay: float = 5.0,
    ) -> None:
        self.venues = dict(venues)
        self.store = store
        self.depth = depth
        self.websocket_timeout = websocket_timeout
        self.reconnect_delay = reconnect_delay
        self.subscriptions: List[Subscription] = []
        for venue, symbols in subscriptions.items():
            if venue not in self.venues:
                logger.warning(f"Skipping order book subscriptions for unknown venue {venue}")
                continue
            for symbol in dict.fromkeys(symbols):
                self.subscriptions.append((venue, symbol))

    def _open(self, subscription: Subscription) -> AsyncIterator[Any]:
        venue, symbol = subscription
        return self.venues[venue].watch_order_book(
            symbol,
            limit=self.depth,
            websocket_timeout=self.websocket_timeout,
            reconnect_delay=self.reconnect_delay,
        )

    async def _reopen_later(self, subscription: Subscription) -> AsyncIterator[Any]:
        await asyncio.sleep(self.reconnect_delay)
        return self._open(subscription)

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Consume every subscription until ``stop_event`` is set or the task is cancelled."""

        if not self.subscriptions:
            logger.info("Order book feed has no subscriptions; nothing to stream.")
            return

        stop_event = stop_event or asyncio.Event()
        streams: Dict[Subscription, AsyncIterator[Any]] = {}
        pending: Dict[asyncio.Task, Subscription] = {}
        reopening: Dict[asyncio.Task, Subscription] = {}

        for subscription in self.subscriptions:
            stream = self._open(subscription)
            streams[subscription] = stream
            pending[asyncio.create_task(stream.__anext__())] = subscription

        logger.info(f"Order book feed started for {len(self.subscriptions)} market(s)")
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            while not stop_event.is_set():
                done, _ = await asyncio.wait(
                    [stop_task, *pending, *reopening],
                    return_when=asyncio.FIRST_COMPLETED,
                )

                for finished in done:
                    if finished is stop_task:
                        continue

                    if finished in reopening:
                        subscription = reopening.pop(finished)
                        stream = finished.result()
                        streams[subscription] = stream
                        pending[asyncio.create_task(stream.__anext__())] = subscription
                        continue

                    subscription = pending.pop(finished)
                    venue, symbol = subscription
                    try:
                        snapshot = finished.result()
                    except StopAsyncIteration:
                        logger.warning(f"Order book stream for {symbol} on {venue} ended; reopening.")
                    except Exception as exc:
                        logger.error(f"Order book stream for {symbol} on {venue} failed: {exc}; reopening.")
                    else:
                        self.store.apply_update(
                            symbol,
                            venue,
                            snapshot.asks,
                            snapshot.bids,
                            timestamp=snapshot.timestamp,
                        )
                        pending[asyncio.create_task(streams[subscription].__anext__())] = subscription
                        continue

                    self.store.remove(symbol, venue)
                    await self._close_stream(streams.pop(subscription, None))
                    reopening[asyncio.create_task(self._reopen_later(subscription))] = subscription
        finally:
            stop_task.cancel()
            outstanding = [stop_task, *pending, *reopening]
            for task in outstanding:
                task.cancel()
            await asyncio.gather(*outstanding, return_exceptions=True)
            for stream in streams.values():
                await self._close_stream(stream)
            logger.info("Order book feed stopped")

    @staticmethod
    async def _close_stream(stream: Optional[AsyncIterator[Any]]) -> None:
        close = getattr(stream, "aclose", None)
        if callable(close):
            try:
                await close()
            except Exception:
                logger.debug("Failed to close order book stream", exc_info=True)
