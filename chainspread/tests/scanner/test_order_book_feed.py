import asyncio

from chainspread.src.scanner.models import OrderBookSnapshot
from chainspread.src.scanner.order_book_feed import OrderBookFeed
from chainspread.src.scanner.order_book_store import OrderBookStore


class _FakeStreamingVenue:
    def __init__(self, name):
        self.name = name
        self.queues = {}
        self.opened = []

    def _queue(self, symbol):
        return self.queues.setdefault(symbol, asyncio.Queue())

    async def watch_order_book(self, symbol, *, limit=20, websocket_timeout=None, reconnect_delay=5.0):
        self.opened.append((symbol, limit))
        queue = self._queue(symbol)
        while True:
            item = await queue.get()
            if isinstance(item, Exception):
                raise item
            yield item

    async def push(self, symbol, item):
        await self._queue(symbol).put(item)


def _book(symbol, venue, bid):
    return OrderBookSnapshot.from_levels(symbol, venue, bids=[(bid, 10.0)], asks=[(bid + 0.05, 10.0)])


async def _wait_until(predicate, attempts=200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


def test_feed_writes_snapshots_and_reopens_failed_streams():
    venue = _FakeStreamingVenue("bitmart")
    store = OrderBookStore()
    feed = OrderBookFeed({"bitmart": venue}, store, {"bitmart": ["CAKE", "SFUND"]}, depth=5, reconnect_delay=0.0)

    def _bid(symbol):
        snapshot = store.get_snapshot(symbol, "bitmart")
        return snapshot.best_bid().price if snapshot else None

    async def _run():
        stop = asyncio.Event()
        task = asyncio.create_task(feed.run(stop))

        await venue.push("CAKE", _book("CAKE", "bitmart", 1.2))
        await venue.push("SFUND", _book("SFUND", "bitmart", 2.0))
        await _wait_until(lambda: _bid("CAKE") == 1.2 and _bid("SFUND") == 2.0)

        await venue.push("CAKE", RuntimeError("socket closed"))
        await _wait_until(lambda: venue.opened.count(("CAKE", 5)) == 2)
        assert _bid("CAKE") is None
        assert _bid("SFUND") == 2.0

        await venue.push("CAKE", _book("CAKE", "bitmart", 1.3))
        await _wait_until(lambda: _bid("CAKE") == 1.3)

        stop.set()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(_run())

    assert venue.opened.count(("SFUND", 5)) == 1
    assert len(store) == 2


def test_unknown_venues_are_skipped():
    feed = OrderBookFeed({}, OrderBookStore(), {"hotbit": ["CAKE"]})

    assert feed.subscriptions == []
    asyncio.run(asyncio.wait_for(feed.run(), timeout=1.0))


def test_duplicate_symbols_subscribe_once():
    venue = _FakeStreamingVenue("bitmart")
    feed = OrderBookFeed({"bitmart": venue}, OrderBookStore(), {"bitmart": ["CAKE", "CAKE"]})

    assert feed.subscriptions == [("bitmart", "CAKE")]
