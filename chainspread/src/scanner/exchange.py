"""Venue connectivity helpers built on ccxt and ccxt.pro."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional

import ccxt
import ccxt.pro as ccxtpro

from chainspread.src.scanner.exceptions import VenueFetchError
from chainspread.src.scanner.models import CurrencyInfo, OrderBookSnapshot

logger = logging.getLogger(__name__)


class VenueConnection:
    """Wraps the REST and websocket clients of one centralized venue.

    Symbols passed to this class are bare token symbols (``"CAKE"``); they are
    mapped to the venue market ``"CAKE/USDT"`` using ``quote_currency``.
    """

    def __init__(
        self,
        venue_name: str,
        *,
        quote_currency: str = "USDT",
        enable_websocket: bool = True,
        options: Optional[Dict[str, Any]] = None,
        rest_client: Optional[Any] = None,
        websocket_client: Optional[Any] = None,
        poll_interval: float = 2.0,
    ) -> None:
        self.venue_name = venue_name.lower()
        self.quote_currency = quote_currency.upper()
        self.poll_interval = poll_interval

        config = {"enableRateLimit": True, **(options or {})}
        if rest_client is None:
            exchange_class = getattr(ccxt, self.venue_name, None)
            if exchange_class is None:
                raise ValueError(f"ccxt does not support venue {venue_name!r}")
            rest_client = exchange_class(config)
        self.rest_client = rest_client

        self.websocket_client = websocket_client
        if websocket_client is None and enable_websocket:
            ws_class = getattr(ccxtpro, self.venue_name, None)
            if ws_class is None:
                logger.info(f"{self.venue_name} has no ccxt.pro client; order books will be polled via REST.")
            else:
                self.websocket_client = ws_class(dict(config))

    @property
    def supports_streaming(self) -> bool:
        return self.websocket_client is not None and hasattr(self.websocket_client, "watch_order_book")

    def market_symbol(self, symbol: str) -> str:
        return f"{symbol.upper()}/{self.quote_currency}"

    def fetch_currency_listing(self) -> Dict[str, CurrencyInfo]:
        """Return the venue's currency listing keyed by upper-case symbol."""

        try:
            payload = self.rest_client.fetch_currencies()
        except Exception as exc:
            raise VenueFetchError(f"{self.venue_name} currency listing failed: {exc}") from exc

        listing: Dict[str, CurrencyInfo] = {}
        for code, currency in (payload or {}).items():
            if not isinstance(currency, dict):
                continue
            info = CurrencyInfo.from_ccxt(str(code), currency)
            listing[info.symbol] = info
        return listing

    def fetch_order_book(self, symbol: str, *, limit: int = 20) -> OrderBookSnapshot:
        market = self.market_symbol(symbol)
        try:
            payload = self.rest_client.fetch_order_book(market, limit)
        except Exception as exc:
            raise VenueFetchError(f"{self.venue_name} order book fetch failed for {market}: {exc}") from exc
        return OrderBookSnapshot.from_ccxt(symbol.upper(), self.venue_name, payload or {})

    async def watch_order_book(
        self,
        symbol: str,
        *,
        limit: int = 20,
        websocket_timeout: Optional[float] = 30.0,
        reconnect_delay: float = 5.0,
    ) -> AsyncIterator[OrderBookSnapshot]:
        """Yield order book snapshots for ``symbol`` until the consumer stops.

        Websocket failures fall back to REST polling and the websocket is
        retried after ``reconnect_delay``; venues without websocket support are
        polled for the lifetime of the iterator.
        """

        market = self.market_symbol(symbol)
        token = symbol.upper()
        use_websocket = self.supports_streaming
        websocket_failed = False

        while True:
            if use_websocket:
                try:
                    watch = self.websocket_client.watch_order_book(market, limit)
                    if websocket_timeout and websocket_timeout > 0:
                        order_book = await asyncio.wait_for(watch, timeout=websocket_timeout)
                    else:
                        order_book = await watch
                except (ccxt.NotSupported, AttributeError):
                    logger.info(
                        f"{self.venue_name} websocket order book not supported for {market}; falling back to REST polling."
                    )
                    use_websocket = False
                    continue
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    if not websocket_failed:
                        logger.warning(
                            f"{self.venue_name} websocket order book failed for {market} ({exc}); "
                            f"retrying in {reconnect_delay:.0f}s."
                        )
                    websocket_failed = True
                    await asyncio.sleep(reconnect_delay)
                    continue
                else:
                    if websocket_failed:
                        logger.info(f"{self.venue_name} websocket order book recovered for {market}.")
                    websocket_failed = False
                    yield OrderBookSnapshot.from_ccxt(token, self.venue_name, order_book or {})
                    continue

            try:
                snapshot = await asyncio.to_thread(self.fetch_order_book, token, limit=limit)
            except VenueFetchError as exc:
                logger.warning(str(exc))
            else:
                yield snapshot
            await asyncio.sleep(self.poll_interval)

    async def aclose(self) -> None:
        close = getattr(self.websocket_client, "close", None)
        if callable(close):
            try:
                result = close()
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.debug(f"Failed to close websocket client for {self.venue_name}", exc_info=True)
