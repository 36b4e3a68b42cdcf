"""Periodic scan loop comparing on-chain prices with venue order books."""
from __future__ import annotations

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from chainspread.src.scanner.evaluator import TokenEvaluator
from chainspread.src.scanner.models import (
    CurrencyInfo,
    OrderBookSnapshot,
    ScanError,
    ScanReport,
    TokenConfiguration,
    TokenEvaluation,
)
from chainspread.src.scanner.order_book_store import OrderBookStore
from chainspread.src.scanner.ranking import rank_evaluations

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    IDLE = "idle"
    FETCHING_LISTINGS = "fetching_listings"
    EVALUATING_TOKENS = "evaluating_tokens"
    RANKING = "ranking"
    DISPATCHING = "dispatching"
    SLEEPING = "sleeping"


class ScanCycle:
    """Runs one evaluation pass over every configured token per interval.

    Each tick fetches the venue currency listings, evaluates all tokens
    concurrently, ranks the results and hands them to the presenter and the
    notification dispatcher. A failure while handling one token or venue is
    logged and recorded on the tick's :class:`ScanReport`; it never prevents
    the other tokens from being evaluated, and no exception stops
    :meth:`run_forever` before its stop event is set.
    """

    def __init__(
        self,
        tokens: Sequence[TokenConfiguration],
        chain: Any,
        venues: Mapping[str, Any],
        order_books: OrderBookStore,
        evaluator: TokenEvaluator,
        *,
        dispatcher: Optional[Any] = None,
        presenter: Optional[Callable[[List[TokenEvaluation]], Any]] = None,
        interval: float = 10.0,
        order_book_max_age: Optional[float] = None,
        order_book_depth: int = 20,
        streaming_venues: Optional[Iterable[str]] = None,
        on_report: Optional[Callable[[ScanReport], Any]] = None,
        debug: bool = False,
    ) -> None:
        self.tokens = list(tokens)
        self.chain = chain
        self.venues = dict(venues)
        self.order_books = order_books
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.presenter = presenter
        self.interval = interval
        self.order_book_max_age = order_book_max_age
        self.order_book_depth = order_book_depth
        self.streaming_venues = set(self.venues) if streaming_venues is None else set(streaming_venues)
        self.on_report = on_report
        self.debug = debug
        self.state = ScanState.IDLE
        self.last_report: Optional[ScanReport] = None
        self._tick = 0

    def _record(
        self,
        report: ScanReport,
        operation: str,
        exc: BaseException,
        *,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
    ) -> None:
        where = " ".join(part for part in (symbol, f"on {venue}" if venue else None) if part)
        logger.warning(f"{operation} failed{' for ' + where if where else ''}: {exc}", exc_info=self.debug)
        report.errors.append(ScanError(symbol=symbol, venue=venue, operation=operation, message=str(exc)))

    async def _fetch_listings(self, report: ScanReport) -> Dict[str, Dict[str, CurrencyInfo]]:
        names = list(self.venues)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.venues[name].fetch_currency_listing) for name in names),
            return_exceptions=True,
        )
        listings: Dict[str, Dict[str, CurrencyInfo]] = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                self._record(report, "fetch_currency_listing", result, venue=name)
                continue
            if isinstance(result, BaseException):
                raise result
            listings[name] = result
        return listings

    async def _chain_value(self, operation: str, token: TokenConfiguration, report: ScanReport) -> float:
        try:
            return float(await asyncio.to_thread(getattr(self.chain, operation), token.symbol))
        except Exception as exc:
            self._record(report, operation, exc, symbol=token.symbol)
            return math.nan

    async def _order_book(self, symbol: str, venue: str, report: ScanReport) -> Optional[OrderBookSnapshot]:
        if venue in self.streaming_venues:
            return self.order_books.get_snapshot(symbol, venue, max_age=self.order_book_max_age)

        connection = self.venues.get(venue)
        if connection is None:
            return None
        try:
            return await asyncio.to_thread(connection.fetch_order_book, symbol, limit=self.order_book_depth)
        except Exception as exc:
            self._record(report, "fetch_order_book", exc, symbol=symbol, venue=venue)
            return None

    async def _evaluate_token(
        self,
        token: TokenConfiguration,
        listings: Mapping[str, Mapping[str, CurrencyInfo]],
        report: ScanReport,
    ) -> List[TokenEvaluation]:
        chain_price, chain_liquidity = await asyncio.gather(
            self._chain_value("get_latest_price", token, report),
            self._chain_value("get_liquidity", token, report),
        )

        evaluations: List[TokenEvaluation] = []
        for venue in sorted(token.venues):
            order_book = await self._order_book(token.symbol, venue, report)
            listing = listings.get(venue)
            evaluations.append(
                self.evaluator.evaluate(
                    token,
                    venue,
                    chain_price=chain_price,
                    chain_liquidity=chain_liquidity,
                    order_book=order_book,
                    currency_info=listing.get(token.symbol) if listing is not None else None,
                )
            )
        return evaluations

    def _dispatch(self, ranked: List[TokenEvaluation]) -> int:
        summary = self.dispatcher.dispatch(ranked)
        self.dispatcher.sweep()
        return summary.total

    async def run_once(self) -> ScanReport:
        """Execute a single tick and return its report."""

        self._tick += 1
        report = ScanReport(tick=self._tick, started_at=time.time())
        started = time.perf_counter()

        self.state = ScanState.FETCHING_LISTINGS
        listings = await self._fetch_listings(report)

        self.state = ScanState.EVALUATING_TOKENS
        results = await asyncio.gather(
            *(self._evaluate_token(token, listings, report) for token in self.tokens),
            return_exceptions=True,
        )

        self.state = ScanState.RANKING
        evaluations: List[TokenEvaluation] = []
        for token, result in zip(self.tokens, results):
            if isinstance(result, Exception):
                self._record(report, "evaluate_token", result, symbol=token.symbol)
                continue
            if isinstance(result, BaseException):
                raise result
            evaluations.extend(result)
        report.evaluations = rank_evaluations(evaluations)

        self.state = ScanState.DISPATCHING
        if self.presenter is not None:
            try:
                self.presenter(report.evaluations)
            except Exception as exc:
                self._record(report, "present", exc)
        if self.dispatcher is not None:
            try:
                report.alerts_sent = await asyncio.to_thread(self._dispatch, report.evaluations)
            except Exception as exc:
                self._record(report, "dispatch", exc)

        report.duration = time.perf_counter() - started
        self.last_report = report
        self.state = ScanState.IDLE
        logger.info(
            f"Tick {report.tick}: {len(report.evaluations)} evaluation(s), {len(report.errors)} error(s), "
            f"{report.alerts_sent} alert(s) in {report.duration:.2f}s"
        )

        if self.on_report is not None:
            try:
                self.on_report(report)
            except Exception:
                logger.exception("Scan report callback failed")
        return report

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run ticks back to back, sleeping ``interval`` seconds after each one."""

        stop_event = stop_event or asyncio.Event()
        logger.info(f"Scanning {len(self.tokens)} token(s) every {self.interval:.1f}s")
        while not stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Scan tick {self._tick} failed")

            self.state = ScanState.SLEEPING
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            self.state = ScanState.IDLE
        logger.info("Scan loop stopped")
