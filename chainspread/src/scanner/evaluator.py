"""Profitability and liquidity model for on-chain versus venue prices."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from chainspread.src.scanner.exceptions import InsufficientLiquidityError
from chainspread.src.scanner.models import (
    CurrencyInfo,
    LiquidityClass,
    OrderBookSnapshot,
    OrderLevel,
    TokenConfiguration,
    TokenEvaluation,
    TradeDirection,
)


_DEFAULT_TOLERANCE = 1e-12


@dataclass(frozen=True)
class EvaluationPolicy:
    """Thresholds applied by :class:`TokenEvaluator`.

    ``profit_threshold`` and ``max_slippage_pct`` are percentages,
    ``movable_notional`` is expressed in the venue quote currency and
    ``low_liquidity_threshold`` in the chain's native unit.
    """

    profit_threshold: float = 5.0
    forward_ratio_bound: float = 1.5
    reverse_ratio_bound: float = 1.5
    movable_notional: float = 500.0
    max_slippage_pct: float = 2.0
    low_liquidity_threshold: float = 50.0


def _as_float(value) -> float:
    try:
        return math.nan if value is None else float(value)
    except (TypeError, ValueError):
        return math.nan


def _is_usable_price(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _walk_levels(
    symbol: str,
    levels: Iterable[OrderLevel],
    notional: float,
) -> Tuple[float, float, float]:
    """Return ``(best_price, vwap_price, quote_filled)`` for ``notional`` of quote."""

    if notional <= 0:
        raise ValueError("notional must be positive")

    best_price: Optional[float] = None
    remaining_quote = float(notional)
    total_base = 0.0
    total_quote = 0.0

    for price, quantity in levels:
        if remaining_quote <= _DEFAULT_TOLERANCE:
            break
        if price <= 0 or quantity <= 0:
            continue
        if best_price is None:
            best_price = float(price)
        quote_traded = min(remaining_quote, price * quantity)
        total_base += quote_traded / price
        total_quote += quote_traded
        remaining_quote -= quote_traded

    if best_price is None:
        raise InsufficientLiquidityError(f"No depth available for {symbol}")
    if remaining_quote > _DEFAULT_TOLERANCE:
        raise InsufficientLiquidityError(
            f"Insufficient depth for {symbol} to fill {notional} (missing {remaining_quote:.6f})"
        )
    return best_price, total_quote / total_base, total_quote


def slippage_pct(order_book: OrderBookSnapshot, direction: TradeDirection, notional: float) -> float:
    """Percentage the volume-weighted price degrades from the best level.

    Forward trades sell into the bids and reverse trades buy from the asks.
    Raises :class:`InsufficientLiquidityError` when the book cannot absorb
    ``notional``.
    """

    if direction is TradeDirection.FORWARD:
        best, vwap, _ = _walk_levels(order_book.symbol, order_book.bids, notional)
        return (best - vwap) / best * 100.0
    best, vwap, _ = _walk_levels(order_book.symbol, order_book.asks, notional)
    return (vwap - best) / best * 100.0


class TokenEvaluator:
    """Turns raw chain and venue data into :class:`TokenEvaluation` records.

    The evaluator never raises: missing or invalid inputs produce ``NaN``
    profits and false flags so that the record still ranks and renders.
    """

    def __init__(self, policy: Optional[EvaluationPolicy] = None) -> None:
        self.policy = policy or EvaluationPolicy()

    def forward_profit(self, chain_price: float, best_bid: Optional[float], tax: float) -> float:
        if not _is_usable_price(chain_price) or not _is_usable_price(best_bid):
            return math.nan
        return (best_bid - chain_price) / chain_price * 100.0 - tax

    def reverse_profit(self, chain_price: float, best_ask: Optional[float], tax: float) -> float:
        if not _is_usable_price(chain_price) or not _is_usable_price(best_ask):
            return math.nan
        return (chain_price - best_ask) / best_ask * 100.0 - tax

    @staticmethod
    def spread_ratio(best_bid: Optional[float], best_ask: Optional[float]) -> float:
        """Top-of-book ask over bid; NaN unless both sides are quoted."""
        if not _is_usable_price(best_bid) or not _is_usable_price(best_ask):
            return math.nan
        return best_ask / best_bid

    @staticmethod
    def _within_bound(ratio: float, bound: float) -> bool:
        return math.isfinite(ratio) and ratio <= bound

    def is_movable(
        self,
        direction: TradeDirection,
        order_book: Optional[OrderBookSnapshot],
        currency_info: Optional[CurrencyInfo],
        *,
        reverse_enabled: bool = True,
    ) -> bool:
        if order_book is None or currency_info is None or not currency_info.active:
            return False
        if direction is TradeDirection.FORWARD and not currency_info.deposit_enabled:
            return False
        if direction is TradeDirection.REVERSE and not (currency_info.withdraw_enabled and reverse_enabled):
            return False
        try:
            observed = slippage_pct(order_book, direction, self.policy.movable_notional)
        except (InsufficientLiquidityError, ValueError, ZeroDivisionError):
            return False
        return observed <= self.policy.max_slippage_pct

    def classify_liquidity(self, chain_liquidity: float) -> LiquidityClass:
        if chain_liquidity is None or not math.isfinite(chain_liquidity):
            return LiquidityClass.UNKNOWN
        if chain_liquidity < self.policy.low_liquidity_threshold:
            return LiquidityClass.LOW
        return LiquidityClass.NORMAL

    def evaluate(
        self,
        config: TokenConfiguration,
        venue: str,
        *,
        chain_price: float,
        chain_liquidity: float,
        order_book: Optional[OrderBookSnapshot],
        currency_info: Optional[CurrencyInfo],
    ) -> TokenEvaluation:
        chain_price = _as_float(chain_price)
        chain_liquidity = _as_float(chain_liquidity)
        tax = _as_float(config.tax or 0.0)
        if not math.isfinite(tax):
            tax = 0.0

        bid_level = order_book.best_bid() if order_book else None
        ask_level = order_book.best_ask() if order_book else None
        best_bid = bid_level.price if bid_level else None
        best_ask = ask_level.price if ask_level else None

        forward_profit = self.forward_profit(chain_price, best_bid, tax)
        reverse_profit = self.reverse_profit(chain_price, best_ask, tax)
        spread = self.spread_ratio(best_bid, best_ask)
        threshold = self.policy.profit_threshold

        return TokenEvaluation(
            symbol=config.symbol,
            blockchain=config.blockchain,
            venue=venue,
            chain_price=chain_price,
            chain_liquidity=chain_liquidity,
            tax=tax,
            order_book=order_book,
            currency_info=currency_info,
            forward_profit=forward_profit,
            reverse_profit=reverse_profit,
            forward_ratio=spread,
            reverse_ratio=spread,
            forward_ratio_ok=self._within_bound(spread, self.policy.forward_ratio_bound),
            reverse_ratio_ok=self._within_bound(spread, self.policy.reverse_ratio_bound),
            forward_movable=self.is_movable(TradeDirection.FORWARD, order_book, currency_info),
            reverse_movable=self.is_movable(
                TradeDirection.REVERSE,
                order_book,
                currency_info,
                reverse_enabled=config.reverse_enabled(venue),
            ),
            liquidity=self.classify_liquidity(chain_liquidity),
            forward_profitable=math.isfinite(forward_profit) and forward_profit > threshold,
            reverse_profitable=math.isfinite(reverse_profit) and reverse_profit > threshold,
        )
