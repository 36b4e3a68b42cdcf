"""Data models used by the chain/venue spread scanner."""
from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple


class TradeDirection(str, Enum):
    """Forward buys on-chain and sells on the venue, reverse does the opposite."""

    FORWARD = "forward"
    REVERSE = "reverse"


class LiquidityClass(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    UNKNOWN = "unknown"


class OrderLevel(NamedTuple):
    price: float
    size: float


def _coerce_level(level: Any) -> Optional[OrderLevel]:
    if not isinstance(level, (list, tuple)) or len(level) < 2:
        return None
    try:
        price = float(level[0])
        size = float(level[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(price) and math.isfinite(size)):
        return None
    return OrderLevel(price, size)


def normalise_levels(levels: Optional[Iterable[Any]], *, descending: bool) -> Tuple[OrderLevel, ...]:
    """Drop malformed or empty levels and sort them from the best price inward."""

    cleaned = []
    for level in levels or ():
        coerced = _coerce_level(level)
        if coerced is None or coerced.price <= 0 or coerced.size <= 0:
            continue
        cleaned.append(coerced)
    cleaned.sort(key=lambda entry: entry.price, reverse=descending)
    return tuple(cleaned)


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Bid/ask depth for one (symbol, venue) pair.

    ``asks`` are kept in ascending price order and ``bids`` in descending
    order, so the first level of each side is always the best price.
    """

    symbol: str
    venue: str
    bids: Tuple[OrderLevel, ...] = ()
    asks: Tuple[OrderLevel, ...] = ()
    timestamp: float = field(default_factory=lambda: time.time())

    @classmethod
    def from_levels(
        cls,
        symbol: str,
        venue: str,
        *,
        asks: Optional[Iterable[Any]],
        bids: Optional[Iterable[Any]],
        timestamp: Optional[float] = None,
    ) -> "OrderBookSnapshot":
        return cls(
            symbol=symbol,
            venue=venue,
            bids=normalise_levels(bids, descending=True),
            asks=normalise_levels(asks, descending=False),
            timestamp=time.time() if timestamp is None else float(timestamp),
        )

    @classmethod
    def from_ccxt(cls, symbol: str, venue: str, order_book: Dict[str, Any]) -> "OrderBookSnapshot":
        """Create a snapshot from a raw CCXT order book payload."""

        timestamp = order_book.get("timestamp")
        if timestamp:
            try:
                timestamp = float(timestamp) / 1000.0
            except (TypeError, ValueError):
                timestamp = None
        return cls.from_levels(
            symbol,
            venue,
            asks=order_book.get("asks"),
            bids=order_book.get("bids"),
            timestamp=timestamp or None,
        )

    def best_bid(self) -> Optional[OrderLevel]:
        return self.bids[0] if self.bids else None

    def best_ask(self) -> Optional[OrderLevel]:
        return self.asks[0] if self.asks else None

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.timestamp


@dataclass(frozen=True)
class CurrencyInfo:
    """Listing metadata reported by a venue for a single currency."""

    symbol: str
    withdraw_enabled: bool = False
    deposit_enabled: bool = False
    active: bool = True

    @classmethod
    def from_ccxt(cls, code: str, currency: Dict[str, Any]) -> "CurrencyInfo":
        def _flag(key: str) -> bool:
            value = currency.get(key)
            return bool(value) if value is not None else False

        active = currency.get("active")
        return cls(
            symbol=str(currency.get("code") or code).upper(),
            withdraw_enabled=_flag("withdraw"),
            deposit_enabled=_flag("deposit"),
            active=True if active is None else bool(active),
        )


@dataclass(frozen=True)
class TokenConfiguration:
    """Static description of a token watched by the scanner."""

    symbol: str
    blockchain: str
    tax: float = 0.0
    venues: FrozenSet[str] = frozenset()
    disabled_reverse_venues: FrozenSet[str] = frozenset()
    address: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.venues:
            raise ValueError(f"Token {self.symbol} must be listed on at least one venue")

    def reverse_enabled(self, venue: str) -> bool:
        return venue not in self.disabled_reverse_venues


@dataclass(frozen=True)
class TokenEvaluation:
    """Profitability record for one token on one venue during a single tick."""

    symbol: str
    blockchain: str
    venue: str
    chain_price: float
    chain_liquidity: float
    tax: float
    order_book: Optional[OrderBookSnapshot]
    currency_info: Optional[CurrencyInfo]
    forward_profit: float
    reverse_profit: float
    forward_ratio: float
    reverse_ratio: float
    forward_ratio_ok: bool
    reverse_ratio_ok: bool
    forward_movable: bool
    reverse_movable: bool
    liquidity: LiquidityClass
    forward_profitable: bool
    reverse_profitable: bool

    @property
    def max_profit(self) -> float:
        known = [value for value in (self.forward_profit, self.reverse_profit) if not math.isnan(value)]
        return max(known) if known else math.nan

    @property
    def is_low_liquidity(self) -> bool:
        return self.liquidity is LiquidityClass.LOW

    @property
    def is_forward_candidate(self) -> bool:
        return self.forward_profitable and self.forward_ratio_ok and self.forward_movable

    @property
    def is_reverse_candidate(self) -> bool:
        return self.reverse_profitable and self.reverse_ratio_ok and self.reverse_movable

    @property
    def is_profitable_and_ratio_profitable(self) -> bool:
        return (self.forward_profitable and self.forward_ratio_ok) or (
            self.reverse_profitable and self.reverse_ratio_ok
        )

    def best_bid(self) -> Optional[float]:
        level = self.order_book.best_bid() if self.order_book else None
        return level.price if level else None

    def best_ask(self) -> Optional[float]:
        level = self.order_book.best_ask() if self.order_book else None
        return level.price if level else None

    def to_row(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "chain": self.blockchain,
            "venue": self.venue,
            "chain_price": self.chain_price,
            "bid": self.best_bid(),
            "ask": self.best_ask(),
            "forward_pct": self.forward_profit,
            "reverse_pct": self.reverse_profit,
            "forward_ratio": self.forward_ratio,
            "reverse_ratio": self.reverse_ratio,
            "movable": f"{'F' if self.forward_movable else '-'}{'R' if self.reverse_movable else '-'}",
            "liquidity": self.chain_liquidity,
            "liquidity_class": self.liquidity.value,
            "tax": self.tax,
        }


@dataclass(frozen=True)
class ScanError:
    """A single recoverable failure recorded during a tick."""

    symbol: Optional[str]
    venue: Optional[str]
    operation: str
    message: str


@dataclass
class ScanReport:
    """Outcome of one scan tick."""

    tick: int
    started_at: float
    duration: float = 0.0
    evaluations: List[TokenEvaluation] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)
    alerts_sent: int = 0
