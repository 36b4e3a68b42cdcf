import pytest

from chainspread.src.scanner.models import CurrencyInfo, OrderBookSnapshot, TokenConfiguration


@pytest.fixture
def make_book():
    def _make(
        symbol="CAKE",
        venue="bitmart",
        *,
        bids=((1.2, 10_000.0),),
        asks=((1.25, 10_000.0),),
        timestamp=None,
    ):
        return OrderBookSnapshot.from_levels(symbol, venue, asks=asks, bids=bids, timestamp=timestamp)

    return _make


@pytest.fixture
def make_token():
    def _make(symbol="CAKE", *, venues=("bitmart",), tax=0.0, disabled_reverse_venues=(), blockchain="bsc"):
        return TokenConfiguration(
            symbol=symbol,
            blockchain=blockchain,
            tax=tax,
            venues=frozenset(venues),
            disabled_reverse_venues=frozenset(disabled_reverse_venues),
            address="0x" + "11" * 20,
        )

    return _make


@pytest.fixture
def open_currency():
    def _make(symbol="CAKE", *, withdraw=True, deposit=True, active=True):
        return CurrencyInfo(symbol, withdraw_enabled=withdraw, deposit_enabled=deposit, active=active)

    return _make
