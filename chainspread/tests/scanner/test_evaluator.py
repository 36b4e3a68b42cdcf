import math

import pytest

from chainspread.src.scanner.evaluator import EvaluationPolicy, TokenEvaluator, slippage_pct
from chainspread.src.scanner.exceptions import InsufficientLiquidityError
from chainspread.src.scanner.models import LiquidityClass, TradeDirection


@pytest.fixture
def evaluator():
    return TokenEvaluator(EvaluationPolicy())


def test_directional_profit_formulas(evaluator):
    assert evaluator.forward_profit(1.0, 1.2, 0.0) == pytest.approx(20.0)
    assert evaluator.forward_profit(1.0, 1.2, 3.0) == pytest.approx(17.0)
    assert evaluator.reverse_profit(1.2, 1.0, 0.0) == pytest.approx(20.0)
    assert evaluator.reverse_profit(1.0, 1.25, 0.0) == pytest.approx(-20.0)


@pytest.mark.parametrize("chain_price", [math.nan, 0.0, -1.0, math.inf])
def test_unusable_chain_price_yields_nan(evaluator, chain_price):
    assert math.isnan(evaluator.forward_profit(chain_price, 1.2, 0.0))
    assert math.isnan(evaluator.reverse_profit(chain_price, 1.2, 0.0))


def test_missing_book_side_yields_nan(evaluator):
    assert math.isnan(evaluator.forward_profit(1.0, None, 0.0))
    assert math.isnan(evaluator.reverse_profit(1.0, None, 0.0))


def test_forward_opportunity(evaluator, make_token, make_book, open_currency):
    evaluation = evaluator.evaluate(
        make_token(),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=make_book(),
        currency_info=open_currency(),
    )

    assert evaluation.forward_profit == pytest.approx(20.0)
    assert evaluation.reverse_profit == pytest.approx(-20.0)
    assert evaluation.forward_ratio == pytest.approx(1.25 / 1.2)
    assert evaluation.reverse_ratio == evaluation.forward_ratio
    assert evaluation.forward_ratio_ok
    assert evaluation.forward_movable and evaluation.reverse_movable
    assert evaluation.forward_profitable and not evaluation.reverse_profitable
    assert evaluation.is_forward_candidate and not evaluation.is_reverse_candidate
    assert evaluation.is_profitable_and_ratio_profitable
    assert evaluation.liquidity is LiquidityClass.NORMAL
    assert evaluation.max_profit == pytest.approx(20.0)


def test_wide_spread_fails_ratio_bound(evaluator, make_token, make_book, open_currency):
    evaluation = evaluator.evaluate(
        make_token(),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=make_book(bids=((1.10, 10_000.0),), asks=((5.0, 10_000.0),)),
        currency_info=open_currency(),
    )

    assert evaluation.forward_profitable
    assert evaluation.forward_movable
    assert evaluation.forward_ratio == pytest.approx(5.0 / 1.10)
    assert not evaluation.forward_ratio_ok
    assert not evaluation.is_forward_candidate
    assert not evaluation.is_profitable_and_ratio_profitable


def test_reverse_opportunity_respects_disabled_venue(evaluator, make_token, make_book, open_currency):
    book = make_book(bids=((0.75, 10_000.0),), asks=((0.8, 10_000.0),))
    enabled = evaluator.evaluate(
        make_token(),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=book,
        currency_info=open_currency(),
    )
    disabled = evaluator.evaluate(
        make_token(disabled_reverse_venues=("bitmart",)),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=book,
        currency_info=open_currency(),
    )

    assert enabled.reverse_profit == pytest.approx(25.0)
    assert enabled.is_reverse_candidate
    assert disabled.reverse_profitable and not disabled.reverse_movable
    assert not disabled.is_reverse_candidate


def test_movability_requires_currency_flags(evaluator, make_book, open_currency):
    book = make_book()

    assert not evaluator.is_movable(TradeDirection.FORWARD, book, None)
    assert not evaluator.is_movable(TradeDirection.FORWARD, book, open_currency(deposit=False))
    assert not evaluator.is_movable(TradeDirection.REVERSE, book, open_currency(withdraw=False))
    assert not evaluator.is_movable(TradeDirection.REVERSE, book, open_currency(active=False))
    assert evaluator.is_movable(TradeDirection.FORWARD, book, open_currency(withdraw=False))
    assert evaluator.is_movable(TradeDirection.REVERSE, book, open_currency(deposit=False))


def test_movability_requires_depth_within_slippage(evaluator, make_book, open_currency):
    thin = make_book(bids=((1.2, 10.0),))
    steep = make_book(bids=((1.2, 100.0), (1.0, 10_000.0)))

    assert not evaluator.is_movable(TradeDirection.FORWARD, thin, open_currency())
    assert not evaluator.is_movable(TradeDirection.FORWARD, steep, open_currency())
    assert not evaluator.is_movable(TradeDirection.FORWARD, None, open_currency())


def test_slippage_pct_walks_the_book(make_book):
    book = make_book(bids=(), asks=((1.0, 300.0), (1.1, 1_000.0)))

    # 300 quote at 1.0 and 200 quote at 1.1
    expected_vwap = 500.0 / (300.0 + 200.0 / 1.1)
    assert slippage_pct(book, TradeDirection.REVERSE, 500.0) == pytest.approx((expected_vwap - 1.0) * 100.0)

    with pytest.raises(InsufficientLiquidityError):
        slippage_pct(book, TradeDirection.FORWARD, 500.0)


@pytest.mark.parametrize(
    "liquidity, expected",
    [
        (math.nan, LiquidityClass.UNKNOWN),
        (10.0, LiquidityClass.LOW),
        (50.0, LiquidityClass.NORMAL),
        (5_000.0, LiquidityClass.NORMAL),
    ],
)
def test_classify_liquidity(evaluator, liquidity, expected):
    assert evaluator.classify_liquidity(liquidity) is expected


def test_evaluate_is_total_for_garbage_inputs(evaluator, make_token):
    evaluation = evaluator.evaluate(
        make_token(tax=math.nan),
        "bitmart",
        chain_price="not-a-price",
        chain_liquidity=None,
        order_book=None,
        currency_info=None,
    )

    assert math.isnan(evaluation.forward_profit)
    assert math.isnan(evaluation.reverse_profit)
    assert evaluation.tax == 0.0
    assert not evaluation.forward_movable and not evaluation.reverse_movable
    assert not evaluation.is_forward_candidate and not evaluation.is_reverse_candidate
    assert evaluation.liquidity is LiquidityClass.UNKNOWN


def test_spread_ratio_needs_both_sides(evaluator):
    assert evaluator.spread_ratio(2.0, 2.1) == pytest.approx(1.05)
    assert math.isnan(evaluator.spread_ratio(None, 2.1))
    assert math.isnan(evaluator.spread_ratio(2.0, None))


def test_one_sided_book_fails_both_ratio_checks(evaluator, make_token, make_book, open_currency):
    evaluation = evaluator.evaluate(
        make_token(),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=make_book(asks=()),
        currency_info=open_currency(),
    )

    assert evaluation.forward_profitable
    assert math.isnan(evaluation.forward_ratio)
    assert not evaluation.forward_ratio_ok and not evaluation.reverse_ratio_ok
    assert not evaluation.is_forward_candidate


def test_directions_use_their_own_ratio_bound(make_token, make_book, open_currency):
    evaluator = TokenEvaluator(EvaluationPolicy(forward_ratio_bound=1.1, reverse_ratio_bound=1.01))
    evaluation = evaluator.evaluate(
        make_token(),
        "bitmart",
        chain_price=1.0,
        chain_liquidity=100.0,
        order_book=make_book(),
        currency_info=open_currency(),
    )

    assert evaluation.forward_ratio_ok
    assert not evaluation.reverse_ratio_ok
