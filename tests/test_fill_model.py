"""
Tests for DefaultFillModel: one section per order kind, plus evaluate() dispatch and faults.
"""

from datetime import datetime

import pytest

from fillsim import (
    Bar,
    LimitOrder,
    MarketOnCloseOrder,
    MarketOnOpenOrder,
    MarketOrder,
    Order,
    OrderStatus,
    SecuritySnapshot,
    SessionHours,
    Side,
    StopLimitOrder,
    StopMarketOrder,
)
from fillsim.execution import (
    ConstantSlippageModel,
    DefaultFillModel,
    Fault,
    FaultKind,
    Outcome,
    SlippageModel,
    apply_decision,
)

# Tuesday 5 March 2024
NOW = datetime(2024, 3, 5, 10, 0)


def _snapshot(price, low=None, high=None, *, when=NOW, open_=None, close=None, **kwargs):
    bar = None
    if low is not None:
        bar = Bar(open=open_ if open_ is not None else price, high=high, low=low, close=close if close is not None else price)
    return SecuritySnapshot(symbol="SPY", time=when, price=price, bar=bar, **kwargs)


def _evaluate(order, snapshot, slippage=0.0):
    result = DefaultFillModel(ConstantSlippageModel(slippage)).evaluate(snapshot, order)
    assert isinstance(result, Outcome)
    return result


def _all_kinds(side=Side.BUY, **kwargs):
    return [
        MarketOrder(symbol="SPY", side=side, quantity=10, **kwargs),
        StopMarketOrder(symbol="SPY", side=side, quantity=10, stop_price=100.0, **kwargs),
        StopLimitOrder(symbol="SPY", side=side, quantity=10, stop_price=100.0, limit_price=102.0, **kwargs),
        LimitOrder(symbol="SPY", side=side, quantity=10, limit_price=100.0, **kwargs),
        MarketOnOpenOrder(symbol="SPY", side=side, quantity=10, **kwargs),
        MarketOnCloseOrder(symbol="SPY", side=side, quantity=10, **kwargs),
    ]


# --- Market ---


def test_market_buy_fills_at_price_plus_slippage():
    order = MarketOrder(symbol="SPY", side=Side.BUY, quantity=10)
    result = _evaluate(order, _snapshot(100.0), slippage=0.25)
    assert result.fill.status == OrderStatus.FILLED
    assert result.fill.fill_quantity == 10
    assert result.fill.fill_price == 100.25
    assert result.state.status == OrderStatus.FILLED
    assert result.state.price == 100.25


def test_market_sell_fills_at_price_minus_slippage():
    order = MarketOrder(symbol="SPY", side=Side.SELL, quantity=10)
    result = _evaluate(order, _snapshot(100.0), slippage=0.25)
    assert result.fill.fill_price == 99.75
    assert result.fill.fill_quantity == 10


def test_market_fills_partially_filled_order_in_full():
    order = MarketOrder(symbol="SPY", side=Side.BUY, quantity=7, status=OrderStatus.PARTIALLY_FILLED)
    result = _evaluate(order, _snapshot(50.0))
    assert result.fill.status == OrderStatus.FILLED
    assert result.fill.fill_quantity == 7


# --- Stop market ---


def test_stop_market_sell_fills_at_worse_of_stop_and_price():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=10, stop_price=100.0)
    result = _evaluate(order, _snapshot(96.0, low=95.0, high=105.0))
    assert result.fill.status == OrderStatus.FILLED
    assert result.fill.fill_price == 96.0


def test_stop_market_sell_capped_at_stop_when_price_above_it():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=10, stop_price=100.0)
    result = _evaluate(order, _snapshot(103.0, low=98.0, high=105.0))
    assert result.fill.fill_price == 100.0


def test_stop_market_sell_applies_slippage():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=10, stop_price=100.0)
    result = _evaluate(order, _snapshot(99.0, low=95.0, high=105.0), slippage=0.5)
    assert result.fill.fill_price == 98.5


def test_stop_market_buy_fills_at_worse_of_stop_and_price():
    order = StopMarketOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0)
    result = _evaluate(order, _snapshot(104.0, low=95.0, high=105.0), slippage=0.5)
    assert result.fill.fill_price == 104.5
    result = _evaluate(order, _snapshot(97.0, low=95.0, high=105.0))
    assert result.fill.fill_price == 100.0


def test_stop_market_not_triggered_leaves_order_unchanged():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=10, stop_price=100.0)
    result = _evaluate(order, _snapshot(102.0, low=100.0, high=105.0))
    assert result.fill.fill_quantity == 0
    assert result.fill.fill_price is None
    assert result.state.status == OrderStatus.SUBMITTED
    buy = StopMarketOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=110.0)
    assert _evaluate(buy, _snapshot(102.0, low=100.0, high=110.0)).fill.fill_quantity == 0


def test_stop_market_without_bar_uses_last_price():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=10, stop_price=100.0)
    assert _evaluate(order, _snapshot(100.0)).fill.fill_quantity == 0
    assert _evaluate(order, _snapshot(99.9)).fill.fill_price == 99.9


# --- Stop limit ---


def test_stop_limit_buy_two_phase():
    order = StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0, limit_price=102.0)

    first = _evaluate(order, _snapshot(99.5, low=98.0, high=100.0))
    assert first.fill.fill_quantity == 0
    assert first.state.stop_triggered is False
    order = apply_decision(order, first.state)

    second = _evaluate(order, _snapshot(101.5, low=100.5, high=103.0))
    assert second.state.stop_triggered is True
    assert second.fill.status == OrderStatus.FILLED
    assert second.fill.fill_price == 102.0
    assert second.fill.fill_quantity == 10


def test_stop_limit_buy_high_below_stop_does_not_trigger():
    order = StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0, limit_price=102.0)
    result = _evaluate(order, _snapshot(99.0, low=98.0, high=100.0))
    assert result.state.stop_triggered is False
    assert result.fill.fill_quantity == 0


def test_stop_limit_triggers_without_fill_then_fills_later():
    order = StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0, limit_price=102.0)
    triggered = _evaluate(order, _snapshot(103.0, low=99.0, high=104.0))
    assert triggered.state.stop_triggered is True
    assert triggered.state.status == OrderStatus.SUBMITTED
    assert triggered.fill.fill_quantity == 0
    order = apply_decision(order, triggered.state)

    # bar entirely below the stop: the latch still holds and the limit is marketable
    filled = _evaluate(order, _snapshot(98.0, low=97.0, high=99.0))
    assert filled.state.stop_triggered is True
    assert filled.fill.fill_price == 102.0


def test_stop_limit_sell_two_phase():
    order = StopLimitOrder(symbol="SPY", side=Side.SELL, quantity=5, stop_price=100.0, limit_price=98.0)
    triggered = _evaluate(order, _snapshot(97.0, low=96.0, high=101.0))
    assert triggered.state.stop_triggered is True
    assert triggered.fill.fill_quantity == 0
    order = apply_decision(order, triggered.state)

    filled = _evaluate(order, _snapshot(99.0, low=98.5, high=99.5))
    assert filled.fill.fill_price == 98.0
    assert filled.fill.fill_quantity == 5


def test_stop_limit_ignores_slippage():
    order = StopLimitOrder(symbol="SPY", side=Side.SELL, quantity=5, stop_price=100.0, limit_price=98.0)
    result = _evaluate(order, _snapshot(99.0, low=97.0, high=101.0), slippage=1.0)
    assert result.fill.fill_price == 98.0


def test_stop_limit_latch_is_monotonic():
    order = StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0, limit_price=90.0)
    order = apply_decision(order, _evaluate(order, _snapshot(95.0, low=94.0, high=101.0)).state)
    assert order.stop_triggered is True
    assert order.status == OrderStatus.SUBMITTED
    # bars back below the stop, last price above the limit: no fill, latch holds
    for price in (95.0, 96.0, 97.0):
        result = _evaluate(order, _snapshot(price, low=94.0, high=98.0))
        assert result.fill.fill_quantity == 0
        assert result.state.stop_triggered is True
        order = apply_decision(order, result.state)
        assert order.stop_triggered is True


# --- Limit ---


def test_limit_buy_fills_at_min_of_bar_high_and_limit():
    order = LimitOrder(symbol="SPY", side=Side.BUY, quantity=10, limit_price=100.0)
    assert _evaluate(order, _snapshot(99.0, low=98.0, high=101.0)).fill.fill_price == 100.0
    # far out-of-the-money limit: bounded by what the bar printed
    deep = LimitOrder(symbol="SPY", side=Side.BUY, quantity=10, limit_price=150.0)
    assert _evaluate(deep, _snapshot(99.0, low=98.0, high=101.0)).fill.fill_price == 101.0


def test_limit_sell_fills_at_max_of_bar_low_and_limit():
    order = LimitOrder(symbol="SPY", side=Side.SELL, quantity=10, limit_price=100.0)
    assert _evaluate(order, _snapshot(100.5, low=99.0, high=102.0)).fill.fill_price == 100.0
    deep = LimitOrder(symbol="SPY", side=Side.SELL, quantity=10, limit_price=50.0)
    assert _evaluate(deep, _snapshot(100.5, low=99.0, high=102.0)).fill.fill_price == 99.0


def test_limit_not_reached_does_not_fill():
    buy = LimitOrder(symbol="SPY", side=Side.BUY, quantity=10, limit_price=98.0)
    assert _evaluate(buy, _snapshot(99.0, low=98.0, high=101.0)).fill.fill_quantity == 0
    sell = LimitOrder(symbol="SPY", side=Side.SELL, quantity=10, limit_price=101.0)
    assert _evaluate(sell, _snapshot(99.0, low=98.0, high=101.0)).fill.fill_quantity == 0


def test_limit_ignores_slippage():
    order = LimitOrder(symbol="SPY", side=Side.BUY, quantity=10, limit_price=100.0)
    assert _evaluate(order, _snapshot(99.0, low=98.0, high=101.0), slippage=0.5).fill.fill_price == 100.0


# --- Market on open ---


HOURS = SessionHours()


def test_market_on_open_waits_for_next_session():
    submitted = datetime(2024, 3, 5, 14, 0)
    order = MarketOnOpenOrder(symbol="SPY", side=Side.BUY, quantity=10, time=submitted)

    same_day = _snapshot(101.0, low=100.0, high=102.0, open_=100.5, when=datetime(2024, 3, 5, 14, 5), hours=HOURS)
    assert same_day.exchange_open is True
    assert _evaluate(order, same_day, slippage=0.1).fill.fill_quantity == 0

    next_open = _snapshot(103.0, low=102.0, high=104.0, open_=102.5, when=datetime(2024, 3, 6, 9, 30), hours=HOURS)
    result = _evaluate(order, next_open, slippage=0.1)
    assert result.fill.status == OrderStatus.FILLED
    assert result.fill.fill_quantity == 10
    assert result.fill.fill_price == pytest.approx(102.6)


def test_market_on_open_sell_subtracts_slippage():
    order = MarketOnOpenOrder(symbol="SPY", side=Side.SELL, quantity=10, time=datetime(2024, 3, 5, 14, 0))
    next_open = _snapshot(103.0, low=102.0, high=104.0, open_=102.5, when=datetime(2024, 3, 6, 9, 30), hours=HOURS)
    assert _evaluate(order, next_open, slippage=0.5).fill.fill_price == 102.0


def test_market_on_open_does_not_fill_while_closed():
    order = MarketOnOpenOrder(symbol="SPY", side=Side.BUY, quantity=10, time=datetime(2024, 3, 5, 17, 0))
    evening = _snapshot(101.0, low=100.0, high=102.0, when=datetime(2024, 3, 5, 18, 0), hours=HOURS)
    assert evening.exchange_open is False
    assert _evaluate(order, evening).fill.fill_quantity == 0


def test_market_on_open_submitted_before_open_fills_same_day():
    order = MarketOnOpenOrder(symbol="SPY", side=Side.BUY, quantity=10, time=datetime(2024, 3, 5, 8, 0))
    opening = _snapshot(101.0, low=100.0, high=102.0, open_=100.25, when=datetime(2024, 3, 5, 9, 30), hours=HOURS)
    assert _evaluate(order, opening).fill.fill_price == 100.25


# --- Market on close ---


def test_market_on_close_waits_for_close():
    order = MarketOnCloseOrder(symbol="SPY", side=Side.SELL, quantity=10, time=datetime(2024, 3, 5, 11, 0))
    during = _snapshot(101.0, low=100.0, high=102.0, close=101.0, when=datetime(2024, 3, 5, 15, 59), hours=HOURS)
    assert _evaluate(order, during, slippage=0.5).fill.fill_quantity == 0

    after = _snapshot(101.5, low=101.0, high=102.0, close=101.5, when=datetime(2024, 3, 5, 16, 0), hours=HOURS)
    result = _evaluate(order, after, slippage=0.5)
    assert result.fill.status == OrderStatus.FILLED
    assert result.fill.fill_price == 101.0


def test_market_on_close_uses_explicit_exchange_flag():
    order = MarketOnCloseOrder(symbol="SPY", side=Side.BUY, quantity=10)
    closed = _snapshot(50.0, low=49.0, high=51.0, close=50.0, exchange_open=False)
    assert _evaluate(order, closed, slippage=0.5).fill.fill_price == 50.5


# --- Properties across kinds ---


@pytest.mark.parametrize("order", _all_kinds(status=OrderStatus.CANCELED), ids=lambda o: o.order_type.value)
def test_canceled_order_never_fills(order):
    snapshot = _snapshot(101.0, low=1.0, high=1000.0, exchange_open=False)
    result = _evaluate(order, snapshot, slippage=0.5)
    assert result.fill.fill_quantity == 0
    assert result.fill.status == OrderStatus.CANCELED
    assert result.state.status == OrderStatus.CANCELED
    assert result.state.price == order.price


@pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
def test_filled_quantity_is_requested_quantity(side):
    # a bar wide enough to trigger every stop and limit, exchange closed for MOC,
    # and a MOO submitted on an earlier day so it is allowed to fill now
    # (the stop-limit's 102 limit is marketable at 101 for a buy, 103 for a sell)
    price = 101.0 if side == Side.BUY else 103.0
    open_snapshot = _snapshot(price, low=1.0, high=1000.0, exchange_open=True)
    closed_snapshot = _snapshot(price, low=1.0, high=1000.0, exchange_open=False)
    for order in _all_kinds(side, time=datetime(2024, 3, 4, 10, 0)):
        snapshot = closed_snapshot if isinstance(order, MarketOnCloseOrder) else open_snapshot
        result = _evaluate(order, snapshot)
        assert result.fill.status == OrderStatus.FILLED, order.order_type
        assert result.fill.fill_quantity == order.quantity


@pytest.mark.parametrize(
    "make_order, snapshot",
    [
        (lambda side: MarketOrder(symbol="SPY", side=side, quantity=1), _snapshot(100.0)),
        (
            # buy stop below the bar, sell stop above it: both trigger, neither caps the price
            lambda side: StopMarketOrder(symbol="SPY", side=side, quantity=1, stop_price=90.0 if side == Side.BUY else 110.0),
            _snapshot(100.0, low=95.0, high=105.0),
        ),
        (lambda side: MarketOnOpenOrder(symbol="SPY", side=side, quantity=1), _snapshot(100.0, low=95.0, high=105.0)),
        (
            lambda side: MarketOnCloseOrder(symbol="SPY", side=side, quantity=1),
            _snapshot(100.0, low=95.0, high=105.0, exchange_open=False),
        ),
    ],
    ids=["market", "stop_market", "market_on_open", "market_on_close"],
)
def test_slippage_sign_convention(make_order, snapshot):
    assert _evaluate(make_order(Side.BUY), snapshot, slippage=2.0).fill.fill_price == 102.0
    assert _evaluate(make_order(Side.SELL), snapshot, slippage=2.0).fill.fill_price == 98.0
    assert _evaluate(make_order(Side.BUY), snapshot).fill.fill_price == 100.0


# --- evaluate(): dispatch and faults ---


def test_evaluate_unknown_order_kind_is_fault():
    order = Order(symbol="SPY", side=Side.BUY, quantity=1)
    result = DefaultFillModel().evaluate(_snapshot(100.0), order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INVALID_INPUT
    assert result.order_id == order.order_id


@pytest.mark.parametrize("price", [float("nan"), None], ids=["nan", "none"])
@pytest.mark.parametrize("order", _all_kinds(), ids=lambda o: o.order_type.value)
def test_evaluate_missing_price_is_invalid_input(order, price):
    # closed session so market-on-close reaches its price
    snapshot = _snapshot(price, exchange_open=isinstance(order, MarketOnOpenOrder))
    result = DefaultFillModel().evaluate(snapshot, order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INVALID_INPUT
    assert result.order_id == order.order_id


@pytest.mark.parametrize(
    "order, bar, exchange_open",
    [
        (MarketOnOpenOrder(symbol="SPY", side=Side.BUY, quantity=1), Bar(float("nan"), 101.0, 99.0, 100.5), True),
        (MarketOnCloseOrder(symbol="SPY", side=Side.SELL, quantity=1), Bar(100.0, 101.0, 99.0, float("nan")), False),
    ],
    ids=["open", "close"],
)
def test_evaluate_nan_session_price_is_invalid_input(order, bar, exchange_open):
    snapshot = SecuritySnapshot(symbol="SPY", time=NOW, price=100.5, bar=bar, exchange_open=exchange_open)
    result = DefaultFillModel().evaluate(snapshot, order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INVALID_INPUT
    assert "price" in result.message


def test_evaluate_inverted_bar_is_invalid_input():
    order = StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=1, stop_price=100.0)
    result = DefaultFillModel().evaluate(_snapshot(100.0, low=105.0, high=95.0), order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INVALID_INPUT


class _BrokenSlippage(SlippageModel):
    def slippage(self, snapshot, order):
        raise ZeroDivisionError("spread is zero")


class _NegativeSlippage(SlippageModel):
    def slippage(self, snapshot, order):
        return -1.0


def test_evaluate_converts_slippage_errors_to_internal_fault():
    order = MarketOrder(symbol="SPY", side=Side.BUY, quantity=1)
    result = DefaultFillModel(_BrokenSlippage()).evaluate(_snapshot(100.0), order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INTERNAL
    assert "ZeroDivisionError" in result.message
    assert result.time == NOW


def test_evaluate_rejects_negative_slippage():
    order = MarketOrder(symbol="SPY", side=Side.SELL, quantity=1)
    result = DefaultFillModel(_NegativeSlippage()).evaluate(_snapshot(100.0), order)
    assert isinstance(result, Fault)
    assert result.kind == FaultKind.INTERNAL


def test_evaluate_uses_injected_price_range():
    from fillsim.execution import PriceRange

    model = DefaultFillModel(price_range=lambda snapshot: PriceRange(90.0, 110.0))
    order = LimitOrder(symbol="SPY", side=Side.BUY, quantity=1, limit_price=95.0)
    result = model.evaluate(_snapshot(100.0), order)
    assert isinstance(result, Outcome)
    assert result.fill.fill_price == 95.0


def test_evaluate_does_not_mutate_order():
    order = StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=10, stop_price=100.0, limit_price=102.0)
    DefaultFillModel().evaluate(_snapshot(101.0, low=99.0, high=103.0), order)
    assert order.stop_triggered is False
    assert order.status == OrderStatus.SUBMITTED
    assert order.price == 0.0
