"""
Fill models: decide whether an order executes on the latest sample, and at what price.

FillModel ABC: one method per order kind plus evaluate(), which dispatches on the
order kind and turns any failure into a Fault. DefaultFillModel is the
conservative bar-based model used for backtests: when the bar cannot tell which
way price moved, it assumes the fill least favourable to the trader.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from fillsim.market import SecuritySnapshot
from fillsim.order import (
    LimitOrder,
    MarketOnCloseOrder,
    MarketOnOpenOrder,
    MarketOrder,
    Order,
    Side,
    StopLimitOrder,
    StopMarketOrder,
)

from fillsim.execution.price_range import PriceRange, extract_price_range, reference_price
from fillsim.execution.slippage import NullSlippageModel, SlippageModel, apply_slippage
from fillsim.execution.types import (
    DecisionState,
    Fault,
    FaultKind,
    FillModelError,
    FillOutcome,
    FillResult,
    Outcome,
    UnsupportedOrderError,
)

logger = logging.getLogger(__name__)

PriceRangeExtractor = Callable[[SecuritySnapshot], PriceRange]


class FillModel(ABC):
    """
    Abstract fill model. Implement one handler per order kind; callers use evaluate().

    Handlers never mutate the order. They return an Outcome whose DecisionState
    the caller merges back (see fillsim.execution.settlement.apply_decision).
    Handlers may raise; evaluate() reports that as a Fault instead.
    """

    def __init__(
        self,
        slippage_model: SlippageModel | None = None,
        *,
        price_range: PriceRangeExtractor = extract_price_range,
    ) -> None:
        self.slippage_model = slippage_model or NullSlippageModel()
        self.price_range = price_range

    def evaluate(self, snapshot: SecuritySnapshot, order: Order) -> FillResult:
        """Evaluate one order against one sample. Never raises for bad data."""
        try:
            if isinstance(order, MarketOrder):
                return self.market_fill(snapshot, order)
            if isinstance(order, StopMarketOrder):
                return self.stop_market_fill(snapshot, order)
            if isinstance(order, StopLimitOrder):
                return self.stop_limit_fill(snapshot, order)
            if isinstance(order, LimitOrder):
                return self.limit_fill(snapshot, order)
            if isinstance(order, MarketOnOpenOrder):
                return self.market_on_open_fill(snapshot, order)
            if isinstance(order, MarketOnCloseOrder):
                return self.market_on_close_fill(snapshot, order)
            raise UnsupportedOrderError(f"no fill handler for {type(order).__name__}")
        except FillModelError as exc:
            kind, message = exc.kind, str(exc)
        except Exception as exc:
            kind, message = FaultKind.INTERNAL, f"{type(exc).__name__}: {exc}"
        logger.debug("Fill evaluation failed for %s: %s", getattr(order, "order_id", None), message)
        return Fault(order_id=getattr(order, "order_id", None), kind=kind, message=message, time=snapshot.time)

    def slipped(self, snapshot: SecuritySnapshot, order: Order, price: float) -> float:
        """price moved against the order's side by the model's slippage."""
        price = reference_price(snapshot, price)
        return apply_slippage(price, order.side, self.slippage_model.slippage(snapshot, order))

    @abstractmethod
    def market_fill(self, snapshot: SecuritySnapshot, order: MarketOrder) -> Outcome:
        ...

    @abstractmethod
    def stop_market_fill(self, snapshot: SecuritySnapshot, order: StopMarketOrder) -> Outcome:
        ...

    @abstractmethod
    def stop_limit_fill(self, snapshot: SecuritySnapshot, order: StopLimitOrder) -> Outcome:
        ...

    @abstractmethod
    def limit_fill(self, snapshot: SecuritySnapshot, order: LimitOrder) -> Outcome:
        ...

    @abstractmethod
    def market_on_open_fill(self, snapshot: SecuritySnapshot, order: MarketOnOpenOrder) -> Outcome:
        ...

    @abstractmethod
    def market_on_close_fill(self, snapshot: SecuritySnapshot, order: MarketOnCloseOrder) -> Outcome:
        ...


class DefaultFillModel(FillModel):
    """
    Bar-based fill model. Every fill is for the full order quantity.

    Orders that are already Filled or Canceled come back unchanged with zero quantity.
    """

    def market_fill(self, snapshot: SecuritySnapshot, order: MarketOrder) -> Outcome:
        """Fill now at the last price, slipped."""
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        return Outcome.filled(order, self.slipped(snapshot, order, snapshot.price), snapshot.time)

    def stop_market_fill(self, snapshot: SecuritySnapshot, order: StopMarketOrder) -> Outcome:
        """
        Trigger on the bar range and fill in the same evaluation, at the worse of
        the stop price and the slipped last price.
        """
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        prices = self.price_range(snapshot)

        if order.side == Side.SELL:
            if prices.minimum < order.stop_price:
                fill_price = min(order.stop_price, self.slipped(snapshot, order, snapshot.price))
                return Outcome.filled(order, fill_price, snapshot.time)
        elif prices.maximum > order.stop_price:
            fill_price = max(order.stop_price, self.slipped(snapshot, order, snapshot.price))
            return Outcome.filled(order, fill_price, snapshot.time)
        return Outcome.unchanged(order, snapshot.time)

    def stop_limit_fill(self, snapshot: SecuritySnapshot, order: StopLimitOrder) -> Outcome:
        """
        Latch stop_triggered when the bar crosses the stop, then behave as a limit
        order filled at exactly the limit price.

        Once triggered, the limit test uses the last price rather than the bar
        range: the bar does not say whether its low (or high) printed before or
        after the stop was hit. This is an approximation, not an exact model.
        """
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        prices = self.price_range(snapshot)
        last = reference_price(snapshot, snapshot.price)

        if order.side == Side.BUY:
            triggered = order.stop_triggered or prices.maximum > order.stop_price
            marketable = last < order.limit_price
        else:
            triggered = order.stop_triggered or prices.minimum < order.stop_price
            marketable = last > order.limit_price

        if not triggered:
            return Outcome.unchanged(order, snapshot.time)
        if marketable:
            return Outcome.filled(order, order.limit_price, snapshot.time, stop_triggered=True)
        return Outcome(
            fill=FillOutcome.no_fill(order, snapshot.time),
            state=DecisionState(status=order.status, price=order.price, stop_triggered=True),
        )

    def limit_fill(self, snapshot: SecuritySnapshot, order: LimitOrder) -> Outcome:
        """
        Fill when the bar trades through the limit, at the worse of the limit and
        the bar extreme. Far out-of-the-money limits therefore fill at a price the
        bar actually printed, never at a better-than-market limit.
        """
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        prices = self.price_range(snapshot)

        if order.side == Side.BUY:
            if prices.minimum < order.limit_price:
                return Outcome.filled(order, min(prices.maximum, order.limit_price), snapshot.time)
        elif prices.maximum > order.limit_price:
            return Outcome.filled(order, max(prices.minimum, order.limit_price), snapshot.time)
        return Outcome.unchanged(order, snapshot.time)

    def market_on_open_fill(self, snapshot: SecuritySnapshot, order: MarketOnOpenOrder) -> Outcome:
        """Fill at the open of the first session after submission."""
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        # submitted during today's session: this session's open has already passed
        if order.time is not None and snapshot.is_open_at(order.time) and order.time.date() == snapshot.time.date():
            return Outcome.unchanged(order, snapshot.time)
        if not snapshot.exchange_open:
            return Outcome.unchanged(order, snapshot.time)
        open_price = reference_price(snapshot, snapshot.open, "open price")
        return Outcome.filled(order, self.slipped(snapshot, order, open_price), snapshot.time)

    def market_on_close_fill(self, snapshot: SecuritySnapshot, order: MarketOnCloseOrder) -> Outcome:
        """Fill at the session close once the exchange has closed."""
        if order.status.is_terminal:
            return Outcome.unchanged(order, snapshot.time)
        if snapshot.exchange_open:
            return Outcome.unchanged(order, snapshot.time)
        close_price = reference_price(snapshot, snapshot.close, "close price")
        return Outcome.filled(order, self.slipped(snapshot, order, close_price), snapshot.time)
