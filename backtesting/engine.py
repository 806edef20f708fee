"""
Replay engine: run orders through a fill model bar by bar.

Loads bars → builds SecuritySnapshots → evaluates every working order → merges
decisions back into the orders → books fills (with fees) → observers.
Faults are reported to the diagnostics sink and treated as no fill, so one bad
bar never stops a replay. No cash or position accounting.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

import pandas as pd

from fillsim.market import ExchangeHours, SecuritySnapshot
from fillsim.order import MarketOnCloseOrder, Order, Side
from fillsim.execution import (
    DefaultFillModel,
    DiagnosticsSink,
    Fault,
    FeeModel,
    FillModel,
    NullFeeModel,
    log_fault,
    settle,
)

from backtesting.data_loader import iter_snapshots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fill:
    """Record of an executed order in the replay."""

    order_id: str
    symbol: str
    side: Side
    quantity: float
    price: float
    fee: float
    timestamp: datetime


class FillObserver(Protocol):
    """Post-fill callback: the booked fill and the order after the decision was merged."""

    def __call__(self, fill: Fill, order: Order) -> None:
        ...


@dataclass
class ReplayResult:
    """Result of a replay: fills in booking order, final order states, absorbed faults."""

    fills: list[Fill] = field(default_factory=list)
    orders: dict[str, Order] = field(default_factory=dict)
    faults: list[Fault] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        """Fills as a DataFrame indexed by timestamp."""
        columns = ["order_id", "symbol", "side", "quantity", "price", "fee"]
        if not self.fills:
            return pd.DataFrame(columns=columns, index=pd.DatetimeIndex([], name="timestamp"))
        rows = [
            {
                "timestamp": f.timestamp,
                "order_id": f.order_id,
                "symbol": f.symbol,
                "side": f.side.value,
                "quantity": f.quantity,
                "price": f.price,
                "fee": f.fee,
            }
            for f in self.fills
        ]
        return pd.DataFrame(rows).set_index("timestamp")[columns]


class ReplayEngine:
    """
    Replays one symbol's bars against a set of orders.

    An order is working from its submission time (or from the first bar when it
    has none) until it reaches a terminal status.
    """

    def __init__(
        self,
        fill_model: FillModel | None = None,
        fee_model: FeeModel | None = None,
        *,
        observers: Sequence[FillObserver] = (),
        diagnostics: DiagnosticsSink = log_fault,
    ) -> None:
        self.fill_model = fill_model or DefaultFillModel()
        self.fee_model = fee_model or NullFeeModel()
        self.observers: list[FillObserver] = list(observers)
        self._diagnostics = diagnostics

    def step(
        self,
        snapshot: SecuritySnapshot,
        orders: dict[str, Order],
        fills: list[Fill],
        faults: list[Fault],
    ) -> None:
        """
        Evaluate every working order against one snapshot.

        Updates orders in place and appends to fills and faults. Faults also go to
        the diagnostics sink.
        """

        def report(fault: Fault) -> None:
            faults.append(fault)
            self._diagnostics(fault)

        for order_id, order in list(orders.items()):
            if order.status.is_terminal:
                continue
            if order.time is not None and order.time > snapshot.time:
                continue
            if order.symbol != snapshot.symbol:
                logger.info("Skipping order %s: symbol %s not replayed", order_id, order.symbol)
                continue

            result = self.fill_model.evaluate(snapshot, order)
            outcome, updated = settle(result, order, report)
            orders[order_id] = updated
            if not outcome.is_fill:
                continue

            fill = Fill(
                order_id=order_id,
                symbol=updated.symbol,
                side=updated.side,
                quantity=outcome.fill_quantity,
                price=outcome.fill_price,
                fee=self.fee_model.order_fee(snapshot, updated),
                timestamp=outcome.time or snapshot.time,
            )
            fills.append(fill)
            logger.debug("Filled %s %s %s @ %s", fill.side.value, fill.quantity, fill.symbol, fill.price)
            for obs in self.observers:
                obs(fill, updated)

    def replay(self, snapshots: Iterable[SecuritySnapshot], orders: Iterable[Order]) -> ReplayResult:
        """Run orders over an arbitrary snapshot stream."""
        working = {o.order_id: o for o in orders}
        result = ReplayResult(orders=working)
        for snapshot in snapshots:
            self.step(snapshot, working, result.fills, result.faults)
        return result

    def run(
        self,
        data: pd.DataFrame,
        orders: Iterable[Order],
        symbol: str | None = None,
        hours: ExchangeHours | None = None,
    ) -> ReplayResult:
        """
        Replay orders over a bar DataFrame.

        Parameters
        ----------
        data : pd.DataFrame
            DatetimeIndex and open, high, low, close [, volume] (see data_loader).
        orders : iterable of Order
            Orders to work; ids must be unique.
        symbol : str, optional
            Symbol of the bars. If None, uses data.attrs.get('symbol', 'UNKNOWN').
        hours : ExchangeHours, optional
            Session calendar for exchange_open. Always open when None, so
            market-on-close orders never fill; this is logged once at INFO.

        Returns
        -------
        ReplayResult
            Fills, final orders by id, and faults.
        """
        orders = list(orders)
        if hours is None and any(isinstance(o, MarketOnCloseOrder) for o in orders):
            logger.info("No session hours given: exchange is always open, market-on-close orders will not fill")
        return self.replay(iter_snapshots(data, symbol, hours), orders)
