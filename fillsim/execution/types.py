"""
Execution-layer types: fill outcome, decision state, fault, and fill-model errors.

FillOutcome is what the caller books; DecisionState is what it merges back into
the order. Both are immutable and created fresh on every evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from fillsim.order import Order, OrderStatus, Side


class FaultKind(Enum):
    """Why an evaluation could not produce a decision."""

    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class FillModelError(Exception):
    """Raised inside a fill handler; converted to a Fault at the evaluate() boundary."""

    kind = FaultKind.INTERNAL


class InvalidMarketDataError(FillModelError):
    kind = FaultKind.INVALID_INPUT


class UnsupportedOrderError(FillModelError):
    kind = FaultKind.INVALID_INPUT


@dataclass(frozen=True)
class FillOutcome:
    """
    Result of evaluating one order against one sample. Immutable.

    fill_quantity is either 0 or the full requested quantity: this model never
    produces partial fills.
    """

    order_id: str
    symbol: str
    side: Side
    status: OrderStatus
    fill_quantity: float = 0.0
    fill_price: float | None = None
    time: datetime | None = None

    def __post_init__(self) -> None:
        if self.fill_quantity:
            if self.status not in (OrderStatus.FILLED, OrderStatus.PARTIALLY_FILLED):
                raise ValueError(f"nonzero fill quantity with status {self.status.value}")
            if self.fill_price is None:
                raise ValueError("nonzero fill quantity without a fill price")

    @property
    def is_fill(self) -> bool:
        return self.fill_quantity != 0

    @classmethod
    def no_fill(cls, order: Order, time: datetime | None = None) -> "FillOutcome":
        """Zero-quantity outcome carrying the order's current status."""
        return cls(order_id=order.order_id, symbol=order.symbol, side=order.side, status=order.status, time=time)

    @classmethod
    def full_fill(cls, order: Order, price: float, time: datetime | None = None) -> "FillOutcome":
        return cls(
            order_id=order.order_id,
            symbol=order.symbol,
            side=order.side,
            status=OrderStatus.FILLED,
            fill_quantity=order.quantity,
            fill_price=price,
            time=time,
        )


@dataclass(frozen=True)
class DecisionState:
    """The only order fields a fill decision may change."""

    status: OrderStatus
    price: float
    stop_triggered: bool = False

    @classmethod
    def of(cls, order: Order) -> "DecisionState":
        """Current decision state of an order, unchanged."""
        return cls(status=order.status, price=order.price, stop_triggered=getattr(order, "stop_triggered", False))


@dataclass(frozen=True)
class Outcome:
    """A successful evaluation: what was filled and the order's new decision state."""

    fill: FillOutcome
    state: DecisionState

    @classmethod
    def unchanged(cls, order: Order, time: datetime | None = None) -> "Outcome":
        return cls(fill=FillOutcome.no_fill(order, time), state=DecisionState.of(order))

    @classmethod
    def filled(cls, order: Order, price: float, time: datetime | None = None, *, stop_triggered: bool = False) -> "Outcome":
        return cls(
            fill=FillOutcome.full_fill(order, price, time),
            state=DecisionState(status=OrderStatus.FILLED, price=price, stop_triggered=stop_triggered),
        )


@dataclass(frozen=True)
class Fault:
    """A failed evaluation. Callers treat it as no fill and report it."""

    order_id: str | None
    kind: FaultKind
    message: str
    time: datetime | None = None


FillResult = Outcome | Fault
