"""
Order: the order kinds the fill model knows how to execute.

Immutable. One dataclass per order kind; the fill model never mutates an order,
it returns a DecisionState that the caller merges with apply_decision().
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Side(Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    MARKET = "market"
    STOP_MARKET = "stop_market"
    STOP_LIMIT = "stop_limit"
    LIMIT = "limit"
    MARKET_ON_OPEN = "market_on_open"
    MARKET_ON_CLOSE = "market_on_close"


class OrderStatus(Enum):
    SUBMITTED = "submitted"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.FILLED, OrderStatus.CANCELED)


def _new_order_id() -> str:
    return f"sim-{uuid.uuid4().hex[:12]}"


def _check_price(name: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value!r}")


@dataclass(frozen=True, kw_only=True)
class Order:
    """
    Fields shared by every order kind.

    quantity is always a positive magnitude; direction comes from side.
    price and status are the decision state last applied to the order.
    """

    symbol: str
    side: Side
    quantity: float
    price: float = 0.0
    status: OrderStatus = OrderStatus.SUBMITTED
    time: datetime | None = None
    order_id: str = field(default_factory=_new_order_id)

    order_type = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.quantity) or self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity!r}")

    @property
    def value(self) -> float:
        """Notional of the order at its current price."""
        return self.quantity * self.price


@dataclass(frozen=True, kw_only=True)
class MarketOrder(Order):
    order_type = OrderType.MARKET


@dataclass(frozen=True, kw_only=True)
class StopMarketOrder(Order):
    stop_price: float

    order_type = OrderType.STOP_MARKET

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_price("stop_price", self.stop_price)


@dataclass(frozen=True, kw_only=True)
class StopLimitOrder(Order):
    """Stop order that rests as a limit order once stop_triggered is latched."""

    stop_price: float
    limit_price: float
    stop_triggered: bool = False

    order_type = OrderType.STOP_LIMIT

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_price("stop_price", self.stop_price)
        _check_price("limit_price", self.limit_price)


@dataclass(frozen=True, kw_only=True)
class LimitOrder(Order):
    limit_price: float

    order_type = OrderType.LIMIT

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_price("limit_price", self.limit_price)


@dataclass(frozen=True, kw_only=True)
class MarketOnOpenOrder(Order):
    order_type = OrderType.MARKET_ON_OPEN


@dataclass(frozen=True, kw_only=True)
class MarketOnCloseOrder(Order):
    order_type = OrderType.MARKET_ON_CLOSE
