"""
fillsim: deterministic order-fill simulation for backtests.

Decides, per order and per market sample, whether the order executes and at
what price. No venue, no portfolio accounting, no order routing.
"""

__version__ = "0.1.0"

from fillsim.market import AlwaysOpen, Bar, ExchangeHours, SecuritySnapshot, SessionHours
from fillsim.order import (
    LimitOrder,
    MarketOnCloseOrder,
    MarketOnOpenOrder,
    MarketOrder,
    Order,
    OrderStatus,
    OrderType,
    Side,
    StopLimitOrder,
    StopMarketOrder,
)
from fillsim.settings import FillSettings, load_settings

__all__ = [
    "AlwaysOpen",
    "Bar",
    "ExchangeHours",
    "FillSettings",
    "LimitOrder",
    "MarketOnCloseOrder",
    "MarketOnOpenOrder",
    "MarketOrder",
    "Order",
    "OrderStatus",
    "OrderType",
    "SecuritySnapshot",
    "SessionHours",
    "Side",
    "StopLimitOrder",
    "StopMarketOrder",
    "load_settings",
]
