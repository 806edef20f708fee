"""
Slippage models: how far the assumed execution price moves against the trader.

A model only returns a non-negative magnitude. The direction is applied in one
place, apply_slippage(): buyers pay more, sellers receive less.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fillsim.order import Order, Side
from fillsim.execution.types import FillModelError

if TYPE_CHECKING:
    from fillsim.market import SecuritySnapshot
    from fillsim.settings import FillSettings


class SlippageModel(ABC):
    """Pluggable slippage approximation for a security/order pair."""

    @abstractmethod
    def slippage(self, snapshot: "SecuritySnapshot", order: Order) -> float:
        """Return the slippage magnitude (>= 0) in price units."""
        ...


class NullSlippageModel(SlippageModel):
    """No slippage. The default."""

    def slippage(self, snapshot: "SecuritySnapshot", order: Order) -> float:
        return 0.0


class ConstantSlippageModel(SlippageModel):
    """Fixed price amount per unit, e.g. one tick."""

    def __init__(self, amount: float) -> None:
        if amount < 0:
            raise ValueError("slippage amount must be non-negative")
        self.amount = amount

    def slippage(self, snapshot: "SecuritySnapshot", order: Order) -> float:
        return self.amount


class BasisPointSlippageModel(SlippageModel):
    """Slippage proportional to the last price: bps / 10_000 * price."""

    def __init__(self, bps: float) -> None:
        if bps < 0:
            raise ValueError("slippage bps must be non-negative")
        self.bps = bps

    def slippage(self, snapshot: "SecuritySnapshot", order: Order) -> float:
        return snapshot.price * self.bps / 10_000


def slippage_model_from_settings(settings: "FillSettings") -> SlippageModel:
    """Pick the slippage model configured in the environment."""
    if settings.slippage_bps:
        return BasisPointSlippageModel(settings.slippage_bps)
    if settings.slippage:
        return ConstantSlippageModel(settings.slippage)
    return NullSlippageModel()


def apply_slippage(price: float, side: Side, slip: float) -> float:
    """Move price against the trader by slip."""
    if not math.isfinite(slip) or slip < 0:
        raise FillModelError(f"slippage must be a non-negative finite number, got {slip!r}")
    if side == Side.BUY:
        return price + slip
    return price - slip
