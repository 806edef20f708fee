"""
Price range observable in the latest sample: (low, high) of the bar, or the
last price twice when there is no bar.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fillsim.market import SecuritySnapshot
from fillsim.execution.types import InvalidMarketDataError


@dataclass(frozen=True)
class PriceRange:
    minimum: float
    maximum: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.minimum) and math.isfinite(self.maximum)):
            raise InvalidMarketDataError(f"price range bounds must be finite, got ({self.minimum}, {self.maximum})")
        if self.minimum > self.maximum:
            raise InvalidMarketDataError(f"price range minimum {self.minimum} above maximum {self.maximum}")


def reference_price(snapshot: SecuritySnapshot, value: float | None, what: str = "price") -> float:
    """Return value if it is a usable price for the snapshot's security."""
    if value is None or not math.isfinite(value):
        raise InvalidMarketDataError(f"no usable {what} for {snapshot.symbol}: {value!r}")
    return value


def extract_price_range(snapshot: SecuritySnapshot) -> PriceRange:
    """Return the [minimum, maximum] price span seen in the snapshot."""
    if snapshot.bar is not None:
        return PriceRange(snapshot.bar.low, snapshot.bar.high)
    price = reference_price(snapshot, snapshot.price)
    return PriceRange(price, price)
