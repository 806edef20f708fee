"""
Market view handed to the fill model: latest bar, scalar price and session state.

The fill model does not build bars or compute trading calendars. Callers supply
a SecuritySnapshot per sample and an ExchangeHours implementation; SessionHours
is a fixed-hours stand-in good enough for regular equity sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from fillsim.settings import FillSettings


@dataclass(frozen=True)
class Bar:
    """One aggregated sample: open, high, low, close [, volume]."""

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class ExchangeHours(Protocol):
    """Answers whether the exchange is in session at a given time."""

    def is_open_at(self, when: datetime) -> bool:
        ...


class AlwaysOpen:
    """Exchange that never closes (e.g. crypto, or data without a calendar)."""

    def is_open_at(self, when: datetime) -> bool:
        return True


@dataclass(frozen=True)
class SessionHours:
    """
    Regular session from open_time (inclusive) to close_time (exclusive)
    on the given weekdays (Monday=0). No holidays, no half days.
    """

    open_time: time = time(9, 30)
    close_time: time = time(16, 0)
    weekdays: frozenset[int] = frozenset(range(5))

    def __post_init__(self) -> None:
        if self.open_time >= self.close_time:
            raise ValueError("session open must be before session close")

    @classmethod
    def from_settings(cls, settings: "FillSettings") -> "SessionHours":
        return cls(open_time=settings.session_open, close_time=settings.session_close)

    def is_open_at(self, when: datetime) -> bool:
        if when.weekday() not in self.weekdays:
            return False
        return self.open_time <= when.time() < self.close_time


@dataclass(frozen=True)
class SecuritySnapshot:
    """
    Read-only view of one security at simulated time `time`.

    price is the latest traded price; bar is the latest OHLC sample when the
    data has one. exchange_open defaults to what `hours` says about `time`.
    """

    symbol: str
    time: datetime
    price: float
    bar: Bar | None = None
    hours: ExchangeHours = AlwaysOpen()
    exchange_open: bool | None = None

    def __post_init__(self) -> None:
        if self.exchange_open is None:
            object.__setattr__(self, "exchange_open", self.hours.is_open_at(self.time))

    def is_open_at(self, when: datetime) -> bool:
        """True when `when` falls inside an open session."""
        return self.hours.is_open_at(when)

    @property
    def open(self) -> float:
        """Session open price: the bar's open, else the last price."""
        return self.bar.open if self.bar is not None else self.price

    @property
    def close(self) -> float:
        """Session close price: the bar's close, else the last price."""
        return self.bar.close if self.bar is not None else self.price
