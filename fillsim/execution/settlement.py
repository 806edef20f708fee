"""
Caller side of a fill evaluation: merge the decision into the order, and treat
faults as "no fill" after reporting them to a diagnostics sink.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Protocol

from fillsim.order import Order, StopLimitOrder

from fillsim.execution.types import DecisionState, Fault, FillOutcome, FillResult, Outcome

logger = logging.getLogger(__name__)


class DiagnosticsSink(Protocol):
    """Receives every Fault the caller decided to absorb."""

    def __call__(self, fault: Fault) -> None:
        ...


def log_fault(fault: Fault) -> None:
    """Default sink: log at ERROR through the standard logging module."""
    logger.error("Fill evaluation fault for order %s (%s): %s", fault.order_id, fault.kind.value, fault.message)


def apply_decision(order: Order, state: DecisionState) -> Order:
    """
    Return a copy of order carrying the decided status, price and stop trigger.

    Identity, kind, quantity and stop/limit prices are never touched. The stop
    trigger only ever latches on: a decision cannot clear it.
    """
    changes: dict[str, object] = {"status": state.status, "price": state.price}
    if isinstance(order, StopLimitOrder):
        changes["stop_triggered"] = order.stop_triggered or state.stop_triggered
    return dataclasses.replace(order, **changes)


def settle(
    result: FillResult,
    order: Order,
    diagnostics: DiagnosticsSink = log_fault,
) -> tuple[FillOutcome, Order]:
    """
    Default handling of an evaluation result.

    Outcome: return its fill and the order with the decision merged in.
    Fault: report it, return a zero-quantity fill and the order unchanged.
    """
    if isinstance(result, Outcome):
        return result.fill, apply_decision(order, result.state)
    diagnostics(result)
    return FillOutcome.no_fill(order, result.time), order
