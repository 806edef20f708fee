"""
Fee models. Only the extension point and a zero-fee default live here;
commission schedules belong to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fillsim.order import Order

if TYPE_CHECKING:
    from fillsim.market import SecuritySnapshot


class FeeModel:
    """
    Fee for an order in account currency. Subclasses usually override fee();
    order_fee() reduces an order to (quantity, effective price) and delegates.
    """

    def fee(self, quantity: float, price: float) -> float:
        """Fee for trading quantity at price. Zero by default."""
        return 0.0

    def order_fee(self, snapshot: "SecuritySnapshot", order: Order) -> float:
        """Fee for the order as it stands (price = last decided price)."""
        if order.quantity == 0:
            return 0.0
        return self.fee(order.quantity, order.value / order.quantity)


class NullFeeModel(FeeModel):
    """No fees. The default."""
