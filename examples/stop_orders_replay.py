"""
Replay demo: work one order of each kind through the default fill model.

Demonstrates: load CSV → snapshots with session hours → fill decisions →
observers on fills. Slippage and session hours come from FILLSIM_* variables.
"""

import logging
from datetime import datetime
from pathlib import Path

from backtesting import Fill, ReplayEngine, load_csv
from fillsim import (
    LimitOrder,
    MarketOnCloseOrder,
    MarketOnOpenOrder,
    MarketOrder,
    Order,
    SessionHours,
    Side,
    StopLimitOrder,
    StopMarketOrder,
    load_settings,
)
from fillsim.execution import DefaultFillModel, slippage_model_from_settings


def print_fill(fill: Fill, order: Order) -> None:
    """Observer: one line per fill."""
    print(f"  {fill.timestamp}  {order.order_type.value:<16} {fill.side.value:<4} {fill.quantity:g} @ {fill.price:.2f}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = load_settings()

    csv_path = Path(__file__).resolve().parent / "data" / "sample_bars.csv"
    data = load_csv(csv_path, symbol="SPY")

    submitted = datetime(2024, 3, 5, 14, 0)
    orders = [
        MarketOrder(symbol="SPY", side=Side.BUY, quantity=100, time=submitted),
        StopMarketOrder(symbol="SPY", side=Side.SELL, quantity=100, stop_price=99.0, time=submitted),
        StopLimitOrder(symbol="SPY", side=Side.BUY, quantity=50, stop_price=101.0, limit_price=101.8, time=submitted),
        LimitOrder(symbol="SPY", side=Side.BUY, quantity=50, limit_price=98.8, time=submitted),
        MarketOnCloseOrder(symbol="SPY", side=Side.SELL, quantity=50, time=submitted),
        MarketOnOpenOrder(symbol="SPY", side=Side.BUY, quantity=50, time=submitted),
    ]

    engine = ReplayEngine(
        DefaultFillModel(slippage_model_from_settings(settings)),
        observers=[print_fill],
    )
    print("Fills:")
    result = engine.run(data, orders, hours=SessionHours.from_settings(settings))

    working = [o for o in result.orders.values() if not o.status.is_terminal]
    print(f"Filled {len(result.fills)} of {len(orders)} orders; {len(working)} still working; {len(result.faults)} faults")
    print(result.to_frame())


if __name__ == "__main__":
    main()
