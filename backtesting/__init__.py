"""
Bar replay on top of fillsim.

Loads OHLC(V) bars, builds SecuritySnapshots and works orders through a fill
model; fills are reported to observers.
"""

from backtesting.engine import Fill, ReplayEngine, ReplayResult
from backtesting.data_loader import iter_snapshots, load_csv, load_dataframe

__all__ = [
    "Fill",
    "ReplayEngine",
    "ReplayResult",
    "iter_snapshots",
    "load_csv",
    "load_dataframe",
]
