"""
Load OHLC(V) bars from CSV or a DataFrame and turn them into SecuritySnapshots.

Stand-in for a real market-data feed: one snapshot per row, price = close.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pandas as pd

from fillsim.market import AlwaysOpen, Bar, ExchangeHours, SecuritySnapshot

OHLC = ("open", "high", "low", "close")
OHLCV = (*OHLC, "volume")

_ALIASES = {"o": "open", "h": "high", "l": "low", "c": "close", "v": "volume", "vol": "volume", "last": "close"}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case column names and map short aliases (o/h/l/c/v) to full names."""
    out = df.copy()
    out.columns = [str(c).strip().lower() for c in out.columns]
    return out.rename(columns={k: v for k, v in _ALIASES.items() if k in out.columns and v not in out.columns})


def _finish(df: pd.DataFrame, symbol: str | None) -> pd.DataFrame:
    """Keep bar columns, fill missing OHLC from close, sort the DatetimeIndex."""
    if "close" not in df.columns:
        raise ValueError("bar data needs at least a close column")
    for col in ("open", "high", "low"):
        if col not in df.columns:
            df[col] = df["close"]
    df = df[[c for c in OHLCV if c in df.columns]].astype(float).sort_index()
    df.index.name = "datetime"
    if symbol is not None:
        df.attrs["symbol"] = symbol
    return df


def load_csv(
    path: str | Path,
    *,
    date_column: str | None = None,
    datetime_format: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """
    Read bars from a CSV file.

    The timestamp column is date_column, else 'datetime' or 'date', else the
    first column. Returns a DataFrame indexed by datetime with open, high, low,
    close [, volume].
    """
    df = _normalize_columns(pd.read_csv(path))
    if date_column is not None:
        ts_col = date_column.lower()
    else:
        ts_col = next((c for c in ("datetime", "date") if c in df.columns), df.columns[0])
    df.index = pd.DatetimeIndex(pd.to_datetime(df.pop(ts_col), format=datetime_format))
    return _finish(df, symbol)


def load_dataframe(
    df: pd.DataFrame,
    *,
    datetime_index: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """Normalise an in-memory DataFrame the same way load_csv does."""
    out = _normalize_columns(df)
    if datetime_index is not None:
        out.index = pd.DatetimeIndex(pd.to_datetime(out.pop(datetime_index.lower())))
    elif not isinstance(out.index, pd.DatetimeIndex):
        out.index = pd.to_datetime(out.index)
    return _finish(out, symbol)


def iter_snapshots(
    data: pd.DataFrame,
    symbol: str | None = None,
    hours: ExchangeHours | None = None,
) -> Iterator[SecuritySnapshot]:
    """
    Yield one SecuritySnapshot per bar, in index order.

    symbol defaults to data.attrs['symbol']; hours decides exchange_open for
    each bar time (AlwaysOpen when not given).
    """
    sym = symbol or data.attrs.get("symbol", "UNKNOWN")
    session = hours or AlwaysOpen()
    has_volume = "volume" in data.columns
    for ts, row in data.iterrows():
        bar = Bar(
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=float(row["volume"]) if has_volume else 0.0,
        )
        yield SecuritySnapshot(symbol=sym, time=ts.to_pydatetime(), price=bar.close, bar=bar, hours=session)
