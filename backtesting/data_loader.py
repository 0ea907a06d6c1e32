"""
Load OHLCV history from CSV files or DataFrames for replay.

Output is always a DataFrame with an ascending DatetimeIndex named 'datetime'
and lowercase open/high/low/close[/volume] columns. Exchange exports often
use millisecond timestamps or short column names; both are accepted.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from tradecore.candles import CandleSeries

OHLCV = ("open", "high", "low", "close", "volume")

COLUMN_ALIASES = {
    "o": "open",
    "h": "high",
    "l": "low",
    "c": "close",
    "v": "volume",
    "vol": "volume",
    "timestamp": "time",
    "date": "time",
    "datetime": "time",
    "open_time": "time",
}


def _canonical_columns(df: pd.DataFrame) -> pd.DataFrame:
    out = df.rename(columns=lambda c: str(c).strip().lower())
    return out.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in out.columns and v not in out.columns})


def _to_datetime(values: pd.Series, datetime_format: str | None) -> pd.Series:
    """Parse timestamps; integer columns are taken as epoch milliseconds."""
    if datetime_format is None and pd.api.types.is_integer_dtype(values):
        return pd.to_datetime(values, unit="ms")
    return pd.to_datetime(values, format=datetime_format)


def _finish(df: pd.DataFrame, symbol: str | None) -> pd.DataFrame:
    if "close" not in df.columns:
        raise ValueError("OHLCV data needs at least a close column")
    out = df[[c for c in OHLCV if c in df.columns]].astype(float)
    out = out.dropna(subset=["close"]).sort_index(kind="stable")
    out = out[~out.index.duplicated(keep="last")]
    out.index.name = "datetime"
    if symbol is not None:
        out.attrs["symbol"] = symbol
    return out


def load_csv(
    path: str | Path,
    *,
    date_column: str | None = None,
    datetime_format: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """
    Read an OHLCV CSV. The time column is date_column if given, else a
    recognised time/date column, else the first column. Rows without a close
    are dropped; duplicate timestamps keep the last row.
    """
    raw = pd.read_csv(path)
    df = _canonical_columns(raw)
    if date_column is not None:
        time_col = str(date_column).strip().lower()
        time_col = COLUMN_ALIASES.get(time_col, time_col)
    else:
        time_col = "time" if "time" in df.columns else df.columns[0]
    df = df.set_index(_to_datetime(df[time_col], datetime_format)).drop(columns=[time_col])
    return _finish(df, symbol)


def load_dataframe(
    df: pd.DataFrame,
    *,
    datetime_index: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """Normalize an in-memory OHLCV DataFrame; datetime_index names the time column if the index is not one."""
    out = _canonical_columns(df)
    if datetime_index is not None:
        col = COLUMN_ALIASES.get(datetime_index.lower(), datetime_index.lower())
        out = out.set_index(_to_datetime(out[col], None)).drop(columns=[col])
    elif not isinstance(out.index, pd.DatetimeIndex):
        out.index = pd.to_datetime(out.index)
    return _finish(out, symbol if symbol is not None else df.attrs.get("symbol"))


def load_series(path: str | Path, **kwargs) -> CandleSeries:
    """Shortcut: load_csv straight into the CandleSeries the indicators consume."""
    return CandleSeries.from_dataframe(load_csv(path, **kwargs))
