"""
Candles: OHLCV bars and the read-only series view shared by all indicators.

A series is ascending by time. Duplicates or out-of-order bars are a caller
error; nothing here re-sorts or validates ordering.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class Candle:
    """One interval's open/high/low/close and traded volume (None if unknown)."""

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.time, datetime):
            object.__setattr__(self, "time", datetime.fromisoformat(str(self.time)))


@dataclass(frozen=True, eq=False)
class CandleSeries:
    """
    Column view of a candle sequence as float arrays.

    Built once per evaluation and handed to every indicator. Missing volumes
    are stored as 0.0; has_volume mirrors whether the first bar reports one.
    """

    time: tuple[datetime, ...]
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray
    has_volume: bool

    def __len__(self) -> int:
        return len(self.close)

    @classmethod
    def from_candles(cls, candles: Sequence[Candle]) -> CandleSeries:
        first_volume = candles[0].volume if candles else None
        return cls(
            time=tuple(c.time for c in candles),
            open=np.array([c.open for c in candles], dtype=float),
            high=np.array([c.high for c in candles], dtype=float),
            low=np.array([c.low for c in candles], dtype=float),
            close=np.array([c.close for c in candles], dtype=float),
            volume=np.array([c.volume or 0.0 for c in candles], dtype=float),
            has_volume=bool(first_volume),
        )

    @classmethod
    def from_dataframe(cls, df: "pd.DataFrame") -> CandleSeries:
        """Build from an OHLC(V) DataFrame with DatetimeIndex (see backtesting.data_loader)."""
        return cls.from_candles(candles_from_dataframe(df))

    def window(self, end: int, size: int | None = None) -> CandleSeries:
        """
        Bars before index end, at most size of them, as a view (no copy).

        Used for bar-by-bar replay: window(i + 1, limit) is what a live fetch
        with that limit would have returned at bar i.
        """
        start = 0 if size is None else max(0, end - size)
        return CandleSeries(
            time=self.time[start:end],
            open=self.open[start:end],
            high=self.high[start:end],
            low=self.low[start:end],
            close=self.close[start:end],
            volume=self.volume[start:end],
            has_volume=self.has_volume,
        )

    def candle(self, i: int) -> Candle:
        return Candle(
            time=self.time[i],
            open=float(self.open[i]),
            high=float(self.high[i]),
            low=float(self.low[i]),
            close=float(self.close[i]),
            volume=float(self.volume[i]),
        )


CandleInput = Union[CandleSeries, Sequence[Candle]]


def as_series(candles: CandleInput) -> CandleSeries:
    """Accept either a prepared series or a plain candle sequence."""
    if isinstance(candles, CandleSeries):
        return candles
    return CandleSeries.from_candles(list(candles))


def candles_from_dataframe(df: "pd.DataFrame") -> list[Candle]:
    """Convert an OHLC(V) DataFrame to candles. Missing open/high/low fall back to close."""
    candles: list[Candle] = []
    has_volume = "volume" in df.columns
    for ts, row in df.iterrows():
        ts_dt = ts.to_pydatetime() if hasattr(ts, "to_pydatetime") else datetime.fromisoformat(str(ts))
        close = float(row["close"])
        candles.append(
            Candle(
                time=ts_dt,
                open=float(row.get("open", close)),
                high=float(row.get("high", close)),
                low=float(row.get("low", close)),
                close=close,
                volume=float(row["volume"]) if has_volume else None,
            )
        )
    return candles
