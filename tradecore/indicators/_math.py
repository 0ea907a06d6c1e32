"""
Numeric building blocks shared by the indicators.

Windowed outputs are either trimmed (length n - period + 1, the first value
belonging to bar period - 1) or aligned to the input with NaN where undefined;
each function says which.
"""

from __future__ import annotations

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


def sma(values: np.ndarray, period: int) -> np.ndarray:
    """Simple moving average, trimmed."""
    if len(values) < period:
        return np.empty(0)
    return sliding_window_view(values, period).mean(axis=1)


def rolling_std(values: np.ndarray, period: int) -> np.ndarray:
    """Population standard deviation over each window, trimmed."""
    if len(values) < period:
        return np.empty(0)
    return sliding_window_view(values, period).std(axis=1)


def ema(values: np.ndarray, period: int) -> np.ndarray:
    """Exponential moving average seeded with the SMA of the first period values, trimmed."""
    if len(values) < period:
        return np.empty(0)
    k = 2.0 / (period + 1)
    out = np.empty(len(values) - period + 1)
    out[0] = values[:period].mean()
    for i, price in enumerate(values[period:], start=1):
        out[i] = (price - out[i - 1]) * k + out[i - 1]
    return out


def rsi(values: np.ndarray, period: int) -> np.ndarray:
    """
    Wilder RSI. Length n - period; the first value belongs to bar period.

    No losses in the averaging window gives 100, no gains gives 0, and a
    window with neither (flat prices) gives 50.
    """
    if len(values) <= period:
        return np.empty(0)
    changes = np.diff(values)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)
    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    out = np.empty(len(changes) - period + 1)
    out[0] = _rsi_value(avg_gain, avg_loss)
    for i in range(period, len(changes)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[i - period + 1] = _rsi_value(avg_gain, avg_loss)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    """True range per bar; the first bar has no previous close and uses high - low."""
    tr = high - low
    if len(close) > 1:
        prev_close = close[:-1]
        tr[1:] = np.maximum.reduce(
            [high[1:] - low[1:], np.abs(high[1:] - prev_close), np.abs(low[1:] - prev_close)]
        )
    return tr


def atr(high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int) -> np.ndarray:
    """
    Wilder ATR, aligned. Defined from bar period onwards: the first value is
    the mean true range of bars 1..period.
    """
    n = len(close)
    out = np.full(n, np.nan)
    if n <= period:
        return out
    tr = true_range(high, low, close)
    out[period] = tr[1 : period + 1].mean()
    for i in range(period + 1, n):
        out[i] = (out[i - 1] * (period - 1) + tr[i]) / period
    return out


def adx(
    high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Wilder ADX with +DI / -DI, all aligned.

    DI values are defined from bar period, ADX from bar 2 * period - 1.
    """
    n = len(close)
    adx_out = np.full(n, np.nan)
    pdi = np.full(n, np.nan)
    mdi = np.full(n, np.nan)
    if n <= period:
        return adx_out, pdi, mdi

    up = np.zeros(n)
    down = np.zeros(n)
    up[1:] = high[1:] - high[:-1]
    down[1:] = low[:-1] - low[1:]
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)
    tr = true_range(high, low, close)

    s_tr = tr[1 : period + 1].sum()
    s_pdm = plus_dm[1 : period + 1].sum()
    s_mdm = minus_dm[1 : period + 1].sum()
    dx = np.full(n, np.nan)
    for i in range(period, n):
        if i > period:
            s_tr = s_tr - s_tr / period + tr[i]
            s_pdm = s_pdm - s_pdm / period + plus_dm[i]
            s_mdm = s_mdm - s_mdm / period + minus_dm[i]
        pdi[i] = 100.0 * s_pdm / s_tr if s_tr > 0 else 0.0
        mdi[i] = 100.0 * s_mdm / s_tr if s_tr > 0 else 0.0
        di_sum = pdi[i] + mdi[i]
        dx[i] = 100.0 * abs(pdi[i] - mdi[i]) / di_sum if di_sum > 0 else 0.0

    first = 2 * period - 1
    if n > first:
        adx_out[first] = dx[period : first + 1].mean()
        for i in range(first + 1, n):
            adx_out[i] = (adx_out[i - 1] * (period - 1) + dx[i]) / period
    return adx_out, pdi, mdi


def cci(high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int) -> np.ndarray:
    """Commodity Channel Index, trimmed. Zero mean deviation gives 0."""
    if len(close) < period:
        return np.empty(0)
    tp = (high + low + close) / 3.0
    windows = sliding_window_view(tp, period)
    mean = windows.mean(axis=1)
    mean_dev = np.abs(windows - mean[:, None]).mean(axis=1)
    current = tp[period - 1 :]
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(mean_dev > 0, (current - mean) / (0.015 * mean_dev), 0.0)
    return out


def _range_position(high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int) -> np.ndarray:
    """(close - lowest low) / (highest high - lowest low) per window, trimmed; flat range gives 0.5."""
    hh = sliding_window_view(high, period).max(axis=1)
    ll = sliding_window_view(low, period).min(axis=1)
    span = hh - ll
    current = close[period - 1 :]
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(span > 0, (current - ll) / span, 0.5)


def stochastic(
    high: np.ndarray, low: np.ndarray, close: np.ndarray, period_k: int, period_d: int
) -> tuple[np.ndarray, np.ndarray]:
    """%K and %D (SMA of %K), both trimmed to the bars where %D exists."""
    if len(close) < period_k + period_d - 1:
        return np.empty(0), np.empty(0)
    k = _range_position(high, low, close, period_k) * 100.0
    d = sma(k, period_d)
    return k[period_d - 1 :], d


def williams_r(high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int) -> np.ndarray:
    """Williams %R in [-100, 0], trimmed; flat range gives -50."""
    if len(close) < period:
        return np.empty(0)
    return (_range_position(high, low, close, period) - 1.0) * 100.0


def scaled(value: float, full_scale: float) -> float:
    """value as a percentage of full_scale, saturating at 100."""
    return min(100.0, value / full_scale * 100.0)
