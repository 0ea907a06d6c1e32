"""
Volume indicators: volume spike and VWAP. Both stay neutral when the series
carries no volume.
"""

from __future__ import annotations

import numpy as np

from tradecore.candles import CandleInput, as_series
from tradecore.indicators import _math
from tradecore.signal import Direction, Signal

SPIKE_THRESHOLD = 2.0
SPIKE_FULL_MULTIPLE = 5.0

VWAP_FULL_DISTANCE_PCT = 3.0
VWAP_CROSS_BASE = 70.0
VWAP_CONTINUATION_BASE = 40.0
VWAP_DISTANCE_WEIGHT = 0.3


def volume_spike_signal(candles: CandleInput, period: int = 20) -> Signal:
    """
    Volume above 2x the average of the previous period - 1 bars, in the
    direction of the bar's close-to-close move. 5x scores 100.
    """
    series = as_series(candles)
    if len(series) < period or not series.has_volume:
        return Signal.neutral()
    avg = float(series.volume[-period:-1].mean())
    prev_price = float(series.close[-2])
    if avg <= 0 or prev_price == 0:
        return Signal.neutral()
    multiple = float(series.volume[-1]) / avg
    if not multiple > SPIKE_THRESHOLD:
        return Signal.neutral()

    strength = min(100.0, (multiple - SPIKE_THRESHOLD) / (SPIKE_FULL_MULTIPLE - SPIKE_THRESHOLD) * 100)
    change = (float(series.close[-1]) - prev_price) / prev_price * 100
    if change > 0:
        return Signal.of(Direction.BUY, strength, volume_multiple=multiple, price_change=change)
    if change < 0:
        return Signal.of(Direction.SELL, strength, volume_multiple=multiple, price_change=change)
    return Signal.neutral()


def anchored_vwap(high: np.ndarray, low: np.ndarray, close: np.ndarray, volume: np.ndarray, period: int) -> np.ndarray:
    """
    Cumulative VWAP of the typical price, restarted after every bar i with
    i >= period and i % period == period - 1. Bars with no accumulated volume
    yield NaN.
    """
    typical = (high + low + close) / 3
    out = np.full(len(close), np.nan)
    tpv = 0.0
    vol = 0.0
    for i in range(len(close)):
        tpv += typical[i] * volume[i]
        vol += volume[i]
        if vol > 0:
            out[i] = tpv / vol
        if i >= period and i % period == period - 1:
            tpv = 0.0
            vol = 0.0
    return out


def vwap_signal(candles: CandleInput, period: int = 14) -> Signal:
    series = as_series(candles)
    if len(series) < period or not series.has_volume:
        return Signal.neutral()
    vwap = anchored_vwap(series.high, series.low, series.close, series.volume, period)
    current, previous = vwap[-1], vwap[-2]
    price, prev_price = float(series.close[-1]), float(series.close[-2])
    if not (np.isfinite(current) and np.isfinite(previous)) or current == 0:
        return Signal.neutral()

    distance = _math.scaled(abs(price - current) / current * 100, VWAP_FULL_DISTANCE_PCT)
    bonus = distance * VWAP_DISTANCE_WEIGHT
    meta = {"vwap": float(current), "price": price}
    if prev_price < previous and price > current:
        return Signal.of(Direction.BUY, VWAP_CROSS_BASE + bonus, crossed=True, **meta)
    if prev_price > previous and price < current:
        return Signal.of(Direction.SELL, VWAP_CROSS_BASE + bonus, crossed=True, **meta)
    if price > current and price > prev_price:
        return Signal.of(Direction.BUY, VWAP_CONTINUATION_BASE + bonus, position="above", **meta)
    if price < current and price < prev_price:
        return Signal.of(Direction.SELL, VWAP_CONTINUATION_BASE + bonus, position="below", **meta)
    return Signal.neutral()
