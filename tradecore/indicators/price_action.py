"""
Price-action indicators: mean reversion, Bollinger squeeze, Fibonacci retracement,
fractal breakout and range breakout.
"""

from __future__ import annotations

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from tradecore.candles import CandleInput, as_series
from tradecore.indicators import _math
from tradecore.signal import Direction, Signal

MEAN_REVERSION_FULL_DEVIATION_PCT = 5.0

SQUEEZE_LOOKBACK = 5
SQUEEZE_MIN_BANDWIDTH = 2.0
SQUEEZE_MAX_BANDWIDTH = 8.0
SQUEEZE_BREAKOUT_MIN = 50.0

FIB_RATIOS = {"0.0": 0.0, "23.6": 0.236, "38.2": 0.382, "50.0": 0.5, "61.8": 0.618, "78.6": 0.786, "100.0": 1.0}
FIB_KEY_LEVELS = ("38.2", "50.0", "61.8")
FIB_TOLERANCE = 0.005
FIB_BOUNCE_BASE = 50.0
FIB_BREAKOUT_STRENGTH = 80.0

FRACTAL_BASE = 60.0
FRACTAL_PER_PCT = 20.0

BREAKOUT_BASE = 50.0
BREAKOUT_MIN_RANGE_PCT = 2.0
BREAKOUT_MAX_RANGE_PCT = 10.0
BREAKOUT_DISTANCE_PER_PCT = 20.0
BREAKOUT_FACTOR_WEIGHT = 0.25
BREAKOUT_VOLUME_MULTIPLE = 1.5
BREAKOUT_VOLUME_BONUS = 20.0


def mean_reversion_signal(candles: CandleInput, period: int = 14) -> Signal:
    """Price stretched from its SMA and already turning back toward it."""
    series = as_series(candles)
    if len(series) < period + 1:
        return Signal.neutral()
    mean = float(series.close[-period:].mean())
    price, prev = float(series.close[-1]), float(series.close[-2])
    if mean == 0:
        return Signal.neutral()

    deviation = abs((price - mean) / mean) * 100
    strength = _math.scaled(deviation, MEAN_REVERSION_FULL_DEVIATION_PCT)
    if price < mean and price > prev:
        return Signal.of(Direction.BUY, strength, sma=mean, price=price, deviation=deviation)
    if price > mean and price < prev:
        return Signal.of(Direction.SELL, strength, sma=mean, price=price, deviation=deviation)
    return Signal.neutral()


def bollinger_squeeze_signal(candles: CandleInput, period: int = 20, num_std: float = 2.0) -> Signal:
    """
    Breakout from a tightening Bollinger band.

    The squeeze only counts while bandwidth has narrowed over the last five
    bands; its strength maps bandwidth 8% -> 0 and 2% -> 100. A close beyond
    a band fires when the squeeze is above 50.
    """
    series = as_series(candles)
    if len(series) < period + SQUEEZE_LOOKBACK:
        return Signal.neutral()
    middle = _math.sma(series.close, period)[-SQUEEZE_LOOKBACK:]
    std = _math.rolling_std(series.close, period)[-SQUEEZE_LOOKBACK:]
    if np.any(middle == 0):
        return Signal.neutral()
    upper = middle + num_std * std
    lower = middle - num_std * std
    bandwidth = (upper - lower) / middle * 100

    current_bw = float(bandwidth[-1])
    narrowing = bandwidth[0] > bandwidth[-1]
    squeeze = 0.0
    if narrowing:
        span = SQUEEZE_MAX_BANDWIDTH - SQUEEZE_MIN_BANDWIDTH
        squeeze = max(0.0, min(100.0, (SQUEEZE_MAX_BANDWIDTH - current_bw) / span * 100))

    price = float(series.close[-1])
    meta = {"bandwidth": current_bw, "price": price, "upper": float(upper[-1]), "lower": float(lower[-1])}
    if squeeze > SQUEEZE_BREAKOUT_MIN:
        if price > upper[-1]:
            return Signal.of(Direction.BUY, squeeze, **meta)
        if price < lower[-1]:
            return Signal.of(Direction.SELL, squeeze, **meta)
    return Signal.neutral(**meta)


def _fib_levels(high: float, low: float) -> dict[str, float]:
    span = high - low
    return {name: low + span * ratio for name, ratio in FIB_RATIOS.items()}


def fibonacci_retracement_signal(candles: CandleInput, period: int = 50) -> Signal:
    """
    Pullbacks to the 38.2/50/61.8% levels of the last period bars, and
    breakouts beyond the range the previous bars established.

    The trend is up when the highest high comes after the lowest low. An
    uptrend pullback (falling close) within 0.5% of the range of a key level
    buys with 50 + half the bounce off the bar's low; a downtrend bounce
    sells with 50 + half the rejection from the high.
    """
    series = as_series(candles)
    if len(series) < period:
        return Signal.neutral()
    high = series.high[-period:]
    low = series.low[-period:]
    close = series.close[-period:]

    hi_idx, lo_idx = int(high.argmax()), int(low.argmin())
    highest, lowest = float(high[hi_idx]), float(low[lo_idx])
    span = highest - lowest
    if span <= 0:
        return Signal.neutral()
    levels = _fib_levels(highest, lowest)
    uptrend = hi_idx > lo_idx

    price, prev = float(close[-1]), float(close[-2])
    bar_range = float(high[-1] - low[-1])
    tolerance = span * FIB_TOLERANCE
    nearest = min(levels, key=lambda name: abs(price - levels[name]))
    at_key_level = any(abs(price - levels[name]) <= tolerance for name in FIB_KEY_LEVELS)

    if at_key_level and uptrend and price < prev:
        bounce = (price - float(low[-1])) / bar_range * 100 if bar_range > 0 else 0.0
        return Signal.of(Direction.BUY, FIB_BOUNCE_BASE + bounce / 2, nearest_level=nearest,
                         level_price=levels[nearest], uptrend=uptrend, bounce=bounce)
    if at_key_level and not uptrend and price > prev:
        rejection = (float(high[-1]) - price) / bar_range * 100 if bar_range > 0 else 0.0
        return Signal.of(Direction.SELL, FIB_BOUNCE_BASE + rejection / 2, nearest_level=nearest,
                         level_price=levels[nearest], uptrend=uptrend, rejection=rejection)

    prior_high, prior_low = high[:-1], low[:-1]
    prior_uptrend = int(prior_high.argmax()) > int(prior_low.argmin())
    if prior_uptrend and price > prior_high.max() and prev <= prior_high.max():
        return Signal.of(Direction.BUY, FIB_BREAKOUT_STRENGTH, breakout=True, level="100.0", uptrend=True)
    if not prior_uptrend and price < prior_low.min() and prev >= prior_low.min():
        return Signal.of(Direction.SELL, FIB_BREAKOUT_STRENGTH, breakout=True, level="0.0", uptrend=False)
    return Signal.neutral()


def find_fractals(high: np.ndarray, low: np.ndarray, lookback: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Indices of bearish fractals (a high strictly above the lookback bars on
    each side) and bullish fractals (a low strictly below them).
    """
    width = 2 * lookback + 1
    if len(high) < width:
        return np.empty(0, dtype=int), np.empty(0, dtype=int)
    hw = sliding_window_view(high, width)
    lw = sliding_window_view(low, width)
    hw_others = np.delete(hw, lookback, axis=1)
    lw_others = np.delete(lw, lookback, axis=1)
    bearish = np.flatnonzero(hw[:, lookback] > hw_others.max(axis=1)) + lookback
    bullish = np.flatnonzero(lw[:, lookback] < lw_others.min(axis=1)) + lookback
    return bearish, bullish


def fractal_breakout_signal(candles: CandleInput, lookback: int = 5) -> Signal:
    """Close crossing the most recent fractal level: 60 plus 20 per percent of break."""
    series = as_series(candles)
    if len(series) < 2 * lookback + 1:
        return Signal.neutral()
    bearish, bullish = find_fractals(series.high, series.low, lookback)
    price, prev = float(series.close[-1]), float(series.close[-2])

    if len(bearish):
        level = float(series.high[bearish[-1]])
        if level > 0 and prev <= level < price:
            pct = (price - level) / level * 100
            return Signal.of(Direction.BUY, min(100.0, FRACTAL_BASE + pct * FRACTAL_PER_PCT),
                             fractal_type="bearish", fractal_price=level, breakout_percent=pct)
    if len(bullish):
        level = float(series.low[bullish[-1]])
        if level > 0 and prev >= level > price:
            pct = (level - price) / level * 100
            return Signal.of(Direction.SELL, min(100.0, FRACTAL_BASE + pct * FRACTAL_PER_PCT),
                             fractal_type="bullish", fractal_price=level, breakout_percent=pct)
    return Signal.neutral()


def breakout_signal(candles: CandleInput, period: int = 20) -> Signal:
    """
    Close beyond the high/low range of the previous period bars.

    Strength 50 + 0.25 * range factor (2% -> 0, 10% -> 100) + 0.25 * distance
    factor (5% -> 100), plus 20 when volume exceeds 1.5x the range average.
    """
    series = as_series(candles)
    if len(series) < period + 5:
        return Signal.neutral()
    range_high = float(series.high[-period - 1 : -1].max())
    range_low = float(series.low[-period - 1 : -1].min())
    if range_low <= 0:
        return Signal.neutral()
    price = float(series.close[-1])
    above = price > range_high
    below = price < range_low
    if not (above or below):
        return Signal.neutral()

    range_pct = (range_high - range_low) / range_low * 100
    range_strength = min(
        100.0, (range_pct - BREAKOUT_MIN_RANGE_PCT) / (BREAKOUT_MAX_RANGE_PCT - BREAKOUT_MIN_RANGE_PCT) * 100
    )
    if above:
        distance = (price - range_high) / range_high * 100
    else:
        distance = (range_low - price) / range_low * 100
    distance_strength = min(100.0, distance * BREAKOUT_DISTANCE_PER_PCT)
    strength = BREAKOUT_BASE + range_strength * BREAKOUT_FACTOR_WEIGHT + distance_strength * BREAKOUT_FACTOR_WEIGHT

    volume = float(series.volume[-1])
    avg_volume = float(series.volume[-period - 1 : -1].mean())
    confirmed = volume > 0 and volume > avg_volume * BREAKOUT_VOLUME_MULTIPLE
    if confirmed:
        strength += BREAKOUT_VOLUME_BONUS

    meta = {"range_high": range_high, "range_low": range_low, "range_percent": range_pct, "volume_confirmation": confirmed}
    if above:
        return Signal.of(Direction.BUY, strength, breakout_type="above", **meta)
    return Signal.of(Direction.SELL, strength, breakout_type="below", **meta)
