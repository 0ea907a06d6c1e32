"""
Trend-following indicators: EMA crossover, ADX, Supertrend, Parabolic SAR, Heikin-Ashi.
"""

from __future__ import annotations

import math

import numpy as np

from tradecore.candles import Candle, CandleInput, as_series
from tradecore.indicators import _math
from tradecore.signal import Direction, Signal

EMA_FULL_STRENGTH_DIFF_PCT = 0.5

ADX_MIN_TREND = 15.0
ADX_STRENGTH_SCALE = 2.85  # ADX 50 -> 100
ADX_FULL_SPREAD_PCT = 20.0
ADX_RISING_BONUS = 1.2

TREND_FULL_DISTANCE_PCT = 3.0
SUPERTREND_CROSS_BASE = 80.0
SUPERTREND_CROSS_DISTANCE_WEIGHT = 0.2
SUPERTREND_SIDE_BASE = 50.0
SUPERTREND_SIDE_DISTANCE_WEIGHT = 0.5

SAR_REVERSAL_BASE = 80.0
SAR_REVERSAL_DISTANCE_WEIGHT = 0.2
SAR_TREND_BASE = 40.0
SAR_TREND_DISTANCE_WEIGHT = 0.4

HA_BASE = 40.0
HA_BODY_SCALE = 10.0
HA_BODY_WEIGHT = 0.6
HA_STRENGTHENING_BONUS = 10.0
HA_WEAK_CONTINUATION_PENALTY = 20.0


def ema_crossover_signal(candles: CandleInput, short_period: int = 9, long_period: int = 21) -> Signal:
    """
    Fires only on the bar where the short EMA crosses the long EMA.

    Strength is the EMA gap as a share of 0.5% of the long EMA.
    """
    series = as_series(candles)
    if len(series) < long_period + 2:
        return Signal.neutral()
    short = _math.ema(series.close, short_period)
    long_ = _math.ema(series.close, long_period)
    cur_s, prev_s = short[-1], short[-2]
    cur_l, prev_l = long_[-1], long_[-2]
    if cur_l == 0:
        return Signal.neutral()

    crossed_above = prev_s <= prev_l and cur_s > cur_l
    crossed_below = prev_s >= prev_l and cur_s < cur_l
    diff_pct = abs(cur_s - cur_l) / cur_l * 100
    strength = _math.scaled(diff_pct, EMA_FULL_STRENGTH_DIFF_PCT)
    meta = {"short_ema": float(cur_s), "long_ema": float(cur_l)}
    if crossed_above:
        return Signal.of(Direction.BUY, strength, **meta)
    if crossed_below:
        return Signal.of(Direction.SELL, strength, **meta)
    return Signal.neutral()


def adx_trend_signal(candles: CandleInput, period: int = 14) -> Signal:
    """
    Trend direction from +DI/-DI once ADX clears the minimum trend level.

    Strength: (ADX - 15) * 2.85, scaled by DI spread (full at 20%) and
    boosted 1.2x while ADX is rising.
    """
    series = as_series(candles)
    if len(series) < 2 * period + 1:
        return Signal.neutral()
    adx, pdi, mdi = _math.adx(series.high, series.low, series.close, period)
    current, previous = adx[-1], adx[-2]
    plus_di, minus_di = pdi[-1], mdi[-1]
    di_sum = plus_di + minus_di
    if not current > ADX_MIN_TREND or di_sum == 0:
        return Signal.neutral()

    trend_strength = min(100.0, max(0.0, (current - ADX_MIN_TREND) * ADX_STRENGTH_SCALE))
    spread = abs(plus_di - minus_di) / (di_sum / 2) * 100
    spread_factor = min(1.0, spread / ADX_FULL_SPREAD_PCT)
    rising = bool(current > previous)
    momentum = ADX_RISING_BONUS if rising else 1.0
    strength = trend_strength * spread_factor * momentum

    meta = {"adx": float(current), "plus_di": float(plus_di), "minus_di": float(minus_di), "rising": rising}
    if plus_di > minus_di:
        return Signal.of(Direction.BUY, strength, **meta)
    if minus_di > plus_di:
        return Signal.of(Direction.SELL, strength, **meta)
    return Signal.neutral()


def supertrend_line(
    high: np.ndarray, low: np.ndarray, close: np.ndarray, period: int, multiplier: float
) -> np.ndarray:
    """
    Supertrend line, aligned (NaN before bar period).

    Bands only move in the direction that tightens them: the upper band may
    fall but not rise unless the previous close broke above it, and the lower
    band mirrors this. The line sits on the upper band in a downtrend and flips
    to the lower band when the close breaks above it.
    """
    n = len(close)
    atr = _math.atr(high, low, close, period)
    line = np.full(n, np.nan)
    upper = np.full(n, np.nan)
    lower = np.full(n, np.nan)
    on_upper = False
    for i in range(period, n):
        mid = (high[i] + low[i]) / 2
        basic_upper = mid + multiplier * atr[i]
        basic_lower = mid - multiplier * atr[i]
        if i == period:
            upper[i], lower[i] = basic_upper, basic_lower
            on_upper = close[i] <= basic_upper
        else:
            if basic_upper < upper[i - 1] or close[i - 1] > upper[i - 1]:
                upper[i] = basic_upper
            else:
                upper[i] = upper[i - 1]
            if basic_lower > lower[i - 1] or close[i - 1] < lower[i - 1]:
                lower[i] = basic_lower
            else:
                lower[i] = lower[i - 1]
            if on_upper:
                on_upper = close[i] <= upper[i]
            else:
                on_upper = close[i] < lower[i]
        line[i] = upper[i] if on_upper else lower[i]
    return line


def supertrend_signal(candles: CandleInput, period: int = 10, multiplier: float = 3.0) -> Signal:
    series = as_series(candles)
    if len(series) < period + 2:
        return Signal.neutral()
    line = supertrend_line(series.high, series.low, series.close, period, multiplier)
    cur_close, prev_close = series.close[-1], series.close[-2]
    cur_line, prev_line = line[-1], line[-2]
    if cur_close == 0 or not (math.isfinite(cur_line) and math.isfinite(prev_line)):
        return Signal.neutral()

    distance = _math.scaled(abs(cur_close - cur_line) / cur_close * 100, TREND_FULL_DISTANCE_PCT)
    meta = {"supertrend": float(cur_line), "price": float(cur_close)}
    if prev_close < prev_line and cur_close > cur_line:
        return Signal.of(Direction.BUY, SUPERTREND_CROSS_BASE + distance * SUPERTREND_CROSS_DISTANCE_WEIGHT, **meta)
    if prev_close > prev_line and cur_close < cur_line:
        return Signal.of(Direction.SELL, SUPERTREND_CROSS_BASE + distance * SUPERTREND_CROSS_DISTANCE_WEIGHT, **meta)
    if cur_close > cur_line:
        return Signal.of(Direction.BUY, SUPERTREND_SIDE_BASE + distance * SUPERTREND_SIDE_DISTANCE_WEIGHT, trend="above", **meta)
    if cur_close < cur_line:
        return Signal.of(Direction.SELL, SUPERTREND_SIDE_BASE + distance * SUPERTREND_SIDE_DISTANCE_WEIGHT, trend="below", **meta)
    return Signal.neutral()


def parabolic_sar(
    high: np.ndarray, low: np.ndarray, close: np.ndarray, step: float = 0.02, max_step: float = 0.2
) -> np.ndarray:
    """
    Parabolic SAR by the iterative SAR / extreme-point recurrence.

    Initial trend from the first two closes. On reversal the SAR resets to the
    extreme of the last three bars and the acceleration factor to step; while
    trending it is held beyond the previous two bars' extremes and the factor
    grows by step (up to max_step) on each new extreme point.
    """
    n = len(close)
    uptrend = close[1] > close[0]
    sar = np.empty(n)
    sar[0] = min(low[0], low[1]) if uptrend else max(high[0], high[1])
    sar[1] = sar[0]
    extreme = high[1] if uptrend else low[1]
    af = step
    for i in range(2, n):
        value = sar[i - 1] + af * (extreme - sar[i - 1])
        if (uptrend and close[i] < value) or (not uptrend and close[i] > value):
            uptrend = not uptrend
            value = low[i - 2 : i + 1].min() if uptrend else high[i - 2 : i + 1].max()
            af = step
            extreme = high[i] if uptrend else low[i]
        elif uptrend:
            value = min(value, low[i - 1], low[i - 2])
            if high[i] > extreme:
                extreme = high[i]
                af = min(af + step, max_step)
        else:
            value = max(value, high[i - 1], high[i - 2])
            if low[i] < extreme:
                extreme = low[i]
                af = min(af + step, max_step)
        sar[i] = value
    return sar


def parabolic_sar_signal(candles: CandleInput, step: float = 0.02, max_step: float = 0.2) -> Signal:
    series = as_series(candles)
    if len(series) < 5:
        return Signal.neutral()
    sar = parabolic_sar(series.high, series.low, series.close, step, max_step)
    cur_close, prev_close = series.close[-1], series.close[-2]
    cur_sar, prev_sar = sar[-1], sar[-2]
    if cur_close == 0:
        return Signal.neutral()

    distance = _math.scaled(abs(cur_close - cur_sar) / cur_close * 100, TREND_FULL_DISTANCE_PCT)
    meta = {"sar": float(cur_sar), "price": float(cur_close)}
    if prev_close < prev_sar and cur_close > cur_sar:
        return Signal.of(Direction.BUY, SAR_REVERSAL_BASE + distance * SAR_REVERSAL_DISTANCE_WEIGHT, reversal=True, **meta)
    if prev_close > prev_sar and cur_close < cur_sar:
        return Signal.of(Direction.SELL, SAR_REVERSAL_BASE + distance * SAR_REVERSAL_DISTANCE_WEIGHT, reversal=True, **meta)
    if cur_close > cur_sar:
        return Signal.of(Direction.BUY, SAR_TREND_BASE + distance * SAR_TREND_DISTANCE_WEIGHT, trend="up", **meta)
    if cur_close < cur_sar:
        return Signal.of(Direction.SELL, SAR_TREND_BASE + distance * SAR_TREND_DISTANCE_WEIGHT, trend="down", **meta)
    return Signal.neutral()


def _heikin_ashi_arrays(candles: CandleInput) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    series = as_series(candles)
    n = len(series)
    o, h, l, c = series.open, series.high, series.low, series.close
    ha_open = np.empty(n)
    ha_close = (o + h + l + c) / 4
    ha_high = np.empty(n)
    ha_low = np.empty(n)
    if n == 0:
        return ha_open, ha_high, ha_low, ha_close
    ha_open[0] = (o[0] + c[0]) / 2
    ha_high[0] = h[0]
    ha_low[0] = l[0]
    for i in range(1, n):
        ha_open[i] = (ha_open[i - 1] + ha_close[i - 1]) / 2
        ha_high[i] = max(h[i], ha_open[i], ha_close[i])
        ha_low[i] = min(l[i], ha_open[i], ha_close[i])
    return ha_open, ha_high, ha_low, ha_close


def calculate_heikin_ashi(candles: CandleInput) -> list[Candle]:
    """Synthetic Heikin-Ashi candles with the source times and volumes."""
    series = as_series(candles)
    ha_open, ha_high, ha_low, ha_close = _heikin_ashi_arrays(series)
    return [
        Candle(
            time=series.time[i],
            open=float(ha_open[i]),
            high=float(ha_high[i]),
            low=float(ha_low[i]),
            close=float(ha_close[i]),
            volume=float(series.volume[i]) if series.has_volume else None,
        )
        for i in range(len(series))
    ]


def heikin_ashi_signal(candles: CandleInput) -> Signal:
    """
    Reversal or continuation on Heikin-Ashi candles.

    Base 40 plus up to 60 from body size (body % of mid-price, x10); +10 when
    the body grows in the trend direction. Plain continuation without a
    growing body loses 20.
    """
    series = as_series(candles)
    if len(series) < 3:
        return Signal.neutral()
    o, h, l, c = _heikin_ashi_arrays(series)
    mid = (h[-1] + l[-1]) / 2
    if mid == 0:
        return Signal.neutral()

    bullish = c[-1] > o[-1]
    bearish = c[-1] < o[-1]
    bullish_strengthening = bullish and (c[-1] - o[-1]) > (c[-2] - o[-2]) and c[-2] > o[-2]
    bearish_strengthening = bearish and (o[-1] - c[-1]) > (o[-2] - c[-2]) and c[-2] < o[-2]
    bullish_reversal = c[-2] < o[-2] and bullish and c[-3] < o[-3]
    bearish_reversal = c[-2] > o[-2] and bearish and c[-3] > o[-3]

    body_pct = abs(c[-1] - o[-1]) / mid * 100
    strength = HA_BASE + min(100.0, body_pct * HA_BODY_SCALE) * HA_BODY_WEIGHT
    if bullish_strengthening or bearish_strengthening:
        strength += HA_STRENGTHENING_BONUS

    if bullish_reversal:
        return Signal.of(Direction.BUY, strength, body_pct=float(body_pct), reversal=True)
    if bearish_reversal:
        return Signal.of(Direction.SELL, strength, body_pct=float(body_pct), reversal=True)
    if bullish:
        value = strength if bullish_strengthening else strength - HA_WEAK_CONTINUATION_PENALTY
        return Signal.of(Direction.BUY, value, body_pct=float(body_pct), strengthening=bool(bullish_strengthening))
    if bearish:
        value = strength if bearish_strengthening else strength - HA_WEAK_CONTINUATION_PENALTY
        return Signal.of(Direction.SELL, value, body_pct=float(body_pct), strengthening=bool(bearish_strengthening))
    return Signal.neutral()
