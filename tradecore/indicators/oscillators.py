"""
Oscillator indicators: RSI divergence, CCI, Stochastic, Williams %R, Momentum RSI.
"""

from __future__ import annotations

from tradecore.candles import CandleInput, as_series
from tradecore.indicators import _math
from tradecore.signal import Direction, Signal

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
RSI_EXTREME_SCALE = 3.33  # RSI 100 (or 0) -> +100
DIVERGENCE_BASE = 50.0

CCI_LEVEL = 100.0
CCI_EXTREME_BASE = 50.0
CCI_ZERO_CROSS_STRENGTH = 60.0
CCI_LEVEL_CROSS_STRENGTH = 70.0

STOCH_OVERBOUGHT = 80.0
STOCH_OVERSOLD = 20.0
STOCH_EXTREME_CROSS_STRENGTH = 90.0
STOCH_EXTREME_SLOPE_STRENGTH = 70.0
STOCH_CROSS_STRENGTH = 60.0

WILLIAMS_OVERBOUGHT = -20.0
WILLIAMS_OVERSOLD = -80.0

MOMENTUM_EXTREME_BASE = 60.0
MOMENTUM_EXTREME_CAP = 30.0
MOMENTUM_EXTREME_SCALE = 1.5
MOMENTUM_MID_BASE = 40.0
MOMENTUM_SLOPE_SCALE = 10.0
MOMENTUM_CONFIRMATION_BONUS = 10.0
MOMENTUM_MID_DISCOUNT = 0.7


def rsi_divergence_signal(candles: CandleInput, period: int = 14, lookback: int = 10) -> Signal:
    """
    Price/RSI divergence over the lookback window, split into two halves.

    Bearish: the later half makes a higher price high while RSI at that bar is
    lower than at the earlier high. Bullish mirrors this on lows. Divergence
    scores 50 plus the overbought/oversold modifier; a plain overbought or
    oversold reading without divergence scores the modifier alone.
    """
    series = as_series(candles)
    if len(series) < period + lookback:
        return Signal.neutral()
    rsi = _math.rsi(series.close, period)
    if len(rsi) < lookback:
        return Signal.neutral()

    prices = series.close[-lookback:]
    rsis = rsi[-lookback:]
    half = lookback // 2
    first_p, second_p = prices[:half], prices[half:]
    first_r, second_r = rsis[:half], rsis[half:]

    hi1, hi2 = first_p.argmax(), second_p.argmax()
    lo1, lo2 = first_p.argmin(), second_p.argmin()
    bearish = second_p[hi2] > first_p[hi1] and second_r[hi2] < first_r[hi1]
    bullish = second_p[lo2] < first_p[lo1] and second_r[lo2] > first_r[lo1]

    current = float(rsi[-1])
    modifier = 0.0
    if current > RSI_OVERBOUGHT:
        modifier = (current - RSI_OVERBOUGHT) * RSI_EXTREME_SCALE
    if current < RSI_OVERSOLD:
        modifier = (RSI_OVERSOLD - current) * RSI_EXTREME_SCALE

    if bullish:
        return Signal.of(Direction.BUY, DIVERGENCE_BASE + modifier, rsi=current, divergence=True)
    if bearish:
        return Signal.of(Direction.SELL, DIVERGENCE_BASE + modifier, rsi=current, divergence=True)
    if current < RSI_OVERSOLD:
        return Signal.of(Direction.BUY, modifier, rsi=current)
    if current > RSI_OVERBOUGHT:
        return Signal.of(Direction.SELL, modifier, rsi=current)
    return Signal.neutral()


def cci_signal(candles: CandleInput, period: int = 20) -> Signal:
    """
    Commodity Channel Index.

    Buy on a cross up through -100 or a rising oversold reading, sell on a
    cross down through +100 or a falling overbought reading; otherwise a zero
    line cross gives the trend-change call.
    """
    series = as_series(candles)
    if len(series) < period + 2:
        return Signal.neutral()
    values = _math.cci(series.high, series.low, series.close, period)
    current, previous = float(values[-1]), float(values[-2])

    cross_above_low = previous <= -CCI_LEVEL and current > -CCI_LEVEL
    cross_below_high = previous >= CCI_LEVEL and current < CCI_LEVEL
    overbought = current > CCI_LEVEL
    oversold = current < -CCI_LEVEL
    bullish_trend = previous < 0 and current > 0
    bearish_trend = previous > 0 and current < 0

    strength = 0.0
    if overbought:
        strength = CCI_EXTREME_BASE + (current - CCI_LEVEL) / 2
    elif oversold:
        strength = CCI_EXTREME_BASE + abs(current + CCI_LEVEL) / 2
    elif bullish_trend or bearish_trend:
        strength = CCI_ZERO_CROSS_STRENGTH
    elif cross_above_low or cross_below_high:
        strength = CCI_LEVEL_CROSS_STRENGTH

    meta = {"cci": current, "prev_cci": previous}
    if cross_above_low or (oversold and current > previous):
        return Signal.of(Direction.BUY, strength, crossover=cross_above_low, **meta)
    if cross_below_high or (overbought and current < previous):
        return Signal.of(Direction.SELL, strength, crossover=cross_below_high, **meta)
    if bullish_trend:
        return Signal.of(Direction.BUY, strength, trend_change=True, **meta)
    if bearish_trend:
        return Signal.of(Direction.SELL, strength, trend_change=True, **meta)
    return Signal.neutral()


def stochastic_signal(candles: CandleInput, period_k: int = 14, period_d: int = 3) -> Signal:
    series = as_series(candles)
    if len(series) < period_k + period_d:
        return Signal.neutral()
    k, d = _math.stochastic(series.high, series.low, series.close, period_k, period_d)
    if len(k) < 2:
        return Signal.neutral()
    cur_k, cur_d, prev_k, prev_d = float(k[-1]), float(d[-1]), float(k[-2]), float(d[-2])

    overbought = cur_k > STOCH_OVERBOUGHT and cur_d > STOCH_OVERBOUGHT
    oversold = cur_k < STOCH_OVERSOLD and cur_d < STOCH_OVERSOLD
    bullish_cross = prev_k <= prev_d and cur_k > cur_d
    bearish_cross = prev_k >= prev_d and cur_k < cur_d

    if (oversold and bullish_cross) or (overbought and bearish_cross):
        strength = STOCH_EXTREME_CROSS_STRENGTH
    elif (oversold and cur_k > prev_k) or (overbought and cur_k < prev_k):
        strength = STOCH_EXTREME_SLOPE_STRENGTH
    elif bullish_cross or bearish_cross:
        strength = STOCH_CROSS_STRENGTH
    else:
        strength = 0.0

    if (oversold and (bullish_cross or cur_k > prev_k)) or (bullish_cross and cur_k < 50):
        return Signal.of(Direction.BUY, strength, k=cur_k, d=cur_d, oversold=oversold, crossover=bullish_cross)
    if (overbought and (bearish_cross or cur_k < prev_k)) or (bearish_cross and cur_k > 50):
        return Signal.of(Direction.SELL, strength, k=cur_k, d=cur_d, overbought=overbought, crossover=bearish_cross)
    return Signal.neutral()


def williams_r_signal(candles: CandleInput, period: int = 14) -> Signal:
    """
    Williams %R.

    Leaving oversold (-80) or overbought (-20) scores 80-100 by distance past
    the level; a still-extreme reading turning in the other direction scores
    60-80.
    """
    series = as_series(candles)
    if len(series) < period + 2:
        return Signal.neutral()
    values = _math.williams_r(series.high, series.low, series.close, period)
    current, previous = float(values[-1]), float(values[-2])

    oversold = current < WILLIAMS_OVERSOLD
    overbought = current > WILLIAMS_OVERBOUGHT
    oversold_reversal = previous < WILLIAMS_OVERSOLD and current > previous and current > WILLIAMS_OVERSOLD
    overbought_reversal = previous > WILLIAMS_OVERBOUGHT and current < previous and current < WILLIAMS_OVERBOUGHT
    rising = current > previous
    falling = current < previous

    meta = {"value": current, "previous": previous}
    if oversold_reversal:
        return Signal.of(Direction.BUY, 80 + min(20.0, current - WILLIAMS_OVERSOLD), reversal=True, **meta)
    if oversold and rising:
        return Signal.of(Direction.BUY, 60 + min(20.0, (current + 100) * 0.5), **meta)
    if overbought_reversal:
        return Signal.of(Direction.SELL, 80 + min(20.0, WILLIAMS_OVERBOUGHT - current), reversal=True, **meta)
    if overbought and falling:
        return Signal.of(Direction.SELL, 60 + min(20.0, -current * 0.5), **meta)
    return Signal.neutral()


def momentum_rsi_signal(
    candles: CandleInput,
    period: int = 14,
    overbought: float = RSI_OVERBOUGHT,
    oversold: float = RSI_OVERSOLD,
    momentum_period: int = 10,
) -> Signal:
    """
    RSI with price rate-of-change confirmation.

    Extreme zone turning back: 60 + min(30, 1.5 * excess). Mid-range: 40 plus
    10 per RSI point of slope, discounted to 70%, only when RSI and momentum
    agree on the side of 50. Agreement between the RSI slope and momentum adds
    10 before the discount.
    """
    series = as_series(candles)
    if len(series) < max(period + 5, momentum_period + 1):
        return Signal.neutral()
    rsi = _math.rsi(series.close, period)
    current, previous = float(rsi[-1]), float(rsi[-2])
    slope = current - previous

    past = series.close[-1 - momentum_period]
    if past == 0:
        return Signal.neutral()
    roc = float((series.close[-1] - past) / past * 100)

    is_oversold = current < oversold
    is_overbought = current > overbought
    rising, falling = slope > 0, slope < 0
    positive, negative = roc > 0, roc < 0

    if is_oversold:
        strength = MOMENTUM_EXTREME_BASE + min(MOMENTUM_EXTREME_CAP, (oversold - current) * MOMENTUM_EXTREME_SCALE)
    elif is_overbought:
        strength = MOMENTUM_EXTREME_BASE + min(MOMENTUM_EXTREME_CAP, (current - overbought) * MOMENTUM_EXTREME_SCALE)
    else:
        strength = MOMENTUM_MID_BASE + abs(slope) * MOMENTUM_SLOPE_SCALE
    if (rising and positive) or (falling and negative):
        strength += MOMENTUM_CONFIRMATION_BONUS
    strength = min(100.0, strength)

    meta = {"rsi": current, "momentum": roc, "rsi_slope": slope}
    if is_oversold and rising:
        return Signal.of(Direction.BUY, strength, confirmed=positive, **meta)
    if is_overbought and falling:
        return Signal.of(Direction.SELL, strength, confirmed=negative, **meta)
    if rising and positive and current > 50:
        return Signal.of(Direction.BUY, strength * MOMENTUM_MID_DISCOUNT, confirmed=True, **meta)
    if falling and negative and current < 50:
        return Signal.of(Direction.SELL, strength * MOMENTUM_MID_DISCOUNT, confirmed=True, **meta)
    return Signal.neutral()
