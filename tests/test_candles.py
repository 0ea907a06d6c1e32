"""
Tests for candles and signals: series construction, windows, Signal invariants.
"""

from datetime import datetime, timedelta

import pandas as pd
import pytest

from tradecore.candles import Candle, CandleSeries, as_series, candles_from_dataframe
from tradecore.signal import Direction, Signal

T0 = datetime(2024, 1, 1)


def _candles(n):
    return [Candle(T0 + timedelta(hours=i), 1.0 + i, 2.0 + i, 0.5 + i, 1.5 + i, 10.0) for i in range(n)]


# --- Candles ---


def test_candle_parses_iso_time():
    candle = Candle("2024-01-01T05:00:00", 1.0, 2.0, 0.5, 1.5)
    assert candle.time == datetime(2024, 1, 1, 5)
    assert candle.volume is None


def test_series_from_candles():
    series = CandleSeries.from_candles(_candles(3))
    assert len(series) == 3
    assert series.close.tolist() == [1.5, 2.5, 3.5]
    assert series.has_volume
    assert as_series(series) is series


def test_series_without_volume():
    series = CandleSeries.from_candles([Candle(T0, 1.0, 1.0, 1.0, 1.0)])
    assert not series.has_volume
    assert series.volume.tolist() == [0.0]


def test_window_is_capped_prefix():
    series = CandleSeries.from_candles(_candles(10))
    window = series.window(6, 4)
    assert window.close.tolist() == [3.5, 4.5, 5.5, 6.5]
    assert window.time[0] == T0 + timedelta(hours=2)
    assert len(series.window(3)) == 3
    assert series.candle(9) == _candles(10)[9]


def test_candles_from_dataframe_fills_missing_ohl():
    df = pd.DataFrame({"close": [5.0, 6.0]}, index=pd.date_range("2024-01-01", periods=2, freq="h"))
    candles = candles_from_dataframe(df)
    assert candles[1] == Candle(datetime(2024, 1, 1, 1), 6.0, 6.0, 6.0, 6.0, None)


# --- Signal ---


@pytest.mark.parametrize(
    "direction, strength, expected",
    [
        (Direction.BUY, 150.0, (Direction.BUY, 100.0)),
        (Direction.SELL, 42.0, (Direction.SELL, 42.0)),
        (Direction.BUY, 0.0, (Direction.NEUTRAL, 0.0)),
        (Direction.SELL, -5.0, (Direction.NEUTRAL, 0.0)),
        (Direction.NEUTRAL, 80.0, (Direction.NEUTRAL, 0.0)),
        (Direction.BUY, float("nan"), (Direction.NEUTRAL, 0.0)),
    ],
)
def test_signal_of_enforces_consistency(direction, strength, expected):
    signal = Signal.of(direction, strength)
    assert (signal.direction, signal.strength) == expected


def test_signal_metadata_is_read_only_and_not_compared():
    a = Signal.of(Direction.BUY, 50, note="a")
    b = Signal.of(Direction.BUY, 50, note="b")
    assert a == b
    with pytest.raises(TypeError):
        a.metadata["note"] = "c"


def test_direction_opposite():
    assert Direction.BUY.opposite() is Direction.SELL
    assert Direction.SELL.opposite() is Direction.BUY
    assert Direction.NEUTRAL.opposite() is Direction.NEUTRAL

