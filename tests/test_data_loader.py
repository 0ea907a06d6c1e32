"""
Tests for backtesting data_loader: load_csv, load_dataframe, load_series.
"""

import pandas as pd
import pytest

from backtesting.data_loader import load_csv, load_dataframe, load_series
from tradecore.candles import CandleSeries


def test_load_dataframe_normalizes_columns():
    df = pd.DataFrame({
        "Date": ["2024-01-01", "2024-01-02"],
        "Open": [100.0, 101.0],
        "High": [102.0, 103.0],
        "Low": [99.0, 100.0],
        "Close": [101.0, 102.0],
        "Volume": [1e6, 1e6],
    })
    out = load_dataframe(df, datetime_index="Date", symbol="BTC")
    assert list(out.columns) == ["open", "high", "low", "close", "volume"]
    assert isinstance(out.index, pd.DatetimeIndex)
    assert out.index.name == "datetime"
    assert out.attrs.get("symbol") == "BTC"


def test_load_dataframe_aliases():
    df = pd.DataFrame({
        "datetime": pd.date_range("2024-01-01", periods=3, freq="D"),
        "o": [100.0, 101.0, 102.0],
        "h": [101.0, 102.0, 103.0],
        "l": [99.0, 100.0, 101.0],
        "c": [100.5, 101.5, 102.5],
        "vol": [1e6, 1e6, 1e6],
    }).set_index("datetime")
    out = load_dataframe(df, symbol="ETH")
    assert list(out.columns) == ["open", "high", "low", "close", "volume"]
    assert out["close"].iloc[-1] == 102.5
    assert out.attrs.get("symbol") == "ETH"


def test_load_dataframe_keeps_symbol_from_attrs():
    df = pd.DataFrame({"close": [1.0, 2.0]}, index=pd.date_range("2024-01-01", periods=2, freq="h"))
    df.attrs["symbol"] = "SOL"
    assert load_dataframe(df).attrs["symbol"] == "SOL"


def test_load_dataframe_requires_close():
    df = pd.DataFrame({"open": [1.0]}, index=pd.date_range("2024-01-01", periods=1))
    with pytest.raises(ValueError):
        load_dataframe(df)


def test_load_csv_sorts_and_dedupes(tmp_path):
    path = tmp_path / "ohlcv.csv"
    path.write_text(
        "date,open,high,low,close,volume\n"
        "2024-01-03,102,103,101,102.5,10\n"
        "2024-01-01,100,101,99,100.5,10\n"
        "2024-01-02,101,102,100,101.5,10\n"
        "2024-01-02,101,102,100,101.7,12\n"
        "2024-01-04,103,104,102,,10\n"
    )
    df = load_csv(path, symbol="BTC")
    assert list(df.index) == list(pd.to_datetime(["2024-01-01", "2024-01-02", "2024-01-03"]))
    assert df.loc["2024-01-02", "close"] == 101.7
    assert df.attrs["symbol"] == "BTC"


def test_load_csv_epoch_milliseconds(tmp_path):
    path = tmp_path / "klines.csv"
    path.write_text(
        "open_time,o,h,l,c,v\n"
        "1704067200000,100,101,99,100.5,5\n"
        "1704070800000,100.5,102,100,101.5,6\n"
    )
    df = load_csv(path)
    assert df.index[0] == pd.Timestamp("2024-01-01 00:00:00")
    assert df.index[1] == pd.Timestamp("2024-01-01 01:00:00")
    assert df["volume"].tolist() == [5.0, 6.0]
    assert "symbol" not in df.attrs


def test_load_csv_explicit_date_column_and_format(tmp_path):
    path = tmp_path / "custom.csv"
    path.write_text(
        "idx,when,close\n"
        "0,01/02/2024 10:00,100\n"
        "1,01/02/2024 11:00,101\n"
    )
    df = load_csv(path, date_column="when", datetime_format="%d/%m/%Y %H:%M")
    assert df.index[0] == pd.Timestamp("2024-02-01 10:00")
    assert list(df.columns) == ["close"]


def test_load_series_feeds_indicators(tmp_path):
    path = tmp_path / "series.csv"
    path.write_text(
        "timestamp,open,high,low,close\n"
        "2024-01-01,100,101,99,100.5\n"
        "2024-01-02,100.5,102,100,101.5\n"
    )
    series = load_series(path)
    assert isinstance(series, CandleSeries)
    assert len(series) == 2
    assert series.close.tolist() == [100.5, 101.5]
    assert not series.has_volume
