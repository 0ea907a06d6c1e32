"""
Tests for configuration: quiet hours, environment loading, weights.
"""

import pytest

from tradecore.config import STRATEGY_WEIGHTS, AggregatorConfig, RiskConfig, TraderConfig
from tradecore.indicators import STRATEGIES


def test_every_strategy_has_a_weight():
    assert set(STRATEGY_WEIGHTS) == set(STRATEGIES)
    assert AggregatorConfig().weight("Supertrend") == 1.0
    assert AggregatorConfig().weight("Unknown") == 0.5


@pytest.mark.parametrize(
    "quiet, hour, expected",
    [
        (None, 3, False),
        ((22, 6), 23, True),
        ((22, 6), 2, True),
        ((22, 6), 6, False),
        ((22, 6), 12, False),
        ((1, 5), 1, True),
        ((1, 5), 5, False),
        ((3, 3), 3, False),
    ],
)
def test_in_quiet_hours(quiet, hour, expected):
    assert TraderConfig(quiet_hours=quiet).in_quiet_hours(hour) is expected


def test_from_env_defaults():
    config = TraderConfig.from_env(environ={})
    assert config == TraderConfig()


def test_from_env_reads_prefixed_variables():
    env = {
        "TRADECORE_SYMBOLS": "BTC, ETH ,,SOL",
        "TRADECORE_TIMEFRAMES": "15m,1h",
        "TRADECORE_TRADING_ENABLED": "false",
        "TRADECORE_USE_MACRO_DATA": "yes",
        "TRADECORE_QUIET_HOURS": "22-6",
        "TRADECORE_RISK_PER_TRADE": "2.5",
        "TRADECORE_USE_STOP_LOSS": "0",
        "TRADECORE_TAKE_PROFIT_PERCENT": "6",
        "TRADECORE_CALL_TIMEOUT": "3",
        "OTHER_SYMBOLS": "XRP",
    }
    config = TraderConfig.from_env(environ=env)
    assert config.symbols == ("BTC", "ETH", "SOL")
    assert config.timeframes == ("15m", "1h")
    assert config.trading_enabled is False
    assert config.use_macro_data is True
    assert config.quiet_hours == (22, 6)
    assert config.call_timeout == 3.0
    assert config.risk == RiskConfig(risk_per_trade=2.5, use_stop_loss=False, take_profit_percent=6.0)


def test_from_env_custom_prefix_and_blank_values():
    config = TraderConfig.from_env(prefix="BOT_", environ={"BOT_SYMBOLS": "ADA", "BOT_QUIET_HOURS": "  "})
    assert config.symbols == ("ADA",)
    assert config.quiet_hours is None


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("TRADECORE_SYMBOLS", "DOT")
    assert TraderConfig.from_env().symbols == ("DOT",)
