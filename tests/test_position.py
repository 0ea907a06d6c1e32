"""
Tests for the position state machine: entry gates, sizing, exit priority and P/L.
"""

from datetime import datetime

import pytest

from tradecore.aggregator import MacroModifiers
from tradecore.config import RiskConfig, RiskLevel
from tradecore.position import (
    COMBINED_LABEL,
    ExitDecision,
    ExitReason,
    Position,
    PositionStateMachine,
    Side,
    TradeRecord,
    best_strategy,
    profit_loss,
    win_rate,
)
from tradecore.signal import Direction, Signal

T0 = datetime(2024, 3, 1, 12, 0)


def _record(strategy, pl, symbol="BTC"):
    return TradeRecord(
        symbol=symbol,
        side=Side.LONG,
        entry_price=100.0,
        exit_price=100.0 + pl,
        size=1.0,
        entry_time=T0,
        exit_time=T0,
        profit_loss=pl,
        profit_loss_percent=pl,
        strategy=strategy,
        timeframe="15m",
        exit_reason=ExitReason.SIGNAL,
    )


def _position(side=Side.LONG, entry=100.0, stop=None, take=None):
    return Position(
        symbol="BTC",
        side=side,
        entry_price=entry,
        entry_time=T0,
        size=1.0,
        strategy_label="Supertrend",
        timeframe="15m",
        stop_loss_price=stop,
        take_profit_price=take,
    )


# --- Entry ---


def test_sell_80_at_medium_risk_opens_short():
    machine = PositionStateMachine()
    signals = {"Supertrend": Signal.of(Direction.SELL, 80), "CCI": Signal.of(Direction.SELL, 60)}
    decision = machine.entry_decision(Signal.of(Direction.SELL, 80), signals, [])
    assert decision is not None
    assert decision.side is Side.SHORT
    assert decision.strategy == "Supertrend"
    assert decision.risk_level is RiskLevel.MEDIUM
    assert decision.profit_probability == 80


def test_neutral_never_enters():
    assert PositionStateMachine().entry_decision(Signal.neutral(), {}) is None


@pytest.mark.parametrize(
    "modifiers, strength, enters",
    [
        (None, 64.9, False),
        (None, 65.0, True),
        (MacroModifiers(risk_level=RiskLevel.LOW), 55.0, True),
        (MacroModifiers(risk_level=RiskLevel.LOW), 49.0, False),
        (MacroModifiers(risk_level=RiskLevel.HIGH), 70.0, False),
        (MacroModifiers(risk_elevation=1), 74.0, False),
        (MacroModifiers(risk_elevation=1), 75.0, True),
    ],
)
def test_strength_floor_by_risk_level(modifiers, strength, enters):
    combined = Signal.of(Direction.BUY, strength)
    decision = PositionStateMachine().entry_decision(combined, {"X": combined}, [], modifiers)
    assert (decision is not None) == enters


def test_poor_history_blocks_entry_below_override():
    history = [_record("Supertrend", 5.0)] + [_record("Supertrend", -5.0)] * 3
    machine = PositionStateMachine()
    combined = Signal.of(Direction.BUY, 70)
    assert machine.entry_decision(combined, {"Supertrend": combined}, history) is None


def test_zero_win_rate_is_not_replaced_by_strength():
    history = [_record("Supertrend", -5.0)] * 2
    combined = Signal.of(Direction.BUY, 70)
    assert PositionStateMachine().entry_decision(combined, {"Supertrend": combined}, history) is None


def test_strong_signal_overrides_poor_history():
    history = [_record("Supertrend", -5.0)] * 4
    machine = PositionStateMachine()
    combined = Signal.of(Direction.BUY, 85)
    decision = machine.entry_decision(combined, {"Supertrend": combined}, history)
    assert decision is not None
    assert decision.profit_probability == 0.0


def test_good_history_uses_win_rate():
    history = [_record("Supertrend", 5.0)] * 3 + [_record("Supertrend", -1.0)]
    combined = Signal.of(Direction.BUY, 66)
    decision = PositionStateMachine().entry_decision(combined, {"Supertrend": combined}, history)
    assert decision.profit_probability == pytest.approx(75.0)


def test_history_of_other_strategies_is_ignored():
    history = [_record("CCI", -5.0)] * 5
    combined = Signal.of(Direction.BUY, 70)
    decision = PositionStateMachine().entry_decision(combined, {"Supertrend": combined}, history)
    assert decision.profit_probability == 70


def test_no_contributing_signal_uses_combined_label():
    combined = Signal.of(Direction.BUY, 70)
    decision = PositionStateMachine().entry_decision(combined, {"CCI": Signal.of(Direction.SELL, 50)})
    assert decision.strategy == COMBINED_LABEL


def test_best_strategy_and_win_rate_helpers():
    signals = {"A": Signal.of(Direction.BUY, 50), "B": Signal.of(Direction.BUY, 70), "C": Signal.of(Direction.SELL, 90)}
    assert best_strategy(signals, Direction.BUY) == "B"
    assert best_strategy(signals, Direction.NEUTRAL) is None
    assert win_rate([], "A") is None
    assert win_rate([_record("A", 1.0), _record("A", 0.0)], "A") == 50.0


# --- Sizing ---


def test_size_without_profit_risks_fraction_of_start():
    assert PositionStateMachine().size_position(100.0, 10_000.0, 10_000.0) == 0.5


def test_size_with_profit_risks_share_of_surplus():
    machine = PositionStateMachine(RiskConfig(risk_per_trade=2.0))
    assert machine.size_position(100.0, 11_000.0, 10_000.0) == pytest.approx(0.1)


def test_risk_per_trade_scales_only_the_surplus_branch():
    machine = PositionStateMachine(RiskConfig(risk_per_trade=5.0))
    assert machine.size_position(100.0, 10_000.0, 10_000.0) == 0.5
    assert machine.size_position(100.0, 10_400.0, 10_000.0) == pytest.approx(0.1)


def test_size_after_losses_falls_back_to_start_fraction():
    assert PositionStateMachine().size_position(50.0, 9_000.0, 10_000.0) == 1.0


def test_size_rounds_to_four_decimals():
    assert PositionStateMachine().size_position(3.0, 10_000.0, 10_000.0) == 16.6667


def test_size_can_round_to_zero():
    machine = PositionStateMachine()
    assert machine.size_position(1_000_000.0, 1.0, 1.0) == 0.0
    assert machine.size_position(0.0, 10_000.0, 10_000.0) == 0.0


# --- Stop and take-profit prices ---


def _decision(side):
    return PositionStateMachine().entry_decision(
        Signal.of(side.entry_direction, 90), {"Supertrend": Signal.of(side.entry_direction, 90)}
    )


def test_long_position_prices():
    machine = PositionStateMachine()
    position = machine.build_position("BTC", _decision(Side.LONG), 100.0, 1.0, T0, "15m", "paper-000001")
    assert position.stop_loss_price == pytest.approx(98.0)
    assert position.take_profit_price == pytest.approx(104.0)
    assert position.order_id == "paper-000001"
    assert position.signal_strength == 90


def test_short_position_prices():
    machine = PositionStateMachine()
    position = machine.build_position("BTC", _decision(Side.SHORT), 100.0, 1.0, T0, "15m")
    assert position.stop_loss_price == pytest.approx(102.0)
    assert position.take_profit_price == pytest.approx(96.0)


def test_disabled_stop_and_take_profit():
    machine = PositionStateMachine(RiskConfig(use_stop_loss=False, use_take_profit=False))
    position = machine.build_position("BTC", _decision(Side.LONG), 100.0, 1.0, T0, "15m")
    assert position.stop_loss_price is None
    assert position.take_profit_price is None
    assert machine.price_exit(position, 1.0) is None


# --- Exits ---


def test_long_stop_loss_exits_at_stop_price():
    decision = PositionStateMachine().price_exit(_position(stop=98.0, take=104.0), 97.0)
    assert decision == ExitDecision(ExitReason.STOP_LOSS, 98.0)


def test_long_take_profit_exits_at_target_price():
    decision = PositionStateMachine().price_exit(_position(stop=98.0, take=104.0), 105.0)
    assert decision == ExitDecision(ExitReason.TAKE_PROFIT, 104.0)


def test_breach_comparison_is_strict():
    machine = PositionStateMachine()
    assert machine.price_exit(_position(stop=98.0, take=104.0), 98.0) is None
    assert machine.price_exit(_position(stop=98.0, take=104.0), 104.0) is None


def test_short_breaches_mirror_long():
    machine = PositionStateMachine()
    short = _position(side=Side.SHORT, stop=102.0, take=96.0)
    assert machine.price_exit(short, 103.0).reason is ExitReason.STOP_LOSS
    assert machine.price_exit(short, 95.0).reason is ExitReason.TAKE_PROFIT


def test_stop_loss_has_priority_over_take_profit():
    position = _position(stop=105.0, take=95.0)
    decision = PositionStateMachine().exit_decision(position, 100.0, Signal.of(Direction.SELL, 90), 100.0)
    assert decision.reason is ExitReason.STOP_LOSS
    assert decision.price == 105.0


def test_opposing_signal_exits_at_close():
    machine = PositionStateMachine()
    position = _position(stop=98.0, take=104.0)
    decision = machine.exit_decision(position, 100.5, Signal.of(Direction.SELL, 40), close=100.2)
    assert decision == ExitDecision(ExitReason.SIGNAL, 100.2)


def test_weak_or_same_side_signal_does_not_exit():
    machine = PositionStateMachine()
    position = _position(stop=98.0, take=104.0)
    assert machine.exit_decision(position, 100.0, Signal.of(Direction.SELL, 39.9)) is None
    assert machine.exit_decision(position, 100.0, Signal.of(Direction.BUY, 95)) is None
    assert machine.exit_decision(position, 100.0, Signal.neutral()) is None


def test_short_exits_on_buy_signal():
    decision = PositionStateMachine().exit_decision(
        _position(side=Side.SHORT), 100.0, Signal.of(Direction.BUY, 60)
    )
    assert decision.reason is ExitReason.SIGNAL
    assert decision.price == 100.0


# --- P/L ---


def test_profit_loss_round_trip_percent_is_exact():
    assert profit_loss(Side.LONG, 100.0, 110.0, 2.0) == (20.0, 10.0)
    assert profit_loss(Side.SHORT, 100.0, 90.0, 2.0) == (20.0, 10.0)
    assert profit_loss(Side.SHORT, 100.0, 110.0, 1.0) == (-10.0, -10.0)


def test_close_builds_trade_record():
    machine = PositionStateMachine()
    position = _position(side=Side.SHORT, entry=100.0, stop=102.0, take=96.0)
    exit_time = datetime(2024, 3, 1, 13, 0)
    record = machine.close(position, ExitDecision(ExitReason.TAKE_PROFIT, 96.0), exit_time)
    assert record.profit_loss == pytest.approx(4.0)
    assert record.profit_loss_percent == pytest.approx(4.0)
    assert record.exit_reason is ExitReason.TAKE_PROFIT
    assert record.strategy == "Supertrend"
    assert record.is_win
    assert record.to_dict()["exit_reason"] == "take_profit"
    assert record.to_dict()["exit_time"] == exit_time.isoformat()


def test_side_from_direction():
    assert Side.from_direction(Direction.BUY) is Side.LONG
    assert Side.from_direction(Direction.SELL) is Side.SHORT
    with pytest.raises(ValueError):
        Side.from_direction(Direction.NEUTRAL)
