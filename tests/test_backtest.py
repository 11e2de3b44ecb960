"""Tests for the single-position backtest replay."""

from dataclasses import replace

import numpy as np
import pytest

from analyzers.backtest import BacktestSimulator
from analyzers.technical import TechnicalAnalyzer
from models.analysis import ExitReason, PositionState
from models.config import EngineConfig
from utils.helpers import candles_to_frame

BARS = 80
ENTRY_BAR = 60


@pytest.fixture
def flat_frame(candle_builder):
    """Builds an 80-bar frame at close 100 (range 99-101, ATR 2) with optional bar overrides"""
    def build(overrides=None):
        candles = candle_builder([100.0] * BARS, spread=1.0)
        for index, (high, low) in (overrides or {}).items():
            candles[index] = replace(candles[index], high=high, low=low)
        return candles_to_frame(candles)
    return build


def _patch_signal(monkeypatch, entries=(ENTRY_BAR,), exits=()):
    signal = np.full(BARS, 5.0)
    for i in entries:
        signal[i] = 9.0
    for i in exits:
        signal[i] = 3.0
    monkeypatch.setattr(BacktestSimulator, 'signal_scores',
                        staticmethod(lambda df, config=None: signal))


class TestSignal:
    """Test the per-bar signal score"""

    def test_steady_uptrend_signal(self, rising_candles):
        """Above both averages with RSI pinned at 100 (not rising) scores 8"""
        signal = BacktestSimulator.signal_scores(candles_to_frame(rising_candles))
        assert signal[-1] == 8
        assert signal.max() <= 10
        assert signal.min() >= 0

    def test_flat_signal(self, flat_candles):
        signal = BacktestSimulator.signal_scores(candles_to_frame(flat_candles))
        assert signal[-1] == 0


class TestReplay:
    """Test entries, exits and the equity curve"""

    def test_target_exit(self, flat_frame, monkeypatch):
        _patch_signal(monkeypatch)
        result = BacktestSimulator.run(flat_frame({65: (109.0, 99.0)}))

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.TARGET
        assert trade.entry_price == 100.0
        assert trade.exit_price == pytest.approx(108.0)
        assert trade.pnl_percent == pytest.approx(8.0)
        assert result.total_trades == 1
        assert result.win_rate == 100.0
        assert result.total_return == pytest.approx(8.0)
        assert result.final_state is PositionState.CASH

    def test_stop_checked_before_target(self, flat_frame, monkeypatch):
        _patch_signal(monkeypatch)
        result = BacktestSimulator.run(flat_frame({62: (109.0, 95.0)}))

        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.STOP
        assert trade.exit_price == pytest.approx(96.0)
        assert trade.pnl_percent == pytest.approx(-4.0)
        assert result.win_rate == 0.0
        assert result.total_return == pytest.approx(-4.0)

    def test_stop_trails_up_and_holds_on_pullback(self, candle_builder, monkeypatch):
        """Close past entry + 2 ATR raises the stop; a weaker advance never lowers it"""
        _patch_signal(monkeypatch)
        closes = [100.0] * BARS
        closes[61] = 105.0
        closes[62] = 104.7
        closes[63] = 100.0
        df = candles_to_frame(candle_builder(closes, spread=1.0))
        atr = TechnicalAnalyzer.atr_history(df)

        raised = 105.0 - 2 * atr[61]
        assert 105.0 > 100.0 + 2 * atr[61]
        assert raised > 100.0 - 2 * atr[ENTRY_BAR]
        # bar 62 also clears entry + 2 ATR but its own trail level is lower
        assert 104.7 > 100.0 + 2 * atr[62]
        assert 104.7 - 2 * atr[62] < raised

        result = BacktestSimulator.run(df)

        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.STOP
        assert trade.exit_date == df.index[63]
        assert trade.exit_price == pytest.approx(raised)
        assert trade.pnl_percent > 0
        assert result.win_rate == 100.0

    def test_signal_exit(self, flat_frame, monkeypatch):
        _patch_signal(monkeypatch, exits=(63,))
        result = BacktestSimulator.run(flat_frame())

        trade = result.trades[0]
        assert trade.exit_reason is ExitReason.SIGNAL
        assert trade.exit_date == result.equity_curve[63 - 50].date
        assert trade.pnl_percent == pytest.approx(0.0)
        assert result.win_rate == 0.0

    def test_open_trade_at_end(self, flat_frame, monkeypatch):
        _patch_signal(monkeypatch, entries=(78,))
        result = BacktestSimulator.run(flat_frame())

        assert result.final_state is PositionState.LONG
        assert result.total_trades == 0
        assert len(result.trades) == 1
        assert result.trades[0].exit_reason is ExitReason.OPEN
        assert result.trades[0].exit_date is None
        assert result.win_rate == 0.0

    def test_equity_curve_covers_simulated_bars(self, flat_frame, monkeypatch):
        _patch_signal(monkeypatch, entries=())
        df = flat_frame()
        result = BacktestSimulator.run(df)

        assert len(result.equity_curve) == BARS - 50
        assert result.equity_curve[0].date == df.index[50]
        assert all(p.value == 10000.0 for p in result.equity_curve)
        assert result.trades == ()
        assert result.total_return == 0.0

    def test_window_limited_to_last_bars(self, rising_candles):
        result = BacktestSimulator.run(candles_to_frame(rising_candles))
        assert len(result.equity_curve) == 200
        # 200 -> 399 over the simulated window
        assert result.buy_and_hold_return == pytest.approx(99.5)

    def test_too_short_for_warmup(self, candle_builder):
        df = candles_to_frame(candle_builder([100.0] * 50))
        result = BacktestSimulator.run(df)
        assert result.trades == ()
        assert result.equity_curve == ()
        assert result.final_state is PositionState.CASH

    def test_custom_thresholds(self, flat_frame, monkeypatch):
        """A lower entry threshold lets the neutral 5 signal open a trade on the first bar"""
        _patch_signal(monkeypatch, entries=())
        config = replace(EngineConfig(), backtest_entry_threshold=5.0)
        result = BacktestSimulator.run(flat_frame(), config)
        assert result.trades[0].entry_date == result.equity_curve[0].date
