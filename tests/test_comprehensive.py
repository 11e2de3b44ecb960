"""End-to-end tests for ComprehensiveAnalyzer.analyze_stock."""

import json
from dataclasses import replace

import pytest

from analyzers.comprehensive import ComprehensiveAnalyzer, InsufficientDataError
from models.analysis import PatternType, Recommendation, WeeklyTrend
from models.candle import CandleValidationError


def _sub_score(result, name):
    return next(s for s in result.sub_scores if s.name == name)


class TestInputValidation:
    """Test rejected inputs"""

    def test_insufficient_data(self, rising_candles):
        with pytest.raises(InsufficientDataError) as exc_info:
            ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles[:49])
        assert exc_info.value.required == 50
        assert exc_info.value.available == 49
        assert isinstance(exc_info.value, ValueError)

    def test_unsorted_candles(self, rising_candles):
        candles = list(rising_candles)
        candles[10], candles[11] = candles[11], candles[10]
        with pytest.raises(CandleValidationError):
            ComprehensiveAnalyzer.analyze_stock("TEST", candles)

    def test_minimum_series_is_scored(self, rising_candles):
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles[:50])
        assert 0.0 <= result.composite_score <= 10.0
        assert result.pattern.pattern is PatternType.NONE
        assert result.score_history == ()


class TestSteadyUptrend:
    """Test the full analysis on a steady uptrend"""

    @pytest.fixture
    def result(self, rising_candles):
        return ComprehensiveAnalyzer.analyze_stock("test", rising_candles, market_cap=2.5e9)

    def test_summary_fields(self, result, rising_candles):
        assert result.ticker == "TEST"
        assert result.current_price == 399.0
        assert result.change_percent == pytest.approx(0.25)
        assert result.market_cap == 2.5e9
        assert result.history_length == len(rising_candles)

    def test_bullish_recommendation(self, result):
        assert result.composite_score >= 6.5
        assert result.recommendation in (Recommendation.BUY, Recommendation.STRONG_BUY)

    def test_trend_indicators(self, result):
        ind = result.indicators
        assert ind.sma150 == pytest.approx(324.5)
        assert ind.rsi == pytest.approx(100.0)
        assert ind.sar < result.current_price
        assert ind.is_breakout
        assert ind.weekly_trend is WeeklyTrend.BULLISH
        assert ind.relative_strength == 1.0
        assert ind.rsi_divergence is None
        assert ind.fib_level == 0.618

    def test_sub_scores(self, result):
        assert len(result.sub_scores) == 12
        assert sum(s.weight for s in result.sub_scores) == pytest.approx(1.0)
        assert all(0 <= s.score <= 10 for s in result.sub_scores)
        assert _sub_score(result, 'SMA 150 Trend').score == 10
        assert _sub_score(result, 'Structure & Patterns').value == 'Breakout'
        assert _sub_score(result, 'RS vs Market').score == 5

    def test_risk_plan(self, result):
        risk = result.risk
        assert risk.stop_loss < risk.entry_price
        assert risk.take_profit > risk.entry_price
        assert result.indicators.support_level == risk.stop_loss

    def test_score_history(self, result, rising_candles):
        history = result.score_history
        assert len(history) == 7
        assert [h.date for h in history] == [c.date for c in rising_candles[-8:-1]]
        assert all(0.0 <= h.score <= 10.0 for h in history)

    def test_backtest_attached(self, result):
        assert len(result.backtest.equity_curve) == 200


class TestResultProperties:
    """Test determinism, serialization and caller overrides"""

    def test_idempotent(self, double_bottom_candles):
        first = ComprehensiveAnalyzer.analyze_stock("DB", double_bottom_candles)
        second = ComprehensiveAnalyzer.analyze_stock("DB", double_bottom_candles)
        assert first.to_dict() == second.to_dict()

    def test_to_dict_is_json_ready(self, double_bottom_candles):
        data = ComprehensiveAnalyzer.analyze_stock("DB", double_bottom_candles).to_dict()
        assert data['pattern']['pattern'] == 'DOUBLE_BOTTOM'
        assert data['pattern']['overlay'][0]['label'] == 'Btm 1'
        assert isinstance(data['pattern']['overlay'][0]['date'], str)
        json.dumps(data)

    def test_flat_series(self, flat_candles):
        result = ComprehensiveAnalyzer.analyze_stock("FLAT", flat_candles)
        assert result.indicators.squeeze_on
        assert result.indicators.bollinger.bandwidth == pytest.approx(0.0)
        assert result.indicators.rsi == pytest.approx(50.0)
        assert result.pattern.pattern is PatternType.NONE
        assert 0.0 <= result.composite_score <= 10.0

    def test_official_sma_override(self, rising_candles):
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles, official_sma150=1000.0)
        assert result.indicators.sma150 == 1000.0
        assert _sub_score(result, 'SMA 150 Trend').score == 1

    def test_override_not_used_for_history(self, rising_candles):
        plain = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles)
        override = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles, official_sma150=1000.0)
        assert plain.score_history == override.score_history
        assert override.composite_score < plain.composite_score

    def test_vwap_from_last_candle(self, rising_candles):
        candles = list(rising_candles)
        candles[-1] = replace(candles[-1], vwap=500.0)
        result = ComprehensiveAnalyzer.analyze_stock("TEST", candles)
        assert result.indicators.vwma == 500.0
        assert _sub_score(result, 'Inst. Support (VWAP)').score == 3

    def test_short_benchmark_is_neutral(self, rising_candles, candle_builder):
        bench = candle_builder([100.0] * 30)
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles, benchmark=bench)
        assert result.indicators.relative_strength == 1.0
        assert _sub_score(result, 'RS vs Market').score == 5

    def test_outperforming_benchmark(self, rising_candles, candle_builder):
        bench = candle_builder([100.0] * len(rising_candles))
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles, benchmark=bench)
        assert result.indicators.relative_strength > 1.2
        assert _sub_score(result, 'RS vs Market').score == 10

    def test_unordered_benchmark_is_ignored(self, rising_candles, candle_builder):
        bench = list(reversed(candle_builder([100.0] * len(rising_candles))))
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles, benchmark=bench)
        assert result.indicators.relative_strength == 1.0

    def test_score_history_length_on_short_series(self, rising_candles):
        result = ComprehensiveAnalyzer.analyze_stock("TEST", rising_candles[:55])
        assert len(result.score_history) == 4

    @pytest.mark.parametrize("fixture_name,pattern", [
        ("cup_candles", PatternType.CUP_AND_HANDLE),
        ("elliott_candles", PatternType.ELLIOTT_IMPULSE),
        ("double_bottom_candles", PatternType.DOUBLE_BOTTOM),
        ("inverse_hs_candles", PatternType.INVERSE_HEAD_AND_SHOULDERS),
    ])
    def test_pattern_reaches_result(self, request, fixture_name, pattern):
        candles = request.getfixturevalue(fixture_name)
        result = ComprehensiveAnalyzer.analyze_stock("PAT", candles)
        assert result.pattern.pattern is pattern
        assert _sub_score(result, 'Structure & Patterns').bullish


class TestScenarios:
    """Test reference market scenarios"""

    def test_rising_200_bars(self, candle_builder):
        candles = candle_builder([100.0 + i for i in range(200)])
        result = ComprehensiveAnalyzer.analyze_stock("UP", candles)
        assert _sub_score(result, 'SMA 150 Trend').score == 10
        assert _sub_score(result, 'Parabolic SAR').score == 10
        assert result.composite_score >= 6.5

    def test_flat_series_bandwidth(self, candle_builder):
        result = ComprehensiveAnalyzer.analyze_stock("FLAT", candle_builder([50.0] * 180))
        assert result.indicators.bollinger.bandwidth == pytest.approx(0.0)
        assert result.indicators.squeeze_on
        assert result.pattern.pattern is PatternType.NONE
