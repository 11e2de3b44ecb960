"""Tests for RSI divergence and benchmark relative strength."""

import pytest

from analyzers.divergence import DivergenceAnalyzer
from analyzers.technical import TechnicalAnalyzer
from models.analysis import Divergence
from utils.helpers import candles_to_frame


def _divergence(candles):
    df = candles_to_frame(candles)
    rsi = TechnicalAnalyzer.rsi_history(df['Close'], 14)
    return DivergenceAnalyzer.detect_rsi_divergence(df, rsi)


class TestRSIDivergence:
    """Test price/RSI pivot divergence"""

    def test_bullish_divergence(self, candle_builder, path_builder):
        """Capitulation low, bounce, then a slow drift to a marginally lower low"""
        knots = [(0, 130), (24, 120), (32, 100), (40, 110), (52, 99), (59, 102.5)]
        assert _divergence(candle_builder(path_builder(knots))) is Divergence.BULLISH

    def test_bearish_divergence(self, candle_builder, path_builder):
        """Blow-off high, pullback, then a slow grind to a marginally higher high"""
        knots = [(0, 100), (24, 110), (32, 130), (40, 120), (52, 131), (59, 127.5)]
        assert _divergence(candle_builder(path_builder(knots))) is Divergence.BEARISH

    def test_stale_pivot_is_ignored(self, candle_builder, path_builder):
        """The lower low happened more than 15 bars ago"""
        knots = [(0, 130), (24, 120), (32, 100), (40, 110), (52, 99), (75, 110.5)]
        assert _divergence(candle_builder(path_builder(knots))) is None

    def test_no_divergence_in_trend(self, rising_candles):
        assert _divergence(rising_candles) is None

    def test_flat_series(self, flat_candles):
        assert _divergence(flat_candles) is None

    def test_short_series(self, candle_builder):
        assert _divergence(candle_builder([100.0 + i % 3 for i in range(29)])) is None


class TestRelativeStrength:
    """Test date-aligned relative strength"""

    def test_no_benchmark(self, rising_candles):
        df = candles_to_frame(rising_candles)
        assert DivergenceAnalyzer.calculate_relative_strength(df, None) == 1.0

    def test_short_benchmark(self, rising_candles, candle_builder):
        df = candles_to_frame(rising_candles)
        bench = candles_to_frame(candle_builder([100.0] * 49))
        assert DivergenceAnalyzer.calculate_relative_strength(df, bench) == 1.0

    def test_short_stock_series(self, rising_candles, candle_builder):
        df = candles_to_frame(rising_candles[:126])
        bench = candles_to_frame(candle_builder([100.0] * 300))
        assert DivergenceAnalyzer.calculate_relative_strength(df, bench) == 1.0

    def test_outperforming_flat_benchmark(self, candle_builder):
        stock = candles_to_frame(candle_builder([100.0 + i for i in range(200)]))
        bench = candles_to_frame(candle_builder([100.0] * 200))
        rs = DivergenceAnalyzer.calculate_relative_strength(stock, bench)
        # old bar is index 73: 173 -> 299
        assert rs == pytest.approx(299.0 / 173.0)

    def test_matching_benchmark_is_neutral(self, candle_builder):
        closes = [100.0 + i for i in range(200)]
        stock = candles_to_frame(candle_builder(closes))
        bench = candles_to_frame(candle_builder(closes))
        assert DivergenceAnalyzer.calculate_relative_strength(stock, bench) == pytest.approx(1.0)

    def test_aligned_by_date_not_position(self, candle_builder):
        """A benchmark holiday on the look-back date uses the prior benchmark bar"""
        candles = candle_builder([100.0 + i for i in range(200)])
        stock = candles_to_frame(candles)
        bench = candles_to_frame(candles[:73] + candles[74:])
        rs = DivergenceAnalyzer.calculate_relative_strength(stock, bench)
        assert rs == pytest.approx((299.0 / 173.0) / (299.0 / 172.0))

    def test_benchmark_not_covering_lookback(self, candle_builder):
        candles = candle_builder([100.0 + i for i in range(200)])
        stock = candles_to_frame(candles)
        bench = candles_to_frame(candles[-60:])
        assert DivergenceAnalyzer.calculate_relative_strength(stock, bench) == 1.0
