"""Comprehensive stock analysis combining indicators, patterns, scoring, risk and backtest."""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

import pandas as pd
from loguru import logger

from analyzers.backtest import BacktestSimulator
from analyzers.divergence import DivergenceAnalyzer
from analyzers.patterns import PatternDetector
from analyzers.risk import RiskSynthesizer
from analyzers.scoring import FactorScores, ScoringEngine
from analyzers.technical import TechnicalAnalyzer
from analyzers.timeframes import weekly_trend
from models.analysis import (
    AnalysisResult,
    IndicatorSet,
    PatternMatch,
    ScoreHistoryItem,
)
from models.candle import Candle, CandleValidationError, validate_series
from models.config import BREAKOUT_PROXIMITY, EngineConfig
from utils.helpers import candles_to_frame


class InsufficientDataError(ValueError):
    """Raised when a series is too short to score at all"""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient data: need {required} bars, got {available}")


@dataclass(frozen=True)
class _Snapshot:
    price: float
    indicators: IndicatorSet
    pattern: PatternMatch
    scores: FactorScores
    composite: float


class ComprehensiveAnalyzer:
    """Combines all analysis into a complete stock evaluation"""

    @staticmethod
    def analyze_stock(
        ticker: str,
        candles: Sequence[Candle],
        official_sma150: Optional[float] = None,
        market_cap: Optional[float] = None,
        benchmark: Optional[Sequence[Candle]] = None,
        config: Optional[EngineConfig] = None,
    ) -> AnalysisResult:
        """
        Perform complete technical analysis of one security.

        Args:
            ticker: Security identifier (passthrough)
            candles: Daily candles in ascending date order (at least `min_bars`)
            official_sma150: Authoritative 150-day SMA overriding the computed one
            market_cap: Market capitalization (passthrough)
            benchmark: Benchmark candles for relative strength
            config: Engine parameters

        Returns:
            A new AnalysisResult

        Raises:
            InsufficientDataError: fewer than `min_bars` candles
            CandleValidationError: candle dates not strictly ascending
        """
        config = config or EngineConfig()
        candles = tuple(candles)
        if len(candles) < config.min_bars:
            raise InsufficientDataError(config.min_bars, len(candles))
        validate_series(candles)
        benchmark_df = ComprehensiveAnalyzer._benchmark_frame(benchmark)

        snapshot = ComprehensiveAnalyzer._score_snapshot(candles, official_sma150, benchmark_df, config)
        ind = snapshot.indicators
        price = snapshot.price

        prev_close = candles[-2].close
        change_pct = (price - prev_close) / prev_close * 100 if prev_close else 0.0

        risk = RiskSynthesizer.calculate_risk_management(
            price, ind.atr, ind.sar, ind.resistance_level, ind.bollinger, snapshot.composite, config
        )
        ind = replace(ind, support_level=risk.stop_loss)

        sub_scores = ScoringEngine.build_sub_scores(
            price, ind, snapshot.pattern, snapshot.scores, config.weights
        )
        backtest = BacktestSimulator.run(candles_to_frame(candles), config)
        history = ComprehensiveAnalyzer.score_history(candles, benchmark_df, config)
        recommendation = ScoringEngine.recommendation(snapshot.composite)

        logger.info(
            f"{ticker}: score {snapshot.composite} ({recommendation.value}), "
            f"pattern {snapshot.pattern.pattern.value}, backtest {backtest.total_trades} trades"
        )

        return AnalysisResult(
            ticker=ticker.upper(),
            current_price=price,
            change_percent=round(change_pct, 2),
            composite_score=snapshot.composite,
            recommendation=recommendation,
            indicators=ind,
            risk=risk,
            sub_scores=sub_scores,
            pattern=snapshot.pattern,
            score_history=history,
            backtest=backtest,
            market_cap=market_cap,
            history_length=len(candles),
        )

    @staticmethod
    def score_history(candles: Sequence[Candle], benchmark_df: Optional[pd.DataFrame] = None,
                      config: Optional[EngineConfig] = None) -> Tuple[ScoreHistoryItem, ...]:
        """
        Composite scores for the previous `score_history_points` bars, oldest first.

        Each point re-runs the full scoring on the series truncated at that bar,
        so it reflects what the engine would have reported on that day.
        """
        config = config or EngineConfig()
        items = []
        for offset in range(1, config.score_history_points + 1):
            if len(candles) <= offset + config.min_bars:
                break
            sliced = candles[:len(candles) - offset]
            snap = ComprehensiveAnalyzer._score_snapshot(sliced, None, benchmark_df, config)
            items.append(ScoreHistoryItem(date=sliced[-1].date, score=snap.composite))
        return tuple(reversed(items))

    @staticmethod
    def compute_indicators(candles: Sequence[Candle], official_sma150: Optional[float] = None,
                           benchmark_df: Optional[pd.DataFrame] = None,
                           config: Optional[EngineConfig] = None) -> Tuple[IndicatorSet, PatternMatch]:
        """Indicator set and chart pattern for the last bar of `candles`"""
        config = config or EngineConfig()
        df = candles_to_frame(candles)
        close = df['Close']
        last = candles[-1]
        price = last.close

        sma150 = official_sma150 if official_sma150 is not None else TechnicalAnalyzer.sma(close, config.sma_long_period)
        vwma = last.vwap if last.vwap else TechnicalAnalyzer.vwma(df, config.vwma_period)

        rsi_values = TechnicalAnalyzer.rsi_history(close, config.rsi_period)
        atr = TechnicalAnalyzer.calculate_atr(df, config.atr_period)
        bollinger = TechnicalAnalyzer.calculate_bollinger_bands(close, config.bollinger_period, config.bollinger_std)
        keltner = TechnicalAnalyzer.calculate_keltner_channels(close, atr, config.keltner_period, config.keltner_atr_mult)
        volume_avg, last_volume = TechnicalAnalyzer.calculate_volume_profile(df, config.volume_avg_period)
        resistance = TechnicalAnalyzer.calculate_resistance(df, config.resistance_lookback)
        trend, _ = weekly_trend(candles, config)

        indicators = IndicatorSet(
            rsi=float(rsi_values[-1]),
            sma150=float(sma150),
            vwma=float(vwma),
            macd=TechnicalAnalyzer.calculate_macd(close, config.macd_fast, config.macd_slow, config.macd_signal),
            adx=TechnicalAnalyzer.calculate_adx(df, config.adx_period),
            bollinger=bollinger,
            keltner=keltner,
            sar=TechnicalAnalyzer.calculate_parabolic_sar(df, config.sar_step, config.sar_max),
            atr=atr,
            volume_avg20=volume_avg,
            last_volume=last_volume,
            resistance_level=resistance,
            relative_strength=DivergenceAnalyzer.calculate_relative_strength(df, benchmark_df, config),
            rsi_divergence=DivergenceAnalyzer.detect_rsi_divergence(df, rsi_values, config),
            squeeze_on=TechnicalAnalyzer.is_squeeze(bollinger, keltner),
            is_breakout=price >= resistance * BREAKOUT_PROXIMITY,
            fib_level=TechnicalAnalyzer.calculate_fib_level(df, config.fib_lookback),
            weekly_trend=trend,
        )
        return indicators, PatternDetector.detect(df, config)

    @staticmethod
    def _score_snapshot(candles: Sequence[Candle], official_sma150: Optional[float],
                        benchmark_df: Optional[pd.DataFrame], config: EngineConfig) -> _Snapshot:
        indicators, pattern = ComprehensiveAnalyzer.compute_indicators(
            candles, official_sma150, benchmark_df, config
        )
        price = candles[-1].close
        scores = ScoringEngine.score_factors(price, indicators, pattern)
        return _Snapshot(
            price=price,
            indicators=indicators,
            pattern=pattern,
            scores=scores,
            composite=ScoringEngine.composite(scores, config.weights),
        )

    @staticmethod
    def _benchmark_frame(benchmark: Optional[Sequence[Candle]]) -> Optional[pd.DataFrame]:
        if not benchmark:
            return None
        try:
            validate_series(benchmark)
        except CandleValidationError as e:
            logger.warning(f"Ignoring benchmark series: {e}")
            return None
        return candles_to_frame(benchmark)
