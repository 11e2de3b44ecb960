"""Data models and configuration for the technical scoring engine."""

from .candle import Candle, CandleValidationError, validate_series
from .analysis import (
    AnalysisResult,
    BacktestResult,
    BacktestTrade,
    Divergence,
    IndicatorSet,
    PatternMatch,
    PatternPoint,
    PatternType,
    Position,
    Recommendation,
    RiskAnalysis,
    SubScore,
    TradeAdvice,
)
from .config import EngineConfig, ScoringWeights

__all__ = [
    'Candle',
    'CandleValidationError',
    'validate_series',
    'AnalysisResult',
    'BacktestResult',
    'BacktestTrade',
    'Divergence',
    'IndicatorSet',
    'PatternMatch',
    'PatternPoint',
    'PatternType',
    'Position',
    'Recommendation',
    'RiskAnalysis',
    'SubScore',
    'TradeAdvice',
    'EngineConfig',
    'ScoringWeights'
]
