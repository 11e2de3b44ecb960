"""Analysis modules for indicators, patterns, scoring, risk and backtesting."""

from .technical import TechnicalAnalyzer
from .patterns import PatternDetector
from .divergence import DivergenceAnalyzer
from .timeframes import aggregate_to_weekly
from .scoring import ScoringEngine
from .risk import RiskSynthesizer
from .backtest import BacktestSimulator
from .comprehensive import ComprehensiveAnalyzer, InsufficientDataError

__all__ = [
    'TechnicalAnalyzer',
    'PatternDetector',
    'DivergenceAnalyzer',
    'aggregate_to_weekly',
    'ScoringEngine',
    'RiskSynthesizer',
    'BacktestSimulator',
    'ComprehensiveAnalyzer',
    'InsufficientDataError'
]
