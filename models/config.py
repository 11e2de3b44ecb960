"""Scoring weights, score buckets and engine parameters."""

import math
from dataclasses import dataclass, field, fields
from typing import Dict, Tuple


# Score buckets: (threshold, score) pairs checked top-down, value >= threshold wins.
RSI_SCORE_BANDS: Tuple[Tuple[float, int], ...] = ((70.0, 10), (60.0, 8), (50.0, 6), (40.0, 4))
RSI_SCORE_FLOOR = 1

VOLUME_RATIO_BANDS: Tuple[Tuple[float, int], ...] = ((2.0, 10), (1.5, 8), (1.0, 6), (0.5, 4))
VOLUME_RATIO_FLOOR = 1

# Distance of price above SMA150 in percent; strict bands past the first one
SMA150_STRONG_PCT = 10.0
SMA150_WEAK_PCT = -10.0

# RS ratio buckets: value > threshold wins
RS_SCORE_BANDS: Tuple[Tuple[float, int], ...] = ((1.2, 10), (1.05, 8), (0.95, 5))
RS_SCORE_FLOOR = 2

ADX_TRENDING_LEVEL = 25.0

NEUTRAL_SCORE = 5
MAX_SCORE = 10
MIN_SCORE = 1

# Raw pattern points before clamping into [1, 10]
PATTERN_POINTS = {
    "CUP_AND_HANDLE": 10,
    "ELLIOTT_IMPULSE": 8,
    "DOUBLE_BOTTOM": 10,
    "INVERSE_HEAD_AND_SHOULDERS": 9,
}
BREAKOUT_POINTS = 10
BREAKOUT_PROXIMITY = 0.98

# Recommendation tiers: composite >= threshold
STRONG_BUY_THRESHOLD = 8.5
BUY_THRESHOLD = 6.5
HOLD_THRESHOLD = 4.5

# Bands narrower than this (relative to the middle band) count as zero width
FLAT_BANDWIDTH_EPSILON = 1e-9


@dataclass(frozen=True)
class ScoringWeights:
    """Fixed heuristic weights for the twelve sub-scores (must sum to 1.0)"""
    sma150: float = 0.10
    relative_strength: float = 0.15
    volume: float = 0.10
    rsi: float = 0.05
    macd: float = 0.05
    bollinger: float = 0.10
    pattern: float = 0.15
    rsi_divergence: float = 0.05
    weekly_trend: float = 0.10
    vwap_support: float = 0.05
    adx: float = 0.05
    parabolic_sar: float = 0.05

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"Weight {f.name}={value} must be in (0, 1]")
        if not math.isclose(self.total(), 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0, got {self.total():.4f}")

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def total(self) -> float:
        return sum(self.as_dict().values())


@dataclass(frozen=True)
class EngineConfig:
    """Periods, windows and thresholds used across the engine"""
    # Data requirements
    min_bars: int = 50
    pattern_min_bars: int = 150

    # Moving averages
    sma_long_period: int = 150
    vwma_period: int = 20
    volume_avg_period: int = 20
    resistance_lookback: int = 250
    fib_lookback: int = 100

    # Oscillators and volatility
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    atr_period: int = 14
    adx_period: int = 14
    bollinger_period: int = 20
    bollinger_std: float = 2.0
    keltner_period: int = 20
    keltner_atr_mult: float = 1.5
    sar_step: float = 0.02
    sar_max: float = 0.2

    # Pivots and patterns
    pivot_lookback: int = 8
    pattern_recent_bars: int = 60
    cup_min_width: int = 35
    cup_max_lookback: int = 300
    cup_rim_tolerance: float = 0.20
    cup_min_depth: float = 0.10
    cup_max_depth: float = 0.50
    cup_handle_min_bars: int = 5
    elliott_wave1_window: int = 100
    elliott_min_retrace: float = 0.2
    elliott_max_retrace: float = 0.9
    double_bottom_min_gap: int = 10
    double_bottom_tolerance: float = 0.04
    double_bottom_min_peak: float = 0.05
    ihs_shoulder_tolerance: float = 0.08
    ihs_min_gap: int = 10

    # Divergence and relative strength
    divergence_window: int = 3
    divergence_scan_bars: int = 40
    divergence_recent_bars: int = 15
    divergence_min_bars: int = 30
    rs_period: int = 126
    benchmark_min_bars: int = 50

    # Weekly trend
    weekly_sma_period: int = 20

    # Score history
    score_history_points: int = 7

    # Risk management
    stop_atr_mult: float = 2.0
    sar_min_gap_atr: float = 0.5
    stop_floor_pct: float = 0.10
    conservative_target_ratio: float = 1.5
    aggressive_target_ratio: float = 3.0
    pullback_premium: float = 0.02

    # Backtest
    backtest_bars: int = 200
    backtest_warmup: int = 50
    backtest_entry_threshold: float = 8.5
    backtest_exit_threshold: float = 4.5
    backtest_stop_atr: float = 2.0
    backtest_target_atr: float = 4.0
    backtest_initial_equity: float = 10000.0

    weights: ScoringWeights = field(default_factory=ScoringWeights)
