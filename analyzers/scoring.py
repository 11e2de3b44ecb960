"""Per-indicator sub-scores, the weighted composite and recommendation tiers."""

from dataclasses import dataclass, fields
from typing import Optional, Sequence, Tuple

from models.analysis import (
    ADXResult,
    BollingerBands,
    Divergence,
    IndicatorSet,
    PatternMatch,
    PatternType,
    Recommendation,
    SubScore,
    WeeklyTrend,
)
from models.config import (
    ADX_TRENDING_LEVEL,
    BREAKOUT_POINTS,
    BUY_THRESHOLD,
    HOLD_THRESHOLD,
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_SCORE,
    PATTERN_POINTS,
    RS_SCORE_BANDS,
    RS_SCORE_FLOOR,
    RSI_SCORE_BANDS,
    RSI_SCORE_FLOOR,
    SMA150_STRONG_PCT,
    SMA150_WEAK_PCT,
    STRONG_BUY_THRESHOLD,
    VOLUME_RATIO_BANDS,
    VOLUME_RATIO_FLOOR,
    ScoringWeights,
)


@dataclass(frozen=True)
class FactorScores:
    """Raw 0-10 scores keyed like ScoringWeights"""
    sma150: float
    relative_strength: float
    volume: float
    rsi: float
    macd: float
    bollinger: float
    pattern: float
    rsi_divergence: float
    weekly_trend: float
    vwap_support: float
    adx: float
    parabolic_sar: float


def _banded(value: float, bands: Sequence[Tuple[float, int]], floor: int, strict: bool = False) -> int:
    for threshold, score in bands:
        if (value > threshold) if strict else (value >= threshold):
            return score
    return floor


class ScoringEngine:
    """Maps indicator values to 0-10 scores and combines them with fixed weights"""

    @staticmethod
    def score_sma150(price: float, sma150: float) -> int:
        if sma150 == 0:
            return NEUTRAL_SCORE
        diff_pct = (price - sma150) / sma150 * 100
        if diff_pct >= SMA150_STRONG_PCT:
            return 10
        if diff_pct > 0:
            return 7
        if diff_pct > SMA150_WEAK_PCT:
            return 4
        return 1

    @staticmethod
    def score_vwap_support(price: float, vwma: float) -> int:
        if vwma == 0:
            return NEUTRAL_SCORE
        return 10 if price > vwma else 3

    @staticmethod
    def score_volume(last_volume: float, avg_volume: float) -> int:
        if avg_volume <= 0:
            return NEUTRAL_SCORE
        return _banded(last_volume / avg_volume, VOLUME_RATIO_BANDS, VOLUME_RATIO_FLOOR)

    @staticmethod
    def score_rsi(rsi: float) -> int:
        return _banded(rsi, RSI_SCORE_BANDS, RSI_SCORE_FLOOR)

    @staticmethod
    def score_macd(line: float, signal: float) -> int:
        if line > signal and line > 0:
            return 10
        if line > signal:
            return 7
        if line < signal and line > 0:
            return 4
        return 1

    @staticmethod
    def score_adx(adx: ADXResult) -> int:
        if adx.adx > ADX_TRENDING_LEVEL and adx.pdi > adx.ndi:
            return 10
        if adx.pdi > adx.ndi:
            return 7
        if adx.adx > ADX_TRENDING_LEVEL and adx.pdi < adx.ndi:
            return 2
        return NEUTRAL_SCORE

    @staticmethod
    def score_bollinger(price: float, bands: BollingerBands) -> int:
        if price > bands.upper:
            return 10
        if price > bands.middle + (bands.upper - bands.middle) / 2:
            return 8
        if price > bands.middle:
            return 6
        return 3

    @staticmethod
    def score_sar(price: float, sar: float) -> int:
        return 10 if price > sar else 1

    @staticmethod
    def score_relative_strength(rs: float) -> int:
        return _banded(rs, RS_SCORE_BANDS, RS_SCORE_FLOOR, strict=True)

    @staticmethod
    def score_divergence(divergence: Optional[Divergence]) -> int:
        if divergence is Divergence.BULLISH:
            return 10
        if divergence is Divergence.BEARISH:
            return 1
        return NEUTRAL_SCORE

    @staticmethod
    def score_weekly_trend(trend: WeeklyTrend) -> int:
        if trend is WeeklyTrend.BULLISH:
            return 10
        if trend is WeeklyTrend.BEARISH:
            return 1
        return NEUTRAL_SCORE

    @staticmethod
    def score_pattern(pattern: PatternMatch, is_breakout: bool) -> int:
        """Pattern points plus the 52-week breakout bonus, clamped to [1, 10]; nothing found scores 5."""
        raw = PATTERN_POINTS.get(pattern.pattern.value, 0) + (BREAKOUT_POINTS if is_breakout else 0)
        if raw == 0:
            return NEUTRAL_SCORE
        return max(MIN_SCORE, min(MAX_SCORE, raw))

    @staticmethod
    def score_factors(price: float, ind: IndicatorSet, pattern: PatternMatch) -> FactorScores:
        return FactorScores(
            sma150=ScoringEngine.score_sma150(price, ind.sma150),
            relative_strength=ScoringEngine.score_relative_strength(ind.relative_strength),
            volume=ScoringEngine.score_volume(ind.last_volume, ind.volume_avg20),
            rsi=ScoringEngine.score_rsi(ind.rsi),
            macd=ScoringEngine.score_macd(ind.macd.line, ind.macd.signal),
            bollinger=ScoringEngine.score_bollinger(price, ind.bollinger),
            pattern=ScoringEngine.score_pattern(pattern, ind.is_breakout),
            rsi_divergence=ScoringEngine.score_divergence(ind.rsi_divergence),
            weekly_trend=ScoringEngine.score_weekly_trend(ind.weekly_trend),
            vwap_support=ScoringEngine.score_vwap_support(price, ind.vwma),
            adx=ScoringEngine.score_adx(ind.adx),
            parabolic_sar=ScoringEngine.score_sar(price, ind.sar),
        )

    @staticmethod
    def composite(scores: FactorScores, weights: Optional[ScoringWeights] = None) -> float:
        """Weighted sum of the twelve sub-scores, rounded to one decimal and kept in [0, 10]"""
        weights = weights or ScoringWeights()
        w = weights.as_dict()
        total = sum(getattr(scores, f.name) * w[f.name] for f in fields(scores))
        return round(max(0.0, min(10.0, total)), 1)

    @staticmethod
    def recommendation(score: float) -> Recommendation:
        if score >= STRONG_BUY_THRESHOLD:
            return Recommendation.STRONG_BUY
        if score >= BUY_THRESHOLD:
            return Recommendation.BUY
        if score >= HOLD_THRESHOLD:
            return Recommendation.HOLD
        return Recommendation.SELL

    @staticmethod
    def build_sub_scores(price: float, ind: IndicatorSet, pattern: PatternMatch,
                         scores: FactorScores,
                         weights: Optional[ScoringWeights] = None) -> Tuple[SubScore, ...]:
        """Sub-scores with display values and the rationale behind each score"""
        w = (weights or ScoringWeights()).as_dict()
        rs = ind.relative_strength
        above_sma = price > ind.sma150
        vol_ratio = ind.last_volume / ind.volume_avg20 if ind.volume_avg20 else 0.0
        above_upper = price > ind.bollinger.upper

        if pattern.pattern is PatternType.CUP_AND_HANDLE:
            pattern_value, pattern_criteria = 'Cup & Handle', 'Cup & Handle detected.'
        elif pattern.pattern is PatternType.ELLIOTT_IMPULSE:
            pattern_value, pattern_criteria = 'Elliott Impulse', 'Elliott Impulse detected.'
        elif pattern.pattern is PatternType.DOUBLE_BOTTOM:
            pattern_value, pattern_criteria = 'Double Bottom', 'Double Bottom (W) detected.'
        elif pattern.pattern is PatternType.INVERSE_HEAD_AND_SHOULDERS:
            pattern_value, pattern_criteria = 'Inverse H&S', 'Inverse Head & Shoulders detected.'
        elif ind.is_breakout:
            pattern_value, pattern_criteria = 'Breakout', 'Price testing 52-Week High.'
        else:
            pattern_value, pattern_criteria = 'Consolidation', 'No major bullish pattern.'

        if price > ind.sma150 * 1.1:
            sma_criteria = 'Price is > 10% above SMA 150 (Strong Uptrend)'
        elif above_sma:
            sma_criteria = 'Price is above SMA 150 (Uptrend)'
        else:
            sma_criteria = 'Price is below SMA 150 (Downtrend)'

        if ind.rsi > 70:
            rsi_description = 'Strong (>70)'
        elif ind.rsi < 30:
            rsi_description = 'Oversold'
        else:
            rsi_description = 'Neutral'

        divergence = ind.rsi_divergence
        if divergence is Divergence.BULLISH:
            div_description = 'Bullish Divergence'
        elif divergence is Divergence.BEARISH:
            div_description = 'Bearish Divergence'
        else:
            div_description = 'Neutral/None'

        return (
            SubScore('RS vs Market', scores.relative_strength, w['relative_strength'],
                     f"{(rs - 1) * 100:.1f}%",
                     'Outperforming benchmark' if rs > 1 else 'Underperforming',
                     rs > 1.0, 'Performance vs benchmark over 6 months.'),
            SubScore('SMA 150 Trend', scores.sma150, w['sma150'], f"{ind.sma150:.2f}",
                     'Bullish Trend' if above_sma else 'Bearish Trend', above_sma, sma_criteria),
            SubScore('Weekly Trend', scores.weekly_trend, w['weekly_trend'], ind.weekly_trend.value,
                     'Aligned (Bullish)' if ind.weekly_trend is WeeklyTrend.BULLISH else 'Divergent',
                     ind.weekly_trend is WeeklyTrend.BULLISH,
                     'Weekly close above the 20-week SMA (multi-timeframe alignment).'),
            SubScore('Structure & Patterns', scores.pattern, w['pattern'], pattern_value,
                     'Chart Formation', pattern.found or ind.is_breakout, pattern_criteria),
            SubScore('Volume Spike', scores.volume, w['volume'], f"{ind.last_volume / 1_000_000:.1f}M",
                     f"Vol {vol_ratio * 100:.0f}% of Avg", ind.last_volume > ind.volume_avg20,
                     'Volume above the 20-day average indicates institutional participation.'),
            SubScore('RSI Momentum', scores.rsi, w['rsi'], f"{ind.rsi:.1f}", rsi_description,
                     ind.rsi > 50, 'RSI > 50 is Bullish. RSI > 70 is Strong Momentum.'),
            SubScore('Bollinger Bands', scores.bollinger, w['bollinger'],
                     'Breakout' if above_upper else 'In Range',
                     'Upper Band Breach' if above_upper else 'Within Bands',
                     above_upper, 'Price relative to Bollinger Bands.'),
            SubScore('RSI Divergence', scores.rsi_divergence, w['rsi_divergence'],
                     divergence.value if divergence else 'None', div_description,
                     divergence is Divergence.BULLISH,
                     'Checks for divergence between Price and RSI pivots.'),
            SubScore('MACD Momentum', scores.macd, w['macd'],
                     f"{ind.macd.line:.2f} / {ind.macd.signal:.2f}",
                     'Bullish Cross' if scores.macd >= 7 else 'Bearish/Weak',
                     scores.macd >= 7, 'MACD Line above Signal Line.'),
            SubScore('Inst. Support (VWAP)', scores.vwap_support, w['vwap_support'], f"{ind.vwma:.2f}",
                     'Price > VWAP' if price > ind.vwma else 'Price < VWAP', price > ind.vwma,
                     'Price above Volume Weighted Average Price (or VWMA 20).'),
            SubScore('ADX Trend Strength', scores.adx, w['adx'], f"{ind.adx.adx:.1f}",
                     'Strong Trend' if scores.adx >= 7 else 'Weak/Choppy', scores.adx >= 7,
                     'ADX > 25 indicates strong trend; +DI > -DI is bullish.'),
            SubScore('Parabolic SAR', scores.parabolic_sar, w['parabolic_sar'], f"{ind.sar:.2f}",
                     'Uptrend (Dots Below)' if price > ind.sar else 'Downtrend', price > ind.sar,
                     'Price above SAR dots indicates uptrend.'),
        )
