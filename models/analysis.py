"""Data models for indicator output, risk plans, patterns, backtests and the analysis result."""

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Recommendation(Enum):
    """Recommendation tier derived from the composite score"""
    STRONG_BUY = "Strong Buy"
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"


class PatternType(Enum):
    """Chart structures the pattern detector can report"""
    NONE = "NONE"
    CUP_AND_HANDLE = "CUP_AND_HANDLE"
    ELLIOTT_IMPULSE = "ELLIOTT_IMPULSE"
    DOUBLE_BOTTOM = "DOUBLE_BOTTOM"
    INVERSE_HEAD_AND_SHOULDERS = "INVERSE_HEAD_AND_SHOULDERS"


class Divergence(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class WeeklyTrend(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class ExitReason(Enum):
    TARGET = "Target"
    STOP = "Stop"
    SIGNAL = "Signal"
    OPEN = "Open"


class PositionState(Enum):
    LONG = "Long"
    CASH = "Cash"


@dataclass(frozen=True)
class MACDResult:
    line: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class ADXResult:
    adx: float
    pdi: float
    ndi: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    bandwidth: float


@dataclass(frozen=True)
class KeltnerChannels:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class IndicatorSet:
    """Indicator values for the last bar of a series"""
    rsi: float
    sma150: float
    vwma: float
    macd: MACDResult
    adx: ADXResult
    bollinger: BollingerBands
    keltner: KeltnerChannels
    sar: float
    atr: float
    volume_avg20: float
    last_volume: float
    resistance_level: float
    relative_strength: float
    rsi_divergence: Optional[Divergence]
    squeeze_on: bool
    is_breakout: bool
    fib_level: Optional[float]
    weekly_trend: WeeklyTrend = WeeklyTrend.NEUTRAL
    support_level: Optional[float] = None


@dataclass(frozen=True)
class SubScore:
    """One weighted component of the composite score"""
    name: str
    score: float
    weight: float
    value: str
    description: str
    bullish: bool
    criteria: str


@dataclass(frozen=True)
class PriceTarget:
    price: float
    ratio: float
    label: str


@dataclass(frozen=True)
class RiskAnalysis:
    """Entry, stop and target plan for a long setup"""
    entry_price: float
    entry_source: str
    stop_loss: float
    sl_source: str
    take_profit: float
    tp_source: str
    risk_reward_ratio: float
    thesis: str
    targets: Tuple[PriceTarget, ...]


@dataclass(frozen=True)
class PatternPoint:
    date: date
    price: float
    label: Optional[str] = None


@dataclass(frozen=True)
class PatternMatch:
    pattern: PatternType = PatternType.NONE
    overlay: Tuple[PatternPoint, ...] = ()

    @property
    def found(self) -> bool:
        return self.pattern is not PatternType.NONE


@dataclass(frozen=True)
class BacktestTrade:
    entry_date: date
    entry_price: float
    pnl_percent: float
    exit_reason: ExitReason
    exit_date: Optional[date] = None
    exit_price: Optional[float] = None


@dataclass(frozen=True)
class EquityPoint:
    date: date
    value: float


@dataclass(frozen=True)
class BacktestResult:
    trades: Tuple[BacktestTrade, ...]
    equity_curve: Tuple[EquityPoint, ...]
    total_trades: int
    win_rate: float
    total_return: float
    buy_and_hold_return: float
    final_state: PositionState


@dataclass(frozen=True)
class ScoreHistoryItem:
    date: date
    score: float


@dataclass(frozen=True)
class Position:
    """A held long position (owned by the caller's persistence layer)"""
    ticker: str
    avg_entry_price: float
    quantity: float


@dataclass(frozen=True)
class TradeAdvice:
    action: str
    reason: str
    suggested_stop: float
    suggested_target: float
    pnl_percent: float


@dataclass(frozen=True)
class AnalysisResult:
    """Complete technical analysis of one security"""
    ticker: str
    current_price: float
    change_percent: float
    composite_score: float
    recommendation: Recommendation
    indicators: IndicatorSet
    risk: RiskAnalysis
    sub_scores: Tuple[SubScore, ...]
    pattern: PatternMatch
    score_history: Tuple[ScoreHistoryItem, ...]
    backtest: BacktestResult
    market_cap: Optional[float] = None
    history_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert the analysis to plain JSON-compatible data"""
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value
