"""Daily to weekly resampling and weekly trend alignment."""

from datetime import date, timedelta
from itertools import groupby
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from analyzers.technical import TechnicalAnalyzer
from models.analysis import WeeklyTrend
from models.candle import Candle
from models.config import EngineConfig
from utils.helpers import candles_to_frame


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`"""
    return day - timedelta(days=day.weekday())


def aggregate_to_weekly(candles: Sequence[Candle]) -> List[Candle]:
    """
    Roll daily candles up into one candle per ISO week, dated on the week's Monday.

    open = first open, high = max high, low = min low, close = last close,
    volume = sum. Input order is preserved; new Candle objects are produced.
    """
    weekly = []
    for monday, days in groupby(candles, key=lambda c: week_start(c.date)):
        days = list(days)
        weekly.append(Candle(
            date=monday,
            open=days[0].open,
            high=max(c.high for c in days),
            low=min(c.low for c in days),
            close=days[-1].close,
            volume=sum(c.volume for c in days),
        ))
    return weekly


def weekly_trend(candles: Sequence[Candle],
                 config: Optional[EngineConfig] = None) -> Tuple[WeeklyTrend, List[Candle]]:
    """
    Weekly close above its `weekly_sma_period`-week SMA -> BULLISH, otherwise BEARISH.
    NEUTRAL when there are fewer weekly bars than the SMA window.
    """
    config = config or EngineConfig()
    weekly = aggregate_to_weekly(candles)
    if len(weekly) < config.weekly_sma_period:
        logger.debug(f"Weekly trend neutral: {len(weekly)} weeks < {config.weekly_sma_period}")
        return WeeklyTrend.NEUTRAL, weekly

    closes = candles_to_frame(weekly)['Close']
    sma = TechnicalAnalyzer.sma(closes, config.weekly_sma_period)
    if weekly[-1].close > sma:
        return WeeklyTrend.BULLISH, weekly
    return WeeklyTrend.BEARISH, weekly
