"""Daily price bar model."""

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence


class CandleValidationError(ValueError):
    """Raised when a candle or a candle series breaks the OHLCV invariants"""


@dataclass(frozen=True)
class Candle:
    """One daily bar. Prices are floats, volume is non-negative."""
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float
    vwap: Optional[float] = None

    def __post_init__(self):
        for field_name in ('open', 'high', 'low', 'close', 'volume'):
            value = getattr(self, field_name)
            if not math.isfinite(value):
                raise CandleValidationError(f"{self.date}: {field_name} is not finite ({value})")
        if self.vwap is not None and not math.isfinite(self.vwap):
            raise CandleValidationError(f"{self.date}: vwap is not finite ({self.vwap})")
        if self.high < max(self.open, self.close, self.low):
            raise CandleValidationError(
                f"{self.date}: high {self.high} below open/close/low"
            )
        if self.low > min(self.open, self.close, self.high):
            raise CandleValidationError(
                f"{self.date}: low {self.low} above open/close/high"
            )
        if self.volume < 0:
            raise CandleValidationError(f"{self.date}: negative volume {self.volume}")


def validate_series(candles: Sequence[Candle]) -> None:
    """Dates must be unique and strictly ascending."""
    for prev, curr in zip(candles, candles[1:]):
        if curr.date <= prev.date:
            raise CandleValidationError(
                f"Candle dates must be strictly ascending: {prev.date} then {curr.date}"
            )
