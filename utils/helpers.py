"""Helper utility functions."""

from datetime import date
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd
from loguru import logger

from models.candle import Candle


OHLCV_COLUMNS = ['Open', 'High', 'Low', 'Close', 'Volume']


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Build an OHLCV DataFrame (yfinance-style column names) indexed by date.

    The frame is a fresh copy; candles are never aliased.
    """
    frame = pd.DataFrame(
        {
            'Open': [c.open for c in candles],
            'High': [c.high for c in candles],
            'Low': [c.low for c in candles],
            'Close': [c.close for c in candles],
            'Volume': [c.volume for c in candles],
        },
        index=pd.Index([c.date for c in candles], name='Date'),
        dtype=float,
    )
    return frame


def candles_from_frame(df: pd.DataFrame) -> List[Candle]:
    """Convert an OHLCV DataFrame (date index or 'Date' column) into candles.

    Rows with missing prices are dropped. An optional 'VWAP' column is carried over.
    """
    frame = df.copy()
    frame.columns = [str(col).strip().title() if str(col).lower() != 'vwap' else 'VWAP'
                     for col in frame.columns]
    if 'Date' in frame.columns:
        frame = frame.set_index('Date')

    missing = [col for col in OHLCV_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Missing OHLCV columns: {', '.join(missing)}")

    before = len(frame)
    frame = frame.dropna(subset=OHLCV_COLUMNS)
    if len(frame) < before:
        logger.debug(f"Dropped {before - len(frame)} rows with missing prices")

    has_vwap = 'VWAP' in frame.columns
    candles = []
    for idx, row in frame.sort_index().iterrows():
        vwap = row['VWAP'] if has_vwap and pd.notna(row['VWAP']) else None
        candles.append(Candle(
            date=_as_date(idx),
            open=float(row['Open']),
            high=float(row['High']),
            low=float(row['Low']),
            close=float(row['Close']),
            volume=float(row['Volume']),
            vwap=float(vwap) if vwap is not None else None,
        ))
    return candles


def candles_from_records(records: Iterable[Dict[str, Any]]) -> List[Candle]:
    """Convert dict records (date as ISO string or date) into candles, in the given order"""
    candles = []
    for rec in records:
        vwap = rec.get('vwap')
        candles.append(Candle(
            date=_as_date(rec['date']),
            open=float(rec['open']),
            high=float(rec['high']),
            low=float(rec['low']),
            close=float(rec['close']),
            volume=float(rec.get('volume', 0.0)),
            vwap=float(vwap) if vwap is not None else None,
        ))
    return candles


def round_price(value: float, digits: int = 2) -> float:
    return float(round(value, digits))


def price_digits(price: float) -> int:
    """Quote precision: cents from $1 up, four decimals for sub-dollar prices"""
    return 2 if abs(price) >= 1 else 4


def _as_date(value: Any) -> date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, date):
        return value if type(value) is date else value.date()
    return pd.Timestamp(value).date()
