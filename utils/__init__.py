"""Utility functions for logging, configuration and candle conversion."""

from .logging_config import setup_logging, logger
from .config_loader import load_engine_config
from .helpers import (
    candles_to_frame,
    candles_from_frame,
    candles_from_records,
    price_digits,
    round_price
)

__all__ = [
    'setup_logging',
    'logger',
    'load_engine_config',
    'candles_to_frame',
    'candles_from_frame',
    'candles_from_records',
    'price_digits',
    'round_price'
]
