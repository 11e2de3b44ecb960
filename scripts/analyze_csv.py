"""
Score a daily candle CSV and print the analysis as JSON

Run: python scripts/analyze_csv.py AAPL data/aapl.csv --benchmark data/spy.csv
"""

import json
import os
import sys

import pandas as pd

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from analyzers.comprehensive import ComprehensiveAnalyzer, InsufficientDataError  # noqa: E402
from models.analysis import Position  # noqa: E402
from models.candle import CandleValidationError  # noqa: E402
from analyzers.risk import RiskSynthesizer  # noqa: E402
from utils.config_loader import load_engine_config  # noqa: E402
from utils.helpers import candles_from_frame  # noqa: E402
from utils.logging_config import logger, setup_logging  # noqa: E402


def _read_candles(path: str):
    df = pd.read_csv(path, parse_dates=['Date'])
    return candles_from_frame(df)


def main(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Technical fitness score for one security")
    parser.add_argument("ticker", help="Ticker symbol (passthrough)")
    parser.add_argument("csv", help="CSV with Date, Open, High, Low, Close, Volume [, VWAP] columns")
    parser.add_argument("--benchmark", help="Benchmark CSV in the same format (e.g. SPY)")
    parser.add_argument("--sma150", type=float, help="Official 150-day SMA override")
    parser.add_argument("--market-cap", type=float, help="Market capitalization (passthrough)")
    parser.add_argument("--entry", type=float, help="Average entry price of a held position")
    parser.add_argument("--quantity", type=float, default=0.0, help="Quantity of the held position")
    parser.add_argument("--env-file", help="Optional .env file with FITNESS_* overrides")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    parser.add_argument("--log-file", help="Optional rotating log file")
    args = parser.parse_args(argv)

    setup_logging(log_file=args.log_file, level=args.log_level.upper())
    config = load_engine_config(args.env_file)

    try:
        candles = _read_candles(args.csv)
        benchmark = _read_candles(args.benchmark) if args.benchmark else None
        result = ComprehensiveAnalyzer.analyze_stock(
            args.ticker,
            candles,
            official_sma150=args.sma150,
            market_cap=args.market_cap,
            benchmark=benchmark,
            config=config,
        )
    except (InsufficientDataError, CandleValidationError, ValueError) as e:
        logger.error(f"❌ Analysis failed for {args.ticker}: {e}")
        return 1

    payload = result.to_dict()
    if args.entry:
        advice = RiskSynthesizer.advise_position(result, Position(args.ticker, args.entry, args.quantity))
        payload['position_advice'] = {
            'action': advice.action,
            'reason': advice.reason,
            'suggested_stop': advice.suggested_stop,
            'suggested_target': advice.suggested_target,
            'pnl_percent': advice.pnl_percent,
        }

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
