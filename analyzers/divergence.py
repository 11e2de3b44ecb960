"""RSI divergence and relative strength versus a benchmark."""

from bisect import bisect_right
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from models.analysis import Divergence
from models.config import EngineConfig


class DivergenceAnalyzer:
    """Price/RSI divergence and benchmark relative strength"""

    @staticmethod
    def detect_rsi_divergence(df: pd.DataFrame, rsi_values: np.ndarray,
                              config: Optional[EngineConfig] = None) -> Optional[Divergence]:
        """
        Compare the last two local price pivots (+/- `divergence_window` bars) in the
        trailing `divergence_scan_bars` against the RSI at the same bars.

        - BULLISH: lower low in price, higher RSI, RSI < 50
        - BEARISH: higher high in price, lower RSI, RSI > 50
        The latest pivot must sit within the last `divergence_recent_bars` bars.
        Bullish is evaluated first; when it holds, bearish is not checked.
        """
        config = config or EngineConfig()
        n = len(df)
        if n < config.divergence_min_bars:
            return None

        lows, highs = DivergenceAnalyzer._local_pivots(df, rsi_values, config)

        if len(lows) >= 2:
            (_, prev_price, prev_rsi), (last_idx, last_price, last_rsi) = lows[-2:]
            if (n - last_idx <= config.divergence_recent_bars
                    and last_price < prev_price and last_rsi > prev_rsi and last_rsi < 50):
                return Divergence.BULLISH

        if len(highs) >= 2:
            (_, prev_price, prev_rsi), (last_idx, last_price, last_rsi) = highs[-2:]
            if (n - last_idx <= config.divergence_recent_bars
                    and last_price > prev_price and last_rsi < prev_rsi and last_rsi > 50):
                return Divergence.BEARISH

        return None

    @staticmethod
    def _local_pivots(df: pd.DataFrame, rsi_values: np.ndarray,
                      config: EngineConfig) -> Tuple[List[tuple], List[tuple]]:
        # A bar ties with its neighbours and still counts: only a strictly lower
        # (higher) neighbour disqualifies it.
        window = config.divergence_window
        high = df['High'].to_numpy(dtype=float)
        low = df['Low'].to_numpy(dtype=float)
        n = len(df)
        start = max(window, n - config.divergence_scan_bars)

        lows, highs = [], []
        for i in range(start, n - window):
            neighbours = np.r_[i - window:i, i + 1:i + window + 1]
            if low[neighbours].min() >= low[i]:
                lows.append((i, float(low[i]), float(rsi_values[i])))
            if high[neighbours].max() <= high[i]:
                highs.append((i, float(high[i]), float(rsi_values[i])))
        return lows, highs

    @staticmethod
    def calculate_relative_strength(df: pd.DataFrame, benchmark: Optional[pd.DataFrame],
                                    config: Optional[EngineConfig] = None) -> float:
        """
        RS ratio (1 + stock return) / (1 + benchmark return) over `rs_period` bars.

        The benchmark is aligned by calendar date (latest benchmark bar on or before
        each stock date), not by position. Returns the neutral 1.0 when the benchmark
        is missing, too short, or cannot be aligned.
        """
        config = config or EngineConfig()
        if benchmark is None:
            logger.debug("No benchmark supplied; relative strength defaults to 1.0")
            return 1.0
        if len(benchmark) < config.benchmark_min_bars:
            logger.warning(f"Benchmark has {len(benchmark)} bars (< {config.benchmark_min_bars}); relative strength defaults to 1.0")
            return 1.0
        if len(df) < config.min_bars or len(df) <= config.rs_period:
            logger.debug(f"Relative strength needs more than {config.rs_period} bars, got {len(df)}")
            return 1.0

        bench_dates = list(benchmark.index)
        bench_close = benchmark['Close'].to_numpy(dtype=float)
        closes = df['Close'].to_numpy(dtype=float)

        current_date = df.index[-1]
        old_pos = len(df) - 1 - config.rs_period
        old_date = df.index[old_pos]

        bench_current = bisect_right(bench_dates, current_date) - 1
        bench_old = bisect_right(bench_dates, old_date) - 1
        if bench_current < 0 or bench_old < 0 or bench_old >= bench_current:
            logger.warning(f"Benchmark dates do not cover {old_date}..{current_date}; relative strength defaults to 1.0")
            return 1.0

        stock_old, bench_old_price = closes[old_pos], bench_close[bench_old]
        if stock_old == 0 or bench_old_price == 0:
            return 1.0

        stock_perf = (closes[-1] - stock_old) / stock_old
        bench_perf = (bench_close[bench_current] - bench_old_price) / bench_old_price
        if 1.0 + bench_perf == 0:
            return 1.0
        return float((1.0 + stock_perf) / (1.0 + bench_perf))
