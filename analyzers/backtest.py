"""Single-position long-only replay of a simplified trend/RSI signal."""

from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from analyzers.technical import TechnicalAnalyzer
from models.analysis import (
    BacktestResult,
    BacktestTrade,
    EquityPoint,
    ExitReason,
    PositionState,
)
from models.config import EngineConfig


class BacktestSimulator:
    """
    Replays the last min(backtest_bars, len - backtest_warmup) bars.

    The per-bar signal (0-10) is a simpler heuristic than the live composite:
    close > MA50 (+3), close > MA20 (+2), RSI > 50 (+2), RSI > 70 (+1),
    RSI rising (+2). Flat -> Long when signal >= entry threshold (enter at
    close, stop = entry - 2 ATR, target = entry + 4 ATR). Long -> Flat on
    stop (checked first), then target, then signal < exit threshold.
    """

    @staticmethod
    def signal_scores(df: pd.DataFrame, config: Optional[EngineConfig] = None) -> np.ndarray:
        """Signal score for every bar as it would have been computed on that day"""
        config = config or EngineConfig()
        close = df['Close']
        ma50 = close.rolling(window=50).mean().fillna(0.0).to_numpy()
        ma20 = close.rolling(window=20).mean().fillna(0.0).to_numpy()
        rsi = TechnicalAnalyzer.rsi_history(close, config.rsi_period)
        prev_rsi = np.concatenate(([50.0], rsi[:-1]))
        closes = close.to_numpy(dtype=float)

        score = np.zeros(len(df))
        score += np.where(closes > ma50, 3, 0)
        score += np.where(closes > ma20, 2, 0)
        score += np.where(rsi > 50, 2, 0)
        score += np.where(rsi > 70, 1, 0)
        score += np.where(rsi > prev_rsi, 2, 0)
        return score

    @staticmethod
    def run(df: pd.DataFrame, config: Optional[EngineConfig] = None) -> BacktestResult:
        config = config or EngineConfig()
        n = len(df)
        initial = config.backtest_initial_equity
        start = max(config.backtest_warmup, n - config.backtest_bars)
        if start >= n:
            logger.debug(f"Backtest skipped: {n} bars leave nothing after the {config.backtest_warmup}-bar warmup")
            return BacktestResult((), (), 0, 0.0, 0.0, 0.0, PositionState.CASH)

        dates = df.index
        highs = df['High'].to_numpy(dtype=float)
        lows = df['Low'].to_numpy(dtype=float)
        closes = df['Close'].to_numpy(dtype=float)
        atr = TechnicalAnalyzer.atr_history(df, config.atr_period)
        signal = BacktestSimulator.signal_scores(df, config)

        trades: List[BacktestTrade] = []
        curve: List[EquityPoint] = []
        cash = initial
        shares = 0.0
        in_position = False
        entry_price = entry_date = None
        stop = target = 0.0

        for i in range(start, n):
            if in_position:
                exit_reason = exit_price = None
                if lows[i] <= stop:
                    exit_reason, exit_price = ExitReason.STOP, stop
                elif highs[i] >= target:
                    exit_reason, exit_price = ExitReason.TARGET, target
                elif signal[i] < config.backtest_exit_threshold:
                    exit_reason, exit_price = ExitReason.SIGNAL, closes[i]

                if exit_reason is not None:
                    cash = shares * exit_price
                    trades.append(BacktestTrade(
                        entry_date=entry_date,
                        entry_price=float(entry_price),
                        pnl_percent=float((exit_price - entry_price) / entry_price * 100),
                        exit_reason=exit_reason,
                        exit_date=dates[i],
                        exit_price=float(exit_price),
                    ))
                    in_position = False
                    shares = 0.0
                elif closes[i] > entry_price + config.backtest_stop_atr * atr[i]:
                    # trail the stop up, never down
                    stop = max(stop, closes[i] - config.backtest_stop_atr * atr[i])
            elif signal[i] >= config.backtest_entry_threshold:
                in_position = True
                entry_price = closes[i]
                entry_date = dates[i]
                stop = entry_price - config.backtest_stop_atr * atr[i]
                target = entry_price + config.backtest_target_atr * atr[i]
                shares = cash / entry_price

            equity = shares * closes[i] if in_position else cash
            curve.append(EquityPoint(dates[i], float(equity)))

        if in_position:
            trades.append(BacktestTrade(
                entry_date=entry_date,
                entry_price=float(entry_price),
                pnl_percent=float((closes[-1] - entry_price) / entry_price * 100),
                exit_reason=ExitReason.OPEN,
            ))

        closed = [t for t in trades if t.exit_reason is not ExitReason.OPEN]
        wins = sum(1 for t in closed if t.pnl_percent > 0)
        win_rate = wins / len(closed) * 100 if closed else 0.0
        total_return = (curve[-1].value - initial) / initial * 100

        bh_start = closes[start]
        buy_and_hold = (closes[-1] - bh_start) / bh_start * 100 if bh_start > 0 else 0.0

        return BacktestResult(
            trades=tuple(trades),
            equity_curve=tuple(curve),
            total_trades=len(closed),
            win_rate=float(win_rate),
            total_return=float(total_return),
            buy_and_hold_return=float(buy_and_hold),
            final_state=PositionState.LONG if in_position else PositionState.CASH,
        )
