"""Technical indicator calculations."""

from typing import Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from models.analysis import ADXResult, BollingerBands, KeltnerChannels, MACDResult
from models.config import FLAT_BANDWIDTH_EPSILON


class TechnicalAnalyzer:
    """Calculate technical indicators over the tail of an OHLCV DataFrame.

    Every method returns a neutral default (0, 50 or the current price) when the
    series is shorter than the indicator's own window instead of raising.
    """

    @staticmethod
    def sma(prices: pd.Series, period: int) -> float:
        """Simple moving average of the last `period` values (0 when too short)."""
        if period <= 0 or len(prices) < period:
            return 0.0
        return float(prices.tail(period).mean())

    @staticmethod
    def ema(series: pd.Series, period: int) -> pd.Series:
        """Exponential Moving Average using pandas ewm (seeded with the first value, k = 2/(n+1))."""
        return pd.to_numeric(series, errors='coerce').ewm(span=period, adjust=False).mean()

    @staticmethod
    def vwma(df: pd.DataFrame, period: int = 20) -> float:
        """Volume weighted moving average, used as a VWAP proxy on daily bars."""
        if len(df) < period:
            return 0.0
        tail = df.tail(period)
        total_volume = float(tail['Volume'].sum())
        if total_volume == 0:
            return 0.0
        return float((tail['Close'] * tail['Volume']).sum() / total_volume)

    @staticmethod
    def wilders_history(values: np.ndarray, period: int) -> np.ndarray:
        """
        Wilder's smoothing for every prefix of `values`.

        out[j] is the smoothed value after j+1 inputs: the simple mean of the first
        `period` values, then (prev * (period - 1) + value) / period. Entries before
        the first full window are 0.
        """
        values = np.asarray(values, dtype=float)
        out = np.zeros(len(values))
        if period <= 0 or len(values) < period:
            return out
        smoothed = float(values[:period].sum()) / period
        out[period - 1] = smoothed
        for j in range(period, len(values)):
            smoothed = (smoothed * (period - 1) + values[j]) / period
            out[j] = smoothed
        return out

    @staticmethod
    def wilders_smoothing(values: np.ndarray, period: int) -> float:
        if len(values) < period:
            return 0.0
        return float(TechnicalAnalyzer.wilders_history(values, period)[-1])

    @staticmethod
    def rsi_history(prices: pd.Series, period: int = 14) -> np.ndarray:
        """
        RSI for every bar using Wilder's smoothing of gains and losses.

        The first `period + 1` entries are seeded with 50 so the array lines up with
        the price series; divergence detection reads historical values from it.
        """
        closes = np.asarray(prices, dtype=float)
        n = len(closes)
        if n <= period:
            return np.full(n, 50.0)

        diffs = np.diff(closes)
        gains = np.clip(diffs, 0.0, None)
        losses = np.clip(-diffs, 0.0, None)

        avg_gain = float(gains[:period].sum()) / period
        avg_loss = float(losses[:period].sum()) / period

        out = np.full(n, 50.0)
        for i in range(period + 1, n):
            avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
            if avg_loss == 0.0 and avg_gain == 0.0:
                out[i] = 50.0
            elif avg_loss == 0.0:
                out[i] = 100.0
            else:
                rs = avg_gain / avg_loss
                out[i] = 100.0 - (100.0 / (1.0 + rs))
        return out

    @staticmethod
    def calculate_rsi(prices: pd.Series, period: int = 14) -> float:
        """Latest RSI value"""
        history = TechnicalAnalyzer.rsi_history(prices, period)
        return float(history[-1]) if len(history) else 50.0

    @staticmethod
    def calculate_macd(prices: pd.Series, fast: int = 12, slow: int = 26, signal: int = 9) -> MACDResult:
        """MACD line (EMA fast - EMA slow), its EMA signal line and the histogram."""
        if len(prices) < slow:
            logger.debug(f"MACD needs {slow} bars, got {len(prices)}")
            return MACDResult(line=0.0, signal=0.0, histogram=0.0)

        macd_line = TechnicalAnalyzer.ema(prices, fast) - TechnicalAnalyzer.ema(prices, slow)
        signal_line = macd_line.ewm(span=signal, adjust=False).mean()

        current_macd = float(macd_line.iloc[-1])
        current_signal = float(signal_line.iloc[-1])
        return MACDResult(
            line=current_macd,
            signal=current_signal,
            histogram=current_macd - current_signal,
        )

    @staticmethod
    def true_range(df: pd.DataFrame) -> np.ndarray:
        """True range from the second bar on: max(H-L, |H-prevC|, |L-prevC|)"""
        high = df['High'].to_numpy(dtype=float)
        low = df['Low'].to_numpy(dtype=float)
        close = df['Close'].to_numpy(dtype=float)
        if len(close) < 2:
            return np.zeros(0)
        prev_close = close[:-1]
        return np.maximum(
            high[1:] - low[1:],
            np.maximum(np.abs(high[1:] - prev_close), np.abs(low[1:] - prev_close)),
        )

    @staticmethod
    def atr_history(df: pd.DataFrame, period: int = 14) -> np.ndarray:
        """
        ATR (Wilder) as seen at each bar, aligned to the DataFrame rows.

        Entry i equals calculate_atr(df.iloc[:i + 1]); bars without a full window are 0.
        """
        trs = TechnicalAnalyzer.true_range(df)
        return np.concatenate(([0.0], TechnicalAnalyzer.wilders_history(trs, period)))[:len(df)]

    @staticmethod
    def calculate_atr(df: pd.DataFrame, period: int = 14) -> float:
        """
        Calculate Average True Range (ATR) with Wilder's smoothing.

        Args:
            df: DataFrame with High, Low, Close columns
            period: ATR period (default 14)

        Returns:
            Current ATR value, 0.0 when fewer than period + 1 bars
        """
        if len(df) < period + 1:
            logger.debug(f"ATR needs {period + 1} bars, got {len(df)}")
            return 0.0
        return TechnicalAnalyzer.wilders_smoothing(TechnicalAnalyzer.true_range(df), period)

    @staticmethod
    def calculate_bollinger_bands(prices: pd.Series, period: int = 20, std_mult: float = 2.0) -> BollingerBands:
        """SMA(period) +/- std_mult population standard deviations"""
        if len(prices) < period:
            return BollingerBands(upper=0.0, middle=0.0, lower=0.0, bandwidth=0.0)
        window = prices.tail(period)
        middle = float(window.mean())
        std = float(window.std(ddof=0))
        upper = middle + std * std_mult
        lower = middle - std * std_mult
        bandwidth = (upper - lower) / middle if middle else 0.0
        return BollingerBands(upper=upper, middle=middle, lower=lower, bandwidth=bandwidth)

    @staticmethod
    def calculate_keltner_channels(prices: pd.Series, atr: float, period: int = 20,
                                   atr_mult: float = 1.5) -> KeltnerChannels:
        """EMA(period) +/- atr_mult * ATR"""
        middle = float(TechnicalAnalyzer.ema(prices, period).iloc[-1])
        return KeltnerChannels(
            upper=middle + atr_mult * atr,
            middle=middle,
            lower=middle - atr_mult * atr,
        )

    @staticmethod
    def is_squeeze(bollinger: BollingerBands, keltner: KeltnerChannels) -> bool:
        """Bollinger Bands strictly inside the Keltner Channel, or collapsed to zero width."""
        if bollinger.middle > 0 and abs(bollinger.bandwidth) <= FLAT_BANDWIDTH_EPSILON:
            return True
        return bollinger.upper < keltner.upper and bollinger.lower > keltner.lower

    @staticmethod
    def calculate_adx(df: pd.DataFrame, period: int = 14) -> ADXResult:
        """
        ADX with +DI / -DI from Wilder-smoothed directional movement.

        DX = |+DI - -DI| / (+DI + -DI) * 100 per bar, ADX = Wilder smoothing of DX.
        Needs 2 * period bars, otherwise returns the neutral 20/20/20.
        """
        n = len(df)
        if n < period * 2:
            logger.debug(f"ADX needs {period * 2} bars, got {n}")
            return ADXResult(adx=20.0, pdi=20.0, ndi=20.0)

        high = df['High'].to_numpy(dtype=float)
        low = df['Low'].to_numpy(dtype=float)
        up_move = high[1:] - high[:-1]
        down_move = low[:-1] - low[1:]
        plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
        minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

        s_tr = TechnicalAnalyzer.wilders_history(TechnicalAnalyzer.true_range(df), period)[period - 1:]
        s_plus = TechnicalAnalyzer.wilders_history(plus_dm, period)[period - 1:]
        s_minus = TechnicalAnalyzer.wilders_history(minus_dm, period)[period - 1:]

        safe_tr = np.where(s_tr > 0, s_tr, 1.0)
        pdi = np.where(s_tr > 0, s_plus / safe_tr * 100.0, 0.0)
        ndi = np.where(s_tr > 0, s_minus / safe_tr * 100.0, 0.0)
        di_sum = pdi + ndi
        dx = np.where(di_sum > 0, np.abs(pdi - ndi) / np.where(di_sum > 0, di_sum, 1.0) * 100.0, 0.0)

        adx = TechnicalAnalyzer.wilders_smoothing(dx, period)
        return ADXResult(adx=float(adx), pdi=float(pdi[-1]), ndi=float(ndi[-1]))

    @staticmethod
    def calculate_parabolic_sar(df: pd.DataFrame, step: float = 0.02, max_step: float = 0.2) -> float:
        """
        Iterative Parabolic SAR starting in an uptrend at the first low.

        The acceleration factor grows by `step` on each new extreme point up to
        `max_step` and resets when price crosses the SAR and the trend flips.
        """
        high = df['High'].to_numpy(dtype=float)
        low = df['Low'].to_numpy(dtype=float)
        if len(high) < 2:
            return float(df['Close'].iloc[-1])

        rising = True
        sar = low[0]
        ep = high[0]
        af = step

        for i in range(1, len(high)):
            sar = sar + af * (ep - sar)
            if rising:
                if high[i] > ep:
                    ep = high[i]
                    af = min(af + step, max_step)
                if low[i] < sar:
                    rising = False
                    sar = ep
                    ep = low[i]
                    af = step
            else:
                if low[i] < ep:
                    ep = low[i]
                    af = min(af + step, max_step)
                if high[i] > sar:
                    rising = True
                    sar = ep
                    ep = high[i]
                    af = step
        return float(sar)

    @staticmethod
    def calculate_resistance(df: pd.DataFrame, lookback: int = 250) -> float:
        """52-week high (highest high of the last `lookback` bars)"""
        return float(df['High'].tail(lookback).max())

    @staticmethod
    def calculate_fib_level(df: pd.DataFrame, lookback: int = 100) -> Optional[float]:
        """Which Fibonacci retracement of the recent range price sits above (0.618, 0.5 or None)."""
        tail = df.tail(lookback)
        recent_high = float(tail['High'].max())
        recent_low = float(tail['Low'].min())
        price = float(df['Close'].iloc[-1])
        price_range = recent_high - recent_low
        if price > recent_low + price_range * 0.618:
            return 0.618
        if price > recent_low + price_range * 0.5:
            return 0.5
        return None

    @staticmethod
    def calculate_volume_profile(df: pd.DataFrame, period: int = 20) -> Tuple[float, float]:
        """Average volume over the last `period` bars and the last bar's volume"""
        volume = df['Volume']
        return float(volume.tail(period).mean()), float(volume.iloc[-1])
