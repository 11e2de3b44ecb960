"""Pivot detection and chart pattern recognition (cup & handle, Elliott impulse, double bottom, inverse H&S)."""

import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import pandas as pd
from loguru import logger

from models.analysis import PatternMatch, PatternPoint, PatternType
from models.config import EngineConfig


@dataclass(frozen=True)
class Pivot:
    index: int
    price: float


class PivotSet:
    """Pivot highs and lows ordered by bar index, with bisect lookups by bar position."""

    def __init__(self, highs: Sequence[Pivot], lows: Sequence[Pivot]):
        self.highs: Tuple[Pivot, ...] = tuple(sorted(highs, key=lambda p: p.index))
        self.lows: Tuple[Pivot, ...] = tuple(sorted(lows, key=lambda p: p.index))
        self._high_idx = [p.index for p in self.highs]
        self._low_idx = [p.index for p in self.lows]

    @staticmethod
    def _between(pivots, positions, start: int, end: int) -> Tuple[Pivot, ...]:
        # exclusive on both ends
        return pivots[bisect_right(positions, start):bisect_left(positions, end)]

    def highs_between(self, start: int, end: int) -> Tuple[Pivot, ...]:
        return self._between(self.highs, self._high_idx, start, end)

    def lows_between(self, start: int, end: int) -> Tuple[Pivot, ...]:
        return self._between(self.lows, self._low_idx, start, end)

    def highs_before(self, end: int) -> Tuple[Pivot, ...]:
        return self.highs[:bisect_left(self._high_idx, end)]

    def lows_before(self, end: int) -> Tuple[Pivot, ...]:
        return self.lows[:bisect_left(self._low_idx, end)]

    def highs_after(self, start: int) -> Tuple[Pivot, ...]:
        return self.highs[bisect_right(self._high_idx, start):]

    def lows_after(self, start: int) -> Tuple[Pivot, ...]:
        return self.lows[bisect_right(self._low_idx, start):]


class PatternDetector:
    """Finds one structural chart pattern at the right edge of a daily series"""

    @staticmethod
    def find_pivots(df: pd.DataFrame, lookback: int = 8) -> PivotSet:
        """
        Pivot highs/lows: bars whose high (low) is strictly above (below) every
        bar within +/- lookback. Bars closer than `lookback` to either edge are never pivots.
        """
        high = df['High'].to_numpy(dtype=float)
        low = df['Low'].to_numpy(dtype=float)
        highs: List[Pivot] = []
        lows: List[Pivot] = []
        for i in range(lookback, len(high) - lookback):
            left = slice(i - lookback, i)
            right = slice(i + 1, i + lookback + 1)
            if high[i] > high[left].max() and high[i] > high[right].max():
                highs.append(Pivot(i, float(high[i])))
            if low[i] < low[left].min() and low[i] < low[right].min():
                lows.append(Pivot(i, float(low[i])))
        return PivotSet(highs, lows)

    @staticmethod
    def detect(df: pd.DataFrame, config: Optional[EngineConfig] = None) -> PatternMatch:
        """
        Run the detectors in priority order (cup & handle, Elliott impulse, double
        bottom, inverse head & shoulders) and return the first match.
        """
        config = config or EngineConfig()
        if len(df) < config.pattern_min_bars:
            logger.debug(f"Pattern search skipped: {len(df)} bars < {config.pattern_min_bars}")
            return PatternMatch()

        pivots = PatternDetector.find_pivots(df, config.pivot_lookback)
        detectors = (
            PatternDetector.detect_cup_and_handle,
            PatternDetector.detect_elliott_impulse,
            PatternDetector.detect_double_bottom,
            PatternDetector.detect_inverse_head_and_shoulders,
        )
        for detector in detectors:
            match = detector(df, pivots, config)
            if match is not None:
                logger.debug(f"Detected {match.pattern.value} ({len(match.overlay)} overlay points)")
                return match
        return PatternMatch()

    @staticmethod
    def detect_cup_and_handle(df: pd.DataFrame, pivots: PivotSet,
                              config: EngineConfig) -> Optional[PatternMatch]:
        """
        O'Neil style cup: right rim among recent highs (highest first), left rim at
        least `cup_min_width` bars earlier and within 20% of the right rim, bottom at
        the lowest pivot low between them. Depth 10-50%, the handle stays above the
        cup midpoint and lasts at least `cup_handle_min_bars` bars.
        """
        n = len(df)
        lows = df['Low'].to_numpy(dtype=float)
        right_rims = sorted(pivots.highs_after(n - config.pattern_recent_bars),
                            key=lambda p: -p.price)

        for right in right_rims:
            handle_bars = n - right.index
            if handle_bars < config.cup_handle_min_bars:
                continue
            handle_low = float(lows[right.index:].min())

            left_rims = [
                p for p in pivots.highs_between(n - config.cup_max_lookback,
                                                right.index - config.cup_min_width + 1)
                if abs(p.price - right.price) / right.price < config.cup_rim_tolerance
            ]
            for left in left_rims:
                between = pivots.lows_between(left.index, right.index)
                if not between:
                    continue
                bottom = min(between, key=lambda p: p.price)

                depth = (right.price - bottom.price) / right.price
                if not config.cup_min_depth <= depth <= config.cup_max_depth:
                    continue
                midpoint = bottom.price + (right.price - bottom.price) * 0.5
                if handle_low <= midpoint:
                    continue

                overlay = PatternDetector._cup_curve(df, left, right, bottom)
                current = float(df['Close'].iloc[-1])
                overlay.append(PatternPoint(df.index[right.index], right.price, 'Handle Start'))
                overlay.append(PatternPoint(df.index[-1], max(current, float(df['High'].iloc[-1])), 'Current'))
                return PatternMatch(PatternType.CUP_AND_HANDLE, tuple(overlay))
        return None

    @staticmethod
    def _cup_curve(df: pd.DataFrame, left: Pivot, right: Pivot, bottom: Pivot) -> List[PatternPoint]:
        """Eased U-shaped polyline from the left rim through the bottom to the right rim"""
        dates = df.index
        points: List[PatternPoint] = []

        left_width = bottom.index - left.index
        for i in range(left.index, bottom.index + 1):
            progress = (i - left.index) / left_width
            factor = math.cos(progress * math.pi / 2) ** 2.5
            price = bottom.price + (left.price - bottom.price) * factor
            points.append(PatternPoint(dates[i], price, 'L. Rim' if i == left.index else None))

        right_width = right.index - bottom.index
        for i in range(bottom.index + 1, right.index + 1):
            progress = (i - bottom.index) / right_width
            factor = math.sin(progress * math.pi / 2) ** 2.5
            price = bottom.price + (right.price - bottom.price) * factor
            if i == bottom.index + 1:
                label = 'Bottom'
            elif i == right.index:
                label = 'R. Rim'
            else:
                label = None
            points.append(PatternPoint(dates[i], price, label))
        return points

    @staticmethod
    def detect_elliott_impulse(df: pd.DataFrame, pivots: PivotSet,
                               config: EngineConfig) -> Optional[PatternMatch]:
        """
        Depth-first search for Start -> H1 -> L2 -> H3 -> L4, newest pivots first,
        with wave 5 developing from L4 to the current close.

        Rules: L2 above Start, L4 above H1 (checked before enumerating starts),
        wave 3 not the shortest of 1/3/5, wave 2 retraces 20-90% of wave 1.
        The first valid count wins.
        """
        n = len(df)
        closes = df['Close'].to_numpy(dtype=float)
        current = float(closes[-1])

        for l4 in reversed(pivots.lows_after(n - config.pattern_recent_bars)):
            wave5 = current - l4.price
            for h3 in reversed(pivots.highs_before(l4.index)):
                if h3.price <= l4.price:
                    continue
                for l2 in reversed(pivots.lows_before(h3.index)):
                    if l2.price >= h3.price:
                        continue
                    wave3 = h3.price - l2.price
                    for h1 in reversed(pivots.highs_between(l2.index - config.elliott_wave1_window, l2.index)):
                        # wave 4 may not overlap wave 1
                        if l4.price <= h1.price:
                            continue
                        for start in reversed(pivots.lows_before(h1.index)):
                            if l2.price <= start.price:
                                continue
                            wave1 = h1.price - start.price
                            if wave1 <= 0:
                                continue
                            if min(wave1, wave3, wave5) == wave3:
                                continue
                            retrace = (h1.price - l2.price) / wave1
                            if not config.elliott_min_retrace <= retrace <= config.elliott_max_retrace:
                                continue

                            dates = df.index
                            overlay = tuple(
                                PatternPoint(dates[p.index], float(closes[p.index]), label)
                                for p, label in ((start, '0'), (h1, '1'), (l2, '2'), (h3, '3'), (l4, '4'))
                            ) + (PatternPoint(dates[-1], current, '5?'),)
                            return PatternMatch(PatternType.ELLIOTT_IMPULSE, overlay)
        return None

    @staticmethod
    def detect_double_bottom(df: pd.DataFrame, pivots: PivotSet,
                             config: EngineConfig) -> Optional[PatternMatch]:
        """
        "W" pattern: the most recent pivot low and an earlier one at least
        `double_bottom_min_gap` bars before it, within 4% in price, with a peak
        between them at least 5% above both lows.
        """
        n = len(df)
        recent = pivots.lows_after(n - config.pattern_recent_bars)
        if len(recent) < 2:
            return None

        low2 = recent[-1]
        earlier = [p for p in recent if p.index <= low2.index - config.double_bottom_min_gap]
        if not earlier:
            return None
        low1 = earlier[-1]

        if abs(low1.price - low2.price) / low1.price >= config.double_bottom_tolerance:
            return None

        peaks = pivots.highs_between(low1.index, low2.index)
        if not peaks:
            return None
        peak = max(peaks, key=lambda p: p.price)
        floor = max(low1.price, low2.price)
        if (peak.price - floor) / floor < config.double_bottom_min_peak:
            return None

        closes = df['Close'].to_numpy(dtype=float)
        dates = df.index
        overlay = (
            PatternPoint(dates[low1.index], float(closes[low1.index]), 'Btm 1'),
            PatternPoint(dates[peak.index], float(closes[peak.index]), 'Peak'),
            PatternPoint(dates[low2.index], float(closes[low2.index]), 'Btm 2'),
            PatternPoint(dates[-1], float(closes[-1]), 'Breakout'),
        )
        return PatternMatch(PatternType.DOUBLE_BOTTOM, overlay)

    @staticmethod
    def detect_inverse_head_and_shoulders(df: pd.DataFrame, pivots: PivotSet,
                                          config: EngineConfig) -> Optional[PatternMatch]:
        """Three most recent pivot lows: head lowest, shoulders within 8%, each gap > 10 bars."""
        if len(pivots.lows) < 3:
            return None
        left, head, right = pivots.lows[-3:]

        if not (head.price < left.price and head.price < right.price):
            return None
        if abs(right.price - left.price) / left.price >= config.ihs_shoulder_tolerance:
            return None
        if (right.index - head.index) <= config.ihs_min_gap or (head.index - left.index) <= config.ihs_min_gap:
            return None

        closes = df['Close'].to_numpy(dtype=float)
        dates = df.index
        overlay = (
            PatternPoint(dates[left.index], float(closes[left.index]), 'L. Shldr'),
            PatternPoint(dates[head.index], float(closes[head.index]), 'Head'),
            PatternPoint(dates[right.index], float(closes[right.index]), 'R. Shldr'),
            PatternPoint(dates[-1], float(closes[-1])),
        )
        return PatternMatch(PatternType.INVERSE_HEAD_AND_SHOULDERS, overlay)
