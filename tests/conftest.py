"""Shared synthetic candle series for the test suite."""

import numpy as np
import pandas as pd
import pytest

from models.candle import Candle


def build_candles(closes, spread=0.5, volumes=None, start="2022-01-03"):
    """One candle per business day; high/low sit `spread` above/below the close."""
    dates = pd.bdate_range(start, periods=len(closes))
    if volumes is None:
        volumes = [1_000_000 + 1_000 * i for i in range(len(closes))]
    return [
        Candle(
            date=d.date(),
            open=float(c),
            high=float(c) + spread,
            low=float(c) - spread,
            close=float(c),
            volume=float(v),
        )
        for d, c, v in zip(dates, closes, volumes)
    ]


def piecewise(knots):
    """Linear path through (bar index, price) knots, one value per bar"""
    xs, ys = zip(*knots)
    return np.interp(np.arange(xs[-1] + 1), xs, ys)


@pytest.fixture
def candle_builder():
    return build_candles


@pytest.fixture
def path_builder():
    return piecewise


@pytest.fixture
def rising_candles():
    """300 bars, close = 100 + i"""
    return build_candles([100.0 + i for i in range(300)])


@pytest.fixture
def falling_candles():
    return build_candles([400.0 - i for i in range(150)])


@pytest.fixture
def flat_candles():
    """200 bars at a constant 100 close with a fixed 99-101 range"""
    return build_candles([100.0] * 200, spread=1.0)


@pytest.fixture
def double_bottom_candles():
    """Flat base, then lows at 100 and 101 around a 108 peak, recovering to 106"""
    knots = [(0, 110), (149, 110), (150, 109), (170, 100), (180, 108), (190, 101), (219, 106)]
    return build_candles(piecewise(knots))


@pytest.fixture
def inverse_hs_candles():
    """Shoulders at 100 and 101 around a 92 head"""
    knots = [(0, 110), (149, 110), (150, 109), (165, 100), (175, 106), (190, 92),
             (205, 106), (215, 101), (239, 108)]
    return build_candles(piecewise(knots))


@pytest.fixture
def elliott_candles():
    """Start 100, wave 1 to 115, wave 2 to 107, wave 3 to 130, wave 4 to 120, wave 5 developing"""
    knots = [(0, 110), (149, 110), (150, 109), (160, 100), (175, 115), (185, 107),
             (205, 130), (215, 120), (230, 128)]
    return build_candles(piecewise(knots))


@pytest.fixture
def cup_candles():
    """Left rim 120, bottom 96, right rim 119, shallow handle to 114"""
    knots = [(0, 80), (99, 120), (139, 96), (189, 119), (199, 114), (219, 118)]
    return build_candles(piecewise(knots))
