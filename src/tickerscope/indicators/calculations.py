"""Technical indicator calculations over price and bar series.

Every function returns numpy float64 arrays the same length as its input so
results line up index for index with the bars they were computed from.
Leading positions without enough history hold NaN. If the whole series is
too short the function raises :class:`InsufficientDataError` instead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from tickerscope.exceptions import IndicatorError, InsufficientDataError
from tickerscope.types import Bar

FloatArray = NDArray[np.float64]


# ---------------------------------------------------------------------------
# Result Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MACDResult:
    """MACD line, signal line and histogram."""

    macd: FloatArray
    signal: FloatArray
    histogram: FloatArray
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9


@dataclass(frozen=True, slots=True)
class BollingerBands:
    upper: FloatArray
    middle: FloatArray
    lower: FloatArray
    period: int = 20
    num_std: float = 2.0


@dataclass(frozen=True, slots=True)
class StochasticResult:
    """%K (smoothed) and %D lines."""

    k: FloatArray
    d: FloatArray
    period: int = 14
    smooth_k: int = 3
    smooth_d: int = 3


# ---------------------------------------------------------------------------
# Series Helpers
# ---------------------------------------------------------------------------


def nan_series(length: int) -> FloatArray:
    return np.full(length, np.nan, dtype=np.float64)


def is_nan(value: float) -> bool:
    return math.isnan(value)


def last_valid(series: FloatArray) -> float | None:
    """Return the last non-NaN value of a series, or None."""
    for value in reversed(series):
        if not math.isnan(value):
            return float(value)
    return None


def _as_prices(prices: ArrayLike) -> FloatArray:
    return np.asarray(prices, dtype=np.float64)


def _validate_period(length: int, period: int, name: str, required: int | None = None) -> None:
    if period < 1:
        raise IndicatorError(f"{name}: period must be >= 1 (got {period})")
    needed = period if required is None else required
    if length < needed:
        raise InsufficientDataError(name, needed, length)


def _true_range(bar: Bar, prev_close: float) -> float:
    return max(
        bar.high - bar.low,
        abs(bar.high - prev_close),
        abs(bar.low - prev_close),
    )


# ---------------------------------------------------------------------------
# Moving Averages
# ---------------------------------------------------------------------------


def sma(prices: ArrayLike, period: int) -> FloatArray:
    """Simple moving average.

    :param prices: Price series, oldest first.
    :param period: Window length.
    :returns: Trailing means; the first ``period - 1`` values are NaN.
    :raises InsufficientDataError: If fewer than ``period`` prices are given.
    """
    values = _as_prices(prices)
    _validate_period(len(values), period, "SMA")

    result = nan_series(len(values))
    for i in range(period - 1, len(values)):
        # NaN inside the window propagates, which smoothing of padded series relies on
        result[i] = values[i - period + 1 : i + 1].sum() / period
    return result


def ema(prices: ArrayLike, period: int) -> FloatArray:
    """Exponential moving average seeded with the SMA of the first window.

    ``ema[i] = (price[i] - ema[i-1]) * k + ema[i-1]`` with ``k = 2 / (period + 1)``.
    """
    values = _as_prices(prices)
    _validate_period(len(values), period, "EMA")

    multiplier = 2.0 / (period + 1.0)
    result = nan_series(len(values))
    result[period - 1] = values[:period].sum() / period
    for i in range(period, len(values)):
        result[i] = (values[i] - result[i - 1]) * multiplier + result[i - 1]
    return result


def wma(prices: ArrayLike, period: int) -> FloatArray:
    """Linearly weighted moving average (newest price weighted ``period``)."""
    values = _as_prices(prices)
    _validate_period(len(values), period, "WMA")

    weights = np.arange(1, period + 1, dtype=np.float64)
    weight_sum = period * (period + 1) / 2
    result = nan_series(len(values))
    for i in range(period - 1, len(values)):
        result[i] = float(np.dot(values[i - period + 1 : i + 1], weights)) / weight_sum
    return result


# ---------------------------------------------------------------------------
# Momentum Indicators
# ---------------------------------------------------------------------------


def rsi(prices: ArrayLike, period: int = 14) -> FloatArray:
    """Relative Strength Index with Wilder smoothing.

    The first average gain/loss is the simple mean of the first ``period``
    price changes; afterwards ``avg = (avg * (period - 1) + new) / period``.
    When the average loss is zero the RSI is 100.

    :returns: Values in [0, 100]; the first value is at index ``period``.
    :raises InsufficientDataError: If fewer than ``period + 1`` prices are given.
    """
    values = _as_prices(prices)
    _validate_period(len(values), period, "RSI", required=period + 1)

    changes = np.diff(values)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    def _rsi(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0.0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    result = nan_series(len(values))
    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period
    result[period] = _rsi(avg_gain, avg_loss)

    for i in range(period + 1, len(values)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi(avg_gain, avg_loss)
    return result


def stochastic(
    bars: Sequence[Bar],
    period: int = 14,
    smooth_k: int = 3,
    smooth_d: int = 3,
) -> StochasticResult:
    """Stochastic oscillator.

    Raw %K is ``(close - lowest low) / (highest high - lowest low) * 100`` over
    the trailing ``period`` bars, or 50 when the window has no range. The
    returned %K is the SMA of raw %K over ``smooth_k`` and %D is the SMA of
    %K over ``smooth_d``.
    """
    _validate_period(len(bars), period, "Stochastic")
    for smoothing in (smooth_k, smooth_d):
        _validate_period(len(bars), smoothing, "Stochastic", required=max(period, smoothing))

    raw_k = nan_series(len(bars))
    for i in range(period - 1, len(bars)):
        window = bars[i - period + 1 : i + 1]
        lowest = min(b.low for b in window)
        highest = max(b.high for b in window)
        price_range = highest - lowest
        if price_range == 0.0:
            raw_k[i] = 50.0
        else:
            raw_k[i] = (bars[i].close - lowest) / price_range * 100.0

    k = sma(raw_k, smooth_k)
    d = sma(k, smooth_d)
    return StochasticResult(k=k, d=d, period=period, smooth_k=smooth_k, smooth_d=smooth_d)


def roc(prices: ArrayLike, period: int = 12) -> FloatArray:
    """Rate of change in percent; NaN where the reference price is zero."""
    values = _as_prices(prices)
    _validate_period(len(values), period, "ROC", required=period + 1)

    result = nan_series(len(values))
    for i in range(period, len(values)):
        base = values[i - period]
        if base != 0.0:
            result[i] = (values[i] - base) / base * 100.0
    return result


# ---------------------------------------------------------------------------
# Trend Indicators
# ---------------------------------------------------------------------------


def macd(
    prices: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence.

    The signal line is the EMA of the contiguous non-NaN tail of the MACD
    line, written back at the original positions. If that tail is shorter
    than ``signal_period`` the signal and histogram are all NaN.
    """
    values = _as_prices(prices)
    _validate_period(len(values), slow_period, "MACD")

    fast = ema(values, fast_period)
    slow = ema(values, slow_period)
    # NaN in either operand yields NaN
    macd_line = fast - slow

    signal_line = nan_series(len(values))
    valid = np.flatnonzero(~np.isnan(macd_line))
    if len(valid) >= signal_period:
        first = int(valid[0])
        signal_line[first:] = ema(macd_line[first:], signal_period)

    histogram = macd_line - signal_line
    return MACDResult(
        macd=macd_line,
        signal=signal_line,
        histogram=histogram,
        fast_period=fast_period,
        slow_period=slow_period,
        signal_period=signal_period,
    )


def adx(bars: Sequence[Bar], period: int = 14) -> FloatArray:
    """Average Directional Index (trend strength, not direction).

    True range and directional movement come from consecutive bars and are
    EMA-smoothed. ``DX = |+DI - -DI| / (+DI + -DI) * 100`` (0 when both DIs
    are 0) and ADX is the EMA of DX.

    :returns: NaN through index ``period``, then through the EMA warm-up of
        the DX series; values afterwards.
    :raises InsufficientDataError: If fewer than ``period + 1`` bars are given.
    """
    _validate_period(len(bars), period, "ADX", required=period + 1)

    steps = len(bars) - 1
    tr = np.empty(steps, dtype=np.float64)
    plus_dm = np.empty(steps, dtype=np.float64)
    minus_dm = np.empty(steps, dtype=np.float64)
    for i in range(1, len(bars)):
        prev, cur = bars[i - 1], bars[i]
        tr[i - 1] = _true_range(cur, prev.close)
        up_move = cur.high - prev.high
        down_move = prev.low - cur.low
        plus_dm[i - 1] = up_move if up_move > down_move and up_move > 0 else 0.0
        minus_dm[i - 1] = down_move if down_move > up_move and down_move > 0 else 0.0

    smooth_tr = ema(tr, period)
    smooth_plus = ema(plus_dm, period)
    smooth_minus = ema(minus_dm, period)

    dx_values: list[float] = []
    for i in range(period + 1, len(bars)):
        atr_value = smooth_tr[i - 1]
        plus_di = 100.0 * smooth_plus[i - 1] / atr_value if atr_value != 0.0 else 0.0
        minus_di = 100.0 * smooth_minus[i - 1] / atr_value if atr_value != 0.0 else 0.0
        di_sum = plus_di + minus_di
        dx_values.append(abs(plus_di - minus_di) / di_sum * 100.0 if di_sum != 0.0 else 0.0)

    result = nan_series(len(bars))
    if len(dx_values) >= period:
        result[period + 1 :] = ema(dx_values, period)
    return result


# ---------------------------------------------------------------------------
# Volatility Indicators
# ---------------------------------------------------------------------------


def bollinger_bands(prices: ArrayLike, period: int = 20, num_std: float = 2.0) -> BollingerBands:
    """Bollinger Bands around an SMA using the population standard deviation."""
    values = _as_prices(prices)
    _validate_period(len(values), period, "Bollinger Bands")

    middle = sma(values, period)
    upper = nan_series(len(values))
    lower = nan_series(len(values))
    for i in range(period - 1, len(values)):
        window = values[i - period + 1 : i + 1]
        mean = window.sum() / period
        variance = (window * window).sum() / period - mean * mean
        # Rounding can push a flat window's variance slightly below zero
        sd = math.sqrt(max(variance, 0.0))
        upper[i] = middle[i] + num_std * sd
        lower[i] = middle[i] - num_std * sd
    return BollingerBands(upper=upper, middle=middle, lower=lower, period=period, num_std=num_std)


def true_range(bars: Sequence[Bar]) -> FloatArray:
    """Per-bar true range; the first bar uses ``high - low``."""
    result = np.empty(len(bars), dtype=np.float64)
    for i, bar in enumerate(bars):
        if i == 0:
            result[i] = bar.high - bar.low
        else:
            result[i] = _true_range(bar, bars[i - 1].close)
    return result


def atr(bars: Sequence[Bar], period: int = 14) -> FloatArray:
    """Average True Range: the EMA of the true range."""
    _validate_period(len(bars), period, "ATR", required=period + 1)
    return ema(true_range(bars), period)


# ---------------------------------------------------------------------------
# Volume Indicators
# ---------------------------------------------------------------------------


def obv(bars: Sequence[Bar]) -> FloatArray:
    """On-Balance Volume, seeded with the first bar's volume."""
    result = np.empty(len(bars), dtype=np.float64)
    if not bars:
        return result
    result[0] = float(bars[0].volume)
    for i in range(1, len(bars)):
        if bars[i].close > bars[i - 1].close:
            result[i] = result[i - 1] + bars[i].volume
        elif bars[i].close < bars[i - 1].close:
            result[i] = result[i - 1] - bars[i].volume
        else:
            result[i] = result[i - 1]
    return result


def vwap(bars: Sequence[Bar]) -> FloatArray:
    """Cumulative volume weighted average price over the whole series.

    There is no session reset. While cumulative volume is still zero the
    typical price ``(high + low + close) / 3`` is used, so no value is NaN.
    """
    result = np.empty(len(bars), dtype=np.float64)
    cumulative_pv = 0.0
    cumulative_volume = 0.0
    for i, bar in enumerate(bars):
        typical = (bar.high + bar.low + bar.close) / 3.0
        cumulative_pv += typical * bar.volume
        cumulative_volume += bar.volume
        result[i] = cumulative_pv / cumulative_volume if cumulative_volume != 0.0 else typical
    return result
