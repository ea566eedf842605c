"""Batch computation of several indicators over one bar series.

Each requested indicator is computed independently: an indicator that fails
(typically with :class:`InsufficientDataError`) is recorded in the report's
``errors`` and the others still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np

from tickerscope.exceptions import IndicatorError
from tickerscope.indicators import calculations as calc
from tickerscope.types import Bar, IndicatorRequest

logger = logging.getLogger(__name__)


@dataclass
class IndicatorReport:
    """Named series aligned to the input bars, plus per-indicator errors.

    :param timestamps: Bar timestamps, one per series position.
    :param series: Indicator name to values, e.g. ``"sma_20"``.
    :param errors: Indicator label to error message for failed indicators.
    """

    timestamps: list[int] = field(default_factory=list)
    series: dict[str, calc.FloatArray] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.timestamps)

    def latest(self) -> dict[str, float | None]:
        """Last value of every series, None where it is NaN."""
        latest: dict[str, float | None] = {}
        for name, values in self.series.items():
            if len(values) == 0 or np.isnan(values[-1]):
                latest[name] = None
            else:
                latest[name] = float(values[-1])
        return latest


def _run(
    report: IndicatorReport,
    label: str,
    compute: Callable[[], dict[str, calc.FloatArray]],
) -> None:
    try:
        report.series.update(compute())
    except IndicatorError as e:
        logger.warning("Skipping %s: %s", label, e)
        report.errors[label] = str(e)


def compute_indicators(bars: Sequence[Bar], request: IndicatorRequest) -> IndicatorReport:
    """Compute every indicator named in ``request``.

    :param bars: Bar series, oldest first.
    :param request: Indicators and periods to compute.
    :returns: Report whose series all have ``len(bars)`` values.
    """
    closes = np.array([b.close for b in bars], dtype=np.float64)
    report = IndicatorReport(timestamps=[b.timestamp for b in bars])

    for period in request.sma:
        _run(report, f"SMA({period})", lambda p=period: {f"sma_{p}": calc.sma(closes, p)})
    for period in request.ema:
        _run(report, f"EMA({period})", lambda p=period: {f"ema_{p}": calc.ema(closes, p)})
    for period in request.wma:
        _run(report, f"WMA({period})", lambda p=period: {f"wma_{p}": calc.wma(closes, p)})

    if request.rsi is not None:
        period = request.rsi
        _run(report, f"RSI({period})", lambda: {f"rsi_{period}": calc.rsi(closes, period)})

    if request.macd:
        def _macd() -> dict[str, calc.FloatArray]:
            result = calc.macd(closes)
            return {
                "macd": result.macd,
                "macd_signal": result.signal,
                "macd_histogram": result.histogram,
            }

        _run(report, "MACD", _macd)

    if request.stochastic:
        def _stochastic() -> dict[str, calc.FloatArray]:
            result = calc.stochastic(bars)
            return {"stoch_k": result.k, "stoch_d": result.d}

        _run(report, "Stochastic", _stochastic)

    if request.bb is not None:
        bb_period = request.bb

        def _bollinger() -> dict[str, calc.FloatArray]:
            bands = calc.bollinger_bands(closes, bb_period, request.bb_std_dev)
            return {"bb_upper": bands.upper, "bb_middle": bands.middle, "bb_lower": bands.lower}

        _run(report, f"Bollinger Bands({bb_period})", _bollinger)

    if request.atr is not None:
        atr_period = request.atr
        _run(report, f"ATR({atr_period})", lambda: {f"atr_{atr_period}": calc.atr(bars, atr_period)})

    if request.adx is not None:
        adx_period = request.adx
        _run(report, f"ADX({adx_period})", lambda: {f"adx_{adx_period}": calc.adx(bars, adx_period)})

    if request.obv:
        _run(report, "OBV", lambda: {"obv": calc.obv(bars)})
    if request.vwap:
        _run(report, "VWAP", lambda: {"vwap": calc.vwap(bars)})

    logger.debug(
        "Computed %d series over %d bars (%d failed)",
        len(report.series),
        len(bars),
        len(report.errors),
    )
    return report
