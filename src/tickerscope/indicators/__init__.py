"""Technical indicator engine."""

from tickerscope.indicators.calculations import (BollingerBands, MACDResult,
                                                 StochasticResult, adx, atr,
                                                 bollinger_bands, ema, is_nan,
                                                 last_valid, macd, nan_series,
                                                 obv, roc, rsi, sma,
                                                 stochastic, true_range, vwap,
                                                 wma)
from tickerscope.indicators.engine import IndicatorReport, compute_indicators

__all__ = [
    "BollingerBands",
    "IndicatorReport",
    "MACDResult",
    "StochasticResult",
    "adx",
    "atr",
    "bollinger_bands",
    "compute_indicators",
    "ema",
    "is_nan",
    "last_valid",
    "macd",
    "nan_series",
    "obv",
    "roc",
    "rsi",
    "sma",
    "stochastic",
    "true_range",
    "vwap",
    "wma",
]
