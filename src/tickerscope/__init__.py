"""Tickerscope package root."""

from tickerscope.exceptions import (ConfigError, DataSourceError,
                                    FilterSyntaxError, IndicatorError,
                                    InsufficientDataError, TickerscopeError)
from tickerscope.filters import compile_filter, eval_filter
from tickerscope.indicators import IndicatorReport, compute_indicators
from tickerscope.screening import screen_quotes

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DataSourceError",
    "FilterSyntaxError",
    "IndicatorError",
    "IndicatorReport",
    "InsufficientDataError",
    "TickerscopeError",
    "compile_filter",
    "compute_indicators",
    "eval_filter",
    "screen_quotes",
]
