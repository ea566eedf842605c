"""Tickerscope exception hierarchy.

All package-specific exceptions derive from :class:`TickerscopeError` so
callers can catch every tickerscope failure uniformly.
"""

from __future__ import annotations


class TickerscopeError(Exception):
    """Base class for tickerscope exceptions.

    Derived exceptions should extend this class so that callers can catch all
    tickerscope-specific errors uniformly.
    """


class ConfigError(TickerscopeError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(TickerscopeError):
    """Raised when accessing or processing a data source fails."""


class FilterSyntaxError(TickerscopeError):
    """Raised when a screening expression cannot be tokenized or parsed.

    :param message: Human readable description of the problem.
    :param position: Character offset in the expression, if known.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class IndicatorError(TickerscopeError):
    """Raised when an indicator is called with invalid parameters."""


class InsufficientDataError(IndicatorError):
    """Raised when a series is shorter than an indicator requires.

    :param indicator: Indicator name, e.g. ``"SMA"``.
    :param required: Minimum number of values needed.
    :param actual: Number of values supplied.
    """

    def __init__(self, indicator: str, required: int, actual: int) -> None:
        super().__init__(
            f"{indicator}: insufficient data (need {required}, have {actual})"
        )
        self.indicator = indicator
        self.required = required
        self.actual = actual


__all__ = [
    "TickerscopeError",
    "ConfigError",
    "DataSourceError",
    "FilterSyntaxError",
    "IndicatorError",
    "InsufficientDataError",
]
