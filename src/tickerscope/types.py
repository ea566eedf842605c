"""Core type definitions for tickerscope.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from fractions import Fraction
from typing import NewType

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

# Type alias for ticker symbols
Symbol = NewType("Symbol", str)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Date/Time Types
# ---------------------------------------------------------------------------


class DateRange(FrozenModel):
    """Inclusive start, exclusive end range for time-bounded queries.

    :param start: Start of the range (inclusive).
    :param end: End of the range (exclusive).
    """

    start: datetime
    end: datetime


class Interval(str, Enum):
    """Bar interval supported by the history endpoints."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    ONE_DAY = "1d"
    ONE_WEEK = "1wk"
    ONE_MONTH = "1mo"


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class Bar(FrozenModel):
    """One OHLCV record.

    The OHLC invariant (``low <= open, close <= high``) is assumed from
    upstream and not enforced here.

    :param timestamp: Bar start, in seconds since the Unix epoch.
    :param open: Opening price.
    :param high: Highest price during the bar period.
    :param low: Lowest price during the bar period.
    :param close: Closing price.
    :param volume: Trading volume during the bar period.
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: int


class History(FrozenModel):
    """Chronologically ascending bar series for a single symbol.

    :param symbol: Ticker symbol the bars belong to.
    :param interval: Interval between bars.
    :param bars: Bars ordered oldest first.
    """

    symbol: Symbol
    interval: Interval = Interval.ONE_DAY
    bars: list[Bar] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.bars)

    def closes(self) -> NDArray[np.float64]:
        return np.array([b.close for b in self.bars], dtype=np.float64)

    def highs(self) -> NDArray[np.float64]:
        return np.array([b.high for b in self.bars], dtype=np.float64)

    def lows(self) -> NDArray[np.float64]:
        return np.array([b.low for b in self.bars], dtype=np.float64)

    def volumes(self) -> NDArray[np.float64]:
        return np.array([b.volume for b in self.bars], dtype=np.float64)


class Quote(FrozenModel):
    """Snapshot of current market fields for one security.

    Valuation fields that Yahoo does not always publish are ``None`` when
    unavailable. ``None`` means "absent" and is distinct from ``0.0``.

    :param symbol: Ticker symbol.
    :param price: Last traded price.
    :param change: Absolute change from the previous close.
    :param change_percent: Percent change from the previous close.
    :param open: Session open.
    :param high: Session high.
    :param low: Session low.
    :param previous_close: Previous session close.
    :param volume: Volume traded today.
    :param average_volume: Average daily volume.
    :param market_cap: Market capitalization.
    :param fifty_two_week_high: 52-week high.
    :param fifty_two_week_low: 52-week low.
    :param fifty_two_week_change_percent: 52-week change in percent.
    :param pe_ratio: Trailing P/E, or None if absent.
    :param forward_pe: Forward P/E, or None if absent.
    :param price_to_book: Price to book, or None if absent.
    :param eps: Trailing earnings per share, or None if absent.
    :param dividend_yield: Dividend yield in percent, or None if absent.
    """

    symbol: Symbol
    short_name: str = ""
    currency: str = ""
    exchange: str = ""

    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    previous_close: float = 0.0
    volume: int = 0
    average_volume: int = 0
    bid: float = 0.0
    ask: float = 0.0

    market_cap: int = 0
    fifty_two_week_high: float = 0.0
    fifty_two_week_low: float = 0.0
    fifty_two_week_change_percent: float = 0.0
    fifty_day_average: float = 0.0
    two_hundred_day_average: float = 0.0

    pe_ratio: float | None = None
    forward_pe: float | None = None
    price_to_book: float | None = None
    eps: float | None = None
    dividend_yield: float | None = None


class Dividend(FrozenModel):
    """A cash dividend paid per share.

    :param timestamp: Ex-dividend date, in seconds since the Unix epoch.
    :param amount: Cash amount per share.
    """

    timestamp: int
    amount: float


class Split(FrozenModel):
    """A stock split.

    :param timestamp: Split date, in seconds since the Unix epoch.
    :param ratio: New shares per old share (4.0 for a 4:1 split, 0.1 for 1:10).
    """

    timestamp: int
    ratio: float

    @property
    def label(self) -> str:
        fraction = Fraction(self.ratio).limit_denominator(1000)
        return f"{fraction.numerator}:{fraction.denominator}"


class CorporateActions(FrozenModel):
    """Dividends and splits for one symbol, each oldest first."""

    symbol: Symbol
    dividends: list[Dividend] = Field(default_factory=list)
    splits: list[Split] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.dividends and not self.splits


class BatchResult(FrozenModel):
    """Histories fetched for several symbols.

    :param histories: Fetched histories keyed by symbol, in request order.
    :param failed: Error message per symbol that could not be fetched.
    """

    histories: dict[Symbol, History] = Field(default_factory=dict)
    failed: dict[Symbol, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Indicator Types
# ---------------------------------------------------------------------------


class IndicatorRequest(FrozenModel):
    """Which indicators to compute and with which periods.

    :param sma: SMA periods.
    :param ema: EMA periods.
    :param wma: WMA periods.
    :param rsi: RSI period, or None to skip.
    :param macd: Whether to compute MACD (12/26/9).
    :param stochastic: Whether to compute the Stochastic oscillator (14/3/3).
    :param bb: Bollinger Bands period, or None to skip.
    :param bb_std_dev: Bollinger Bands standard deviation multiplier.
    :param atr: ATR period, or None to skip.
    :param adx: ADX period, or None to skip.
    :param obv: Whether to compute On-Balance Volume.
    :param vwap: Whether to compute VWAP.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sma: list[int] = Field(default_factory=list)
    ema: list[int] = Field(default_factory=list)
    wma: list[int] = Field(default_factory=list)
    rsi: int | None = None
    macd: bool = False
    stochastic: bool = False
    bb: int | None = None
    bb_std_dev: float = 2.0
    atr: int | None = None
    adx: int | None = None
    obv: bool = False
    vwap: bool = False

    @classmethod
    def all_defaults(cls) -> IndicatorRequest:
        """Request every indicator with its conventional default period."""
        return cls(
            sma=[20, 50, 200],
            ema=[12, 26],
            rsi=14,
            macd=True,
            stochastic=True,
            bb=20,
            atr=14,
            adx=14,
            obv=True,
            vwap=True,
        )

    def is_empty(self) -> bool:
        return not (
            self.sma
            or self.ema
            or self.wma
            or self.rsi is not None
            or self.macd
            or self.stochastic
            or self.bb is not None
            or self.atr is not None
            or self.adx is not None
            or self.obv
            or self.vwap
        )


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class ScreenCriteria(str, Enum):
    """Built-in screening presets."""

    VALUE = "value"
    GROWTH = "growth"
    DIVIDEND = "dividend"
    MOMENTUM = "momentum"
    CUSTOM = "custom"


class ScreenConfig(FrozenModel):
    """Configuration for the screen command.

    :param symbols: Symbols to screen.
    :param criteria: Preset to apply.
    :param where: Filter expression used by the custom preset.
    """

    symbols: list[Symbol]
    criteria: ScreenCriteria = ScreenCriteria.CUSTOM
    where: str = ""


class IndicatorsConfig(FrozenModel):
    """Configuration for the indicators command.

    :param symbol: Symbol to analyse.
    :param interval: Bar interval.
    :param date_range: History window to fetch, or None to use the
        command default.
    :param request: Indicators to compute.
    """

    symbol: Symbol
    interval: Interval = Interval.ONE_DAY
    date_range: DateRange | None = None
    request: IndicatorRequest
