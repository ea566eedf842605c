"""Quote sources used by the quote and screen commands."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from tickerscope.exceptions import DataSourceError
from tickerscope.types import Quote, Symbol

logger = logging.getLogger(__name__)


def _number(info: dict[str, Any], *keys: str) -> float | None:
    """First finite numeric value among ``keys``, or None."""
    for key in keys:
        value = info.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            return number
    return None


def quote_from_info(symbol: str, info: dict[str, Any]) -> Quote:
    """Build a :class:`Quote` from a Yahoo ``Ticker.info`` payload.

    Valuation fields missing from the payload stay None so that filters can
    tell "not published" apart from zero.

    :param symbol: Symbol the payload belongs to.
    :param info: Mapping as returned by yfinance.
    :raises DataSourceError: If the payload carries no price at all.
    """
    price = _number(info, "regularMarketPrice", "currentPrice")
    if price is None:
        raise DataSourceError(f"No price available for symbol '{symbol}'")

    previous_close = _number(info, "regularMarketPreviousClose", "previousClose") or 0.0
    change = _number(info, "regularMarketChange")
    if change is None:
        change = price - previous_close if previous_close else 0.0
    change_percent = _number(info, "regularMarketChangePercent")
    if change_percent is None:
        change_percent = change / previous_close * 100.0 if previous_close else 0.0

    year_change = _number(info, "fiftyTwoWeekChangePercent")
    if year_change is None:
        # "52WeekChange" is published as a fraction
        year_change = (_number(info, "52WeekChange") or 0.0) * 100.0

    return Quote(
        symbol=Symbol(symbol.upper()),
        short_name=str(info.get("shortName") or info.get("longName") or ""),
        currency=str(info.get("currency") or ""),
        exchange=str(info.get("exchange") or ""),
        price=price,
        change=change,
        change_percent=change_percent,
        open=_number(info, "regularMarketOpen", "open") or 0.0,
        high=_number(info, "regularMarketDayHigh", "dayHigh") or 0.0,
        low=_number(info, "regularMarketDayLow", "dayLow") or 0.0,
        previous_close=previous_close,
        volume=int(_number(info, "regularMarketVolume", "volume") or 0),
        average_volume=int(_number(info, "averageVolume", "averageDailyVolume3Month") or 0),
        bid=_number(info, "bid") or 0.0,
        ask=_number(info, "ask") or 0.0,
        market_cap=int(_number(info, "marketCap") or 0),
        fifty_two_week_high=_number(info, "fiftyTwoWeekHigh") or 0.0,
        fifty_two_week_low=_number(info, "fiftyTwoWeekLow") or 0.0,
        fifty_two_week_change_percent=year_change,
        fifty_day_average=_number(info, "fiftyDayAverage") or 0.0,
        two_hundred_day_average=_number(info, "twoHundredDayAverage") or 0.0,
        pe_ratio=_number(info, "trailingPE"),
        forward_pe=_number(info, "forwardPE"),
        price_to_book=_number(info, "priceToBook"),
        eps=_number(info, "trailingEps", "epsTrailingTwelveMonths"),
        dividend_yield=_number(info, "dividendYield"),
    )


class QuoteSource(ABC):
    """Abstract base class for quote sources."""

    @abstractmethod
    def get_quotes(self, symbols: list[Symbol]) -> list[Quote]:
        """Get current quotes for the given symbols.

        :param symbols: Symbols to fetch.
        :returns: Quotes in the order of ``symbols``; symbols without data
            are omitted.
        """
        ...


class YahooQuoteSource(QuoteSource):
    """Quote source using Yahoo Finance.

    :param cache_seconds: How long to reuse a fetched quote before re-fetching.
    """

    def __init__(self, cache_seconds: float = 300.0) -> None:
        self.cache_seconds = cache_seconds
        self._cache: dict[str, tuple[datetime, Quote]] = {}

    def get_quotes(self, symbols: list[Symbol]) -> list[Quote]:
        """Get quotes from Yahoo Finance, skipping symbols that fail.

        :raises DataSourceError: If yfinance is not installed.
        """
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install yfinance"
            ) from e

        now = datetime.now(timezone.utc)
        result: list[Quote] = []

        for sym in symbols:
            sym_str = str(sym).upper()
            cached = self._cache.get(sym_str)
            if cached is not None:
                cached_time, cached_quote = cached
                if (now - cached_time).total_seconds() < self.cache_seconds:
                    result.append(cached_quote)
                    continue

            try:
                info = yf.Ticker(sym_str).info or {}
                quote = quote_from_info(sym_str, info)
            except Exception as e:
                logger.warning("Skipping %s: %s", sym_str, e)
                continue

            self._cache[sym_str] = (now, quote)
            result.append(quote)

        return result

    def clear_cache(self) -> None:
        """Clear the quote cache."""
        self._cache.clear()


class MockQuoteSource(QuoteSource):
    """Quote source returning pre-configured quotes.

    :param quotes: Quotes keyed by symbol.
    """

    def __init__(self, quotes: dict[str, Quote] | None = None) -> None:
        self._quotes = {k.upper(): v for k, v in (quotes or {}).items()}

    def set_quotes(self, quotes: dict[str, Quote]) -> None:
        self._quotes = {k.upper(): v for k, v in quotes.items()}

    def get_quotes(self, symbols: list[Symbol]) -> list[Quote]:
        return [self._quotes[str(s).upper()] for s in symbols if str(s).upper() in self._quotes]
