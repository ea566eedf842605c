"""History data sources.

This module provides an abstract interface for bar history sources and
concrete implementations for Yahoo Finance and CSV files.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tickerscope.exceptions import DataSourceError
from tickerscope.types import (Bar, BatchResult, CorporateActions, DateRange,
                               Dividend, History, Interval, Split, Symbol)

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """Abstract base class for history sources.

    All implementations must inherit from this class and implement
    :meth:`fetch_history`.
    """

    @abstractmethod
    def fetch_history(
        self,
        symbol: Symbol,
        date_range: DateRange,
        interval: Interval = Interval.ONE_DAY,
    ) -> History:
        """Fetch bars for one symbol.

        :param symbol: Symbol to fetch.
        :param date_range: Time range to fetch (inclusive start, exclusive end).
        :param interval: Bar interval.
        :returns: History with bars in chronological order.
        :raises DataSourceError: If fetching fails.
        """
        ...


class YahooDataSource(DataSource):
    """History source backed by Yahoo Finance via yfinance.

    :param source_params: Optional parameters for configuring the source.
        - timeout: Request timeout in seconds (default: 30)
        - auto_adjust: Adjust prices for splits and dividends (default: True)
    """

    # Map our interval values to yfinance interval strings
    INTERVAL_MAP = {
        Interval.ONE_MINUTE: "1m",
        Interval.FIVE_MINUTES: "5m",
        Interval.FIFTEEN_MINUTES: "15m",
        Interval.THIRTY_MINUTES: "30m",
        Interval.ONE_HOUR: "60m",
        Interval.ONE_DAY: "1d",
        Interval.ONE_WEEK: "1wk",
        Interval.ONE_MONTH: "1mo",
    }

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.timeout = self.params.get("timeout", 30)
        self.auto_adjust = self.params.get("auto_adjust", True)

    def fetch_history(
        self,
        symbol: Symbol,
        date_range: DateRange,
        interval: Interval = Interval.ONE_DAY,
    ) -> History:
        """Fetch bars from Yahoo Finance.

        :raises DataSourceError: If yfinance is missing or the request fails.
        """
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install yfinance"
            ) from e

        yf_interval = self.INTERVAL_MAP.get(Interval(interval))
        if yf_interval is None:
            raise DataSourceError(f"Unsupported interval '{interval}'")

        start_str = date_range.start.strftime("%Y-%m-%d")
        end_str = date_range.end.strftime("%Y-%m-%d")

        try:
            ticker = yf.Ticker(str(symbol))
            df = ticker.history(
                start=start_str,
                end=end_str,
                interval=yf_interval,
                auto_adjust=self.auto_adjust,
                timeout=self.timeout,
            )
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch history for symbol '{symbol}': {e}"
            ) from e

        bars: list[Bar] = []
        if df.empty:
            logger.warning("No history returned for %s", symbol)
        else:
            for timestamp, row in df.iterrows():
                ts = timestamp.to_pydatetime()
                if ts.tzinfo is None:
                    ts = ts.replace(tzinfo=timezone.utc)
                bars.append(
                    Bar(
                        timestamp=int(ts.timestamp()),
                        open=float(row["Open"]),
                        high=float(row["High"]),
                        low=float(row["Low"]),
                        close=float(row["Close"]),
                        volume=int(row["Volume"]),
                    )
                )
        logger.debug("Fetched %d bars for %s", len(bars), symbol)
        return History(symbol=symbol, interval=Interval(interval), bars=bars)

    def fetch_actions(
        self,
        symbol: Symbol,
        date_range: DateRange | None = None,
    ) -> CorporateActions:
        """Fetch dividends and splits from Yahoo Finance.

        :param symbol: Symbol to fetch.
        :param date_range: Optional time range filter; the full history otherwise.
        :raises DataSourceError: If yfinance is missing or the request fails.
        """
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install yfinance"
            ) from e

        try:
            ticker = yf.Ticker(str(symbol))
            dividends = _series_events(ticker.dividends, date_range)
            splits = _series_events(ticker.splits, date_range)
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch corporate actions for symbol '{symbol}': {e}"
            ) from e

        logger.debug(
            "Fetched %d dividends and %d splits for %s", len(dividends), len(splits), symbol
        )
        return CorporateActions(
            symbol=symbol,
            dividends=[Dividend(timestamp=ts, amount=value) for ts, value in dividends],
            splits=[Split(timestamp=ts, ratio=value) for ts, value in splits],
        )


def _series_events(series: Any, date_range: DateRange | None) -> list[tuple[int, float]]:
    """(timestamp, value) pairs from a date-indexed pandas Series, oldest first."""
    start = int(date_range.start.timestamp()) if date_range else None
    end = int(date_range.end.timestamp()) if date_range else None
    events = []
    for timestamp, value in series.items():
        ts = timestamp.to_pydatetime()
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        seconds = int(ts.timestamp())
        if start is not None and (seconds < start or seconds >= end):
            continue
        events.append((seconds, float(value)))
    events.sort()
    return events


class CSVDataSource(DataSource):
    """History source that reads bars from a CSV file.

    Expected CSV format (default columns):
    - timestamp: ISO format datetime string or Unix seconds
    - open, high, low, close: Prices
    - volume: Trading volume
    - symbol: Optional; when present, rows for other symbols are skipped

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - symbol_col, timestamp_col, open_col, high_col, low_col, close_col,
          volume_col: column names (default: the lowercase field name)
        - delimiter: CSV delimiter (default: ",")
        - timestamp_format: strptime format for timestamps (default: ISO format)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVDataSource requires 'file_path' in source_params")

        self.symbol_col = self.params.get("symbol_col", "symbol")
        self.timestamp_col = self.params.get("timestamp_col", "timestamp")
        self.open_col = self.params.get("open_col", "open")
        self.high_col = self.params.get("high_col", "high")
        self.low_col = self.params.get("low_col", "low")
        self.close_col = self.params.get("close_col", "close")
        self.volume_col = self.params.get("volume_col", "volume")
        self.delimiter = self.params.get("delimiter", ",")
        self.timestamp_format = self.params.get("timestamp_format")

    def _parse_timestamp(self, value: str) -> int:
        if value.lstrip("-").isdigit():
            return int(value)
        try:
            if self.timestamp_format:
                ts = datetime.strptime(value, self.timestamp_format)
            else:
                ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise DataSourceError(f"Failed to parse timestamp '{value}': {e}") from e
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return int(ts.timestamp())

    def fetch_history(
        self,
        symbol: Symbol,
        date_range: DateRange | None = None,
        interval: Interval = Interval.ONE_DAY,
    ) -> History:
        """Read bars from the CSV file.

        :param symbol: Symbol to keep when the file has a symbol column.
        :param date_range: Optional time range filter.
        :param interval: Recorded on the returned history; not checked.
        :raises DataSourceError: If the file is missing or malformed.
        """
        path = Path(self.file_path)
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {self.file_path}")

        start = int(date_range.start.timestamp()) if date_range else None
        end = int(date_range.end.timestamp()) if date_range else None
        bars: list[Bar] = []

        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                for row in reader:
                    row_symbol = row.get(self.symbol_col)
                    if row_symbol and row_symbol.upper() != str(symbol).upper():
                        continue

                    ts_str = row.get(self.timestamp_col)
                    if not ts_str:
                        continue
                    ts = self._parse_timestamp(ts_str.strip())
                    if start is not None and (ts < start or ts >= end):
                        continue

                    try:
                        bars.append(
                            Bar(
                                timestamp=ts,
                                open=float(row[self.open_col]),
                                high=float(row[self.high_col]),
                                low=float(row[self.low_col]),
                                close=float(row[self.close_col]),
                                volume=int(float(row[self.volume_col])),
                            )
                        )
                    except (KeyError, ValueError, TypeError) as e:
                        raise DataSourceError(f"Failed to parse row {row}: {e}") from e
        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error: {e}") from e
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file: {e}") from e

        bars.sort(key=lambda b: b.timestamp)
        return History(symbol=symbol, interval=Interval(interval), bars=bars)


def resolve_data_source(name: str, source_params: dict[str, Any] | None = None) -> DataSource:
    """Construct a history source by name.

    :param name: ``"yahoo"`` or ``"csv"``.
    :param source_params: Source-specific parameters.
    :raises DataSourceError: If the name is unrecognized.
    """
    source_type = name.lower()

    if source_type == "yahoo":
        return YahooDataSource(source_params)
    elif source_type == "csv":
        return CSVDataSource(source_params)
    else:
        raise DataSourceError(
            f"Unrecognized data source type: '{name}'. Supported types: yahoo, csv"
        )


def fetch_histories(
    source: DataSource,
    symbols: list[Symbol],
    date_range: DateRange | None,
    interval: Interval = Interval.ONE_DAY,
) -> BatchResult:
    """Fetch history for several symbols one after another.

    A symbol that fails is recorded in ``failed`` and does not stop the rest.

    :raises DataSourceError: If no symbols are given.
    """
    if not symbols:
        raise DataSourceError("No symbols provided")

    histories: dict[Symbol, History] = {}
    failed: dict[Symbol, str] = {}
    for symbol in symbols:
        try:
            histories[symbol] = source.fetch_history(symbol, date_range, interval)
        except DataSourceError as e:
            logger.warning("Download failed for %s: %s", symbol, e)
            failed[symbol] = str(e)
    return BatchResult(histories=histories, failed=failed)
