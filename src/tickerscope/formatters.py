"""Render quotes, histories and indicator reports as text.

Supported formats are aligned tables, CSV, TSV, JSON and a minimal
whitespace-separated form meant for piping into other tools.
"""

from __future__ import annotations

import csv
import io
import json
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from tickerscope.indicators.engine import IndicatorReport
from tickerscope.types import BatchResult, CorporateActions, History, Quote


class OutputFormat(str, Enum):
    TABLE = "table"
    CSV = "csv"
    TSV = "tsv"
    JSON = "json"
    MINIMAL = "minimal"


QUOTE_COLUMNS = [
    ("symbol", "Symbol"),
    ("price", "Price"),
    ("change", "Change"),
    ("change_percent", "Change%"),
    ("volume", "Volume"),
    ("market_cap", "MarketCap"),
    ("pe_ratio", "P/E"),
    ("dividend_yield", "Yield%"),
]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _format_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _format_day(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def _cell(value: Any, precision: int, missing: str) -> str:
    if _is_missing(value):
        return missing
    if isinstance(value, float):
        return f"{value:.{precision}f}"
    return str(value)


def _json_value(value: Any, precision: int) -> Any:
    if _is_missing(value):
        return None
    if isinstance(value, float):
        return round(value, precision)
    return value


def render(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    """Render rows of cells in the requested format.

    Missing values (None or NaN) render as ``-`` in tables, empty cells in
    CSV/TSV and ``null`` in JSON.
    """
    fmt = OutputFormat(fmt)

    if fmt is OutputFormat.JSON:
        records = [
            {h: _json_value(v, precision) for h, v in zip(headers, row)} for row in rows
        ]
        return json.dumps(records, indent=2)

    if fmt in (OutputFormat.CSV, OutputFormat.TSV):
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter="," if fmt is OutputFormat.CSV else "\t",
            lineterminator="\n",
        )
        if not no_header:
            writer.writerow(headers)
        for row in rows:
            writer.writerow([_cell(v, precision, "") for v in row])
        return buffer.getvalue().rstrip("\n")

    if fmt is OutputFormat.MINIMAL:
        return "\n".join(" ".join(_cell(v, precision, "-") for v in row) for row in rows)

    cells = [[_cell(v, precision, "-") for v in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, text in enumerate(row):
            widths[i] = max(widths[i], len(text))

    def _align(texts: Sequence[str]) -> str:
        # First column left-aligned, numbers right-aligned
        parts = [texts[0].ljust(widths[0])]
        parts.extend(t.rjust(w) for t, w in zip(texts[1:], widths[1:]))
        return "  ".join(parts).rstrip()

    lines = []
    if not no_header:
        lines.append(_align(list(headers)))
        lines.append("-" * (sum(widths) + 2 * (len(widths) - 1)))
    lines.extend(_align(row) for row in cells)
    return "\n".join(lines)


def format_quotes(
    quotes: Sequence[Quote],
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    headers = [title for _, title in QUOTE_COLUMNS]
    if OutputFormat(fmt) is OutputFormat.JSON:
        headers = [attr for attr, _ in QUOTE_COLUMNS]
    rows = [[getattr(q, attr) for attr, _ in QUOTE_COLUMNS] for q in quotes]
    return render(headers, rows, fmt, precision, no_header)


def format_history(
    history: History,
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    headers = ["date", "open", "high", "low", "close", "volume"]
    rows = [
        [_format_date(b.timestamp), b.open, b.high, b.low, b.close, b.volume]
        for b in history.bars
    ]
    return render(headers, rows, fmt, precision, no_header)


def format_indicator_report(
    report: IndicatorReport,
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    tail: int | None = None,
    no_header: bool = False,
) -> str:
    """Render an indicator report with one row per bar.

    :param tail: If given, only the last ``tail`` rows are rendered.
    """
    names = list(report.series)
    headers = ["date", *names]
    start = 0 if tail is None else max(0, len(report) - tail)
    rows = [
        [_format_date(report.timestamps[i]), *(float(report.series[n][i]) for n in names)]
        for i in range(start, len(report))
    ]
    return render(headers, rows, fmt, precision, no_header)


def format_comparison(
    quotes: Sequence[Quote],
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    """Render quotes side by side: one row per field, one column per symbol."""
    json_keys = OutputFormat(fmt) is OutputFormat.JSON
    headers = ["field" if json_keys else "Field", *(str(q.symbol) for q in quotes)]
    rows = [
        [attr if json_keys else title, *(getattr(q, attr) for q in quotes)]
        for attr, title in QUOTE_COLUMNS[1:]
    ]
    return render(headers, rows, fmt, precision, no_header)


def format_actions(
    actions: CorporateActions,
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    """Render dividends and splits in date order.

    Dividends show the cash amount, splits show the ratio as ``4:1``.
    """
    events: list[tuple[int, str, Any]] = [
        (d.timestamp, "dividend", d.amount) for d in actions.dividends
    ]
    events.extend((s.timestamp, "split", s.label) for s in actions.splits)
    events.sort(key=lambda e: e[0])
    rows = [[_format_day(ts), kind, value] for ts, kind, value in events]
    return render(["date", "type", "value"], rows, fmt, precision, no_header)


def format_batch(
    result: BatchResult,
    fmt: OutputFormat | str = OutputFormat.TABLE,
    precision: int = 2,
    no_header: bool = False,
) -> str:
    """Render every fetched history as one table with a leading symbol column."""
    headers = ["symbol", "date", "open", "high", "low", "close", "volume"]
    rows = [
        [str(symbol), _format_date(b.timestamp), b.open, b.high, b.low, b.close, b.volume]
        for symbol, history in result.histories.items()
        for b in history.bars
    ]
    return render(headers, rows, fmt, precision, no_header)
