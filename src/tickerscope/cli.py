#!/usr/bin/env python3
"""Command-line interface for tickerscope."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Sequence, TextIO

from tickerscope.commands import (load_indicators_config, load_screen_config,
                                  resolve_date_range)
from tickerscope.commands.indicators import parse_period_list
from tickerscope.data import (CSVDataSource, DataSource, YahooDataSource,
                              YahooQuoteSource, fetch_histories)
from tickerscope.exceptions import (ConfigError, FilterSyntaxError,
                                    TickerscopeError)
from tickerscope.filters import compile_filter
from tickerscope.formatters import (OutputFormat, format_actions,
                                    format_batch, format_comparison,
                                    format_history, format_indicator_report,
                                    format_quotes)
from tickerscope.indicators import IndicatorReport, compute_indicators
from tickerscope.screening import screen_quotes
from tickerscope.types import (DateRange, History, IndicatorRequest, Interval,
                               ScreenCriteria, Symbol)

logger = logging.getLogger("tickerscope")

# Letters, digits and the punctuation Yahoo uses in tickers (BRK.B, ^GSPC, EURUSD=X)
_SYMBOL_RE = re.compile(r"^[A-Z0-9.\-^=]{1,12}$")


def configure_logging(verbose: bool = False) -> None:
    """Send tickerscope log records to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def read_symbols(raw: Sequence[str], stream: TextIO | None = None) -> list[Symbol]:
    """Collect symbols from arguments and, when asked, from stdin.

    Stdin is read when an argument is ``-`` or when no arguments are given
    and stdin is not a terminal. Symbols may be separated by whitespace,
    commas or newlines. They are upper-cased, de-duplicated in order of
    appearance, and malformed ones are skipped with a warning.
    """
    stream = sys.stdin if stream is None else stream
    texts = [s for s in raw if s != "-"]
    if "-" in raw or (not raw and not stream.isatty()):
        texts.append(stream.read())

    symbols: list[Symbol] = []
    for text in texts:
        for part in re.split(r"[\s,]+", text):
            symbol = part.strip().upper()
            if not symbol or symbol in symbols:
                continue
            if not _SYMBOL_RE.match(symbol):
                logger.warning("Skipping invalid symbol %r", part)
                continue
            symbols.append(Symbol(symbol))
    return symbols


def _explicit_range(args: argparse.Namespace) -> DateRange | None:
    if args.lookback or args.start or args.end:
        return resolve_date_range(args.lookback, args.start, args.end)
    return None


def _history_source(args: argparse.Namespace) -> DataSource:
    if getattr(args, "csv", None):
        return CSVDataSource({"file_path": args.csv})
    return YahooDataSource()


def _history_range(
    source: DataSource, date_range: DateRange | None, default_lookback: str
) -> DateRange | None:
    # A CSV file is read whole unless a range was given
    if date_range is None and not isinstance(source, CSVDataSource):
        return resolve_date_range(default_lookback=default_lookback)
    return date_range


def _load_history(
    args: argparse.Namespace,
    symbol: Symbol,
    interval: Interval,
    date_range: DateRange | None,
    default_lookback: str,
) -> History:
    source = _history_source(args)
    date_range = _history_range(source, date_range, default_lookback)
    return source.fetch_history(symbol, date_range, interval)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_quote(args: argparse.Namespace) -> int:
    """Show current quotes."""
    symbols = read_symbols(args.symbols)
    if not symbols:
        raise ConfigError("At least one symbol is required")
    quotes = YahooQuoteSource().get_quotes(symbols)
    if not quotes:
        print("Error: No quote data available.", file=sys.stderr)
        return 1
    print(format_quotes(quotes, args.format, args.precision, args.no_header))
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Show quotes for several symbols side by side."""
    symbols = read_symbols(args.symbols)
    if len(symbols) < 2:
        raise ConfigError("At least two symbols are required for comparison")
    quotes = YahooQuoteSource().get_quotes(symbols)
    if len(quotes) < 2:
        print(
            f"Error: Need at least 2 quotes for comparison (got {len(quotes)}).",
            file=sys.stderr,
        )
        return 1
    print(format_comparison(quotes, args.format, args.precision, args.no_header))
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Show historical bars."""
    history = _load_history(
        args, Symbol(args.symbol.upper()), Interval(args.interval), _explicit_range(args), "1mo"
    )
    if not history.bars:
        print(f"Error: No data available for {history.symbol}.", file=sys.stderr)
        return 1
    print(format_history(history, args.format, args.precision, args.no_header))
    return 0


def cmd_download(args: argparse.Namespace) -> int:
    """Fetch history for several symbols into one table."""
    symbols = read_symbols(args.symbols)
    if not symbols:
        raise ConfigError("At least one symbol is required")

    source = _history_source(args)
    date_range = _history_range(source, _explicit_range(args), "1y")
    result = fetch_histories(source, symbols, date_range, Interval(args.interval))

    for symbol, message in result.failed.items():
        print(f"Warning: {symbol}: {message}", file=sys.stderr)
    print(f"Downloaded {len(result.histories)} of {len(symbols)} symbols", file=sys.stderr)

    text = format_batch(result, args.format, args.precision, args.no_header)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    elif result.histories:
        print(text)
    return 1 if result.failed else 0


def cmd_actions(args: argparse.Namespace) -> int:
    """Show dividends and splits for one symbol."""
    symbol = Symbol(args.symbol.upper())
    actions = YahooDataSource().fetch_actions(symbol, _explicit_range(args))
    if args.only == "dividends":
        actions = actions.model_copy(update={"splits": []})
    elif args.only == "splits":
        actions = actions.model_copy(update={"dividends": []})

    if actions.is_empty():
        print(f"No corporate actions available for {symbol}", file=sys.stderr)
        return 0

    print(f"{len(actions.dividends)} dividends, {len(actions.splits)} splits", file=sys.stderr)
    print(format_actions(actions, args.format, args.precision, args.no_header))
    return 0


def _request_from_args(args: argparse.Namespace) -> IndicatorRequest:
    base = IndicatorRequest.all_defaults().model_dump() if args.all else {}
    overrides = {
        "sma": parse_period_list(args.sma, "sma"),
        "ema": parse_period_list(args.ema, "ema"),
        "wma": parse_period_list(args.wma, "wma"),
        "rsi": args.rsi,
        "bb": args.bb,
        "atr": args.atr,
        "adx": args.adx,
    }
    for key, value in overrides.items():
        if value not in (None, []):
            base[key] = value
    for flag in ("macd", "stochastic", "obv", "vwap"):
        if getattr(args, flag):
            base[flag] = True
    base["bb_std_dev"] = args.bb_std
    return IndicatorRequest(**base)


def summarize_report(report: IndicatorReport, latest_price: float) -> list[str]:
    """One line per series describing its latest value."""
    lines = []
    for name, value in report.latest().items():
        if value is None:
            lines.append(f"  {name:<16} {'-':>12}")
            continue
        note = ""
        if name.startswith(("sma_", "ema_", "wma_", "bb_", "vwap")) and value != 0.0:
            diff_pct = (latest_price - value) / value * 100.0
            note = f"price {'above' if diff_pct > 0 else 'below'} ({diff_pct:+.2f}%)"
        elif name.startswith("rsi_") or name == "stoch_k":
            upper, lower = (70.0, 30.0) if name.startswith("rsi_") else (80.0, 20.0)
            note = "overbought" if value > upper else "oversold" if value < lower else "neutral"
        elif name.startswith("adx_"):
            note = "strong trend" if value > 25 else "moderate trend" if value > 20 else "weak trend"
        elif name == "macd_histogram":
            note = "bullish" if value > 0 else "bearish"
        lines.append(f"  {name:<16} {value:>12.4f}   {note}".rstrip())
    return lines


def cmd_indicators(args: argparse.Namespace) -> int:
    """Compute technical indicators for one symbol."""
    if args.config:
        config = load_indicators_config(args.config)
        symbol, interval, date_range, request = (
            config.symbol,
            config.interval,
            _explicit_range(args) or config.date_range,
            config.request,
        )
    else:
        if not args.symbol:
            raise ConfigError("A symbol is required (or use --config)")
        symbol = Symbol(args.symbol.upper())
        interval = Interval(args.interval)
        date_range = _explicit_range(args)
        request = _request_from_args(args)

    if request.is_empty():
        print("No indicators specified. Try --sma 20,50 --rsi 14 --macd or --all.", file=sys.stderr)
        return 1

    history = _load_history(args, symbol, interval, date_range, "1y")
    if not history.bars:
        print(f"Error: No data available for {symbol}.", file=sys.stderr)
        return 1

    report = compute_indicators(history.bars, request)
    for label, message in report.errors.items():
        print(f"Warning: {label}: {message}", file=sys.stderr)

    if OutputFormat(args.format) is OutputFormat.TABLE and args.tail is None:
        latest_price = history.bars[-1].close
        print(f"{symbol}  last close {latest_price:.{args.precision}f}  ({len(history)} bars, {interval.value})")
        print("\n".join(summarize_report(report, latest_price)))
    else:
        print(format_indicator_report(report, args.format, args.precision, args.tail, args.no_header))
    return 0


def cmd_screen(args: argparse.Namespace) -> int:
    """Screen symbols with a preset or a custom expression."""
    if args.config:
        config = load_screen_config(args.config)
        symbols, criteria, where = config.symbols, config.criteria, config.where
    else:
        symbols = read_symbols(args.symbols)
        criteria = ScreenCriteria(args.criteria)
        where = args.where or ""
        if where and criteria is not ScreenCriteria.CUSTOM:
            criteria = ScreenCriteria.CUSTOM

    if not symbols:
        raise ConfigError("At least one symbol is required")

    try:
        # Reject a malformed expression before fetching anything
        if criteria is ScreenCriteria.CUSTOM:
            compile_filter(where)
    except FilterSyntaxError as e:
        print(f"Invalid expression: {e}", file=sys.stderr)
        return 1

    quotes = YahooQuoteSource().get_quotes(symbols)
    if not quotes:
        print("Error: No quote data available.", file=sys.stderr)
        return 1

    matched = screen_quotes(quotes, criteria, where)
    print(f"{len(matched)} of {len(quotes)} symbols match", file=sys.stderr)
    if matched:
        print(format_quotes(matched, args.format, args.precision, args.no_header))
    return 0


# ---------------------------------------------------------------------------
# Argument Parsing
# ---------------------------------------------------------------------------


SYMBOLS_HELP = "Stock symbols (e.g., AAPL MSFT); - or piped input reads them from stdin"


def _add_range_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--interval",
        default="1d",
        choices=[i.value for i in Interval],
        help="Bar interval (default: 1d)",
    )
    parser.add_argument("--lookback", help="Lookback window, e.g. 7d, 3mo, 1y")
    parser.add_argument("--start", help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", help="End date (YYYY-MM-DD)")
    parser.add_argument("--csv", help="Read bars from a CSV file instead of Yahoo")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-f",
        "--format",
        default="table",
        choices=[f.value for f in OutputFormat],
        help="Output format (default: table)",
    )
    common.add_argument("-p", "--precision", type=int, default=2, help="Decimal places")
    common.add_argument("--no-header", action="store_true", help="Omit header row")
    common.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    parser = argparse.ArgumentParser(
        prog="tickerscope",
        description="Market data, screening and technical indicators",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    quote_parser = subparsers.add_parser("quote", parents=[common], help="Show current quotes")
    quote_parser.add_argument("symbols", nargs="*", help=SYMBOLS_HELP)

    compare_parser = subparsers.add_parser(
        "compare", parents=[common], help="Compare quotes side by side"
    )
    compare_parser.add_argument("symbols", nargs="*", help=SYMBOLS_HELP)

    history_parser = subparsers.add_parser("history", parents=[common], help="Show historical bars")
    history_parser.add_argument("symbol", help="Stock symbol (e.g., AAPL)")
    _add_range_options(history_parser)

    download_parser = subparsers.add_parser(
        "download", parents=[common], help="Download history for several symbols"
    )
    download_parser.add_argument("symbols", nargs="*", help=SYMBOLS_HELP)
    _add_range_options(download_parser)
    download_parser.add_argument("-o", "--output", help="Write to this file instead of stdout")

    actions_parser = subparsers.add_parser(
        "actions", parents=[common], help="Show dividends and stock splits"
    )
    actions_parser.add_argument("symbol", help="Stock symbol (e.g., AAPL)")
    actions_parser.add_argument(
        "--only", choices=["dividends", "splits"], help="Show only one kind of action"
    )
    actions_parser.add_argument("--lookback", help="Lookback window, e.g. 5y (default: all)")
    actions_parser.add_argument("--start", help="Start date (YYYY-MM-DD)")
    actions_parser.add_argument("--end", help="End date (YYYY-MM-DD)")

    ind_parser = subparsers.add_parser(
        "indicators", parents=[common], help="Calculate technical indicators"
    )
    ind_parser.add_argument("symbol", nargs="?", help="Stock symbol (e.g., AAPL)")
    _add_range_options(ind_parser)
    ind_parser.add_argument("--config", help="Path to YAML configuration file")
    ind_parser.add_argument("--sma", help="SMA periods, e.g. 20,50,200")
    ind_parser.add_argument("--ema", help="EMA periods, e.g. 12,26")
    ind_parser.add_argument("--wma", help="WMA periods")
    ind_parser.add_argument("--rsi", type=int, help="RSI period")
    ind_parser.add_argument("--macd", action="store_true", help="MACD (12/26/9)")
    ind_parser.add_argument("--stochastic", action="store_true", help="Stochastic (14/3/3)")
    ind_parser.add_argument("--bb", type=int, help="Bollinger Bands period")
    ind_parser.add_argument("--bb-std", type=float, default=2.0, help="Bollinger std dev multiplier")
    ind_parser.add_argument("--atr", type=int, help="ATR period")
    ind_parser.add_argument("--adx", type=int, help="ADX period")
    ind_parser.add_argument("--obv", action="store_true", help="On-Balance Volume")
    ind_parser.add_argument("--vwap", action="store_true", help="Volume Weighted Average Price")
    ind_parser.add_argument("--all", action="store_true", help="All indicators with defaults")
    ind_parser.add_argument("--tail", type=int, help="Print the last N rows of every series")

    screen_parser = subparsers.add_parser("screen", parents=[common], help="Screen symbols")
    screen_parser.add_argument("symbols", nargs="*", help=SYMBOLS_HELP)
    screen_parser.add_argument(
        "-c",
        "--criteria",
        default="custom",
        choices=[c.value for c in ScreenCriteria],
        help="Screening preset (default: custom)",
    )
    screen_parser.add_argument("-w", "--where", help="Filter expression, e.g. 'pe < 20 and yield > 2'")
    screen_parser.add_argument("--config", help="Path to YAML configuration file")

    return parser


COMMANDS = {
    "quote": cmd_quote,
    "compare": cmd_compare,
    "history": cmd_history,
    "download": cmd_download,
    "actions": cmd_actions,
    "indicators": cmd_indicators,
    "screen": cmd_screen,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.verbose)
    try:
        return COMMANDS[args.command](args)
    except TickerscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
