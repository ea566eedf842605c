"""Tests for the tickerscope command-line interface."""

import io
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import yaml

from tickerscope import cli
from tickerscope.data import MockQuoteSource
from tickerscope.indicators import IndicatorReport
from tickerscope.types import Quote, Symbol

QUOTES = {
    "KO": Quote(symbol=Symbol("KO"), price=60.0, change_percent=0.3, pe_ratio=18.0,
                dividend_yield=3.1),
    "NVDA": Quote(symbol=Symbol("NVDA"), price=900.0, change_percent=2.0, pe_ratio=70.0,
                  dividend_yield=0.02, fifty_two_week_change_percent=180.0),
    "T": Quote(symbol=Symbol("T"), price=17.0, change_percent=-1.0, pe_ratio=9.0,
               dividend_yield=6.5),
}


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging so later tests see default logging."""
    yield
    logger = logging.getLogger("tickerscope")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def quote_source():
    """Serve canned quotes instead of calling Yahoo."""
    source = MockQuoteSource(QUOTES)
    with patch.object(cli, "YahooQuoteSource", return_value=source) as factory:
        yield factory


@pytest.fixture
def bars_csv(tmp_path: Path) -> Path:
    """Thirty daily bars of a rising market."""
    rows = ["timestamp,open,high,low,close,volume"]
    for i in range(30):
        close = 100.0 + i
        rows.append(f"{1704067200 + i * 86400},{close},{close + 1},{close - 1},{close},{1000 + i}")
    path = tmp_path / "bars.csv"
    path.write_text("\n".join(rows) + "\n")
    return path


class TestMain:
    """Tests for main()."""

    def test_no_command_prints_help(self, capsys) -> None:
        """Without a sub-command the help text is shown."""
        assert cli.main([]) == 0
        assert "usage: tickerscope" in capsys.readouterr().out

    def test_configure_logging_levels(self) -> None:
        """--verbose selects DEBUG, otherwise WARNING."""
        cli.configure_logging(verbose=True)
        assert logging.getLogger("tickerscope").level == logging.DEBUG
        cli.configure_logging()
        logger = logging.getLogger("tickerscope")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_configure_logging_stops_propagation(self) -> None:
        """Records are not passed on to root handlers, so nothing prints twice."""
        cli.configure_logging()
        assert logging.getLogger("tickerscope").propagate is False


class TestQuoteCommand:
    """Tests for the quote command."""

    def test_quote_table(self, quote_source, capsys) -> None:
        """Quotes are printed as a table."""
        assert cli.main(["quote", "ko", "t"]) == 0

        out = capsys.readouterr().out
        assert "Symbol" in out
        assert "KO" in out and "T" in out

    def test_quote_json(self, quote_source, capsys) -> None:
        """--format json prints records."""
        assert cli.main(["quote", "NVDA", "--format", "json", "--precision", "1"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data[0]["symbol"] == "NVDA"
        assert data[0]["price"] == 900.0

    def test_quote_no_data(self, quote_source, capsys) -> None:
        """Unknown symbols give exit status 1."""
        assert cli.main(["quote", "ZZZZ"]) == 1
        assert "No quote data available" in capsys.readouterr().err


class TestScreenCommand:
    """Tests for the screen command."""

    def test_where(self, quote_source, capsys) -> None:
        """A custom expression keeps only matching symbols."""
        assert cli.main(["screen", "KO", "NVDA", "T", "--where", "pe < 20 and yield > 5"]) == 0

        captured = capsys.readouterr()
        assert "1 of 3 symbols match" in captured.err
        assert "T" in captured.out.split()
        assert "KO" not in captured.out

    def test_preset(self, quote_source, capsys) -> None:
        """Presets select by fixed rules."""
        assert cli.main(["screen", "KO", "NVDA", "T", "-c", "growth", "-f", "minimal"]) == 0
        assert capsys.readouterr().out.split()[0] == "NVDA"

    def test_invalid_expression(self, quote_source, capsys) -> None:
        """A malformed expression aborts before fetching quotes."""
        assert cli.main(["screen", "KO", "--where", "pe <"]) == 1

        assert "Invalid expression:" in capsys.readouterr().err
        quote_source.assert_not_called()

    def test_no_symbols(self, quote_source, monkeypatch, capsys) -> None:
        """At least one symbol is required."""
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        assert cli.main(["screen", "--where", "pe < 20"]) == 1
        assert "Error: At least one symbol is required" in capsys.readouterr().err

    def test_config_file(self, quote_source, tmp_path: Path, capsys) -> None:
        """Symbols and criteria can come from YAML."""
        path = tmp_path / "screen.yaml"
        path.write_text(yaml.safe_dump({"symbols": ["ko", "nvda", "t"], "criteria": "dividend"}))

        assert cli.main(["screen", "--config", str(path), "-f", "csv", "--no-header"]) == 0
        symbols = [line.split(",")[0] for line in capsys.readouterr().out.splitlines()]
        assert symbols == ["KO", "T"]

    def test_bad_config_file(self, quote_source, tmp_path: Path, capsys) -> None:
        """Config errors are reported on one line with status 1."""
        assert cli.main(["screen", "--config", str(tmp_path / "missing.yaml")]) == 1
        assert "Error: Configuration file not found" in capsys.readouterr().err


class TestHistoryCommand:
    """Tests for the history command."""

    def test_history_from_csv(self, bars_csv: Path, capsys) -> None:
        """Bars are read from a CSV file."""
        assert cli.main(["history", "X", "--csv", str(bars_csv), "-f", "csv"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "date,open,high,low,close,volume"
        assert len(lines) == 31
        assert lines[1].startswith("2024-01-01 00:00,100.00")

    def test_missing_csv(self, tmp_path: Path, capsys) -> None:
        """Data source errors give exit status 1."""
        assert cli.main(["history", "X", "--csv", str(tmp_path / "none.csv")]) == 1
        assert "Error: CSV file not found" in capsys.readouterr().err

    def test_csv_with_date_range(self, bars_csv: Path, capsys) -> None:
        """An explicit range filters the CSV rows."""
        args = ["history", "X", "--csv", str(bars_csv),
                "--start", "2024-01-10", "--end", "2024-01-15", "-f", "csv"]
        assert cli.main(args) == 0

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 6
        assert lines[1].startswith("2024-01-10 00:00,")
        assert lines[-1].startswith("2024-01-14 00:00,")


class TestIndicatorsCommand:
    """Tests for the indicators command."""

    def test_summary(self, bars_csv: Path, capsys) -> None:
        """The default table shows the latest value of each series."""
        assert cli.main(["indicators", "X", "--csv", str(bars_csv), "--sma", "5,10", "--rsi", "14"]) == 0

        out = capsys.readouterr().out
        assert "last close 129.00" in out
        assert "sma_5" in out and "sma_10" in out
        assert "rsi_14" in out and "overbought" in out

    def test_tail_csv(self, bars_csv: Path, capsys) -> None:
        """--tail prints the last rows of every series."""
        args = ["indicators", "X", "--csv", str(bars_csv), "--sma", "5", "--obv", "--tail", "2", "-f", "csv"]
        assert cli.main(args) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "date,sma_5,obv"
        assert len(lines) == 3
        assert lines[-1].startswith("2024-01-30 00:00,127.00,")

    def test_insufficient_data_is_a_warning(self, bars_csv: Path, capsys) -> None:
        """An indicator that cannot run is reported but others still print."""
        assert cli.main(["indicators", "X", "--csv", str(bars_csv), "--sma", "5,50"]) == 0

        captured = capsys.readouterr()
        assert "Warning: SMA(50): SMA: insufficient data (need 50, have 30)" in captured.err
        assert "sma_5" in captured.out

    def test_all(self, bars_csv: Path, capsys) -> None:
        """--all requests every indicator; long periods fail individually."""
        assert cli.main(["indicators", "X", "--csv", str(bars_csv), "--all", "-f", "json", "--tail", "1"]) == 0

        captured = capsys.readouterr()
        record = json.loads(captured.out)[0]
        assert "vwap" in record and "macd" in record
        assert "sma_200" not in record
        assert "SMA(200)" in captured.err

    def test_no_indicators(self, bars_csv: Path, capsys) -> None:
        """Asking for nothing is an error."""
        assert cli.main(["indicators", "X", "--csv", str(bars_csv)]) == 1
        assert "No indicators specified" in capsys.readouterr().err

    def test_symbol_required(self, capsys) -> None:
        """A symbol or config file is required."""
        assert cli.main(["indicators", "--rsi", "14"]) == 1
        assert "A symbol is required" in capsys.readouterr().err

    def test_config_file(self, bars_csv: Path, tmp_path: Path, capsys) -> None:
        """Indicators can be configured in YAML."""
        path = tmp_path / "indicators.yaml"
        path.write_text(yaml.safe_dump({"symbol": "x", "indicators": {"ema": [3], "vwap": True}}))

        args = ["indicators", "--config", str(path), "--csv", str(bars_csv), "-f", "minimal", "--tail", "1"]
        assert cli.main(args) == 0
        fields = capsys.readouterr().out.split()
        assert fields[:2] == ["2024-01-30", "00:00"]
        assert len(fields) == 4

    def test_bad_period(self, bars_csv: Path, capsys) -> None:
        """Invalid period lists are configuration errors."""
        assert cli.main(["indicators", "X", "--csv", str(bars_csv), "--sma", "abc"]) == 1
        assert "Invalid period in 'sma'" in capsys.readouterr().err

    def test_config_date_range_applies_to_csv(self, bars_csv: Path, tmp_path: Path, capsys) -> None:
        """start/end from YAML filter a CSV source."""
        path = tmp_path / "indicators.yaml"
        path.write_text(yaml.safe_dump({
            "symbol": "x", "start": "2024-01-21", "end": "2024-02-01", "indicators": {"sma": [3]},
        }))

        assert cli.main(["indicators", "--config", str(path), "--csv", str(bars_csv), "-f", "csv"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 11
        assert lines[1].startswith("2024-01-21 00:00,")

    def test_flag_range_overrides_config(self, bars_csv: Path, tmp_path: Path, capsys) -> None:
        """--start/--end on the command line win over the YAML range."""
        path = tmp_path / "indicators.yaml"
        path.write_text(yaml.safe_dump({
            "symbol": "x", "start": "2024-01-01", "indicators": {"obv": True},
        }))

        args = ["indicators", "--config", str(path), "--csv", str(bars_csv),
                "--start", "2024-01-28", "--end", "2024-02-01", "-f", "csv"]
        assert cli.main(args) == 0
        assert len(capsys.readouterr().out.splitlines()) == 4


class TestSummarizeReport:
    """Tests for summarize_report()."""

    def test_notes(self) -> None:
        """Each series gets an interpretation of its latest value."""
        report = IndicatorReport(
            timestamps=[1],
            series={
                "sma_20": np.array([100.0]),
                "rsi_14": np.array([25.0]),
                "adx_14": np.array([30.0]),
                "macd_histogram": np.array([-0.5]),
                "obv": np.array([np.nan]),
            },
        )
        lines = cli.summarize_report(report, latest_price=110.0)

        assert "price above (+10.00%)" in lines[0]
        assert lines[1].endswith("oversold")
        assert lines[2].endswith("strong trend")
        assert lines[3].endswith("bearish")
        assert lines[4].split() == ["obv", "-"]


class TestReadSymbols:
    """Tests for read_symbols()."""

    def test_arguments(self) -> None:
        """Arguments are upper-cased and de-duplicated."""
        assert cli.read_symbols(["aapl", "msft", "AAPL"], io.StringIO("")) == ["AAPL", "MSFT"]

    def test_comma_separated_argument(self) -> None:
        """A comma list in one argument is split."""
        assert cli.read_symbols(["aapl,msft"], io.StringIO("")) == ["AAPL", "MSFT"]

    def test_dash_reads_stream(self) -> None:
        """'-' pulls symbols from the stream, mixed separators allowed."""
        stream = io.StringIO("ko t\nnvda,  msft\n\nko\n")
        assert cli.read_symbols(["aapl", "-"], stream) == ["AAPL", "KO", "T", "NVDA", "MSFT"]

    def test_piped_input_without_arguments(self) -> None:
        """With no arguments a non-terminal stream is read."""
        assert cli.read_symbols([], io.StringIO("brk.b ^gspc eurusd=x")) == ["BRK.B", "^GSPC", "EURUSD=X"]

    def test_terminal_is_not_read(self) -> None:
        """An interactive terminal is never waited on."""

        class Terminal(io.StringIO):
            def isatty(self) -> bool:
                return True

        assert cli.read_symbols([], Terminal("AAPL")) == []

    def test_invalid_symbols_skipped(self) -> None:
        """Malformed symbols are dropped."""
        assert cli.read_symbols(["aapl", "bad$sym", "waytoolongsymbol"], io.StringIO("")) == ["AAPL"]


class TestStdinSymbols:
    """Tests for commands reading symbols from stdin."""

    def test_quote_from_piped_stdin(self, quote_source, monkeypatch, capsys) -> None:
        """quote with no arguments reads piped symbols."""
        monkeypatch.setattr("sys.stdin", io.StringIO("ko\nt\n"))
        assert cli.main(["quote", "-f", "csv", "--no-header"]) == 0

        symbols = [line.split(",")[0] for line in capsys.readouterr().out.splitlines()]
        assert symbols == ["KO", "T"]

    def test_screen_with_dash(self, quote_source, monkeypatch, capsys) -> None:
        """'-' merges stdin symbols with the arguments."""
        monkeypatch.setattr("sys.stdin", io.StringIO("nvda, t"))
        assert cli.main(["screen", "KO", "-", "-c", "dividend", "-f", "minimal"]) == 0

        assert "2 of 3 symbols match" in capsys.readouterr().err

    def test_quote_with_empty_stdin(self, quote_source, monkeypatch, capsys) -> None:
        """Empty piped input is the same as no symbols."""
        monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
        assert cli.main(["quote"]) == 1
        assert "Error: At least one symbol is required" in capsys.readouterr().err


class TestCompareCommand:
    """Tests for the compare command."""

    def test_side_by_side(self, quote_source, capsys) -> None:
        """Each symbol becomes a column."""
        assert cli.main(["compare", "ko", "nvda", "--precision", "1"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["Field", "KO", "NVDA"]
        assert lines[2].split() == ["Price", "60.0", "900.0"]
        assert any(line.split()[:3] == ["P/E", "18.0", "70.0"] for line in lines)

    def test_json(self, quote_source, capsys) -> None:
        """JSON rows are keyed by symbol."""
        assert cli.main(["compare", "KO", "T", "-f", "json"]) == 0
        rows = {row["field"]: row for row in json.loads(capsys.readouterr().out)}
        assert rows["dividend_yield"] == {"field": "dividend_yield", "KO": 3.1, "T": 6.5}

    def test_needs_two_symbols(self, quote_source, capsys) -> None:
        """One symbol is not a comparison."""
        assert cli.main(["compare", "KO"]) == 1
        assert "At least two symbols are required" in capsys.readouterr().err
        quote_source.assert_not_called()

    def test_needs_two_quotes(self, quote_source, capsys) -> None:
        """Unknown symbols can leave too few quotes to compare."""
        assert cli.main(["compare", "KO", "ZZZZ"]) == 1
        assert "Need at least 2 quotes for comparison (got 1)" in capsys.readouterr().err


@pytest.fixture
def yahoo():
    """A mocked yfinance whose tickers serve bars and corporate actions."""
    import pandas as pd

    tickers: list[MagicMock] = []

    def make_ticker(symbol: str) -> MagicMock:
        if symbol == "BAD":
            raise RuntimeError("No data found, symbol may be delisted")
        ticker = MagicMock()
        ticker.history.return_value = pd.DataFrame(
            {
                "Open": [10.0, 11.0],
                "High": [11.0, 12.0],
                "Low": [9.0, 10.0],
                "Close": [10.5, 11.5],
                "Volume": [100, 200],
            },
            index=pd.DatetimeIndex(
                [pd.Timestamp("2024-01-02", tz="UTC"), pd.Timestamp("2024-01-03", tz="UTC")]
            ),
        )
        ticker.dividends = pd.Series(
            [0.22, 0.23],
            index=pd.DatetimeIndex(
                [pd.Timestamp("2019-02-08", tz="UTC"), pd.Timestamp("2023-11-10", tz="UTC")]
            ),
        )
        ticker.splits = pd.Series(
            [4.0], index=pd.DatetimeIndex([pd.Timestamp("2020-08-31", tz="UTC")])
        )
        tickers.append(ticker)
        return ticker

    with patch.dict("sys.modules", {"yfinance": MagicMock()}):
        mock_yf = sys.modules["yfinance"]
        mock_yf.Ticker.side_effect = make_ticker
        mock_yf.created = tickers
        yield mock_yf


class TestActionsCommand:
    """Tests for the actions command."""

    def test_csv(self, yahoo, capsys) -> None:
        """Dividends and splits print in date order."""
        assert cli.main(["actions", "aapl", "-f", "csv"]) == 0

        captured = capsys.readouterr()
        assert captured.out.splitlines() == [
            "date,type,value",
            "2019-02-08,dividend,0.22",
            "2020-08-31,split,4:1",
            "2023-11-10,dividend,0.23",
        ]
        assert "2 dividends, 1 splits" in captured.err
        yahoo.Ticker.assert_called_once_with("AAPL")

    def test_only_splits(self, yahoo, capsys) -> None:
        """--only keeps one kind of action."""
        assert cli.main(["actions", "AAPL", "--only", "splits", "-f", "minimal"]) == 0
        assert capsys.readouterr().out.strip() == "2020-08-31 split 4:1"

    def test_date_range(self, yahoo, capsys) -> None:
        """--start limits the history."""
        assert cli.main(["actions", "AAPL", "--start", "2021-01-01", "-f", "csv", "--no-header"]) == 0
        assert capsys.readouterr().out.splitlines() == ["2023-11-10,dividend,0.23"]

    def test_nothing_in_range(self, yahoo, capsys) -> None:
        """An empty result is reported without failing."""
        args = ["actions", "AAPL", "--start", "2000-01-01", "--end", "2001-01-01"]
        assert cli.main(args) == 0

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No corporate actions available for AAPL" in captured.err

    def test_fetch_error(self, yahoo, capsys) -> None:
        """Lookup failures exit with status 1."""
        assert cli.main(["actions", "BAD"]) == 1
        assert "Error: Failed to fetch corporate actions for symbol 'BAD'" in capsys.readouterr().err


class TestDownloadCommand:
    """Tests for the download command."""

    @pytest.fixture
    def multi_csv(self, tmp_path: Path) -> Path:
        """Bars for two symbols in one file."""
        path = tmp_path / "multi.csv"
        path.write_text(
            "timestamp,symbol,open,high,low,close,volume\n"
            "1704067200,AAA,1,2,0.5,1.5,10\n"
            "1704067200,BBB,5,6,4.5,5.5,50\n"
            "1704153600,AAA,1.5,2.5,1,2,20\n"
        )
        return path

    def test_from_csv(self, multi_csv: Path, capsys) -> None:
        """Rows from every symbol print with a symbol column."""
        assert cli.main(["download", "aaa", "bbb", "--csv", str(multi_csv), "-f", "csv", "-p", "1"]) == 0

        captured = capsys.readouterr()
        assert captured.out.splitlines() == [
            "symbol,date,open,high,low,close,volume",
            "AAA,2024-01-01 00:00,1.0,2.0,0.5,1.5,10",
            "AAA,2024-01-02 00:00,1.5,2.5,1.0,2.0,20",
            "BBB,2024-01-01 00:00,5.0,6.0,4.5,5.5,50",
        ]
        assert "Downloaded 2 of 2 symbols" in captured.err

    def test_output_file(self, multi_csv: Path, tmp_path: Path, capsys) -> None:
        """--output writes the table to a file instead of stdout."""
        target = tmp_path / "out.json"
        args = ["download", "AAA", "--csv", str(multi_csv), "-f", "json", "-o", str(target)]
        assert cli.main(args) == 0

        assert capsys.readouterr().out == ""
        records = json.loads(target.read_text())
        assert [r["close"] for r in records] == [1.5, 2.0]

    def test_symbols_from_stdin(self, multi_csv: Path, monkeypatch, capsys) -> None:
        """Symbols can be piped in."""
        monkeypatch.setattr("sys.stdin", io.StringIO("bbb\n"))
        assert cli.main(["download", "--csv", str(multi_csv), "-f", "minimal"]) == 0
        assert capsys.readouterr().out.split()[0] == "BBB"

    def test_yahoo_partial_failure(self, yahoo, capsys) -> None:
        """Failed symbols are reported, the rest still print, and the exit status is 1."""
        assert cli.main(["download", "AAPL", "BAD", "MSFT", "--lookback", "7d", "-f", "csv"]) == 1

        captured = capsys.readouterr()
        symbols = [line.split(",")[0] for line in captured.out.splitlines()[1:]]
        assert symbols == ["AAPL", "AAPL", "MSFT", "MSFT"]
        assert "Warning: BAD: Failed to fetch history for symbol 'BAD'" in captured.err
        assert "Downloaded 2 of 3 symbols" in captured.err

    def test_yahoo_default_range(self, yahoo, capsys) -> None:
        """Without range flags a year of history is requested."""
        assert cli.main(["download", "AAPL", "MSFT"]) == 0

        assert [c.args[0] for c in yahoo.Ticker.call_args_list] == ["AAPL", "MSFT"]
        kwargs = yahoo.created[0].history.call_args.kwargs
        span = datetime.strptime(kwargs["end"], "%Y-%m-%d") - datetime.strptime(kwargs["start"], "%Y-%m-%d")
        assert span.days == 365
