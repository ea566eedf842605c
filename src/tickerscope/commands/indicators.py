"""Configuration for the indicators command.

Example config file (indicators.yaml):

    symbol: "AAPL"
    interval: "1d"
    lookback: "1y"            # or start/end
    indicators:
      sma: [20, 50, 200]
      ema: [12, 26]
      rsi: 14
      macd: true
      bb: 20
      bb_std_dev: 2.0
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tickerscope.exceptions import ConfigError
from tickerscope.types import (DateRange, IndicatorRequest, IndicatorsConfig,
                               Interval, Symbol)

VALID_INTERVALS = frozenset(i.value for i in Interval)

# Lookback units in days; months and years are approximate
LOOKBACK_UNITS = {"d": 1, "w": 7, "wk": 7, "m": 30, "mo": 30, "y": 365}

_LOOKBACK_RE = re.compile(r"^(\d+)([a-z]+)$")


def parse_datetime(value: str | datetime) -> datetime:
    """Parse a datetime string or pass through datetime objects.

    :param value: ISO format string, YYYY-MM-DD, or datetime object.
    :returns: Timezone-aware datetime (UTC if no timezone specified).
    :raises ConfigError: If parsing fails.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    value = str(value)
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        pass

    try:
        dt = datetime.strptime(value, "%Y-%m-%d")
        return dt.replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise ConfigError(f"Invalid datetime format: {value}") from e


def parse_lookback(lookback: str, now: datetime | None = None) -> DateRange:
    """Turn a lookback such as ``"7d"``, ``"3mo"`` or ``"1y"`` into a range.

    :param lookback: Count followed by a unit (d, w/wk, m/mo, y).
    :param now: End of the range; defaults to the current UTC time.
    :raises ConfigError: If the lookback is malformed.
    """
    match = _LOOKBACK_RE.match(lookback.strip().lower())
    if match is None:
        raise ConfigError(f"Invalid lookback format: {lookback}")
    count, unit = int(match.group(1)), match.group(2)
    if unit not in LOOKBACK_UNITS:
        raise ConfigError(
            f"Invalid lookback unit '{unit}'. "
            "Use d (days), w (weeks), mo (months), or y (years)"
        )
    end = now or datetime.now(timezone.utc)
    return DateRange(start=end - timedelta(days=count * LOOKBACK_UNITS[unit]), end=end)


def resolve_date_range(
    lookback: str | None = None,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    default_lookback: str = "1y",
) -> DateRange:
    """Pick a history window from a lookback or explicit start/end.

    :raises ConfigError: If start is not before end.
    """
    if lookback:
        return parse_lookback(lookback)
    if start is None and end is None:
        return parse_lookback(default_lookback)

    end_dt = parse_datetime(end) if end is not None else datetime.now(timezone.utc)
    start_dt = parse_datetime(start) if start is not None else end_dt - timedelta(days=365)
    if start_dt >= end_dt:
        raise ConfigError("'start' must be before 'end'")
    return DateRange(start=start_dt, end=end_dt)


def parse_period_list(value: Any, name: str) -> list[int]:
    """Accept ``20``, ``"20,50"`` or ``[20, 50]`` and return positive ints."""
    if value is None or value == "":
        return []
    if isinstance(value, int) and not isinstance(value, bool):
        items: list[Any] = [value]
    elif isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, list):
        items = value
    else:
        raise ConfigError(f"'{name}' must be an integer, a comma separated string or a list")

    periods: list[int] = []
    for item in items:
        try:
            period = int(item)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid period in '{name}': {item!r}") from e
        if period < 1:
            raise ConfigError(f"Periods in '{name}' must be >= 1 (got {period})")
        periods.append(period)
    return periods


def build_indicator_request(raw: dict[str, Any]) -> IndicatorRequest:
    """Validate an ``indicators`` mapping into an :class:`IndicatorRequest`.

    ``all: true`` starts from :meth:`IndicatorRequest.all_defaults`; other
    keys override it.
    """
    if not isinstance(raw, dict):
        raise ConfigError("'indicators' must be a mapping")

    raw = dict(raw)
    use_all = bool(raw.pop("all", False))
    base = IndicatorRequest.all_defaults().model_dump() if use_all else {}

    for key in ("sma", "ema", "wma"):
        if key in raw:
            base[key] = parse_period_list(raw.pop(key), key)

    base.update(raw)
    try:
        return IndicatorRequest(**base)
    except ValidationError as e:
        raise ConfigError(f"Invalid indicators configuration: {e}") from e


def load_indicators_config(config_path: str | Path) -> IndicatorsConfig:
    """Parse and validate an indicators configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated IndicatorsConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    symbol = raw_config.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise ConfigError("Missing required field: symbol")

    interval = str(raw_config.get("interval", Interval.ONE_DAY.value))
    if interval not in VALID_INTERVALS:
        raise ConfigError(
            f"Invalid interval '{interval}'. Valid options: {sorted(VALID_INTERVALS)}"
        )

    date_range = None
    if any(raw_config.get(key) for key in ("lookback", "start", "end")):
        date_range = resolve_date_range(
            lookback=raw_config.get("lookback"),
            start=raw_config.get("start"),
            end=raw_config.get("end"),
        )

    request = build_indicator_request(raw_config.get("indicators", {}))

    return IndicatorsConfig(
        symbol=Symbol(symbol.strip().upper()),
        interval=Interval(interval),
        date_range=date_range,
        request=request,
    )
