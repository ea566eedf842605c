"""Configuration for the screen command.

Example config file (screen.yaml):

    symbols:
      - "AAPL"
      - "MSFT"
      - "KO"
    criteria: "custom"
    where: "pe < 25 and yield > 1"
"""

from __future__ import annotations

from pathlib import Path

import yaml

from tickerscope.exceptions import ConfigError, FilterSyntaxError
from tickerscope.filters import compile_filter
from tickerscope.types import ScreenConfig, ScreenCriteria, Symbol

VALID_CRITERIA = frozenset(c.value for c in ScreenCriteria)


def load_screen_config(config_path: str | Path) -> ScreenConfig:
    """Parse and validate a screen configuration file.

    The ``where`` expression is compiled here so that a typo is reported as
    a configuration error before any quotes are fetched.

    :param config_path: Path to YAML configuration file.
    :returns: Validated ScreenConfig object.
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

    if "symbols" not in raw_config:
        raise ConfigError("Missing required field: symbols")
    raw_symbols = raw_config["symbols"]
    if not isinstance(raw_symbols, list) or len(raw_symbols) == 0:
        raise ConfigError("'symbols' must be a non-empty list")
    symbols = [Symbol(str(s).strip().upper()) for s in raw_symbols]

    criteria = str(raw_config.get("criteria", ScreenCriteria.CUSTOM.value)).lower()
    if criteria not in VALID_CRITERIA:
        raise ConfigError(
            f"Invalid criteria '{criteria}'. Valid options: {sorted(VALID_CRITERIA)}"
        )

    where = raw_config.get("where") or ""
    if not isinstance(where, str):
        raise ConfigError("'where' must be a string")
    try:
        compile_filter(where)
    except FilterSyntaxError as e:
        raise ConfigError(f"Invalid 'where' expression: {e}") from e

    return ScreenConfig(symbols=symbols, criteria=ScreenCriteria(criteria), where=where)
