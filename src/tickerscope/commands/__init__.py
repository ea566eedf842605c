"""Configuration loaders for CLI commands.

Each command module provides:
- YAML configuration loading and validation
- Helpers shared with the equivalent command-line flags
"""

from tickerscope.commands.indicators import (load_indicators_config,
                                             parse_lookback,
                                             resolve_date_range)
from tickerscope.commands.screen import load_screen_config

__all__ = [
    "load_indicators_config",
    "load_screen_config",
    "parse_lookback",
    "resolve_date_range",
]
