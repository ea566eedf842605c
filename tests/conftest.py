"""Shared fixtures for the tickerscope test suite."""

from typing import Callable, Sequence

import pytest

from tickerscope.types import Bar

DAY = 86400
START_TS = 1704067200  # 2024-01-01 00:00 UTC


def build_bars(
    closes: Sequence[float],
    spread: float = 1.0,
    volumes: Sequence[int] | None = None,
) -> list[Bar]:
    """Daily bars with ``high = close + spread`` and ``low = close - spread``."""
    if volumes is None:
        volumes = [1000] * len(closes)
    return [
        Bar(
            timestamp=START_TS + i * DAY,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]


@pytest.fixture
def make_bars() -> Callable[..., list[Bar]]:
    """Factory for synthetic daily bars."""
    return build_bars
