"""Screen quotes with built-in presets or a custom filter expression."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from tickerscope.filters import compile_filter
from tickerscope.types import Quote, ScreenCriteria

logger = logging.getLogger(__name__)


def _is_value(quote: Quote) -> bool:
    # Low P/E and a meaningful dividend; both must be published
    if quote.pe_ratio is None or quote.dividend_yield is None:
        return False
    return 0.0 < quote.pe_ratio < 20.0 and quote.dividend_yield > 2.0


def _is_growth(quote: Quote) -> bool:
    return quote.fifty_two_week_change_percent > 20.0


def _is_dividend(quote: Quote) -> bool:
    return quote.dividend_yield is not None and quote.dividend_yield > 3.0


def _is_momentum(quote: Quote) -> bool:
    return quote.change_percent > 0.0


PRESETS: dict[ScreenCriteria, Callable[[Quote], bool]] = {
    ScreenCriteria.VALUE: _is_value,
    ScreenCriteria.GROWTH: _is_growth,
    ScreenCriteria.DIVIDEND: _is_dividend,
    ScreenCriteria.MOMENTUM: _is_momentum,
}


def screen_quotes(
    quotes: Iterable[Quote],
    criteria: ScreenCriteria | str = ScreenCriteria.CUSTOM,
    where: str = "",
) -> list[Quote]:
    """Return the quotes that satisfy a preset or a custom expression.

    The custom expression is parsed once before any quote is tested, so a
    syntax error aborts the whole screen instead of skipping quotes.

    :param quotes: Quotes to screen.
    :param criteria: Preset name; ``custom`` uses ``where``.
    :param where: Filter expression for the custom preset. Empty matches all.
    :returns: Matching quotes in their original order.
    :raises FilterSyntaxError: If ``where`` is not a valid expression.
    """
    criteria = ScreenCriteria(criteria)
    quotes = list(quotes)

    if criteria is ScreenCriteria.CUSTOM:
        if not where.strip():
            logger.warning("Custom criteria without a where clause matches every symbol")
        predicate: Callable[[Quote], bool] = compile_filter(where)
    else:
        predicate = PRESETS[criteria]

    matched = [q for q in quotes if predicate(q)]
    logger.info("%d of %d symbols match %s", len(matched), len(quotes), criteria.value)
    return matched
