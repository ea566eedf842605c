"""Map filter field names and aliases onto quote attributes."""

from __future__ import annotations

from tickerscope.types import Quote

# alias -> Quote attribute
FIELD_ALIASES: dict[str, str] = {
    "price": "price",
    "p": "price",
    "change": "change",
    "changepercent": "change_percent",
    "changepct": "change_percent",
    "change%": "change_percent",
    "volume": "volume",
    "vol": "volume",
    "marketcap": "market_cap",
    "mcap": "market_cap",
    "pe": "pe_ratio",
    "forwardpe": "forward_pe",
    "fpe": "forward_pe",
    "pb": "price_to_book",
    "pricetobook": "price_to_book",
    "eps": "eps",
    "yield": "dividend_yield",
    "dividendyield": "dividend_yield",
    "dy": "dividend_yield",
    "52whigh": "fifty_two_week_high",
    "52wlow": "fifty_two_week_low",
    "52wchange%": "fifty_two_week_change_percent",
    "52wchangepct": "fifty_two_week_change_percent",
    "open": "open",
    "high": "high",
    "low": "low",
    "prevclose": "previous_close",
    "previousclose": "previous_close",
    "avgvolume": "average_volume",
    "avgvol": "average_volume",
}


def canonical_field(name: str) -> str | None:
    """Return the Quote attribute an alias refers to, or None if unknown."""
    return FIELD_ALIASES.get(name.lower())


def resolve_field(quote: Quote, name: str) -> float | None:
    """Look up a numeric quote field by name or alias.

    Unknown names and fields the upstream did not provide both resolve to
    ``None``; callers treat that as "absent" rather than as an error.

    :param quote: Quote to read from.
    :param name: Case-insensitive field name or alias.
    :returns: The field value as float, or None when absent.
    """
    attr = canonical_field(name)
    if attr is None:
        return None
    value = getattr(quote, attr)
    if value is None:
        return None
    return float(value)


def known_fields() -> list[str]:
    return sorted(FIELD_ALIASES)
