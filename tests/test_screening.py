"""Tests for quote screening."""

import pytest

from tickerscope.exceptions import FilterSyntaxError
from tickerscope.screening import PRESETS, screen_quotes
from tickerscope.types import Quote, ScreenCriteria, Symbol


@pytest.fixture
def quotes() -> list[Quote]:
    return [
        Quote(symbol=Symbol("KO"), price=60.0, change_percent=0.3, pe_ratio=18.0,
              dividend_yield=3.1, fifty_two_week_change_percent=5.0),
        Quote(symbol=Symbol("NVDA"), price=900.0, change_percent=2.0, pe_ratio=70.0,
              dividend_yield=0.02, fifty_two_week_change_percent=180.0),
        Quote(symbol=Symbol("T"), price=17.0, change_percent=-1.0, pe_ratio=9.0,
              dividend_yield=6.5, fifty_two_week_change_percent=-4.0),
        Quote(symbol=Symbol("RIVN"), price=12.0, change_percent=-3.0,
              fifty_two_week_change_percent=-40.0),
    ]


def symbols(quotes: list[Quote]) -> list[str]:
    return [q.symbol for q in quotes]


class TestPresets:
    """Tests for built-in screening presets."""

    def test_value(self, quotes: list[Quote]) -> None:
        """Value needs 0 < P/E < 20 and yield > 2."""
        assert symbols(screen_quotes(quotes, ScreenCriteria.VALUE)) == ["KO", "T"]

    def test_value_rejects_negative_pe(self) -> None:
        """Loss-making companies are not value picks."""
        quote = Quote(symbol=Symbol("X"), pe_ratio=-5.0, dividend_yield=4.0)
        assert screen_quotes([quote], "value") == []

    def test_growth(self, quotes: list[Quote]) -> None:
        """Growth needs a 52-week change above 20%."""
        assert symbols(screen_quotes(quotes, ScreenCriteria.GROWTH)) == ["NVDA"]

    def test_dividend(self, quotes: list[Quote]) -> None:
        """Dividend needs a yield above 3%."""
        assert symbols(screen_quotes(quotes, ScreenCriteria.DIVIDEND)) == ["KO", "T"]

    def test_momentum(self, quotes: list[Quote]) -> None:
        """Momentum needs a positive daily change."""
        assert symbols(screen_quotes(quotes, "momentum")) == ["KO", "NVDA"]

    def test_every_preset_except_custom_defined(self) -> None:
        """Custom is the only criteria without a fixed predicate."""
        assert set(PRESETS) == set(ScreenCriteria) - {ScreenCriteria.CUSTOM}


class TestCustom:
    """Tests for custom expressions."""

    def test_where(self, quotes: list[Quote]) -> None:
        """Custom criteria applies the where expression."""
        matched = screen_quotes(quotes, ScreenCriteria.CUSTOM, "pe < 20 and yield > 5")
        assert symbols(matched) == ["T"]

    def test_absent_fields_excluded(self, quotes: list[Quote]) -> None:
        """Quotes without the compared field never match."""
        assert "RIVN" not in symbols(screen_quotes(quotes, where="pe > 0"))

    def test_empty_where_matches_all(self, quotes: list[Quote]) -> None:
        """An empty custom expression keeps every quote."""
        assert screen_quotes(quotes) == quotes

    def test_syntax_error_aborts(self, quotes: list[Quote]) -> None:
        """A malformed expression raises rather than skipping quotes."""
        with pytest.raises(FilterSyntaxError):
            screen_quotes(quotes, where="pe <<< 3")

    def test_syntax_error_raised_without_quotes(self) -> None:
        """The expression is compiled before iterating."""
        with pytest.raises(FilterSyntaxError):
            screen_quotes([], where="and")

    def test_where_ignored_for_presets(self, quotes: list[Quote]) -> None:
        """Presets do not consult the where expression."""
        matched = screen_quotes(quotes, ScreenCriteria.GROWTH, "price < 0")
        assert symbols(matched) == ["NVDA"]

    def test_invalid_criteria(self, quotes: list[Quote]) -> None:
        """Unknown criteria names are rejected."""
        with pytest.raises(ValueError):
            screen_quotes(quotes, "cheap")
