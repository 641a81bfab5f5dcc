from __future__ import annotations

from conftest import StubProvider
from stockadvisor.models import CompanyOverview
from stockadvisor.providers.base import MarketDataError
from stockadvisor.skills.screener import (
    ScreenerFilters,
    parse_screener_filters,
    parse_symbols,
    run_screener,
    screen_overviews,
)

DEFAULT = ("AAPL", "MSFT")

UNIVERSE = [
    CompanyOverview("AAPL", "Apple", sector="Technology", market_capitalization=2.9e12, pe_ratio=29.0, dividend_yield=0.005),
    CompanyOverview("XOM", "Exxon", sector="Energy", market_capitalization=4.5e11, pe_ratio=12.0, dividend_yield=0.034),
    CompanyOverview("DUK", "Duke", sector="Utilities", market_capitalization=7.5e10, pe_ratio=18.0, dividend_yield=0.041),
]


def _symbols(items) -> list[str]:
    return [o.symbol for o in items]


def test_no_filters_keeps_everything() -> None:
    assert _symbols(screen_overviews(UNIVERSE, ScreenerFilters())) == ["AAPL", "XOM", "DUK"]


def test_dividend_filters_are_in_percent() -> None:
    result = screen_overviews(UNIVERSE, ScreenerFilters(dividend_yield_min=3.0))

    assert _symbols(result) == ["XOM", "DUK"]


def test_market_cap_filters_are_in_billions() -> None:
    result = screen_overviews(UNIVERSE, ScreenerFilters(market_cap_min=100, market_cap_max=1000))

    assert _symbols(result) == ["XOM"]


def test_sector_match_is_case_insensitive_and_pe_bounds_inclusive() -> None:
    assert _symbols(screen_overviews(UNIVERSE, ScreenerFilters(sector="utilities"))) == ["DUK"]
    assert _symbols(screen_overviews(UNIVERSE, ScreenerFilters(pe_min=12, pe_max=18))) == ["XOM", "DUK"]


def test_parse_filters_ignores_bad_numbers() -> None:
    filters = parse_screener_filters({"peMax": "20", "peMin": "abc", "dividendYieldMin": "inf", "sector": "  "})

    assert filters == ScreenerFilters(pe_max=20.0)
    assert filters.to_dict() == {"peMax": 20.0}


def test_parse_symbols() -> None:
    assert parse_symbols(" ibm, ,msft ", DEFAULT) == ["IBM", "MSFT"]
    assert parse_symbols(",,", DEFAULT) == ["AAPL", "MSFT"]
    assert parse_symbols(None, DEFAULT) == ["AAPL", "MSFT"]


def test_run_screener_skips_failed_symbols() -> None:
    provider = StubProvider()
    for item in UNIVERSE:
        provider.overviews[item.symbol] = item
    provider.errors["BAD"] = MarketDataError("Overview not found", 404)

    report = run_screener(provider, ["AAPL", "BAD", "XOM", "DUK"], ScreenerFilters(pe_max=20))

    assert report["evaluated"] == 3
    assert report["filters"] == {"peMax": 20}
    assert [r["symbol"] for r in report["results"]] == ["XOM", "DUK"]
    assert report["results"][0] == {
        "symbol": "XOM",
        "name": "Exxon",
        "sector": "Energy",
        "industry": "",
        "marketCapitalization": 4.5e11,
        "peRatio": 12.0,
        "dividendYield": 0.034,
    }
