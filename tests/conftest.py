"""
Shared pytest fixtures for the stockadvisor test suite.

Provides:
  - ``clock``: a manually advanced clock for ``TTLCache``.
  - ``db``: an in-memory sqlite ``Database`` with the schema applied.
  - Fake market-data, rewrite and HTTP session collaborators.
"""

from __future__ import annotations

from typing import Any

import pytest

from stockadvisor.cache import TTLCache
from stockadvisor.models import CompanyOverview, DailyBar, QuoteSnapshot, SymbolMatch
from stockadvisor.providers.base import ExplanationPolisher, MarketDataError, MarketDataProvider
from stockadvisor.storage import Database


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider(MarketDataProvider):
    """Returns canned records and counts calls; ``errors`` maps symbol -> exception."""

    def __init__(self) -> None:
        self.quotes: dict[str, QuoteSnapshot] = {}
        self.overviews: dict[str, CompanyOverview] = {}
        self.series: dict[str, list[DailyBar]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def _maybe_fail(self, symbol: str) -> None:
        if symbol in self.errors:
            raise self.errors[symbol]

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        self.calls.append(("quote", symbol))
        self._maybe_fail(symbol)
        if symbol not in self.quotes:
            raise MarketDataError("Quote not found", 404)
        return self.quotes[symbol]

    def get_overview(self, symbol: str) -> CompanyOverview:
        self.calls.append(("overview", symbol))
        self._maybe_fail(symbol)
        if symbol not in self.overviews:
            raise MarketDataError("Overview not found", 404)
        return self.overviews[symbol]

    def search_symbols(self, keywords: str) -> list[SymbolMatch]:
        self.calls.append(("search", keywords))
        return [SymbolMatch(keywords.upper(), "Match Inc", "United States", "USD", 0.9)]

    def get_daily_series(self, symbol: str) -> list[DailyBar]:
        self.calls.append(("series", symbol))
        self._maybe_fail(symbol)
        return self.series.get(symbol, [])


class FakePolisher(ExplanationPolisher):
    source = "external"
    networked = True

    def __init__(self, reply: str | None = "Polished summary.", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def polish(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        import requests

        if not self.ok:
            raise requests.HTTPError(f"status {self.status_code}")


class FakeSession:
    """Minimal stand-in for ``requests.Session`` recording each call."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def _next(self) -> FakeResponse:
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, params: dict | None = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append({"method": "GET", "url": url, "params": params})
        return self._next()

    def post(self, url: str, json: Any = None, headers: dict | None = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append({"method": "POST", "url": url, "json": json, "headers": headers})
        return self._next()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(60, clock=clock)


@pytest.fixture
def db() -> Database:
    return Database(":memory:")


@pytest.fixture
def sample_quote() -> QuoteSnapshot:
    return QuoteSnapshot(
        symbol="AAPL",
        price=189.5,
        change=1.25,
        change_percent=0.66,
        volume=52_345_678,
        latest_trading_day="2024-05-10",
        previous_close=188.25,
        open=188.0,
        high=190.1,
        low=187.6,
    )


@pytest.fixture
def stub_provider(sample_quote: QuoteSnapshot) -> StubProvider:
    provider = StubProvider()
    provider.quotes["AAPL"] = sample_quote
    return provider
