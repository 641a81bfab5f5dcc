from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakePolisher, StubProvider
from stockadvisor.api import create_app
from stockadvisor.cache import TTLCache
from stockadvisor.config import AppConfig
from stockadvisor.context import AppContext
from stockadvisor.models import CompanyOverview, DailyBar
from stockadvisor.pipelines.explain import ExplanationService
from stockadvisor.providers.base import MarketDataError
from stockadvisor.providers.llm_provider import LocalPolisher
from stockadvisor.storage import Database, ProfileStore, WatchlistStore

EXPLAIN_BODY = {
    "symbol": "aapl",
    "scoreDetails": [{"reason": "Low P/E relative to cap", "impact": 15}],
}


def _context(provider: StubProvider, cache: TTLCache, polisher=None) -> AppContext:
    db = Database(":memory:")
    return AppContext(
        config=AppConfig(),
        cache=cache,
        provider=provider,
        explainer=ExplanationService(provider, polisher or LocalPolisher(), cache),
        watchlist=WatchlistStore(db),
        profiles=ProfileStore(db),
    )


@pytest.fixture
def client(stub_provider: StubProvider, cache: TTLCache) -> TestClient:
    return TestClient(create_app(_context(stub_provider, cache)))


def _bars(n: int, start: float = 100.0) -> list[DailyBar]:
    return [DailyBar(date=f"2024-01-{i:03d}", close=start - i, adjusted_close=start - i) for i in range(n)]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True, "provider": "StubProvider"}


# ── /api/explain ──────────────────────────────────────────────────────────────

def test_explain_then_cached(client: TestClient) -> None:
    first = client.post("/api/explain", json=EXPLAIN_BODY)
    second = client.post("/api/explain", json=EXPLAIN_BODY)

    assert first.status_code == 200
    body = first.json()
    assert body["symbol"] == "AAPL"
    assert body["source"] == "local"
    assert body["cached"] is False
    assert body["explanation"].startswith("AAPL trades at $189.50")
    assert second.json()["cached"] is True


@pytest.mark.parametrize(
    "content",
    [b"not json", b"[]", b'{"symbol": "AAPL"}', b'{"symbol": "", "scoreDetails": []}'],
)
def test_explain_rejects_bad_bodies(client: TestClient, content: bytes) -> None:
    response = client.post("/api/explain", content=content, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Request must include symbol and scoreDetails"}


def test_explain_rate_limit_maps_to_429(stub_provider: StubProvider, cache: TTLCache) -> None:
    stub_provider.errors["AAPL"] = MarketDataError("Alpha Vantage rate limit exceeded", 429)
    client = TestClient(create_app(_context(stub_provider, cache)))

    response = client.post("/api/explain", json=EXPLAIN_BODY)

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please retry in a moment."}


def test_explain_unexpected_error_is_500(stub_provider: StubProvider, cache: TTLCache) -> None:
    stub_provider.errors["AAPL"] = RuntimeError("kaboom")
    client = TestClient(create_app(_context(stub_provider, cache)))

    response = client.post("/api/explain", json=EXPLAIN_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": "Unexpected server error"}


def test_explain_external_fallback(stub_provider: StubProvider, cache: TTLCache) -> None:
    polisher = FakePolisher(error=TimeoutError("slow"))
    client = TestClient(create_app(_context(stub_provider, cache, polisher)))

    body = client.post("/api/explain", json=EXPLAIN_BODY).json()

    assert body["source"] == "external-fallback"


# ── market data endpoints ─────────────────────────────────────────────────────

def test_quote_includes_pe(client: TestClient, stub_provider: StubProvider) -> None:
    stub_provider.overviews["AAPL"] = CompanyOverview("AAPL", "Apple", pe_ratio=28.5)

    body = client.get("/api/quote", params={"symbol": "aapl"}).json()

    assert body["price"] == 189.5
    assert body["changePercent"] == 0.66
    assert body["peRatio"] == 28.5


def test_quote_without_overview_has_null_pe(client: TestClient) -> None:
    assert client.get("/api/quote", params={"symbol": "AAPL"}).json()["peRatio"] is None


def test_quote_requires_symbol_and_maps_not_found(client: TestClient) -> None:
    assert client.get("/api/quote").status_code == 400

    missing = client.get("/api/quote", params={"symbol": "ZZZ"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Quote not found"}


def test_search(client: TestClient) -> None:
    assert client.get("/api/search").status_code == 400

    body = client.get("/api/search", params={"q": "tesla"}).json()
    assert body["query"] == "tesla"
    assert body["results"][0]["symbol"] == "TESLA"


def test_timeseries(client: TestClient, stub_provider: StubProvider) -> None:
    stub_provider.series["IBM"] = _bars(100)

    body = client.get("/api/timeseries", params={"symbol": "ibm"}).json()

    assert body["symbol"] == "IBM"
    assert body["lastClose"] == 100.0
    assert body["dataPoints"] == 100


def test_timeseries_empty_is_404(client: TestClient) -> None:
    response = client.get("/api/timeseries", params={"symbol": "IBM"})

    assert response.status_code == 404
    assert response.json() == {"error": "No time series data available"}


def test_screener(client: TestClient, stub_provider: StubProvider) -> None:
    stub_provider.overviews["XOM"] = CompanyOverview(
        "XOM", "Exxon", sector="Energy", market_capitalization=4.5e11, pe_ratio=12.0, dividend_yield=0.034
    )

    body = client.get("/api/screener", params={"symbols": "xom,nope", "dividendYieldMin": "3"}).json()

    assert body["evaluated"] == 1
    assert body["filters"] == {"dividendYieldMin": 3.0}
    assert [r["symbol"] for r in body["results"]] == ["XOM"]


# ── scoring ───────────────────────────────────────────────────────────────────

def test_score_endpoint(client: TestClient) -> None:
    body = {"symbol": "test", "peRatio": 20, "earningsGrowth": 0.0, "dividendYield": 0.03, "momentum3M": 0.0}

    result = client.post("/api/score", json=body).json()

    assert result["score"] == 47
    assert result["reasons"][-1] == {"reason": "Risk profile boost", "impact": 2}


def test_score_rejects_non_object(client: TestClient) -> None:
    assert client.post("/api/score", json=[1, 2]).status_code == 400


def test_analyze(client: TestClient, stub_provider: StubProvider) -> None:
    stub_provider.overviews["IBM"] = CompanyOverview("IBM", "IBM Corp", pe_ratio=20.0, dividend_yield=0.03, earnings_growth=0.0)
    stub_provider.series["IBM"] = [DailyBar(date="d", close=100.0, adjusted_close=100.0)] * 70

    body = client.get("/api/analyze", params={"symbol": "ibm", "risk": "aggressive"}).json()

    assert body["name"] == "IBM Corp"
    assert body["snapshot"]["momentum_3m"] == 0.0
    assert body["score"] == 45


# ── watchlist / profile ───────────────────────────────────────────────────────

def test_watchlist_endpoints(client: TestClient) -> None:
    client.post("/api/watchlist/aapl")
    entries = client.post("/api/watchlist/msft").json()
    assert [e["symbol"] for e in entries] == ["MSFT", "AAPL"]
    assert "addedAt" in entries[0]

    assert [e["symbol"] for e in client.delete("/api/watchlist/AAPL").json()] == ["MSFT"]
    assert [e["symbol"] for e in client.get("/api/watchlist").json()] == ["MSFT"]

    csv_text = client.get("/api/watchlist.csv").text
    assert csv_text.splitlines()[0] == "Symbol,AddedAt"


def test_blank_watchlist_symbol_is_400(client: TestClient) -> None:
    response = client.post("/api/watchlist/%20")

    assert response.status_code == 400
    assert response.json() == {"error": "Symbol is required"}


def test_profile_defaults(client: TestClient) -> None:
    assert client.get("/api/profile").json() == {
        "risk": "moderate",
        "investmentHorizon": "mid",
        "preferredSectors": [],
        "notificationsOptIn": False,
    }


def test_numbers_too_large_for_float_are_rejected_or_skipped(client: TestClient) -> None:
    huge = "9" * 400
    headers = {"Content-Type": "application/json"}

    explain = client.post(
        "/api/explain",
        content=f'{{"symbol": "AAPL", "scoreDetails": [{{"reason": "x", "impact": {huge}}}]}}',
        headers=headers,
    )
    score = client.post("/api/score", content=f'{{"symbol": "X", "peRatio": {huge}}}', headers=headers)

    assert explain.status_code == 400
    assert score.status_code == 200
    assert score.json() == {"score": 0, "reasons": []}
