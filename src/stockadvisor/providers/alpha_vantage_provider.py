from __future__ import annotations

import logging
from urllib.parse import urlencode

import requests

from stockadvisor.cache import TTLCache
from stockadvisor.config import MarketDataPolicy
from stockadvisor.models import CompanyOverview, DailyBar, QuoteSnapshot, SymbolMatch
from stockadvisor.providers.base import RATE_LIMIT_STATUS, MarketDataError, MarketDataProvider

logger = logging.getLogger(__name__)


def _safe_float(v: object) -> float | None:
    if v is None:
        return None
    if isinstance(v, str):
        v = v.strip().rstrip("%")
        if v in {"", "-", "None", "nan"}:
            return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


class AlphaVantageProvider(MarketDataProvider):
    """Alpha Vantage REST client.

    Raw payloads are memoised in the shared cache under ``alpha:<query>`` with
    the cache's default ttl, so repeated calls within a minute hit memory.
    """

    def __init__(
        self,
        api_key: str,
        cache: TTLCache,
        policy: MarketDataPolicy | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.cache = cache
        self.policy = policy or MarketDataPolicy()
        self.session = session or requests.Session()

    def _fetch(self, params: dict[str, str]) -> dict:
        if not self.api_key:
            raise MarketDataError("Missing Alpha Vantage API key", 500)

        cache_key = f"alpha:{urlencode(params)}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = self.session.get(
                self.policy.base_url,
                params={**params, "apikey": self.api_key},
                timeout=self.policy.request_timeout,
            )
        except requests.RequestException as e:
            raise MarketDataError(f"Alpha Vantage request failed: {type(e).__name__}", 500) from e

        if not response.ok:
            raise MarketDataError("Alpha Vantage request failed", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise MarketDataError("Alpha Vantage returned invalid JSON", 500) from e

        if not isinstance(data, dict):
            raise MarketDataError("Alpha Vantage returned an unexpected payload", 500)
        if "Note" in data or "Information" in data:
            logger.warning("alpha vantage rate limit hit for %s", params.get("function"))
            raise MarketDataError("Alpha Vantage rate limit exceeded", RATE_LIMIT_STATUS)

        self.cache.set(cache_key, data)
        return data

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        payload = self._fetch({"function": "GLOBAL_QUOTE", "symbol": symbol})
        quote = payload.get("Global Quote") or {}
        if not quote:
            raise MarketDataError("Quote not found", 404)

        return QuoteSnapshot(
            symbol=quote.get("01. symbol") or symbol,
            price=_safe_float(quote.get("05. price")),
            change=_safe_float(quote.get("09. change")),
            change_percent=_safe_float(quote.get("10. change percent")),
            volume=_safe_float(quote.get("06. volume")),
            latest_trading_day=quote.get("07. latest trading day"),
            previous_close=_safe_float(quote.get("08. previous close")),
            open=_safe_float(quote.get("02. open")),
            high=_safe_float(quote.get("03. high")),
            low=_safe_float(quote.get("04. low")),
        )

    def get_overview(self, symbol: str) -> CompanyOverview:
        payload = self._fetch({"function": "OVERVIEW", "symbol": symbol})
        if not payload.get("Symbol"):
            raise MarketDataError("Overview not found", 404)

        return CompanyOverview(
            symbol=payload["Symbol"],
            name=payload.get("Name", ""),
            description=payload.get("Description", ""),
            sector=payload.get("Sector", ""),
            industry=payload.get("Industry", ""),
            market_capitalization=_safe_float(payload.get("MarketCapitalization")) or 0.0,
            pe_ratio=_safe_float(payload.get("PERatio")) or 0.0,
            dividend_yield=_safe_float(payload.get("DividendYield")) or 0.0,
            earnings_growth=_safe_float(payload.get("QuarterlyEarningsGrowthYOY")),
        )

    def search_symbols(self, keywords: str) -> list[SymbolMatch]:
        payload = self._fetch({"function": "SYMBOL_SEARCH", "keywords": keywords})
        return [
            SymbolMatch(
                symbol=m.get("1. symbol", ""),
                name=m.get("2. name", ""),
                region=m.get("4. region", ""),
                currency=m.get("8. currency", ""),
                match_score=_safe_float(m.get("9. matchScore")) or 0.0,
            )
            for m in payload.get("bestMatches") or []
        ]

    def get_daily_series(self, symbol: str) -> list[DailyBar]:
        payload = self._fetch(
            {"function": "TIME_SERIES_DAILY_ADJUSTED", "symbol": symbol, "outputsize": "compact"}
        )
        series = payload.get("Time Series (Daily)") or {}

        out: list[DailyBar] = []
        for day in sorted(series, reverse=True):
            bar = series[day]
            close = _safe_float(bar.get("4. close"))
            if close is None:
                continue
            adjusted = _safe_float(bar.get("5. adjusted close"))
            out.append(
                DailyBar(
                    date=day,
                    close=close,
                    adjusted_close=close if adjusted is None else adjusted,
                    volume=_safe_float(bar.get("6. volume")) or 0.0,
                )
            )
        return out
