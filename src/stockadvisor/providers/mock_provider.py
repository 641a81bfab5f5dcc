from __future__ import annotations

from datetime import date, timedelta

from stockadvisor.models import CompanyOverview, DailyBar, QuoteSnapshot, SymbolMatch
from stockadvisor.providers.base import MarketDataError, MarketDataProvider

MOCK_SECTORS = ["Technology", "Healthcare", "Financials", "Energy", "Utilities", "Consumer"]


class MockMarketDataProvider(MarketDataProvider):
    """Deterministic offline data; the seed for each symbol is its letters."""

    def __init__(self, unknown: set[str] | None = None) -> None:
        self.unknown = {s.upper() for s in (unknown or set())}

    @staticmethod
    def _seed(symbol: str) -> int:
        return sum(ord(ch) for ch in symbol.upper()) % 17

    def _check(self, symbol: str, what: str) -> int:
        if symbol.upper() in self.unknown:
            raise MarketDataError(f"{what} not found", 404)
        return self._seed(symbol)

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        i = self._check(symbol, "Quote")
        price = 40.0 + i * 7.5
        change = round(-1.5 + i * 0.25, 2)
        return QuoteSnapshot(
            symbol=symbol.upper(),
            price=price,
            change=change,
            change_percent=round(change / (price - change) * 100, 2),
            volume=1_000_000.0 + i * 150_000,
            latest_trading_day=date.today().isoformat(),
            previous_close=price - change,
            open=price - change / 2,
            high=price + 1.0,
            low=price - 1.5,
        )

    def get_overview(self, symbol: str) -> CompanyOverview:
        i = self._check(symbol, "Overview")
        return CompanyOverview(
            symbol=symbol.upper(),
            name=f"{symbol.upper()} Holdings",
            description=f"Mock company for {symbol.upper()}",
            sector=MOCK_SECTORS[i % len(MOCK_SECTORS)],
            industry="Mock Industry",
            market_capitalization=(20 + i * 35) * 1_000_000_000.0,
            pe_ratio=8.0 + i * 2.5,
            dividend_yield=round(0.004 * (i % 8), 4),
            earnings_growth=round(-0.08 + i * 0.02, 4),
        )

    def search_symbols(self, keywords: str) -> list[SymbolMatch]:
        symbol = keywords.strip().upper()
        if not symbol:
            return []
        return [SymbolMatch(symbol=symbol, name=f"{symbol} Holdings", region="United States", currency="USD", match_score=1.0)]

    def get_daily_series(self, symbol: str) -> list[DailyBar]:
        i = self._check(symbol, "Time series")
        today = date.today()
        out: list[DailyBar] = []
        # newest first, drifting by the seed so momentum varies per symbol
        for n in range(100):
            close = round(40.0 + i * 7.5 - n * (i - 8) * 0.05, 4)
            out.append(
                DailyBar(
                    date=(today - timedelta(days=n)).isoformat(),
                    close=close,
                    adjusted_close=close,
                    volume=1_000_000.0,
                )
            )
        return out
