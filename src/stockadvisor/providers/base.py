from __future__ import annotations

from abc import ABC, abstractmethod

from stockadvisor.models import CompanyOverview, DailyBar, QuoteSnapshot, SymbolMatch, WatchlistEntry

RATE_LIMIT_STATUS = 429


class MarketDataError(Exception):
    """Upstream market-data failure carrying a client-visible status code."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == RATE_LIMIT_STATUS


class PolishError(Exception):
    pass


class MarketDataProvider(ABC):
    @abstractmethod
    def get_quote(self, symbol: str) -> QuoteSnapshot:
        raise NotImplementedError

    @abstractmethod
    def get_overview(self, symbol: str) -> CompanyOverview:
        raise NotImplementedError

    @abstractmethod
    def search_symbols(self, keywords: str) -> list[SymbolMatch]:
        raise NotImplementedError

    @abstractmethod
    def get_daily_series(self, symbol: str) -> list[DailyBar]:
        raise NotImplementedError


class ExplanationPolisher(ABC):
    """Optional rewrite step for a drafted explanation.

    ``source`` is the provenance tag recorded when ``polish`` succeeds.
    """

    source: str = "local"
    networked: bool = False

    @abstractmethod
    def polish(self, prompt: str) -> str | None:
        raise NotImplementedError


class WatchlistBackup(ABC):
    @abstractmethod
    def send(self, entry: WatchlistEntry) -> None:
        raise NotImplementedError


def error_response(exc: Exception) -> tuple[int, str]:
    """Map an upstream failure to the (status, message) a client sees."""
    if isinstance(exc, MarketDataError):
        if exc.is_rate_limited:
            return RATE_LIMIT_STATUS, "Rate limit exceeded. Please retry in a moment."
        return exc.status_code, exc.message
    return 500, "Unexpected server error"
