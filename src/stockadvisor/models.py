from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

RiskLevel = Literal["conservative", "moderate", "aggressive"]
InvestmentHorizon = Literal["short", "mid", "long"]
ExplanationSource = Literal["local", "external", "external-fallback"]

RISK_LEVELS: tuple[str, ...] = ("conservative", "moderate", "aggressive")
INVESTMENT_HORIZONS: tuple[str, ...] = ("short", "mid", "long")


def resolve_risk(value: object) -> str:
    if isinstance(value, str) and value.strip().lower() in RISK_LEVELS:
        return value.strip().lower()
    return "moderate"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class StockSnapshot:
    symbol: str
    pe_ratio: float | None = None
    earnings_growth: float | None = None
    dividend_yield: float | None = None
    momentum_3m: float | None = None


@dataclass(slots=True)
class UserProfile:
    risk: str = "moderate"
    investment_horizon: str | None = None
    preferred_sectors: tuple[str, ...] = ()
    notifications_opt_in: bool = False

    def to_dict(self) -> dict:
        return {
            "risk": self.risk,
            "investmentHorizon": self.investment_horizon,
            "preferredSectors": list(self.preferred_sectors),
            "notificationsOptIn": self.notifications_opt_in,
        }


@dataclass(slots=True)
class StockScoreReason:
    reason: str
    impact: int

    def to_dict(self) -> dict:
        return {"reason": self.reason, "impact": self.impact}


@dataclass(slots=True)
class StockScore:
    score: int
    reasons: list[StockScoreReason] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": self.score, "reasons": [r.to_dict() for r in self.reasons]}


@dataclass(slots=True)
class QuoteSnapshot:
    symbol: str
    price: float | None
    change: float | None
    change_percent: float | None = None
    volume: float | None = None
    latest_trading_day: str | None = None
    previous_close: float | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
            "latestTradingDay": self.latest_trading_day,
            "previousClose": self.previous_close,
            "open": self.open,
            "high": self.high,
            "low": self.low,
        }


@dataclass(slots=True)
class CompanyOverview:
    symbol: str
    name: str
    description: str = ""
    sector: str = ""
    industry: str = ""
    market_capitalization: float = 0.0
    pe_ratio: float = 0.0
    dividend_yield: float = 0.0
    earnings_growth: float | None = None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "sector": self.sector,
            "industry": self.industry,
            "marketCapitalization": self.market_capitalization,
            "peRatio": self.pe_ratio,
            "dividendYield": self.dividend_yield,
        }


@dataclass(slots=True)
class SymbolMatch:
    symbol: str
    name: str
    region: str
    currency: str
    match_score: float

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "region": self.region,
            "currency": self.currency,
            "matchScore": self.match_score,
        }


@dataclass(slots=True)
class DailyBar:
    date: str
    close: float
    adjusted_close: float
    volume: float = 0.0


@dataclass(slots=True)
class ExplanationRecord:
    symbol: str
    explanation: str
    source: str
    quote: QuoteSnapshot
    score_details: list[StockScoreReason]
    generated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "explanation": self.explanation,
            "source": self.source,
            "generatedAt": self.generated_at.isoformat(),
            "quote": self.quote.to_dict(),
            "scoreDetails": [r.to_dict() for r in self.score_details],
        }


@dataclass(slots=True)
class WatchlistEntry:
    symbol: str
    added_at: str

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "addedAt": self.added_at}
