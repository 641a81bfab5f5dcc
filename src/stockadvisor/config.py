from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(slots=True)
class ScoreWeights:
    pe: float = 30.0
    growth: float = 25.0
    dividend: float = 20.0
    momentum: float = 15.0
    # declared for completeness, the risk branches are not capped by it
    risk: float = 10.0


@dataclass(slots=True)
class ScoreCaps:
    max_pe: float = 40.0
    max_growth: float = 0.25
    max_dividend: float = 0.06
    max_momentum: float = 0.15


@dataclass(slots=True)
class CachePolicy:
    default_ttl_seconds: float = 60.0
    explanation_ttl_seconds: float = 6 * 60 * 60


@dataclass(slots=True)
class ExplainPolicy:
    word_limit: int = 150
    model: str = "gpt-4o-mini"
    temperature: float = 0.4
    max_tokens: int = 280


@dataclass(slots=True)
class MarketDataPolicy:
    base_url: str = "https://www.alphavantage.co/query"
    request_timeout: float = 10.0
    momentum_lookback_bars: int = 63
    screener_symbols: tuple[str, ...] = ("AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "TSLA")


@dataclass(slots=True)
class AppConfig:
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    caps: ScoreCaps = field(default_factory=ScoreCaps)
    cache: CachePolicy = field(default_factory=CachePolicy)
    explain: ExplainPolicy = field(default_factory=ExplainPolicy)
    market: MarketDataPolicy = field(default_factory=MarketDataPolicy)
    market_provider: str = "alphavantage"
    alpha_vantage_key: str = ""
    openai_key: str = ""
    database_path: str = "data/stockadvisor.db"
    backup_webhook_url: str = ""
    backup_auth_token: str = ""
    log_level: str = "INFO"


def load_config(env: Mapping[str, str] | None = None) -> AppConfig:
    source = os.environ if env is None else env

    def _get(name: str, default: str = "") -> str:
        value = source.get(name)
        return value.strip() if value and value.strip() else default

    return AppConfig(
        market_provider=_get("STOCKADVISOR_PROVIDER", "alphavantage").lower(),
        alpha_vantage_key=_get("ALPHA_VANTAGE_KEY"),
        openai_key=_get("OPENAI_KEY"),
        database_path=_get("STOCKADVISOR_DB", "data/stockadvisor.db"),
        backup_webhook_url=_get("WATCHLIST_BACKUP_URL"),
        backup_auth_token=_get("WATCHLIST_BACKUP_TOKEN"),
        log_level=_get("STOCKADVISOR_LOG_LEVEL", "INFO").upper(),
    )
