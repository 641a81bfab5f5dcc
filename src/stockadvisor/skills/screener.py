from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Mapping

from stockadvisor.models import CompanyOverview
from stockadvisor.providers.base import MarketDataError, MarketDataProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScreenerFilters:
    pe_min: float | None = None
    pe_max: float | None = None
    dividend_yield_min: float | None = None  # percent
    dividend_yield_max: float | None = None  # percent
    sector: str | None = None
    market_cap_min: float | None = None  # billions
    market_cap_max: float | None = None  # billions

    def to_dict(self) -> dict:
        names = {
            "pe_min": "peMin",
            "pe_max": "peMax",
            "dividend_yield_min": "dividendYieldMin",
            "dividend_yield_max": "dividendYieldMax",
            "sector": "sector",
            "market_cap_min": "marketCapMin",
            "market_cap_max": "marketCapMax",
        }
        return {names[k]: v for k, v in asdict(self).items() if v is not None}


def _number_param(raw: object) -> float | None:
    if not isinstance(raw, str):
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_screener_filters(params: Mapping[str, object]) -> ScreenerFilters:
    sector = params.get("sector")
    return ScreenerFilters(
        pe_min=_number_param(params.get("peMin")),
        pe_max=_number_param(params.get("peMax")),
        dividend_yield_min=_number_param(params.get("dividendYieldMin")),
        dividend_yield_max=_number_param(params.get("dividendYieldMax")),
        market_cap_min=_number_param(params.get("marketCapMin")),
        market_cap_max=_number_param(params.get("marketCapMax")),
        sector=sector.strip() if isinstance(sector, str) and sector.strip() else None,
    )


def parse_symbols(raw: object, default: tuple[str, ...]) -> list[str]:
    if not isinstance(raw, str):
        return list(default)
    symbols = [s.strip().upper() for s in raw.split(",") if s.strip()]
    return symbols or list(default)


def matches(item: CompanyOverview, f: ScreenerFilters) -> bool:
    if f.sector and item.sector.lower() != f.sector.lower():
        return False
    if f.pe_min is not None and item.pe_ratio < f.pe_min:
        return False
    if f.pe_max is not None and item.pe_ratio > f.pe_max:
        return False
    cap_billions = item.market_capitalization / 1_000_000_000
    if f.market_cap_min is not None and cap_billions < f.market_cap_min:
        return False
    if f.market_cap_max is not None and cap_billions > f.market_cap_max:
        return False
    yield_pct = item.dividend_yield * 100
    if f.dividend_yield_min is not None and yield_pct < f.dividend_yield_min:
        return False
    if f.dividend_yield_max is not None and yield_pct > f.dividend_yield_max:
        return False
    return True


def screen_overviews(overviews: list[CompanyOverview], filters: ScreenerFilters) -> list[CompanyOverview]:
    return [o for o in overviews if matches(o, filters)]


def run_screener(provider: MarketDataProvider, symbols: list[str], filters: ScreenerFilters) -> dict:
    """Fetch overviews one by one; a symbol that fails is dropped from ``evaluated``."""
    overviews: list[CompanyOverview] = []
    for symbol in symbols:
        try:
            overviews.append(provider.get_overview(symbol))
        except MarketDataError as e:
            logger.info("screener skipped %s: %s", symbol, e.message)

    return {
        "filters": filters.to_dict(),
        "results": [o.to_dict() for o in screen_overviews(overviews, filters)],
        "evaluated": len(overviews),
    }
