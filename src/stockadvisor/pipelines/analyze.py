from __future__ import annotations

import logging
from dataclasses import asdict

from stockadvisor.models import UserProfile
from stockadvisor.providers.base import MarketDataError, MarketDataProvider
from stockadvisor.skills.scoring import build_snapshot, score_stock

logger = logging.getLogger(__name__)


def analyze_symbol(
    provider: MarketDataProvider,
    symbol: str,
    profile: UserProfile,
    lookback_bars: int = 63,
) -> dict:
    """Fetch fundamentals and prices for one symbol and score them.

    The overview is optional: a missing one only skips the factors it feeds.
    Price history errors propagate.
    """
    symbol = symbol.strip().upper()
    try:
        overview = provider.get_overview(symbol)
    except MarketDataError as e:
        if e.is_rate_limited:
            raise
        logger.info("no overview for %s: %s", symbol, e.message)
        overview = None

    series = provider.get_daily_series(symbol)
    snapshot = build_snapshot(symbol, overview, series, lookback_bars=lookback_bars)
    result = score_stock(snapshot, profile)
    return {
        "symbol": symbol,
        "name": overview.name if overview else symbol,
        "snapshot": asdict(snapshot),
        **result.to_dict(),
    }


def fetch_quote_with_pe(provider: MarketDataProvider, symbol: str) -> dict:
    quote = provider.get_quote(symbol)
    try:
        pe_ratio = provider.get_overview(symbol).pe_ratio
    except MarketDataError:
        pe_ratio = None
    return {**quote.to_dict(), "peRatio": pe_ratio}
