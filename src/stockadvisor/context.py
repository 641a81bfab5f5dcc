from __future__ import annotations

from dataclasses import dataclass

from stockadvisor.cache import TTLCache
from stockadvisor.config import AppConfig
from stockadvisor.pipelines.explain import ExplanationService
from stockadvisor.providers.base import MarketDataProvider
from stockadvisor.providers.factory import build_backup, build_market_provider, build_polisher
from stockadvisor.storage import Database, ProfileStore, WatchlistStore


@dataclass(slots=True)
class AppContext:
    """Everything a request handler or CLI command needs, built once per process."""

    config: AppConfig
    cache: TTLCache
    provider: MarketDataProvider
    explainer: ExplanationService
    watchlist: WatchlistStore
    profiles: ProfileStore


def build_context(config: AppConfig, provider_kind: str | None = None) -> AppContext:
    cache = TTLCache(config.cache.default_ttl_seconds)
    provider = build_market_provider(provider_kind or config.market_provider, config, cache)
    db = Database(config.database_path)
    return AppContext(
        config=config,
        cache=cache,
        provider=provider,
        explainer=ExplanationService(
            provider,
            build_polisher(config),
            cache,
            cache_policy=config.cache,
            explain_policy=config.explain,
        ),
        watchlist=WatchlistStore(db, backup=build_backup(config)),
        profiles=ProfileStore(db),
    )
