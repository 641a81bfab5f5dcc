from __future__ import annotations

from stockadvisor.cache import TTLCache
from stockadvisor.config import AppConfig
from stockadvisor.providers.alpha_vantage_provider import AlphaVantageProvider
from stockadvisor.providers.base import ExplanationPolisher, MarketDataProvider, WatchlistBackup
from stockadvisor.providers.llm_provider import LocalPolisher, OpenAIPolisher
from stockadvisor.providers.mock_provider import MockMarketDataProvider
from stockadvisor.providers.webhook_backup import NullBackup, WebhookBackup


def build_market_provider(kind: str, config: AppConfig, cache: TTLCache) -> MarketDataProvider:
    mode = kind.strip().lower()
    if mode == "mock":
        return MockMarketDataProvider()
    if mode == "alphavantage":
        return AlphaVantageProvider(config.alpha_vantage_key, cache, policy=config.market)
    raise ValueError(f"unsupported market provider: {kind}")


def build_polisher(config: AppConfig) -> ExplanationPolisher:
    if config.openai_key:
        return OpenAIPolisher(config.openai_key, policy=config.explain)
    return LocalPolisher()


def build_backup(config: AppConfig) -> WatchlistBackup:
    if config.backup_webhook_url:
        return WebhookBackup(config.backup_webhook_url, config.backup_auth_token or None)
    return NullBackup()
