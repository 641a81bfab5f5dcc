from __future__ import annotations

import logging

import requests

from stockadvisor.models import WatchlistEntry
from stockadvisor.providers.base import WatchlistBackup

logger = logging.getLogger(__name__)


class NullBackup(WatchlistBackup):
    def send(self, entry: WatchlistEntry) -> None:
        return None


class WebhookBackup(WatchlistBackup):
    """Posts each added watchlist symbol to a webhook (e.g. an Apps Script sheet).

    Failures are logged and dropped; the local watchlist is the source of truth.
    """

    def __init__(
        self,
        url: str,
        auth_token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 5.0,
    ) -> None:
        self.url = url
        self.auth_token = auth_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, entry: WatchlistEntry) -> None:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        try:
            response = self.session.post(self.url, json=entry.to_dict(), headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("watchlist backup webhook failed for %s: %s", entry.symbol, e)
