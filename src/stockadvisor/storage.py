from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from stockadvisor.models import INVESTMENT_HORIZONS, UserProfile, WatchlistEntry, resolve_risk
from stockadvisor.providers.base import WatchlistBackup
from stockadvisor.providers.webhook_backup import NullBackup

logger = logging.getLogger(__name__)

DEFAULT_HORIZON = "mid"


def default_profile() -> UserProfile:
    return UserProfile(risk="moderate", investment_horizon=DEFAULT_HORIZON)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_symbol(symbol: str | None) -> str:
    trimmed = (symbol or "").strip().upper()
    if not trimmed:
        raise ValueError("Symbol is required")
    return trimmed


class Database:
    """Thin sqlite3 wrapper; ``:memory:`` keeps one shared connection."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._memory_conn: sqlite3.Connection | None = None
        if self.path == ":memory:":
            self._memory_conn = sqlite3.connect(":memory:", check_same_thread=False)
            self._memory_conn.row_factory = sqlite3.Row
        self.init_schema()

    def connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS watchlist (
                    symbol TEXT PRIMARY KEY,
                    added_at TEXT NOT NULL,
                    seq INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )


class WatchlistStore:
    def __init__(self, db: Database, backup: WatchlistBackup | None = None) -> None:
        self.db = db
        self.backup = backup or NullBackup()

    def add(self, symbol: str) -> list[WatchlistEntry]:
        trimmed = _normalize_symbol(symbol)
        entry = WatchlistEntry(symbol=trimmed, added_at=_now())
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO watchlist(symbol, added_at, seq)
                VALUES(?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM watchlist))
                ON CONFLICT(symbol) DO UPDATE SET added_at=excluded.added_at, seq=excluded.seq
                """,
                (entry.symbol, entry.added_at),
            )
        self.backup.send(entry)
        return self.list()

    def remove(self, symbol: str) -> list[WatchlistEntry]:
        trimmed = _normalize_symbol(symbol)
        with self.db.connect() as conn:
            conn.execute("DELETE FROM watchlist WHERE symbol = ?", (trimmed,))
        return self.list()

    def list(self) -> list[WatchlistEntry]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT symbol, added_at FROM watchlist ORDER BY seq DESC"
            ).fetchall()
        return [WatchlistEntry(symbol=r["symbol"], added_at=r["added_at"]) for r in rows]

    def export_csv(self) -> str:
        lines = ["Symbol,AddedAt"]
        lines.extend(f"{e.symbol},{e.added_at}" for e in self.list())
        return "\n".join(lines)


class ProfileStore:
    KEY = "user_profile"

    def __init__(self, db: Database) -> None:
        self.db = db

    def load(self) -> UserProfile:
        with self.db.connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (self.KEY,)).fetchone()
        if row is None:
            return default_profile()

        try:
            raw = json.loads(row["value"])
            if not isinstance(raw, dict):
                raise ValueError("profile is not an object")
        except ValueError as e:
            logger.warning("stored user profile unreadable, using defaults: %s", e)
            return default_profile()

        horizon = raw.get("investmentHorizon")
        sectors = raw.get("preferredSectors")
        return UserProfile(
            risk=resolve_risk(raw.get("risk")),
            investment_horizon=horizon if horizon in INVESTMENT_HORIZONS else DEFAULT_HORIZON,
            preferred_sectors=tuple(s for s in sectors if isinstance(s, str)) if isinstance(sectors, list) else (),
            notifications_opt_in=bool(raw.get("notificationsOptIn")),
        )

    def save(self, profile: UserProfile) -> UserProfile:
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO settings(key, value, updated_at) VALUES(?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (self.KEY, json.dumps(profile.to_dict()), _now()),
            )
        return profile

    def update(self, **changes: object) -> UserProfile:
        current = self.load()
        if "risk" in changes:
            current.risk = resolve_risk(changes["risk"])
        if "investment_horizon" in changes:
            horizon = changes["investment_horizon"]
            if horizon not in INVESTMENT_HORIZONS:
                raise ValueError(f"unsupported investment horizon: {horizon}")
            current.investment_horizon = horizon
        if "notifications_opt_in" in changes:
            current.notifications_opt_in = bool(changes["notifications_opt_in"])
        return self.save(current)

    def toggle_sector(self, sector: str) -> UserProfile:
        name = sector.strip()
        current = self.load()
        if not name:
            return current
        if name in current.preferred_sectors:
            current.preferred_sectors = tuple(s for s in current.preferred_sectors if s != name)
        else:
            current.preferred_sectors = (*current.preferred_sectors, name)
        return self.save(current)

    def reset(self) -> UserProfile:
        return self.save(default_profile())
