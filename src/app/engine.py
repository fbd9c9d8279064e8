# src/app/engine.py

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date

from app.config import Settings, load_settings
from market.alphavantage import fetch_daily_ohlcv
from market.price_sync import Fetcher, sync_prices_for_ticker, utc_today
from portfolio.valuation import compute_snapshots
from storage.repo import list_agents, list_holding_tickers, log_event


@dataclass(frozen=True)
class TickerSync:
    ticker: str
    inserted: int


@dataclass
class SyncReport:
    prices: list[TickerSync] = field(default_factory=list)
    snapshots: dict[str, int] = field(default_factory=dict)  # agent_id -> nouveaux snapshots

    @property
    def total_prices_inserted(self) -> int:
        return sum(p.inserted for p in self.prices)


def tickers_to_sync(conn: sqlite3.Connection, benchmark_ticker: str) -> list[str]:
    """Union des tickers détenus par les agents + le benchmark."""
    return sorted(set(list_holding_tickers(conn)) | {benchmark_ticker.upper()})


def sync_all_prices(
    conn: sqlite3.Connection,
    settings: Settings,
    today: date | None = None,
    fetcher: Fetcher = fetch_daily_ohlcv,
) -> list[TickerSync]:
    """
    Synchro séquentielle : le rate-limit du fournisseur sérialise déjà les appels.
    Un ticker en échec contribue 0 ligne, sans arrêter les autres.
    """
    today = today or utc_today()
    results = []
    for ticker in tickers_to_sync(conn, settings.benchmark_ticker):
        n = sync_prices_for_ticker(
            conn,
            ticker,
            floor_date=settings.price_floor_date,
            today=today,
            fetcher=fetcher,
        )
        results.append(TickerSync(ticker=ticker, inserted=n))
    return results


def recompute_all_snapshots(conn: sqlite3.Connection) -> dict[str, int]:
    """Recalcule tous les agents (pas seulement ceux dont les prix ont bougé)."""
    return {agent.id: compute_snapshots(conn, agent.id) for agent in list_agents(conn)}


def sync_and_recompute(
    conn: sqlite3.Connection,
    settings: Settings | None = None,
    today: date | None = None,
    fetcher: Fetcher = fetch_daily_ohlcv,
) -> SyncReport:
    """
    Rafraîchit tout : prix manquants puis snapshots de chaque agent.
    Seules les erreurs inattendues (stockage, configuration) remontent ; aucune annulation
    n'est nécessaire puisque chaque écriture est idempotente.
    """
    settings = settings or load_settings()

    report = SyncReport()
    report.prices = sync_all_prices(conn, settings, today=today, fetcher=fetcher)
    report.snapshots = recompute_all_snapshots(conn)

    log_event(conn, "SYNC_ALL", {
        "prices": {p.ticker: p.inserted for p in report.prices},
        "snapshots": report.snapshots,
    })
    return report
