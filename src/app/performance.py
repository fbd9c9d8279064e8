# src/app/performance.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date

import pandas as pd

from app.config import DEFAULT_BENCHMARK
from market.price_cache import get_latest_price, get_prices
from market.price_sync import utc_today
from model.kpis import KPIs, compute_kpis
from portfolio.benchmark import benchmark_snapshots
from storage.repo import (
    get_holdings,
    get_latest_snapshot,
    get_snapshots,
    list_agents,
    require_agent,
)


TIMEFRAMES = ("1W", "1M", "3M", "6M", "1Y", "YTD", "ALL")


@dataclass(frozen=True)
class PerformanceReport:
    agent_id: str
    timeframe: str
    start_date: str
    kpis: KPIs
    snapshots: pd.DataFrame
    benchmark: pd.DataFrame


def timeframe_start_date(timeframe: str, inception_date: date, today: date | None = None) -> date:
    tf = timeframe.upper()
    today = today or utc_today()
    now = pd.Timestamp(today)

    if tf == "1W":
        return (now - pd.Timedelta(days=7)).date()
    if tf == "1M":
        return (now - pd.DateOffset(months=1)).date()
    if tf == "3M":
        return (now - pd.DateOffset(months=3)).date()
    if tf == "6M":
        return (now - pd.DateOffset(months=6)).date()
    if tf == "1Y":
        return (now - pd.DateOffset(years=1)).date()
    if tf == "YTD":
        return date(today.year, 1, 1)
    if tf == "ALL":
        return inception_date
    raise ValueError(f"Timeframe inconnu: {timeframe!r} (attendu: {', '.join(TIMEFRAMES)})")


def agent_performance(
    conn: sqlite3.Connection,
    agent_id: str,
    timeframe: str = "ALL",
    benchmark_ticker: str = DEFAULT_BENCHMARK,
    today: date | None = None,
) -> PerformanceReport:
    """
    KPIs d'un agent sur une fenêtre, comparés au benchmark.
    Le benchmark est restreint aux dates des snapshots : alpha/beta alignent par position.
    """
    agent = require_agent(conn, agent_id)
    start = timeframe_start_date(timeframe, agent.inception_date, today=today).isoformat()

    snaps = get_snapshots(conn, agent_id, start_date=start)

    bench_prices = get_prices(conn, benchmark_ticker, start_date=start)
    if not snaps.empty:
        bench_prices = bench_prices[bench_prices["date"].isin(set(snaps["date"]))].reset_index(drop=True)
    bench = benchmark_snapshots(bench_prices, agent.initial_capital)

    kpis = compute_kpis(snaps, agent.initial_capital, bench)
    return PerformanceReport(
        agent_id=agent_id,
        timeframe=timeframe.upper(),
        start_date=start,
        kpis=kpis,
        snapshots=snaps,
        benchmark=bench,
    )


def leaderboard(conn: sqlite3.Connection) -> pd.DataFrame:
    """Agents classés par performance totale décroissante (valeur = dernier snapshot, sinon capital)."""
    rows = []
    for agent in list_agents(conn):
        latest = get_latest_snapshot(conn, agent.id)
        current = latest[1] if latest is not None else agent.initial_capital
        rows.append({
            "id": agent.id,
            "name": agent.name,
            "color": agent.color,
            "inception_date": agent.inception_date.isoformat(),
            "initial_capital": agent.initial_capital,
            "current_value": current,
            "total_return": (current - agent.initial_capital) / agent.initial_capital * 100.0,
        })

    cols = ["rank", "id", "name", "color", "inception_date", "initial_capital", "current_value", "total_return"]
    if not rows:
        return pd.DataFrame(columns=cols)

    df = pd.DataFrame(rows).sort_values("total_return", ascending=False, kind="stable").reset_index(drop=True)
    df["rank"] = range(1, len(df) + 1)
    return df[cols]


def holdings_breakdown(conn: sqlite3.Connection, agent_id: str) -> pd.DataFrame:
    """
    Détail par ligne : parts, prix d'inception (premier prix >= inception), dernier prix,
    valeur courante et performance de la ligne.
    Sans prix connu, la ligne vaut son montant alloué.
    """
    agent = require_agent(conn, agent_id)
    floor = agent.inception_date.isoformat()

    rows = []
    for h in get_holdings(conn, agent_id):
        allocated = h.allocation_pct / 100.0 * agent.initial_capital
        prices = get_prices(conn, h.ticker, start_date=floor)
        inception_price = float(prices["close"].iloc[0]) if not prices.empty else None
        latest = get_latest_price(conn, h.ticker)
        current_price = latest[1] if latest is not None else None

        shares = h.shares
        if shares is None and inception_price:
            shares = allocated / inception_price

        if shares is not None and current_price is not None:
            current_value = shares * current_price
        else:
            current_value = allocated

        if inception_price and current_price is not None:
            return_pct = (current_price - inception_price) / inception_price * 100.0
        else:
            return_pct = 0.0

        rows.append({
            "ticker": h.ticker,
            "allocation_pct": h.allocation_pct,
            "shares": shares if shares is not None else 0.0,
            "inception_price": inception_price,
            "current_price": current_price,
            "current_value": current_value,
            "return_pct": return_pct,
        })

    return pd.DataFrame(rows, columns=[
        "ticker", "allocation_pct", "shares", "inception_price", "current_price", "current_value", "return_pct",
    ])
