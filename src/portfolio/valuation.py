# src/portfolio/valuation.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from market.price_cache import get_prices
from model.returns import simple_returns
from storage.repo import (
    Holding,
    get_agent,
    get_holdings,
    insert_snapshot_if_absent,
    update_holding_shares,
)


@dataclass(frozen=True)
class Valuation:
    shares: dict[int, float] = field(default_factory=dict)   # holding_id -> parts à l'inception
    dates: list[str] = field(default_factory=list)
    values: list[float] = field(default_factory=list)
    returns: list[Optional[float]] = field(default_factory=list)

    @property
    def inception(self) -> Optional[str]:
        return self.dates[0] if self.dates else None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "date": self.dates,
            "total_value": self.values,
            "daily_return": [np.nan if r is None else r for r in self.returns],
        })


def valid_dates(
    tickers: Sequence[str],
    prices_by_ticker: Mapping[str, Mapping[str, float]],
    inception_date: date,
) -> list[str]:
    """Dates où *tous* les tickers ont un prix, à partir de l'inception, triées croissantes."""
    if not tickers:
        return []
    floor = inception_date.isoformat()
    common = None
    for t in tickers:
        days = {d for d, p in prices_by_ticker.get(t, {}).items() if p is not None}
        common = days if common is None else (common & days)
    return sorted(d for d in common if d >= floor)


def inception_shares(
    holdings: Sequence[Holding],
    prices_by_ticker: Mapping[str, Mapping[str, float]],
    inception: str,
    initial_capital: float,
) -> dict[int, float]:
    """n = (pct/100 * capital) / prix à l'inception ; holding ignoré si prix absent ou nul."""
    shares: dict[int, float] = {}
    for h in holdings:
        price = prices_by_ticker.get(h.ticker, {}).get(inception)
        if not price:
            continue
        shares[h.id] = (h.allocation_pct / 100.0) * float(initial_capital) / float(price)
    return shares


def build_snapshots(
    holdings: Sequence[Holding],
    prices_by_ticker: Mapping[str, Mapping[str, float]],
    inception_date: date,
    initial_capital: float,
) -> Valuation:
    """
    Valorise le portefeuille buy-and-hold sur chaque date valide.
    Aucune date valide -> Valuation vide (état transitoire normal, pas une erreur).
    """
    days = valid_dates([h.ticker for h in holdings], prices_by_ticker, inception_date)
    if not days:
        return Valuation()

    shares = inception_shares(holdings, prices_by_ticker, days[0], initial_capital)

    values: list[float] = []
    for d in days:
        total = 0.0
        for h in holdings:
            n = shares.get(h.id)
            price = prices_by_ticker[h.ticker].get(d)
            if n and price:
                total += n * float(price)
        values.append(total)

    return Valuation(shares=shares, dates=days, values=values, returns=simple_returns(values))


def load_close_prices(conn: sqlite3.Connection, tickers: Sequence[str]) -> dict[str, dict[str, float]]:
    out: dict[str, dict[str, float]] = {}
    for t in tickers:
        if t in out:
            continue
        df = get_prices(conn, t)
        out[t] = dict(zip(df["date"].astype(str), df["close"].astype(float)))
    return out


def compute_snapshots(conn: sqlite3.Connection, agent_id: str) -> int:
    """
    Recalcule les parts d'inception (écrasées) et ajoute les snapshots manquants.
    Les snapshots existants ne sont jamais corrigés, même si un prix a été révisé depuis.
    Retourne le nombre de nouveaux snapshots.
    """
    agent = get_agent(conn, agent_id)
    if agent is None:
        return 0

    holdings = get_holdings(conn, agent_id)
    if not holdings:
        return 0

    prices = load_close_prices(conn, [h.ticker for h in holdings])
    val = build_snapshots(holdings, prices, agent.inception_date, agent.initial_capital)
    if not val.dates:
        return 0

    for holding_id, n in val.shares.items():
        update_holding_shares(conn, holding_id, n)

    inserted = 0
    for d, v, r in zip(val.dates, val.values, val.returns):
        if insert_snapshot_if_absent(conn, agent_id, d, v, r):
            inserted += 1
    return inserted
