# src/market/price_cache.py
from __future__ import annotations

import sqlite3
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from market.alphavantage import PriceBar


def get_max_date(conn: sqlite3.Connection, ticker: str) -> Optional[date]:
    """Dernière date stockée pour le ticker, ou None si aucune donnée."""
    row = conn.execute(
        "SELECT MAX(date) AS max_date FROM daily_prices WHERE ticker=?",
        (ticker,),
    ).fetchone()
    if row is None or row["max_date"] is None:
        return None
    return date.fromisoformat(row["max_date"])


def _insert_bar(conn: sqlite3.Connection, ticker: str, bar: PriceBar) -> bool:
    cur = conn.execute(
        """
        INSERT INTO daily_prices(ticker, date, open, high, low, close, adj_close, volume)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(ticker, date) DO NOTHING
        """,
        (ticker, bar.date, bar.open, bar.high, bar.low, float(bar.close), bar.adj_close, bar.volume),
    )
    return cur.rowcount == 1


def insert_price_if_absent(conn: sqlite3.Connection, ticker: str, bar: PriceBar) -> bool:
    """
    Insère une séance (ticker, date). Un doublon est ignoré silencieusement :
    la première écriture fait foi.
    """
    inserted = _insert_bar(conn, ticker, bar)
    conn.commit()
    return inserted


def insert_prices_if_absent(conn: sqlite3.Connection, ticker: str, bars: Iterable[PriceBar]) -> int:
    """Même chose en lot, avec un seul commit. Retourne le nombre de nouvelles lignes."""
    inserted = 0
    for bar in bars:
        if _insert_bar(conn, ticker, bar):
            inserted += 1
    conn.commit()
    return inserted


def get_prices(
    conn: sqlite3.Connection,
    ticker: str,
    start_date: Optional[str] = None,
) -> pd.DataFrame:
    """
    Renvoie un DataFrame avec colonnes: date, close (trié croissant).
    date >= start_date si fourni.
    """
    query = """
      SELECT date, close
      FROM daily_prices
      WHERE ticker=?
    """
    params: list[object] = [ticker]

    if start_date is not None:
        query += " AND date >= ?"
        params.append(start_date)

    query += " ORDER BY date ASC"

    df = pd.read_sql_query(query, conn, params=params)
    return df


def get_ohlcv(conn: sqlite3.Connection, ticker: str, limit: int = 20) -> pd.DataFrame:
    """Dernières séances complètes (OHLCV), triées croissantes."""
    df = pd.read_sql_query(
        """
        SELECT date, open, high, low, close, adj_close, volume
        FROM daily_prices
        WHERE ticker=?
        ORDER BY date DESC
        LIMIT ?
        """,
        conn,
        params=(ticker, int(limit)),
    )
    return df.iloc[::-1].reset_index(drop=True)


def get_latest_price(conn: sqlite3.Connection, ticker: str) -> Optional[tuple[str, float]]:
    """
    Dernier point (date, close) ou None si vide.
    """
    row = conn.execute(
        """
        SELECT date, close
        FROM daily_prices
        WHERE ticker=?
        ORDER BY date DESC
        LIMIT 1
        """,
        (ticker,),
    ).fetchone()

    if row is None:
        return None
    return (row["date"], float(row["close"]))
