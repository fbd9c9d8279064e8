# src/storage/repo.py
from __future__ import annotations

import json
import math
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional

import pandas as pd


DEFAULT_INITIAL_CAPITAL = 100000.0
ALLOCATION_TOLERANCE = 0.01  # points de pourcentage


class AgentValidationError(ValueError):
    pass


class AgentNotFoundError(LookupError):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class Agent:
    id: str
    name: str
    color: str
    inception_date: date
    initial_capital: float
    created_at: str


@dataclass(frozen=True)
class Holding:
    id: int
    agent_id: str
    ticker: str
    allocation_pct: float
    shares: Optional[float]  # None tant que le prix d'inception n'est pas connu


def _row_to_agent(row: sqlite3.Row) -> Agent:
    return Agent(
        id=row["id"],
        name=row["name"],
        color=row["color"],
        inception_date=date.fromisoformat(row["inception_date"]),
        initial_capital=float(row["initial_capital"]),
        created_at=row["created_at"],
    )


def validate_allocations(holdings: Iterable[tuple[str, float]]) -> list[tuple[str, float]]:
    """
    Vérifie une liste (ticker, allocation_pct) et renvoie les tickers normalisés en majuscules.
    La somme doit valoir 100 à ALLOCATION_TOLERANCE près.
    """
    out: list[tuple[str, float]] = []
    for ticker, pct in holdings:
        t = str(ticker or "").strip().upper()
        if not t:
            raise AgentValidationError("Ticker vide dans les holdings.")
        try:
            p = float(pct)
        except (TypeError, ValueError):
            raise AgentValidationError(f"Allocation non numérique pour {t}: {pct!r}")
        # NaN passerait toutes les comparaisons
        if not math.isfinite(p):
            raise AgentValidationError(f"Allocation non finie pour {t}: {p}")
        if p < 0.0 or p > 100.0 + ALLOCATION_TOLERANCE + 1e-9:
            raise AgentValidationError(f"Allocation hors [0, 100] pour {t}: {p}")
        out.append((t, p))

    if not out:
        raise AgentValidationError("Un agent doit avoir au moins un holding.")

    total = sum(p for _, p in out)
    # petite marge pour les erreurs d'arrondi flottant sur la borne elle-même
    if abs(total - 100.0) > ALLOCATION_TOLERANCE + 1e-9:
        raise AgentValidationError(f"Les allocations doivent sommer à 100% (somme={total:.4f}).")
    return out


def create_agent(
    conn: sqlite3.Connection,
    agent_id: str,
    name: str,
    color: str,
    inception_date: date,
    holdings: Iterable[tuple[str, float]],
    initial_capital: float | None = None,
) -> Agent:
    """Crée un agent et ses holdings (shares à NULL jusqu'au premier calcul de snapshots)."""
    if not agent_id or not name or not color or inception_date is None:
        raise AgentValidationError("Champs obligatoires manquants (id, name, color, inception_date).")

    capital = DEFAULT_INITIAL_CAPITAL if not initial_capital else float(initial_capital)
    if capital <= 0:
        raise AgentValidationError(f"initial_capital doit être > 0 (reçu {capital}).")

    rows = validate_allocations(holdings)

    if get_agent(conn, agent_id) is not None:
        raise AgentValidationError(f"Agent déjà existant: {agent_id}")

    created_at = utc_now_iso()
    with conn:
        conn.execute(
            """
            INSERT INTO agents(id, name, color, inception_date, initial_capital, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (agent_id, name, color, inception_date.isoformat(), capital, created_at),
        )
        conn.executemany(
            "INSERT INTO holdings(agent_id, ticker, allocation_pct) VALUES (?, ?, ?)",
            [(agent_id, t, p) for t, p in rows],
        )

    return Agent(
        id=agent_id,
        name=name,
        color=color,
        inception_date=inception_date,
        initial_capital=capital,
        created_at=created_at,
    )


def get_agent(conn: sqlite3.Connection, agent_id: str) -> Optional[Agent]:
    row = conn.execute("SELECT * FROM agents WHERE id=?", (agent_id,)).fetchone()
    if row is None:
        return None
    return _row_to_agent(row)


def require_agent(conn: sqlite3.Connection, agent_id: str) -> Agent:
    agent = get_agent(conn, agent_id)
    if agent is None:
        raise AgentNotFoundError(f"Agent introuvable: {agent_id}")
    return agent


def list_agents(conn: sqlite3.Connection) -> list[Agent]:
    rows = conn.execute("SELECT * FROM agents ORDER BY created_at ASC, id ASC").fetchall()
    return [_row_to_agent(r) for r in rows]


def get_holdings(conn: sqlite3.Connection, agent_id: str) -> list[Holding]:
    rows = conn.execute(
        "SELECT id, agent_id, ticker, allocation_pct, shares FROM holdings WHERE agent_id=? ORDER BY id ASC",
        (agent_id,),
    ).fetchall()
    return [
        Holding(
            id=int(r["id"]),
            agent_id=r["agent_id"],
            ticker=r["ticker"],
            allocation_pct=float(r["allocation_pct"]),
            shares=(None if r["shares"] is None else float(r["shares"])),
        )
        for r in rows
    ]


def list_holding_tickers(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("SELECT DISTINCT ticker FROM holdings ORDER BY ticker").fetchall()
    return [r["ticker"] for r in rows]


def update_holding_shares(conn: sqlite3.Connection, holding_id: int, shares: float) -> None:
    """Écrase le nombre de parts (idempotent, jamais cumulatif)."""
    conn.execute("UPDATE holdings SET shares=? WHERE id=?", (float(shares), int(holding_id)))
    conn.commit()


def insert_snapshot_if_absent(
    conn: sqlite3.Connection,
    agent_id: str,
    day: str,
    total_value: float,
    daily_return: float | None,
) -> bool:
    """
    Insère un snapshot (agent_id, date). Si la ligne existe déjà, on ne touche à rien :
    un snapshot déjà calculé n'est jamais corrigé.
    """
    cur = conn.execute(
        """
        INSERT INTO portfolio_snapshots(agent_id, date, total_value, daily_return)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(agent_id, date) DO NOTHING
        """,
        (agent_id, day, float(total_value), (None if daily_return is None else float(daily_return))),
    )
    conn.commit()
    return cur.rowcount == 1


def get_snapshots(
    conn: sqlite3.Connection,
    agent_id: str,
    start_date: str | None = None,
) -> pd.DataFrame:
    """
    Renvoie les snapshots (date, total_value, daily_return) triés par date croissante.
    daily_return vaut NaN quand il est absent.
    """
    q = """
      SELECT date, total_value, daily_return
      FROM portfolio_snapshots
      WHERE agent_id=?
    """
    params: list[object] = [agent_id]
    if start_date is not None:
        q += " AND date >= ?"
        params.append(start_date)
    q += " ORDER BY date ASC"

    return pd.read_sql_query(q, conn, params=params)


def get_latest_snapshot(conn: sqlite3.Connection, agent_id: str) -> Optional[tuple[str, float]]:
    """
    Dernier snapshot : (date, total_value) ou None si vide.
    """
    row = conn.execute(
        """
        SELECT date, total_value
        FROM portfolio_snapshots
        WHERE agent_id=?
        ORDER BY date DESC
        LIMIT 1
        """,
        (agent_id,),
    ).fetchone()
    if row is None:
        return None
    return (row["date"], float(row["total_value"]))


def log_event(conn: sqlite3.Connection, event_type: str, payload: dict | None = None) -> None:
    conn.execute(
        "INSERT INTO events (ts_utc, event_type, payload) VALUES (?, ?, ?)",
        (utc_now_iso(), event_type, json.dumps(payload) if payload is not None else None),
    )
    conn.commit()


def get_events(conn: sqlite3.Connection, event_type: str | None = None, limit: int = 50) -> pd.DataFrame:
    q = "SELECT ts_utc, event_type, payload FROM events"
    params: list[object] = []
    if event_type is not None:
        q += " WHERE event_type=?"
        params.append(event_type)
    q += " ORDER BY id DESC LIMIT ?"
    params.append(int(limit))
    return pd.read_sql_query(q, conn, params=params)
