# src/cli/commands.py
from __future__ import annotations

import argparse
from datetime import date

import pandas as pd

from app.config import ConfigError, load_settings
from app.engine import recompute_all_snapshots, sync_and_recompute
from app.performance import agent_performance, holdings_breakdown, leaderboard
from app.seed import seed_default_agents
from market.alphavantage import AlphaVantageConfigError
from market.price_cache import get_latest_price, get_ohlcv
from market.price_sync import sync_prices_for_ticker
from portfolio.valuation import compute_snapshots
from storage.db import connect, init_db
from storage.repo import (
    AgentNotFoundError,
    AgentValidationError,
    create_agent,
    get_events,
    get_snapshots,
    log_event,
    require_agent,
)


def _open():
    conn = connect()
    init_db(conn)
    return conn


def _settings():
    try:
        return load_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration invalide: {e}")


def parse_holding(raw: str) -> tuple[str, float]:
    """'NVDA:15' -> ('NVDA', 15.0)"""
    try:
        ticker, pct = raw.split(":", 1)
        return ticker.strip().upper(), float(pct)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Holding invalide: {raw!r} (format TICKER:PCT)")


def cmd_init(_: argparse.Namespace) -> None:
    conn = _open()
    log_event(conn, "INIT", None)
    print("Base initialisée.")


def cmd_seed(_: argparse.Namespace) -> None:
    conn = _open()
    n = seed_default_agents(conn)
    if n == 0:
        print("Des agents existent déjà : rien à faire.")
    else:
        print(f"OK seed: {n} agent(s) créé(s).")


def cmd_add_agent(args: argparse.Namespace) -> None:
    conn = _open()
    try:
        agent = create_agent(
            conn,
            agent_id=args.id,
            name=args.name,
            color=args.color,
            inception_date=date.fromisoformat(args.inception),
            holdings=args.holding,
            initial_capital=args.capital,
        )
    except AgentValidationError as e:
        raise SystemExit(f"Agent refusé: {e}")

    log_event(conn, "AGENT_CREATED", {
        "id": agent.id, "inception": agent.inception_date.isoformat(),
        "capital": agent.initial_capital, "holdings": [[t, p] for t, p in args.holding],
    })
    print("OK add_agent:", agent)


def cmd_sync(args: argparse.Namespace) -> None:
    conn = _open()
    if not args.no_seed:
        seeded = seed_default_agents(conn)
        if seeded:
            print(f"OK seed: {seeded} agent(s) créé(s) avant la synchro.")

    try:
        report = sync_and_recompute(conn, _settings())
    except AlphaVantageConfigError as e:
        raise SystemExit(f"Configuration Alpha Vantage invalide: {e}")

    for p in report.prices:
        print(f"  {p.ticker:<6} +{p.inserted} séance(s)")
    for agent_id, n in report.snapshots.items():
        print(f"  {agent_id:<10} +{n} snapshot(s)")
    print(f"OK sync: {report.total_prices_inserted} prix insérés, {len(report.snapshots)} agent(s) recalculé(s).")


def cmd_sync_ticker(args: argparse.Namespace) -> None:
    conn = _open()
    settings = _settings()
    try:
        n = sync_prices_for_ticker(conn, args.symbol.upper(), floor_date=settings.price_floor_date)
    except AlphaVantageConfigError as e:
        raise SystemExit(f"Configuration Alpha Vantage invalide: {e}")

    log_event(conn, "SYNC_TICKER", {"ticker": args.symbol.upper(), "inserted": n})
    print(f"OK sync_ticker: {n} séance(s) insérée(s) pour {args.symbol.upper()}")


def cmd_recompute(args: argparse.Namespace) -> None:
    conn = _open()
    if args.agent:
        try:
            require_agent(conn, args.agent)
        except AgentNotFoundError as e:
            raise SystemExit(str(e))
        counts = {args.agent: compute_snapshots(conn, args.agent)}
    else:
        counts = recompute_all_snapshots(conn)

    log_event(conn, "RECOMPUTE", counts)
    for agent_id, n in counts.items():
        print(f"OK recompute {agent_id}: +{n} snapshot(s)")


def cmd_agents(_: argparse.Namespace) -> None:
    conn = _open()
    df = leaderboard(conn)
    if df.empty:
        print("(aucun agent) -> lance seed ou add_agent")
        return
    print(df.to_string(index=False, float_format=lambda x: f"{x:,.2f}"))


def cmd_kpis(args: argparse.Namespace) -> None:
    conn = _open()
    settings = _settings()
    try:
        rep = agent_performance(conn, args.agent, timeframe=args.timeframe, benchmark_ticker=settings.benchmark_ticker)
    except (AgentNotFoundError, ValueError) as e:
        raise SystemExit(str(e))

    print(f"KPIs {rep.agent_id} ({rep.timeframe}, depuis {rep.start_date}, {len(rep.snapshots)} snapshot(s)):")
    for k, v in rep.kpis.as_dict().items():
        print(f"  {k:<18} = {v:,.4f}")


def cmd_holdings(args: argparse.Namespace) -> None:
    conn = _open()
    try:
        df = holdings_breakdown(conn, args.agent)
    except AgentNotFoundError as e:
        raise SystemExit(str(e))
    print(df.to_string(index=False))


def cmd_prices(args: argparse.Namespace) -> None:
    conn = _open()
    symbol = args.symbol.upper()
    print("Latest:", get_latest_price(conn, symbol))
    print(get_ohlcv(conn, symbol, limit=args.limit).to_string(index=False))


def cmd_snapshots(args: argparse.Namespace) -> None:
    conn = _open()
    df = get_snapshots(conn, args.agent)
    if df.empty:
        print("(vide)")
        return
    print(df.tail(args.limit).to_string(index=False))


def cmd_events(args: argparse.Namespace) -> None:
    conn = _open()
    df: pd.DataFrame = get_events(conn, event_type=args.type, limit=args.limit)
    print(df.to_string(index=False))
