# src/main.py

from __future__ import annotations

import argparse

from dotenv import load_dotenv

from cli.commands import (
    cmd_add_agent,
    cmd_agents,
    cmd_events,
    cmd_holdings,
    cmd_init,
    cmd_kpis,
    cmd_prices,
    cmd_recompute,
    cmd_seed,
    cmd_snapshots,
    cmd_sync,
    cmd_sync_ticker,
    parse_holding,
)
from app.performance import TIMEFRAMES


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="portfolio-arena")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init")
    p_init.set_defaults(func=cmd_init)

    p_seed = sub.add_parser("seed")
    p_seed.set_defaults(func=cmd_seed)

    p_add = sub.add_parser("add_agent")
    p_add.add_argument("--id", type=str, required=True)
    p_add.add_argument("--name", type=str, required=True)
    p_add.add_argument("--color", type=str, default="#888888")
    p_add.add_argument("--inception", type=str, required=True, help="YYYY-MM-DD")
    p_add.add_argument("--capital", type=float, default=100000.0)
    p_add.add_argument("--holding", type=parse_holding, action="append", required=True,
                       help="TICKER:PCT, répétable (somme = 100)")
    p_add.set_defaults(func=cmd_add_agent)

    p_sync = sub.add_parser("sync")
    p_sync.add_argument("--no-seed", action="store_true", help="ne crée pas les agents par défaut si la base est vide")
    p_sync.set_defaults(func=cmd_sync)

    p_st = sub.add_parser("sync_ticker")
    p_st.add_argument("--symbol", type=str, required=True)
    p_st.set_defaults(func=cmd_sync_ticker)

    p_rc = sub.add_parser("recompute")
    p_rc.add_argument("--agent", type=str, default=None)
    p_rc.set_defaults(func=cmd_recompute)

    p_agents = sub.add_parser("agents")
    p_agents.set_defaults(func=cmd_agents)

    p_kpis = sub.add_parser("kpis")
    p_kpis.add_argument("--agent", type=str, required=True)
    p_kpis.add_argument("--timeframe", type=str, choices=list(TIMEFRAMES), default="ALL")
    p_kpis.set_defaults(func=cmd_kpis)

    p_hold = sub.add_parser("holdings")
    p_hold.add_argument("--agent", type=str, required=True)
    p_hold.set_defaults(func=cmd_holdings)

    p_prices = sub.add_parser("prices")
    p_prices.add_argument("--symbol", type=str, required=True)
    p_prices.add_argument("--limit", type=int, default=5)
    p_prices.set_defaults(func=cmd_prices)

    p_snap = sub.add_parser("snapshots")
    p_snap.add_argument("--agent", type=str, required=True)
    p_snap.add_argument("--limit", type=int, default=10)
    p_snap.set_defaults(func=cmd_snapshots)

    p_ev = sub.add_parser("events")
    p_ev.add_argument("--type", type=str, default=None)
    p_ev.add_argument("--limit", type=int, default=20)
    p_ev.set_defaults(func=cmd_events)

    return p


def main() -> None:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
