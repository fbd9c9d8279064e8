# src/app/seed.py
from __future__ import annotations

import sqlite3
from datetime import date

from storage.repo import create_agent, list_agents, log_event


DEFAULT_INCEPTION = date(2026, 2, 11)

DEFAULT_AGENTS = [
    {
        "id": "gemini",
        "name": "Gemini",
        "color": "#4285F4",
        "holdings": [
            ("NVDA", 15), ("LLY", 13), ("VST", 12), ("VRT", 10), ("AMZN", 10),
            ("MSFT", 9), ("ETN", 9), ("BX", 8), ("MELI", 7), ("HWM", 7),
        ],
    },
    {
        "id": "grok",
        "name": "Grok",
        "color": "#1DA1F2",
        "holdings": [
            ("NVDA", 15), ("MSFT", 12), ("AMZN", 12), ("TSM", 10), ("XOM", 10),
            ("AVGO", 9), ("BMY", 8), ("JNJ", 8), ("COST", 8), ("VRSK", 8),
        ],
    },
    {
        "id": "claude",
        "name": "Claude",
        "color": "#8B5CF6",
        "holdings": [
            ("GOOGL", 15), ("LLY", 13), ("NEM", 12), ("VST", 12), ("GEV", 10),
            ("META", 10), ("AEM", 8), ("CEG", 8), ("GE", 7), ("FCX", 5),
        ],
    },
    {
        "id": "gpt",
        "name": "GPT",
        "color": "#10A37F",
        "holdings": [
            ("NVDA", 12), ("MSFT", 12), ("AMZN", 10), ("ANET", 10), ("ETN", 10),
            ("LLY", 10), ("JPM", 10), ("RTX", 10), ("GOOGL", 8), ("GEV", 8),
        ],
    },
]


def seed_default_agents(conn: sqlite3.Connection) -> int:
    """Crée les agents par défaut si la table est vide. Retourne le nombre d'agents créés."""
    if list_agents(conn):
        return 0

    for entry in DEFAULT_AGENTS:
        create_agent(
            conn,
            agent_id=entry["id"],
            name=entry["name"],
            color=entry["color"],
            inception_date=DEFAULT_INCEPTION,
            holdings=entry["holdings"],
        )

    log_event(conn, "SEED", {"agents": [a["id"] for a in DEFAULT_AGENTS]})
    return len(DEFAULT_AGENTS)
