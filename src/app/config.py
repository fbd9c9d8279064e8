# src/app/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from storage.db import get_db_path


DEFAULT_BENCHMARK = "SPY"
DEFAULT_PRICE_FLOOR = date(2026, 2, 10)  # première date demandée au fournisseur pour un ticker vide


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    db_path: Path
    benchmark_ticker: str = DEFAULT_BENCHMARK
    price_floor_date: date = DEFAULT_PRICE_FLOOR


def _parse_date(name: str, raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ConfigError(f"{name} doit être une date YYYY-MM-DD (reçu {raw!r}).")


def load_settings() -> Settings:
    """Lit la configuration depuis l'environnement (le .env est chargé par main.py)."""
    benchmark = os.getenv("PORTFOLIO_BENCHMARK", DEFAULT_BENCHMARK).strip().upper()
    if not benchmark:
        raise ConfigError("PORTFOLIO_BENCHMARK vide.")

    raw_floor = os.getenv("PORTFOLIO_PRICE_FLOOR")
    floor = _parse_date("PORTFOLIO_PRICE_FLOOR", raw_floor) if raw_floor else DEFAULT_PRICE_FLOOR

    return Settings(
        db_path=get_db_path(),
        benchmark_ticker=benchmark,
        price_floor_date=floor,
    )
