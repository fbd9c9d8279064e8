# src/market/price_sync.py
from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from typing import Callable

import requests

from market.alphavantage import (
    AlphaVantageConfigError,
    AlphaVantageError,
    PriceBar,
    fetch_daily_ohlcv,
)
from market.price_cache import get_max_date, insert_prices_if_absent
from storage.repo import log_event


logger = logging.getLogger(__name__)

Fetcher = Callable[[str, date, date], list[PriceBar]]


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def sync_prices_for_ticker(
    conn: sqlite3.Connection,
    ticker: str,
    *,
    floor_date: date,
    today: date | None = None,
    fetcher: Fetcher = fetch_daily_ohlcv,
) -> int:
    """
    Complète les prix DAILY du ticker jusqu'à aujourd'hui (seulement la queue manquante).
    Retourne le nombre de séances nouvellement insérées.

    Un échec du fournisseur (réseau, quota, ticker inconnu) est journalisé et vaut 0 :
    la prochaine synchro retentera. Les erreurs de configuration et de stockage remontent.
    """
    today = today or utc_today()

    last = get_max_date(conn, ticker)
    if last == today:
        return 0

    start = (last + timedelta(days=1)) if last is not None else floor_date
    if start > today:
        return 0

    # borne haute exclusive : demain, pour inclure la séance du jour
    end_exclusive = today + timedelta(days=1)

    try:
        rows = fetcher(ticker, start, end_exclusive)
    except AlphaVantageConfigError:
        raise
    except (AlphaVantageError, requests.RequestException) as e:
        logger.warning("Échec récupération prix %s: %s", ticker, e)
        log_event(conn, "PRICE_FETCH_FAILED", {
            "ticker": ticker, "start": start.isoformat(), "error": str(e),
        })
        return 0

    if not rows:
        return 0

    return insert_prices_if_absent(conn, ticker, rows)
