from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import requests


logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"

MIN_REQUEST_INTERVAL_S = 0.5
COMPACT_WINDOW_DAYS = 100  # "compact" ≈ 100 dernières séances

# horloge de rate-limit partagée par tout le process
_rate_lock = threading.Lock()
_last_request_ts = 0.0


class AlphaVantageError(RuntimeError):
    pass


class AlphaVantageConfigError(AlphaVantageError):
    pass


@dataclass(frozen=True)
class PriceBar:
    date: str  # YYYY-MM-DD
    open: Optional[float]
    high: Optional[float]
    low: Optional[float]
    close: float
    adj_close: Optional[float]
    volume: Optional[int]


def _api_key() -> str:
    key = os.getenv("ALPHAVANTAGE_API_KEY")
    if not key:
        raise AlphaVantageConfigError("ALPHAVANTAGE_API_KEY manquante (mets-la dans .env).")
    return key


def _min_interval() -> float:
    raw = os.getenv("ALPHAVANTAGE_MIN_INTERVAL_S")
    if raw is None or raw == "":
        return MIN_REQUEST_INTERVAL_S
    try:
        value = float(raw)
    except ValueError:
        raise AlphaVantageConfigError(f"ALPHAVANTAGE_MIN_INTERVAL_S invalide: {raw!r}")
    # on ne descend jamais sous le plancher
    return max(value, MIN_REQUEST_INTERVAL_S)


def rate_limited_wait() -> None:
    """Attend si besoin pour respecter l'espacement minimal entre deux appels au fournisseur."""
    global _last_request_ts
    interval = _min_interval()
    with _rate_lock:
        elapsed = time.monotonic() - _last_request_ts
        if elapsed < interval:
            time.sleep(interval - elapsed)
        _last_request_ts = time.monotonic()


def reset_rate_limit() -> None:
    global _last_request_ts
    with _rate_lock:
        _last_request_ts = 0.0


def _get_json(params: dict) -> dict:
    r = requests.get(BASE_URL, params=params, timeout=30)
    r.raise_for_status()
    data = r.json()

    # erreurs / rate-limit typiques
    if not isinstance(data, dict):
        raise AlphaVantageError(f"Réponse inattendue: {type(data).__name__}")
    for key in ("Error Message", "Note", "Information", "Message"):
        if key in data:
            raise AlphaVantageError(data[key])

    return data


def _opt_float(fields: dict, key: str) -> Optional[float]:
    raw = fields.get(key)
    if raw in (None, ""):
        return None
    return float(raw)


def _parse_bar(day: str, fields: dict) -> Optional[PriceBar]:
    close = _opt_float(fields, "4. close")
    if close is None:
        return None
    adj = _opt_float(fields, "5. adjusted close")
    vol = fields.get("6. volume", fields.get("5. volume"))
    return PriceBar(
        date=datetime.strptime(day, "%Y-%m-%d").date().isoformat(),
        open=_opt_float(fields, "1. open"),
        high=_opt_float(fields, "2. high"),
        low=_opt_float(fields, "3. low"),
        close=close,
        adj_close=(adj if adj is not None else close),
        volume=(None if vol in (None, "") else int(float(vol))),
    )


def _request_series(symbol: str, outputsize: str) -> dict:
    params = {
        "function": "TIME_SERIES_DAILY",
        "symbol": symbol,
        "outputsize": outputsize,
        "apikey": _api_key(),
    }
    rate_limited_wait()
    data = _get_json(params)

    series = data.get("Time Series (Daily)")
    if not isinstance(series, dict):
        raise AlphaVantageError("Réponse inattendue: pas de 'Time Series (Daily)'.")
    return series


def fetch_daily_ohlcv(symbol: str, start: date, end_exclusive: date) -> list[PriceBar]:
    """
    TIME_SERIES_DAILY -> liste de PriceBar pour start <= date < end_exclusive, triée croissante.
    Une réponse sans séance dans la fenêtre renvoie [] (jour férié, ticker sans cotation...).

    "compact" suffit quand la fenêtre commence dans les ~100 dernières séances avant end_exclusive.
    "full" est réservé aux clés premium : si le fournisseur le refuse, on se rabat sur "compact"
    (l'historique plus ancien que ~100 séances est alors perdu).
    """
    outputsize = "compact" if (end_exclusive - start).days <= COMPACT_WINDOW_DAYS else "full"
    try:
        series = _request_series(symbol, outputsize)
    except AlphaVantageConfigError:
        raise
    except AlphaVantageError as e:
        if outputsize != "full" or "premium" not in str(e).lower():
            raise
        logger.warning("outputsize=full refusé pour %s, repli sur compact: %s", symbol, e)
        series = _request_series(symbol, "compact")

    lo, hi = start.isoformat(), end_exclusive.isoformat()
    rows = []
    for day, fields in series.items():
        try:
            bar = _parse_bar(day, fields)
        except (TypeError, ValueError, AttributeError) as e:
            raise AlphaVantageError(f"Réponse inattendue pour {symbol} le {day!r}: {e}") from e
        if bar is None:
            continue
        if lo <= bar.date < hi:
            rows.append(bar)

    rows.sort(key=lambda b: b.date)
    return rows
