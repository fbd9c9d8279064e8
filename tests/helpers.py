"""Générateurs de données synthétiques partagés par les tests."""

import numpy as np
import pandas as pd

from market.alphavantage import PriceBar
from market.price_cache import insert_prices_if_absent


def make_snapshots(values, start="2026-03-02"):
    """Série de snapshots ['date', 'total_value', 'daily_return'] à partir de valeurs."""
    values = [float(v) for v in values]
    dates = pd.bdate_range(start, periods=len(values)).strftime("%Y-%m-%d")
    rets = [np.nan] + [(b - a) / a for a, b in zip(values[:-1], values[1:])]
    return pd.DataFrame({"date": list(dates), "total_value": values, "daily_return": rets[: len(values)]})


def snapshots_from_returns(returns, initial=100000.0, start="2026-03-02"):
    values = [initial]
    for r in returns:
        values.append(values[-1] * (1.0 + r))
    return make_snapshots(values, start=start)


def bar(day, close, **kw):
    return PriceBar(
        date=day,
        open=kw.get("open"),
        high=kw.get("high"),
        low=kw.get("low"),
        close=float(close),
        adj_close=kw.get("adj_close", float(close)),
        volume=kw.get("volume"),
    )


def add_prices(conn, ticker, closes):
    """closes: dict {YYYY-MM-DD: close}"""
    return insert_prices_if_absent(conn, ticker, [bar(d, c) for d, c in sorted(closes.items())])


def trading_days(start, n):
    return list(pd.bdate_range(start, periods=n).strftime("%Y-%m-%d"))


class FakeFetcher:
    """Fournisseur factice : renvoie les barres connues dans [start, end_exclusive)."""

    def __init__(self, bars_by_ticker=None, fail=None):
        self.bars_by_ticker = bars_by_ticker or {}
        self.fail = fail or {}
        self.calls = []

    def __call__(self, ticker, start, end_exclusive):
        self.calls.append((ticker, start, end_exclusive))
        if ticker in self.fail:
            raise self.fail[ticker]
        lo, hi = start.isoformat(), end_exclusive.isoformat()
        return [b for b in self.bars_by_ticker.get(ticker, []) if lo <= b.date < hi]
