# src/portfolio/benchmark.py
from __future__ import annotations

import numpy as np
import pandas as pd

from model.returns import simple_returns


def benchmark_snapshots(prices: pd.DataFrame, initial_capital: float) -> pd.DataFrame:
    """
    prices: DataFrame ['date', 'close'] trié croissant.
    Traite l'indice comme un portefeuille virtuel investi à 100% au premier prix,
    avec le même capital que l'agent. Retourne ['date', 'total_value', 'daily_return'].
    """
    if prices.empty:
        return pd.DataFrame(columns=["date", "total_value", "daily_return"])

    close = prices["close"].astype(float).to_numpy()
    base = close[0] if close[0] else 1.0
    values = close / base * float(initial_capital)
    rets = simple_returns(values)

    return pd.DataFrame({
        "date": prices["date"].astype(str).to_numpy(),
        "total_value": values,
        "daily_return": [np.nan if r is None else r for r in rets],
    })
