# src/model/kpis.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

import numpy as np
import pandas as pd


RISK_FREE_ANNUAL = 0.05
TRADING_DAYS_PER_YEAR = 252
DAILY_RISK_FREE = RISK_FREE_ANNUAL / TRADING_DAYS_PER_YEAR
MIN_DAYS_ANNUALIZE = 21  # ≈ un mois de bourse


@dataclass(frozen=True)
class KPIs:
    total_return: float      # %
    annualized_return: float  # %
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown: float      # %, perte positive
    volatility: float        # %, annualisée
    alpha: float             # %, annualisé
    beta: float
    win_rate: float          # %
    best_day: float          # %
    worst_day: float         # %
    current_value: float

    def as_dict(self) -> dict:
        return asdict(self)


def empty_kpis(initial_capital: float) -> KPIs:
    return KPIs(
        total_return=0.0,
        annualized_return=0.0,
        sharpe_ratio=0.0,
        sortino_ratio=0.0,
        max_drawdown=0.0,
        volatility=0.0,
        alpha=0.0,
        beta=0.0,
        win_rate=0.0,
        best_day=0.0,
        worst_day=0.0,
        current_value=float(initial_capital),
    )


def _daily_returns(snapshots: pd.DataFrame) -> np.ndarray:
    # les rendements absents (première date) sont exclus, jamais comptés comme 0
    r = pd.to_numeric(snapshots["daily_return"], errors="coerce").dropna()
    return r.to_numpy(dtype=float)


def annualize(growth: float, n_days: int) -> float:
    """(growth^(252/n) - 1) * 100, growth = valeur finale / valeur initiale."""
    return (growth ** (TRADING_DAYS_PER_YEAR / n_days) - 1.0) * 100.0


def max_drawdown_pct(values: np.ndarray) -> float:
    """
    Perte maximale pic -> creux, en % positif.
    Un seul passage avec le pic courant.
    """
    if values.size == 0:
        return 0.0
    peak = float(values[0])
    worst = 0.0
    for v in values:
        v = float(v)
        if v > peak:
            peak = v
        if peak > 0:
            dd = (peak - v) / peak
            if dd > worst:
                worst = dd
    return worst * 100.0


def alpha_beta(
    returns: np.ndarray,
    annualized_return: float,
    benchmark: pd.DataFrame,
) -> tuple[float, float]:
    """
    Alpha/beta vs benchmark, alignés par position sur les min_len rendements les plus récents.
    L'appelant doit garantir que les deux séries partagent la même grille de dates.
    """
    bench_returns = _daily_returns(benchmark)
    min_len = min(returns.size, bench_returns.size)
    if min_len < 2:
        return 0.0, 1.0

    p = returns[-min_len:]
    b = bench_returns[-min_len:]

    cov = float(np.mean((p - p.mean()) * (b - b.mean())))
    var_b = float(np.mean((b - b.mean()) ** 2))
    beta = cov / var_b if var_b > 0 else 1.0

    values = pd.to_numeric(benchmark["total_value"], errors="coerce").to_numpy(dtype=float)
    first, last = float(values[0]), float(values[-1])
    bench_annualized = annualize(last / first, min_len) if first > 0 else 0.0

    rf_pct = RISK_FREE_ANNUAL * 100.0
    alpha = annualized_return - (rf_pct + beta * (bench_annualized - rf_pct))
    return alpha, beta


def compute_kpis(
    snapshots: pd.DataFrame,
    initial_capital: float,
    benchmark: Optional[pd.DataFrame] = None,
) -> KPIs:
    """
    snapshots: DataFrame ['date', 'total_value', 'daily_return'] trié par date croissante
    (daily_return NaN/None quand absent). benchmark: même forme, optionnel.

    Série vide ou sans aucun rendement -> KPIs à zéro avec current_value = initial_capital.
    """
    if snapshots is None or snapshots.empty:
        return empty_kpis(initial_capital)

    returns = _daily_returns(snapshots)
    n = int(returns.size)
    if n == 0:
        return empty_kpis(initial_capital)

    values = pd.to_numeric(snapshots["total_value"], errors="coerce").to_numpy(dtype=float)
    current_value = float(values[-1])
    capital = float(initial_capital)

    total_return = (current_value - capital) / capital * 100.0

    # sur historique court, l'annualisation géométrique explose : on garde le total
    if n >= MIN_DAYS_ANNUALIZE:
        annualized_return = annualize(current_value / capital, n)
    else:
        annualized_return = total_return

    # moments de population (ddof=0)
    mean = float(returns.mean())
    std = float(returns.std(ddof=0))

    volatility = std * np.sqrt(TRADING_DAYS_PER_YEAR) * 100.0 if n >= 2 else 0.0
    sharpe = (mean - DAILY_RISK_FREE) / std * np.sqrt(TRADING_DAYS_PER_YEAR) if std > 0 else 0.0

    # semi-variance sur l'échantillon complet (divisée par n, pas par le nombre de jours négatifs)
    negative = returns[returns < 0]
    downside = float(np.sqrt(np.sum(negative ** 2) / n))
    sortino = (mean - DAILY_RISK_FREE) / downside * np.sqrt(TRADING_DAYS_PER_YEAR) if downside > 0 else 0.0

    alpha, beta = 0.0, 1.0
    if benchmark is not None and not benchmark.empty and n >= MIN_DAYS_ANNUALIZE:
        alpha, beta = alpha_beta(returns, annualized_return, benchmark)

    return KPIs(
        total_return=float(total_return),
        annualized_return=float(annualized_return),
        sharpe_ratio=float(sharpe),
        sortino_ratio=float(sortino),
        max_drawdown=max_drawdown_pct(values),
        volatility=float(volatility),
        alpha=float(alpha),
        beta=float(beta),
        win_rate=float(np.count_nonzero(returns > 0)) / n * 100.0,
        best_day=float(returns.max()) * 100.0,
        worst_day=float(returns.min()) * 100.0,
        current_value=current_value,
    )
