# src/model/returns.py
from __future__ import annotations

from typing import Iterable, Optional


def simple_returns(values: Iterable[float]) -> list[Optional[float]]:
    """
    Rendements simples (v - prev) / prev alignés sur la valeur courante.
    None pour le premier point, et quand la valeur précédente est nulle.
    """
    out: list[Optional[float]] = []
    prev: Optional[float] = None
    for v in values:
        v = float(v)
        if prev is None or prev == 0:
            out.append(None)
        else:
            out.append((v - prev) / prev)
        prev = v
    return out
