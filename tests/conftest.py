"""
Fixtures pytest : base sqlite temporaire, horloge de rate-limit remise à zéro.
Aucun test ne touche le réseau.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# src/ et tests/ sur le path (layout sans installation)
ROOT = Path(__file__).parent.parent
for p in (ROOT / "src", ROOT / "tests"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from market.alphavantage import reset_rate_limit  # noqa: E402
from storage.db import connect, init_db  # noqa: E402


@pytest.fixture
def conn(tmp_path):
    c = connect(tmp_path / "portfolio.db")
    init_db(c)
    yield c
    c.close()


@pytest.fixture(autouse=True)
def _fresh_rate_limit():
    reset_rate_limit()
    yield
    reset_rate_limit()


@pytest.fixture
def today():
    return date(2026, 3, 13)
