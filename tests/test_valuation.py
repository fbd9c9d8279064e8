from datetime import date

import pytest

from helpers import add_prices
from portfolio.valuation import build_snapshots, compute_snapshots, valid_dates
from storage.repo import Holding, create_agent, get_holdings, get_snapshots


def _agent(conn, holdings, inception=date(2026, 3, 3), capital=100000.0):
    return create_agent(
        conn,
        agent_id="alpha",
        name="Alpha",
        color="#000000",
        inception_date=inception,
        holdings=holdings,
        initial_capital=capital,
    )


def test_valid_dates_intersection_from_inception():
    prices = {
        "AAA": {"2026-03-02": 10.0, "2026-03-03": 11.0, "2026-03-04": 12.0, "2026-03-05": 13.0},
        "BBB": {"2026-03-02": 20.0, "2026-03-03": 21.0, "2026-03-05": 22.0},
    }
    assert valid_dates(["AAA", "BBB"], prices, date(2026, 3, 3)) == ["2026-03-03", "2026-03-05"]
    assert valid_dates(["AAA", "ZZZ"], prices, date(2026, 3, 1)) == []
    assert valid_dates([], prices, date(2026, 3, 1)) == []


def test_build_snapshots_buy_and_hold():
    holdings = [Holding(1, "alpha", "AAA", 60.0, None), Holding(2, "alpha", "BBB", 40.0, None)]
    prices = {
        "AAA": {"2026-03-03": 100.0, "2026-03-04": 110.0, "2026-03-05": 99.0},
        "BBB": {"2026-03-03": 50.0, "2026-03-04": 50.0, "2026-03-05": 55.0},
    }
    val = build_snapshots(holdings, prices, date(2026, 3, 3), 100000.0)

    assert val.inception == "2026-03-03"
    assert val.shares == {1: pytest.approx(600.0), 2: pytest.approx(800.0)}
    assert val.values == pytest.approx([100000.0, 106000.0, 103400.0])
    assert val.returns[0] is None
    assert val.returns[1] == pytest.approx(0.06)
    assert val.returns[2] == pytest.approx(103400.0 / 106000.0 - 1)

    df = val.to_frame()
    assert list(df.columns) == ["date", "total_value", "daily_return"]
    assert df["daily_return"].isna().iloc[0]


def test_build_snapshots_skips_zero_inception_price():
    holdings = [Holding(1, "alpha", "AAA", 50.0, None), Holding(2, "alpha", "BBB", 50.0, None)]
    prices = {
        "AAA": {"2026-03-03": 0.0, "2026-03-04": 10.0},
        "BBB": {"2026-03-03": 20.0, "2026-03-04": 22.0},
    }
    val = build_snapshots(holdings, prices, date(2026, 3, 3), 1000.0)
    assert 1 not in val.shares
    assert val.values == pytest.approx([500.0, 550.0])


def test_compute_snapshots_persists_rows_and_shares(conn):
    _agent(conn, [("AAA", 50), ("BBB", 50)])
    add_prices(conn, "AAA", {"2026-03-02": 9.0, "2026-03-03": 10.0, "2026-03-04": 11.0})
    add_prices(conn, "BBB", {"2026-03-03": 20.0, "2026-03-04": 18.0})

    assert compute_snapshots(conn, "alpha") == 2

    shares = {h.ticker: h.shares for h in get_holdings(conn, "alpha")}
    assert shares == {"AAA": pytest.approx(5000.0), "BBB": pytest.approx(2500.0)}

    snaps = get_snapshots(conn, "alpha")
    assert list(snaps["date"]) == ["2026-03-03", "2026-03-04"]
    assert list(snaps["total_value"]) == pytest.approx([100000.0, 100000.0])
    assert snaps["daily_return"].isna().iloc[0]
    assert snaps["daily_return"].iloc[1] == pytest.approx(0.0)


def test_compute_snapshots_is_idempotent(conn):
    _agent(conn, [("AAA", 100)])
    add_prices(conn, "AAA", {"2026-03-03": 10.0, "2026-03-04": 12.0})

    assert compute_snapshots(conn, "alpha") == 2
    first = get_snapshots(conn, "alpha")

    assert compute_snapshots(conn, "alpha") == 0
    second = get_snapshots(conn, "alpha")
    assert first.equals(second)
    assert get_holdings(conn, "alpha")[0].shares == pytest.approx(10000.0)


def test_compute_snapshots_refreshes_shares(conn):
    _agent(conn, [("AAA", 100)])
    add_prices(conn, "AAA", {"2026-03-03": 10.0})
    conn.execute("UPDATE holdings SET shares=1 WHERE agent_id='alpha'")
    conn.commit()

    compute_snapshots(conn, "alpha")
    assert get_holdings(conn, "alpha")[0].shares == pytest.approx(10000.0)


def test_existing_snapshots_are_not_corrected(conn):
    _agent(conn, [("AAA", 100)])
    add_prices(conn, "AAA", {"2026-03-03": 10.0, "2026-03-04": 12.0})
    compute_snapshots(conn, "alpha")

    # révision de prix après coup : le snapshot déjà écrit reste tel quel
    conn.execute("UPDATE daily_prices SET close=15 WHERE ticker='AAA' AND date='2026-03-04'")
    conn.commit()
    add_prices(conn, "AAA", {"2026-03-05": 16.0})

    assert compute_snapshots(conn, "alpha") == 1
    snaps = get_snapshots(conn, "alpha")
    assert list(snaps["total_value"]) == pytest.approx([100000.0, 120000.0, 160000.0])


def test_no_valid_dates_is_not_an_error(conn):
    _agent(conn, [("AAA", 50), ("BBB", 50)])
    add_prices(conn, "AAA", {"2026-03-03": 10.0})

    assert compute_snapshots(conn, "alpha") == 0
    assert all(h.shares is None for h in get_holdings(conn, "alpha"))
    assert get_snapshots(conn, "alpha").empty


def test_prices_before_inception_are_ignored(conn):
    _agent(conn, [("AAA", 100)], inception=date(2026, 3, 10))
    add_prices(conn, "AAA", {"2026-03-03": 10.0, "2026-03-04": 12.0})
    assert compute_snapshots(conn, "alpha") == 0


def test_unknown_agent_yields_nothing(conn):
    assert compute_snapshots(conn, "ghost") == 0
