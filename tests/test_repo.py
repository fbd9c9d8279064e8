from datetime import date

import pytest

from storage.repo import (
    AgentNotFoundError,
    AgentValidationError,
    create_agent,
    get_agent,
    get_holdings,
    insert_snapshot_if_absent,
    list_agents,
    list_holding_tickers,
    require_agent,
    validate_allocations,
)


@pytest.mark.parametrize("pcts", [[50, 49.5], [50, 50.5], [99.98], [100.02]])
def test_allocations_off_by_more_than_tolerance_are_rejected(pcts):
    with pytest.raises(AgentValidationError):
        validate_allocations([(f"T{i}", p) for i, p in enumerate(pcts)])


@pytest.mark.parametrize("pcts", [[60, 40], [100.0], [99.99], [100.01], [33.333, 33.333, 33.334]])
def test_allocations_within_tolerance_are_accepted(pcts):
    assert len(validate_allocations([(f"T{i}", p) for i, p in enumerate(pcts)])) == len(pcts)


def test_allocation_validation_edge_cases():
    with pytest.raises(AgentValidationError):
        validate_allocations([])
    with pytest.raises(AgentValidationError):
        validate_allocations([("AAA", 120), ("BBB", -20)])
    with pytest.raises(AgentValidationError):
        validate_allocations([("", 100)])
    with pytest.raises(AgentValidationError):
        validate_allocations([("AAA", 100.5)])


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), "abc"])
def test_non_finite_allocations_are_rejected(bad):
    with pytest.raises(AgentValidationError):
        validate_allocations([("AAA", bad)])
    with pytest.raises(AgentValidationError):
        validate_allocations([("AAA", 100), ("BBB", bad)])


def test_create_agent_normalizes_tickers(conn):
    agent = create_agent(conn, "a1", "Un", "#111111", date(2026, 2, 11), [("nvda", 60), (" msft ", 40)])

    assert agent.initial_capital == 100000.0
    assert get_agent(conn, "a1") == agent
    assert [h.ticker for h in get_holdings(conn, "a1")] == ["NVDA", "MSFT"]
    assert all(h.shares is None for h in get_holdings(conn, "a1"))
    assert list_holding_tickers(conn) == ["MSFT", "NVDA"]


def test_create_agent_rejections(conn):
    create_agent(conn, "a1", "Un", "#111111", date(2026, 2, 11), [("AAA", 100)])

    with pytest.raises(AgentValidationError):
        create_agent(conn, "a1", "Bis", "#111111", date(2026, 2, 11), [("AAA", 100)])
    with pytest.raises(AgentValidationError):
        create_agent(conn, "a2", "Deux", "#222222", date(2026, 2, 11), [("AAA", 99.5)])
    with pytest.raises(AgentValidationError):
        create_agent(conn, "a3", "Trois", "#333333", date(2026, 2, 11), [("AAA", 100)], initial_capital=-5)
    with pytest.raises(AgentValidationError):
        create_agent(conn, "", "Vide", "#333333", date(2026, 2, 11), [("AAA", 100)])

    assert [a.id for a in list_agents(conn)] == ["a1"]


def test_require_agent(conn):
    with pytest.raises(AgentNotFoundError):
        require_agent(conn, "ghost")


def test_snapshot_insert_if_absent(conn):
    create_agent(conn, "a1", "Un", "#111111", date(2026, 2, 11), [("AAA", 100)])

    assert insert_snapshot_if_absent(conn, "a1", "2026-02-11", 100000.0, None) is True
    assert insert_snapshot_if_absent(conn, "a1", "2026-02-11", 1.0, 0.5) is False

    row = conn.execute("SELECT total_value, daily_return FROM portfolio_snapshots").fetchone()
    assert (row["total_value"], row["daily_return"]) == (100000.0, None)
