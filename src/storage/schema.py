# src/storage/schema.py

SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS agents (
  id               TEXT PRIMARY KEY,
  name             TEXT NOT NULL,
  color            TEXT NOT NULL,              -- affichage uniquement
  inception_date   TEXT NOT NULL,              -- YYYY-MM-DD
  initial_capital  REAL NOT NULL DEFAULT 100000,
  created_at       TEXT NOT NULL               -- ISO8601 UTC
);

CREATE TABLE IF NOT EXISTS holdings (
  id              INTEGER PRIMARY KEY AUTOINCREMENT,
  agent_id        TEXT NOT NULL REFERENCES agents(id),
  ticker          TEXT NOT NULL,               -- majuscules
  allocation_pct  REAL NOT NULL,               -- 0..100
  shares          REAL                         -- calculé à l'inception, NULL avant
);

CREATE INDEX IF NOT EXISTS idx_holdings_agent ON holdings(agent_id);

CREATE TABLE IF NOT EXISTS daily_prices (
  ticker     TEXT NOT NULL,
  date       TEXT NOT NULL,                    -- YYYY-MM-DD
  open       REAL,
  high       REAL,
  low        REAL,
  close      REAL NOT NULL,
  adj_close  REAL,
  volume     INTEGER,
  PRIMARY KEY (ticker, date)
);

CREATE TABLE IF NOT EXISTS portfolio_snapshots (
  agent_id      TEXT NOT NULL REFERENCES agents(id),
  date          TEXT NOT NULL,                 -- YYYY-MM-DD
  total_value   REAL NOT NULL,
  daily_return  REAL,                          -- NULL pour la première date
  PRIMARY KEY (agent_id, date)
);

CREATE TABLE IF NOT EXISTS events (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  ts_utc      TEXT NOT NULL,
  event_type  TEXT NOT NULL,                    -- 'SYNC_TICKER', 'SYNC_ALL', 'RECOMPUTE', ...
  payload     TEXT                              -- JSON texte optionnel
);

CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts_utc);

"""
