"""Database schema DDL definitions and initialization utilities.

Tables:
  - usd_brl: append-only log of fetched USD-BRL records, one row per
    persisted fetch, with a store-assigned capture timestamp
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

RATES_TABLE = "usd_brl"

# Decimal columns are TEXT so the exact upstream digits survive the round trip.
RATES_DDL = f"""
CREATE TABLE IF NOT EXISTS {RATES_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT NOT NULL,
    code_in TEXT NOT NULL,
    name TEXT NOT NULL,
    high TEXT NOT NULL,
    low TEXT NOT NULL,
    var_bid TEXT NOT NULL,
    pct_change TEXT NOT NULL,
    bid TEXT NOT NULL,
    ask TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    create_date TEXT NOT NULL,
    captured_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

RATES_CAPTURED_INDEX_DDL = (
    f"CREATE INDEX IF NOT EXISTS idx_{RATES_TABLE}_captured ON {RATES_TABLE}(captured_at);"
)

RATE_COLUMNS: Sequence[str] = (
    "code",
    "code_in",
    "name",
    "high",
    "low",
    "var_bid",
    "pct_change",
    "bid",
    "ask",
    "timestamp",
    "create_date",
)

INSERT_RATE_SQL = (
    f"INSERT INTO {RATES_TABLE} ({', '.join(RATE_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in RATE_COLUMNS)})"
)

DDL_ORDER: Sequence[str] = (
    RATES_DDL,
    RATES_CAPTURED_INDEX_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        # WAL lets concurrent detached writers queue on SQLite's own lock
        # without blocking readers.
        conn.execute("PRAGMA journal_mode=WAL")
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
