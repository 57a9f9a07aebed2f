"""Data Access Layer for persisted rates.

Responsibilities
----------------
- Own the store handle shared by every detached persistence task: the database
  path plus a once-only schema guard. Each write opens its own connection so
  SQLite serializes concurrent writers natively.
- Run the blocking insert on a worker thread and abandon it when the caller's
  deadline passes: the pending statement is interrupted and rolled back.
- Offer a read helper for inspecting what was captured.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from rate_relay.core.deadline import Deadline
from rate_relay.core.errors import DeadlineExceeded, StoreError
from rate_relay.models import PersistedRate, RateRecord
from .schema import INSERT_RATE_SQL, RATE_COLUMNS, RATES_TABLE, init_db

logger = logging.getLogger("rate_relay.store")

# SQLite gives up on a lock slightly past the deadline so the event loop side
# always wins the race and reports the timeout.
BUSY_TIMEOUT_SLACK = 0.05


class RateStore:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self, timeout: float = 5.0) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        """Create the rates table once per store; safe under concurrent first use."""
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            try:
                init_db(self.db_path)
            except sqlite3.Error as e:
                raise StoreError(f"failed to initialise schema at {self.db_path}: {e}") from e
            self._schema_ready = True

    # ------------------------------------------------------------------
    # Writes
    async def append(self, record: RateRecord, deadline: Deadline) -> int:
        """Insert ``record`` and return its id, or raise once ``deadline`` passes.

        A row whose commit finished just as the deadline fired is reported as
        persisted, so callers never log a durable row as lost.
        """
        write = _PendingWrite(self, record, deadline)
        try:
            async with deadline.bound():
                return await asyncio.to_thread(write.run)
        except DeadlineExceeded:
            committed_id = write.abort()
            if committed_id is not None:
                return committed_id
            raise

    # ------------------------------------------------------------------
    # Reads
    def list_rates(self, limit: Optional[int] = None) -> List[PersistedRate]:
        self.ensure_schema()
        query = f"SELECT * FROM {RATES_TABLE} ORDER BY id DESC"
        params: List[int] = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StoreError(f"failed to open {self.db_path}: {e}") from e
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"failed to read rates: {e}") from e
        finally:
            conn.close()
        return [PersistedRate.model_validate(dict(r)) for r in rows]


class _PendingWrite:
    """One insert running on a worker thread, abortable from the event loop.

    ``_lock`` orders commit against abort: an abort observed before commit
    rolls the row back; an abort arriving later sees the committed id.
    """

    def __init__(self, store: RateStore, record: RateRecord, deadline: Deadline):
        self._store = store
        self._record = record
        self._deadline = deadline
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._aborted = False
        self._committed_id: Optional[int] = None

    def _should_stop(self) -> bool:
        return self._aborted or self._deadline.expired

    def run(self) -> int:
        self._store.ensure_schema()
        conn: Optional[sqlite3.Connection] = None
        try:
            with self._lock:
                # Queued behind other work in the thread pool past the deadline.
                if self._should_stop():
                    raise self._deadline.exceeded()
                conn = self._store._connect(
                    timeout=self._deadline.remaining() + BUSY_TIMEOUT_SLACK
                )
                self._conn = conn
            params = [_column_value(self._record, c) for c in RATE_COLUMNS]
            cur = conn.execute(INSERT_RATE_SQL, params)
            with self._lock:
                if self._should_stop():
                    conn.rollback()
                    raise self._deadline.exceeded()
                conn.commit()
                self._committed_id = int(cur.lastrowid)
            logger.debug("inserted rate id=%s", self._committed_id)
            return self._committed_id
        except sqlite3.Error as e:
            if self._aborted:
                raise self._deadline.exceeded() from e
            raise StoreError(f"failed to insert rate: {e}") from e
        finally:
            if conn is not None:
                with self._lock:
                    self._conn = None
                    conn.close()

    def abort(self) -> Optional[int]:
        """Stop the write; return the row id if it had already been committed."""
        with self._lock:
            if self._committed_id is not None:
                return self._committed_id
            self._aborted = True
            if self._conn is not None:
                self._conn.interrupt()
            return None


def _column_value(record: RateRecord, column: str) -> str:
    return str(getattr(record, column))
