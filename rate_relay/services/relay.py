"""Relay orchestration: bounded fetch, then detached best-effort persistence.

Each request gets its own fetch deadline, capped by whatever time the caller
said it has left. Once the response is out, the full record is handed to a
separately spawned task whose persistence deadline starts fresh; that task
only ever logs its outcome.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Set

from rate_relay.core.config import PERSIST_TIMEOUT_SECONDS, UPSTREAM_FETCH_TIMEOUT_SECONDS
from rate_relay.core.deadline import Deadline
from rate_relay.core.errors import RelayError
from rate_relay.models import RateRecord
from .rates.base import RateSource

logger = logging.getLogger("rate_relay.relay")


class RateSink(Protocol):
    async def append(self, record: RateRecord, deadline: Deadline) -> int: ...


class RelayService:
    def __init__(
        self,
        source: RateSource,
        store: RateSink,
        *,
        fetch_budget: float = UPSTREAM_FETCH_TIMEOUT_SECONDS,
        persist_budget: float = PERSIST_TIMEOUT_SECONDS,
    ):
        self._source = source
        self._store = store
        self._fetch_budget = fetch_budget
        self._persist_budget = persist_budget
        # Strong references keep detached tasks alive until they finish.
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def fetch_record(self, caller_deadline: Optional[Deadline] = None) -> RateRecord:
        deadline = Deadline.after(self._fetch_budget, "upstream fetch").cap(caller_deadline)
        async with deadline.bound():
            return await self._source.fetch(deadline)

    async def persist_detached(self, record: RateRecord) -> asyncio.Task:
        """Spawn persistence of ``record`` outside the request's cancellation scope."""
        task = asyncio.create_task(self._persist(record), name=f"persist-{record.code}{record.code_in}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _persist(self, record: RateRecord) -> Optional[int]:
        deadline = Deadline.after(self._persist_budget, "persist")
        try:
            rate_id = await self._store.append(record, deadline)
        except RelayError as e:
            logger.warning("rate not persisted: %s", e)
            return None
        except Exception:
            logger.exception("rate not persisted: unexpected store failure")
            return None
        logger.info("rate persisted id=%s bid=%s", rate_id, record.bid)
        return rate_id

    async def drain(self) -> None:
        """Wait for every detached persistence task spawned so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
