"""Explicit deadline values passed into each bounded operation.

A ``Deadline`` is an absolute point on the monotonic clock. Stages derive their
own deadline from a budget and, when an outer deadline exists, cap it with
``Deadline.cap`` so bounds compose by minimum. ``Deadline.bound`` runs a block
under an asyncio cancellation scope that expires at that point.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .errors import DeadlineExceeded


@dataclass(frozen=True)
class Deadline:
    expires_at: float  # time.monotonic() seconds
    stage: str
    budget: float

    @classmethod
    def after(cls, seconds: float, stage: str) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds, stage=stage, budget=seconds)

    def remaining(self) -> float:
        return max(self.expires_at - time.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def cap(self, outer: Optional["Deadline"]) -> "Deadline":
        """Return the earlier of this deadline and ``outer``, keeping this stage name."""
        if outer is None or outer.expires_at >= self.expires_at:
            return self
        budget = max(outer.expires_at - (self.expires_at - self.budget), 0.0)
        return Deadline(expires_at=outer.expires_at, stage=self.stage, budget=budget)

    def exceeded(self) -> DeadlineExceeded:
        return DeadlineExceeded(self.stage, self.budget)

    @asynccontextmanager
    async def bound(self) -> AsyncIterator["Deadline"]:
        """Cancel the enclosed block when the deadline passes.

        Raises ``DeadlineExceeded`` instead of the bare ``TimeoutError``.
        """
        if self.expired:
            raise self.exceeded()
        try:
            async with asyncio.timeout(self.remaining()):
                yield self
        except DeadlineExceeded:
            raise
        except TimeoutError as exc:
            raise self.exceeded() from exc
