from __future__ import annotations

"""Rate source abstraction.

The relay only needs one operation from a source: fetch the current record
under a deadline. Tests plug in fakes through this interface.
"""
from abc import ABC, abstractmethod

from rate_relay.core.deadline import Deadline
from rate_relay.models import RateRecord


class RateSource(ABC):
    pair: str = "USD-BRL"

    @abstractmethod
    async def fetch(self, deadline: Deadline) -> RateRecord:
        """Return the current record or raise a RelayError."""
        raise NotImplementedError
