from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import httpx

from rate_relay.core.deadline import Deadline
from rate_relay.core.errors import StoreError
from rate_relay.models import RateRecord
from rate_relay.services.rates.base import RateSource

UPSTREAM_URL = "https://upstream.test/json/last/USD-BRL"


def upstream_document(**overrides: Any) -> Dict[str, Any]:
    rate = {
        "code": "USD",
        "codein": "BRL",
        "name": "Dólar Americano/Real Brasileiro",
        "high": "5.1500",
        "low": "5.0900",
        "varBid": "0.0123",
        "pctChange": "0.24",
        "bid": "5.1234",
        "ask": "5.1254",
        "timestamp": "1718900000",
        "create_date": "2024-06-20 13:13:20",
    }
    rate.update(overrides)
    return {"USDBRL": rate}


def json_transport(document: Dict[str, Any], status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=json.dumps(document).encode())

    return httpx.MockTransport(handler)


def stalling_transport() -> httpx.MockTransport:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(30)
        return httpx.Response(200)

    return httpx.MockTransport(handler)


class StaticSource(RateSource):
    def __init__(self, record: RateRecord):
        self.record = record
        self.calls = 0

    async def fetch(self, deadline: Deadline) -> RateRecord:  # type: ignore[override]
        self.calls += 1
        return self.record


class RecordingStore:
    def __init__(self):
        self.records: List[RateRecord] = []

    async def append(self, record: RateRecord, deadline: Deadline) -> int:
        self.records.append(record)
        return len(self.records)


class FailingStore:
    def __init__(self):
        self.calls = 0

    async def append(self, record: RateRecord, deadline: Deadline) -> int:
        self.calls += 1
        raise StoreError("disk on fire")


class StallingStore:
    def __init__(self, delay: float = 30):
        self.delay = delay
        self.calls = 0
        self.completed = 0

    async def append(self, record: RateRecord, deadline: Deadline) -> int:
        self.calls += 1
        async with deadline.bound():
            await asyncio.sleep(self.delay)
        self.completed += 1
        return self.completed


