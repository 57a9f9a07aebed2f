from __future__ import annotations

"""HTTP rate source backed by the AwesomeAPI ``/json/last/<PAIR>`` endpoint.

The upstream answers with ``{"USDBRL": {...}}`` where every numeric field is a
JSON string. Parsing goes through ``RateRecord`` so a partial or malformed
document never leaves this module.
"""
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from rate_relay.core.config import CURRENCY_PAIR
from rate_relay.core.deadline import Deadline
from rate_relay.core.errors import ParseError, UpstreamError
from rate_relay.models import RateRecord
from .base import RateSource

logger = logging.getLogger("rate_relay.fetcher")


def document_key(pair: str) -> str:
    return pair.replace("-", "").upper()


def parse_rate_document(body: bytes, pair: str = CURRENCY_PAIR) -> RateRecord:
    key = document_key(pair)
    try:
        data: Any = json.loads(body)
    except ValueError as e:
        raise ParseError(f"upstream body is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get(key), dict):
        raise ParseError(f"upstream body has no '{key}' object")
    try:
        return RateRecord.model_validate(data[key])
    except ValidationError as e:
        fields = ", ".join(".".join(map(str, err["loc"])) for err in e.errors())
        raise ParseError(f"upstream '{key}' object is invalid: {fields}") from e


class HTTPRateSource(RateSource):
    def __init__(self, client: httpx.AsyncClient, url: str, pair: str = CURRENCY_PAIR):
        self._client = client
        self._url = url
        self.pair = pair

    async def fetch(self, deadline: Deadline) -> RateRecord:  # type: ignore[override]
        async with deadline.bound():
            try:
                response = await self._client.get(
                    self._url, timeout=deadline.remaining()
                )
            except httpx.TimeoutException as e:
                raise deadline.exceeded() from e
            except httpx.HTTPError as e:
                raise UpstreamError(f"upstream request to {self._url} failed: {e}") from e
        if response.status_code != httpx.codes.OK:
            raise UpstreamError.from_status(self._url, response.status_code)
        record = parse_rate_document(response.content, self.pair)
        logger.debug("fetched %s bid=%s", self.pair, record.bid)
        return record
