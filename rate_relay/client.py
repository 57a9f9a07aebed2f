"""Relay client: one bounded call to ``/cotacao``, then the local artifact.

A single deadline covers the whole network exchange; its remaining budget is
forwarded to the server so the server-side fetch never outlives the caller.
Nothing is written unless a valid quote arrived in time, and the artifact is
replaced atomically.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from rate_relay.core.config import CALLER_TIMEOUT_HEADER, CLIENT_TIMEOUT_SECONDS
from rate_relay.core.deadline import Deadline
from rate_relay.core.errors import ArtifactError, ParseError, UpstreamError
from rate_relay.models import RateQuote
from rate_relay.services.money import format_bid

logger = logging.getLogger("rate_relay.client")


class RelayClient:
    def __init__(
        self,
        url: str,
        artifact_path: Path,
        *,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.artifact_path = Path(artifact_path)
        self._timeout = timeout
        self._transport = transport

    async def fetch_quote(self, deadline: Deadline) -> RateQuote:
        async with deadline.bound():
            async with httpx.AsyncClient(transport=self._transport) as client:
                try:
                    response = await client.get(
                        self.url,
                        headers={
                            CALLER_TIMEOUT_HEADER: str(int(deadline.remaining() * 1000))
                        },
                        timeout=deadline.remaining(),
                    )
                except httpx.TimeoutException as e:
                    raise deadline.exceeded() from e
                except httpx.HTTPError as e:
                    raise UpstreamError(f"request to {self.url} failed: {e}") from e
        if response.status_code != httpx.codes.OK:
            raise UpstreamError(
                f"HTTP request failed with status: {response.status_code}",
                response.status_code,
            )
        try:
            return RateQuote.model_validate_json(response.content)
        except ValidationError as e:
            raise ParseError(f"invalid quote from {self.url}: {e.errors()[0]['msg']}") from e

    def write_artifact(self, quote: RateQuote) -> Path:
        """Replace the artifact with the formatted bid."""
        target = self.artifact_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", dir=target.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(format_bid(quote.bid))
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ArtifactError(f"Error saving rate to file {target}: {e}") from e
        return target

    async def run(self) -> Path:
        deadline = Deadline.after(self._timeout, "relay call")
        quote = await self.fetch_quote(deadline)
        path = self.write_artifact(quote)
        logger.info("wrote bid %s to %s", quote.bid, path)
        return path
