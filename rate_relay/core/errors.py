"""Error taxonomy shared by the relay server and client, plus FastAPI handlers.

Every failure the relay knows how to describe is a ``RelayError``. Server side,
those surface to the caller as a plain-text 500 carrying the message; anything
else is logged and reported as a generic internal error.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette import status

logger = logging.getLogger("rate_relay.errors")


class RelayError(Exception):
    """Base class for failures raised by relay components."""


class DeadlineExceeded(RelayError, TimeoutError):
    """A bounded stage ran past its deadline and was abandoned."""

    def __init__(self, stage: str, budget: float):
        self.stage = stage
        self.budget = budget
        super().__init__(f"{stage} deadline of {budget * 1000:.0f}ms exceeded")


class UpstreamError(RelayError):
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

    @classmethod
    def from_status(cls, url: str, status: int) -> "UpstreamError":
        return cls(f"upstream request to {url} failed with status {status}", status)


class ParseError(RelayError):
    pass


class StoreError(RelayError):
    pass


class ArtifactError(RelayError):
    pass


def relay_error_handler(request: Request, exc: RelayError):  # type: ignore
    logger.warning("request failed: %s", exc)
    return PlainTextResponse(
        str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def http_error_handler(request: Request, exc):  # type: ignore
    if exc.status_code != status.HTTP_404_NOT_FOUND:
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "detail": f"No route for {request.method} {request.url.path}",
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return PlainTextResponse(
        "internal error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
