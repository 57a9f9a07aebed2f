from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request

from rate_relay.core.config import CALLER_TIMEOUT_HEADER
from rate_relay.core.deadline import Deadline
from rate_relay.models import RateQuote
from rate_relay.services.relay import RelayService

"""Quote router.

Endpoints:
    - GET /cotacao -> {"bid": <number>} on success, 500 text/plain otherwise

Persistence of the full record is scheduled as a background callback, so it
only starts after the response has been sent.
"""

router = APIRouter(tags=["quotes"])


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay


def caller_deadline(
    timeout_ms: Optional[int] = Header(
        None,
        alias=CALLER_TIMEOUT_HEADER,
        ge=0,
        description="Time the caller is still willing to wait, in milliseconds",
    ),
) -> Optional[Deadline]:
    if timeout_ms is None:
        return None
    return Deadline.after(timeout_ms / 1000, "caller")


@router.get("/cotacao", response_model=RateQuote, summary="Current USD-BRL bid")
async def get_quote(
    background_tasks: BackgroundTasks,
    relay: RelayService = Depends(get_relay_service),
    deadline: Optional[Deadline] = Depends(caller_deadline),
):
    record = await relay.fetch_record(deadline)
    background_tasks.add_task(relay.persist_detached, record)
    return RateQuote.from_record(record)
