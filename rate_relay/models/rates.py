from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_serializer

# Anything at or above this magnitude cannot be rendered to two decimals within
# the default decimal context, and may not survive the float JSON encoding.
MAX_RATE_MAGNITUDE = Decimal("1e15")


def _within_rate_range(value: Decimal) -> Decimal:
    if abs(value) >= MAX_RATE_MAGNITUDE:
        raise ValueError(f"value must be below {MAX_RATE_MAGNITUDE} in magnitude")
    return value


# Upstream sends numbers as JSON strings; NaN/inf and out-of-range values are
# rejected, never zeroed.
DecimalText = Annotated[
    Decimal, Field(allow_inf_nan=False), AfterValidator(_within_rate_range)
]


class RateRecord(BaseModel):
    """Full exchange-rate document for one currency pair, as sent upstream."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    code_in: str = Field(..., alias="codein")
    name: str
    high: DecimalText
    low: DecimalText
    var_bid: DecimalText = Field(..., alias="varBid")
    pct_change: DecimalText = Field(..., alias="pctChange")
    bid: DecimalText
    ask: DecimalText
    timestamp: str
    create_date: str


class RateQuote(BaseModel):
    bid: DecimalText

    @classmethod
    def from_record(cls, record: RateRecord) -> "RateQuote":
        return cls(bid=record.bid)

    @field_serializer("bid", when_used="json")
    def _bid_as_number(self, bid: Decimal) -> float:
        return float(bid)


class PersistedRate(RateRecord):
    id: int
    captured_at: str
