"""Money / rounding helpers.

Centralized so the client artifact and any future rendering use identical
rounding semantics.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP


def round2(value: Decimal | float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_bid(value: Decimal | float) -> str:
    return f"Dólar: {round2(value)}"
