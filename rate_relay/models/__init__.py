"""Pydantic domain models for the rate relay."""

from .rates import PersistedRate, RateQuote, RateRecord

__all__ = [
    "PersistedRate",
    "RateQuote",
    "RateRecord",
]
