"""
Exchange Rate Models

A stored rate is one directional conversion factor, date-stamped:
    amount_in_base * rate = amount_in_target

The inverse direction is NOT stored implicitly; the resolver derives it
as a reciprocal when only the opposite pair exists.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from subtrack.models.subscription import normalize_currency_code, to_naive


class ExchangeRate(BaseModel):
    """A date-stamped conversion factor between two currencies."""

    base_currency: str = Field(
        ...,
        description="Source currency (ISO 4217)"
    )
    target_currency: str = Field(
        ...,
        description="Target currency (ISO 4217)"
    )
    rate: Decimal = Field(
        ...,
        gt=0,
        description="base * rate = target"
    )
    date: datetime = Field(
        ...,
        description="When this rate became authoritative"
    )
    updated_at: datetime = Field(
        default_factory=datetime.now
    )

    @field_validator('base_currency', 'target_currency')
    @classmethod
    def validate_code(cls, v: str) -> str:
        code = normalize_currency_code(v)
        if code is None:
            raise ValueError("Currency code is required")
        return code

    @field_validator('date', 'updated_at')
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return to_naive(v)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.base_currency, self.target_currency)


class ConversionResult(BaseModel):
    """
    Outcome of a single currency conversion.

    `converted` is False when no rate was available and `value` is the
    original amount (fail-soft). Callers that only need a number read `value`.
    """

    value: float
    original_amount: float
    from_currency: str
    to_currency: str
    rate: Optional[float] = None
    converted: bool = Field(
        ...,
        description="Whether a rate was actually applied"
    )


class RateRefreshResult(BaseModel):
    """Outcome of pulling fresh rates from the provider into the store."""

    success: bool
    base_currency: str
    rates: dict[str, float] = Field(
        default_factory=dict,
        description="Everything the provider returned"
    )
    stored: list[str] = Field(
        default_factory=list,
        description="Target currencies written to the store"
    )
    error: Optional[str] = None
