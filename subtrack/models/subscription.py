"""
Core Input Models for Subtrack

These models describe the records handed to the engine by the surrounding
application (ORM rows, API payloads). They are externally owned: the engine
never persists or mutates them, it only reads them.

DESIGN DECISION: The billing cadence is kept as a raw string.
Unknown cadences are not validation errors; the normalizer treats them
as monthly. Rejecting them here would turn a silent default into a crash.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillingCadence(str, Enum):
    """
    Billing cadences the normalizer recognizes.

    "yearly" and "annual" are aliases of the same cadence.
    """
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """
    Subscription lifecycle status.

    Only ACTIVE counts toward spending aggregates by default.
    ACTIVE and TRIAL both count toward MRR.
    """
    ACTIVE = "active"
    TRIAL = "trial"
    PAUSED = "paused"
    CANCELED = "canceled"


# Statuses that count as recurring revenue
REVENUE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL})


def normalize_currency_code(value: Optional[str]) -> Optional[str]:
    """Upper-case and validate an ISO 4217 code. None passes through."""
    if value is None:
        return None
    code = value.strip().upper()
    if not code:
        return None
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid currency code: {value!r}")
    return code


def to_naive(value: datetime) -> datetime:
    """Drop timezone info (converted to local time) so all comparisons are naive."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# =============================================================================
# SUBSCRIPTION
# =============================================================================

class Subscription(BaseModel):
    """
    A recurring payment tracked for a tenant.

    `currency` may be absent; it then equals the tenant base currency.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Subscription identifier"
    )
    service_name: str = Field(
        default="",
        max_length=200,
        description="Name of the subscribed service"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount charged per billing cycle"
    )
    currency: Optional[str] = Field(
        default=None,
        description="ISO currency code; tenant base currency when absent"
    )
    billing_frequency: str = Field(
        default=BillingCadence.MONTHLY.value,
        min_length=1,
        max_length=30,
        description="Billing cadence as entered (case-insensitive)"
    )
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.ACTIVE,
        description="Current lifecycle status"
    )

    # Grouping
    category_id: Optional[str] = None
    member_id: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the subscription record was created"
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        description="Last status change, used for churn"
    )
    start_date: Optional[date] = Field(
        default=None,
        description="First billing date"
    )
    next_billing: Optional[date] = None

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return normalize_currency_code(v)

    @field_validator('status', mode='before')
    @classmethod
    def fold_status(cls, v):
        """Statuses arrive in mixed case from older records."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('created_at', 'updated_at')
    @classmethod
    def strip_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive(v) if v is not None else None

    @property
    def cadence(self) -> str:
        """Case-folded cadence string."""
        return self.billing_frequency.strip().lower()

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def is_revenue_generating(self) -> bool:
        return self.status in REVENUE_STATUSES

    @property
    def effective_start(self) -> date:
        """Start date, falling back to the creation day."""
        return self.start_date or self.created_at.date()

    @property
    def last_changed_at(self) -> datetime:
        """Time of the last status change, falling back to creation."""
        return self.updated_at or self.created_at

    def currency_or(self, base_currency: str) -> str:
        """Currency of this subscription, defaulting to `base_currency`."""
        return self.currency or base_currency


# =============================================================================
# USER (admin analytics input)
# =============================================================================

class UserRecord(BaseModel):
    """A tenant account as seen by cross-tenant analytics."""

    id: str = Field(
        default_factory=lambda: str(uuid4())
    )
    created_at: datetime = Field(
        default_factory=datetime.now
    )
    subscription_status: Optional[str] = Field(
        default=None,
        description="Status of the tenant's own SaaS subscription"
    )
    subscription_plan: Optional[str] = Field(
        default=None,
        description="Plan name; treated as 'free' when absent"
    )

    @field_validator('subscription_status', mode='before')
    @classmethod
    def fold_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('created_at')
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return to_naive(v)

    @property
    def is_active(self) -> bool:
        return self.subscription_status in {s.value for s in REVENUE_STATUSES}
