"""
Audit Models for Subtrack

The currency pipeline never raises into a dashboard render, so the only
trace of a degraded number is the audit trail. Every fallback the resolver
or converter takes is recorded as an event here.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each resolution step of the exchange-rate lookup has its own event type.
    """
    # Rate resolution
    RATE_RESOLVED = "rate_resolved"
    RATE_INVERTED = "rate_inverted"
    RATE_STALE_FALLBACK = "rate_stale_fallback"
    RATE_NOT_FOUND = "rate_not_found"
    RATE_LOOKUP_FAILED = "rate_lookup_failed"

    # Conversion
    CONVERSION_FALLBACK = "conversion_fallback"

    # Rate refresh from the provider
    RATES_REFRESHED = "rates_refreshed"
    RATE_REFRESH_FAILED = "rate_refresh_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Currency pair the event is about, e.g. "USD/IDR"
    currency_pair: Optional[str] = Field(
        default=None,
        description="Pair in BASE/TARGET form"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "currency_pair": self.currency_pair,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


def _pair(from_currency: str, to_currency: str) -> str:
    return f"{from_currency}/{to_currency}"


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.stale_rate_used("USD", "IDR", 15500.0, rate_date)
        event = AuditEventBuilder.conversion_fallback(50.0, "USD", "IDR")
    """

    @staticmethod
    def rate_resolved(
        from_currency: str,
        to_currency: str,
        rate: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_RESOLVED,
            severity=AuditSeverity.DEBUG,
            currency_pair=_pair(from_currency, to_currency),
            description=f"Using current rate {rate} for {from_currency} to {to_currency}",
            details={"rate": rate},
        )

    @staticmethod
    def rate_inverted(
        from_currency: str,
        to_currency: str,
        stored_rate: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_INVERTED,
            severity=AuditSeverity.DEBUG,
            currency_pair=_pair(from_currency, to_currency),
            description=(
                f"Using reciprocal of {to_currency} to {from_currency} "
                f"rate for {from_currency} to {to_currency}"
            ),
            details={
                "stored_rate": stored_rate,
                "rate": 1 / stored_rate,
            },
        )

    @staticmethod
    def stale_rate_used(
        from_currency: str,
        to_currency: str,
        rate: float,
        rate_date: datetime,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_STALE_FALLBACK,
            severity=AuditSeverity.WARNING,
            currency_pair=_pair(from_currency, to_currency),
            description=(
                f"Using older exchange rate from {rate_date.isoformat()} "
                f"for {from_currency} to {to_currency}"
            ),
            details={
                "rate": rate,
                "rate_date": rate_date.isoformat(),
            },
        )

    @staticmethod
    def rate_not_found(
        from_currency: str,
        to_currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            currency_pair=_pair(from_currency, to_currency),
            description=f"No exchange rate found for {from_currency} to {to_currency}",
        )

    @staticmethod
    def rate_lookup_failed(
        from_currency: str,
        to_currency: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_LOOKUP_FAILED,
            severity=AuditSeverity.ERROR,
            currency_pair=_pair(from_currency, to_currency),
            description="Error fetching exchange rate",
            error_message=error_message,
        )

    @staticmethod
    def conversion_fallback(
        amount: float,
        from_currency: str,
        to_currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_FALLBACK,
            severity=AuditSeverity.WARNING,
            currency_pair=_pair(from_currency, to_currency),
            description=(
                f"Failed to convert {amount} {from_currency} to {to_currency}, "
                "using original amount"
            ),
            details={"amount": amount},
        )

    @staticmethod
    def rates_refreshed(
        base_currency: str,
        stored: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_REFRESHED,
            description=f"Stored {len(stored)} exchange rates for {base_currency}",
            details={
                "base_currency": base_currency,
                "target_currencies": stored,
            },
        )

    @staticmethod
    def rate_refresh_failed(
        base_currency: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_REFRESH_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Error fetching exchange rates for {base_currency}",
            error_message=error_message,
            details={"base_currency": base_currency},
        )
