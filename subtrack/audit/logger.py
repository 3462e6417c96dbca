"""
Audit Logger

DESIGN DECISION: Every degraded currency result is logged.
Conversion failures never surface as errors on a dashboard, so this log
is the only place where a stale or missing rate becomes visible.

The audit logger:
- Is async so it can share the resolver's event loop
- Gracefully handles failures (a broken audit store never breaks a lookup)
"""

from datetime import datetime
from typing import Optional

import structlog

from subtrack.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from subtrack.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Get a structlog logger bound to `name`."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (always)
    2. An audit store (when one is configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("subtrack.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_rate_resolved(
        self,
        from_currency: str,
        to_currency: str,
        rate: float,
    ) -> None:
        """Log a current same-direction rate."""
        await self.log(AuditEventBuilder.rate_resolved(from_currency, to_currency, rate))

    async def log_rate_inverted(
        self,
        from_currency: str,
        to_currency: str,
        stored_rate: float,
    ) -> None:
        """Log use of the reciprocal pair."""
        await self.log(AuditEventBuilder.rate_inverted(from_currency, to_currency, stored_rate))

    async def log_stale_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: float,
        rate_date: datetime,
    ) -> None:
        """Log fallback to a rate dated before today."""
        await self.log(
            AuditEventBuilder.stale_rate_used(from_currency, to_currency, rate, rate_date)
        )

    async def log_rate_not_found(
        self,
        from_currency: str,
        to_currency: str,
    ) -> None:
        await self.log(AuditEventBuilder.rate_not_found(from_currency, to_currency))

    async def log_rate_lookup_failed(
        self,
        from_currency: str,
        to_currency: str,
        error_message: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.rate_lookup_failed(from_currency, to_currency, error_message)
        )

    async def log_conversion_fallback(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
    ) -> None:
        """Log a conversion that returned the original amount."""
        await self.log(
            AuditEventBuilder.conversion_fallback(amount, from_currency, to_currency)
        )

    async def log_rates_refreshed(
        self,
        base_currency: str,
        stored: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.rates_refreshed(base_currency, stored))

    async def log_rate_refresh_failed(
        self,
        base_currency: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.rate_refresh_failed(base_currency, error_message))
