"""
In-Memory Storage Implementation

Keeps exchange rates and audit events in process memory. Used by tests
and as the default backend when the host application does not inject its
own store. Not shared between processes.
"""

from datetime import datetime
from typing import Optional

from subtrack.models.audit import AuditEvent, AuditEventType
from subtrack.models.exchange_rate import ExchangeRate
from subtrack.services.storage.interface import (
    AuditStorageInterface,
    ExchangeRateStoreInterface,
)


class InMemoryExchangeRateStore(ExchangeRateStoreInterface):
    """
    Exchange rates held in a dict keyed by (base, target, date).
    """

    def __init__(self, rates: Optional[list[ExchangeRate]] = None):
        self._rates: dict[tuple[str, str, datetime], ExchangeRate] = {}
        self.query_count = 0
        for rate in rates or []:
            self._rates[(rate.base_currency, rate.target_currency, rate.date)] = rate

    async def find_latest(
        self,
        base_currency: str,
        target_currency: str,
        since: Optional[datetime] = None,
    ) -> Optional[ExchangeRate]:
        self.query_count += 1
        candidates = [
            rate
            for (base, target, _), rate in self._rates.items()
            if base == base_currency
            and target == target_currency
            and (since is None or rate.date >= since)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.date)

    async def upsert_rate(self, rate: ExchangeRate) -> bool:
        self._rates[(rate.base_currency, rate.target_currency, rate.date)] = rate
        return True

    async def list_rates(
        self,
        base_currency: Optional[str] = None,
        target_currency: Optional[str] = None,
    ) -> list[ExchangeRate]:
        rates = [
            rate
            for rate in self._rates.values()
            if (base_currency is None or rate.base_currency == base_currency)
            and (target_currency is None or rate.target_currency == target_currency)
        ]
        return sorted(rates, key=lambda r: r.date, reverse=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_type(
        self,
        event_type: AuditEventType,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.event_type == event_type]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
