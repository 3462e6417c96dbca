"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to a database directly.
It consumes exchange rates through this interface, which allows us to:
1. Back it with whatever table the surrounding application owns
2. Use in-memory storage for testing
3. Add caching layers transparently (see ExchangeRateResolver)

The interface is intentionally small - just the queries the resolver
and the rate refresher need.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from subtrack.models.audit import AuditEvent, AuditEventType
from subtrack.models.exchange_rate import ExchangeRate


class ExchangeRateStoreInterface(ABC):
    """
    Abstract interface for exchange-rate storage.

    Rates are keyed by (base_currency, target_currency, date).
    """

    @abstractmethod
    async def find_latest(
        self,
        base_currency: str,
        target_currency: str,
        since: Optional[datetime] = None,
    ) -> Optional[ExchangeRate]:
        """
        Get the most recent rate for a currency pair.

        Args:
            base_currency: Source currency code
            target_currency: Target currency code
            since: If given, only rates dated on or after this instant qualify

        Returns:
            The newest matching rate, or None

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def upsert_rate(self, rate: ExchangeRate) -> bool:
        """
        Insert a rate, replacing any rate with the same pair and date.

        Returns:
            True if stored successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_rates(
        self,
        base_currency: Optional[str] = None,
        target_currency: Optional[str] = None,
    ) -> list[ExchangeRate]:
        """
        List stored rates, newest first, optionally filtered by pair side.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_type(
        self,
        event_type: AuditEventType,
    ) -> list[AuditEvent]:
        """
        Get all events of one type in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
