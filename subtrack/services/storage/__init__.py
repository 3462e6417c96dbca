"""
Storage Services Package

Provides abstract interfaces and in-memory implementations for the
exchange-rate store and the audit log. The host application supplies
its own database-backed implementation of the same interfaces.
"""

from subtrack.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExchangeRateStoreInterface,
    StorageError,
)
from subtrack.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExchangeRateStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExchangeRateStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExchangeRateStore",
]
