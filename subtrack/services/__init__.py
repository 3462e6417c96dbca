"""Services package."""

from subtrack.services.rates import (
    ExchangeRateApiClient,
    RateFetchError,
)
from subtrack.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ExchangeRateStoreInterface,
    InMemoryAuditStorage,
    InMemoryExchangeRateStore,
    StorageError,
)

__all__ = [
    # Rate provider
    "ExchangeRateApiClient",
    "RateFetchError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "ExchangeRateStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryExchangeRateStore",
    "StorageError",
]
