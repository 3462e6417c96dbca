"""Exchange-rate provider package."""

from subtrack.services.rates.exchange_rate_api import (
    ExchangeRateApiClient,
    RateFetchError,
)

__all__ = [
    "ExchangeRateApiClient",
    "RateFetchError",
]
