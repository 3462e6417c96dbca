"""Currency resolution and conversion package."""

from subtrack.currency.cache import CacheEntry, ExpiringCache
from subtrack.currency.converter import CurrencyConverter, RateTable
from subtrack.currency.refresh import refresh_exchange_rates
from subtrack.currency.resolver import ExchangeRateResolver

__all__ = [
    "CacheEntry",
    "CurrencyConverter",
    "ExchangeRateResolver",
    "ExpiringCache",
    "RateTable",
    "refresh_exchange_rates",
]
