"""Configuration package."""

from subtrack.config.settings import (
    BillingSettings,
    ExchangeRateApiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "BillingSettings",
    "ExchangeRateApiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
