"""
Configuration Management for Subtrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: The tenant base currency lives here and only here.
Every converter and aggregation call receives it from settings instead of
hard-coding a currency literal at each call site.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingSettings(BaseSettings):
    """Billing normalization and aggregation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUBTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    tenant_base_currency: str = Field(
        default="IDR",
        min_length=3,
        max_length=3,
        description="Currency assumed for subscriptions that carry none"
    )
    default_savings_percent: float = Field(
        default=15.0,
        ge=0.0,
        le=100.0,
        description="Assumed discount when switching monthly plans to yearly"
    )
    clv_lifespan_months: int = Field(
        default=24,
        ge=1,
        description="Assumed customer lifespan used for CLV"
    )

    # Exchange-rate cache and store access
    rate_cache_ttl_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="How long a resolved exchange rate is reused (0 disables caching)"
    )
    store_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for exchange-rate store reads on connection errors"
    )

    @field_validator('tenant_base_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.strip().upper()


class ExchangeRateApiSettings(BaseSettings):
    """ExchangeRate-API provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="ExchangeRate-API key (refresh is disabled without it)"
    )
    base_url: str = Field(
        default="https://v6.exchangerate-api.com/v6",
        description="Provider base URL"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="HTTP timeout for rate fetches"
    )
    tracked_currencies: str = Field(
        default="USD,EUR,GBP,JPY,IDR,KRW,CAD,AUD,INR",
        description="Comma-separated list of currencies to store on refresh"
    )

    @property
    def tracked_currencies_list(self) -> list[str]:
        """Get tracked currencies as a list."""
        return [
            code.strip().upper()
            for code in self.tracked_currencies.split(",")
            if code.strip()
        ]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def billing(self) -> BillingSettings:
        return BillingSettings()

    @property
    def exchange_rate_api(self) -> ExchangeRateApiSettings:
        return ExchangeRateApiSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries describing failures.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.billing
        results["billing"] = True
    except Exception as e:
        results["billing"] = False
        results["billing_error"] = str(e)

    try:
        api = settings.exchange_rate_api
        results["exchange_rate_api"] = api.api_key is not None
        if api.api_key is None:
            results["exchange_rate_api_error"] = "EXCHANGE_RATE_API_KEY is not configured"
    except Exception as e:
        results["exchange_rate_api"] = False
        results["exchange_rate_api_error"] = str(e)

    return results
