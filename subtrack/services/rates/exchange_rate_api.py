"""
Exchange Rate Provider Client (ExchangeRate-API)

Fetches the latest conversion rates for a base currency from
https://www.exchangerate-api.com (v6 "latest" endpoint).

Response shape we rely on:
    {"result": "success", "conversion_rates": {"IDR": 15500.0, ...}}
    {"result": "error", "error-type": "invalid-key"}

Transport errors are retried with exponential backoff. A well-formed
error response from the provider is NOT retried.
"""

from typing import Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subtrack.config import get_settings


class RateFetchError(Exception):
    """Rates could not be obtained from the provider."""
    pass


class ExchangeRateApiClient:
    """
    Thin wrapper around the ExchangeRate-API HTTP interface.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings().exchange_rate_api
        self._api_key = api_key if api_key is not None else settings.api_key
        self._base_url = (base_url or settings.base_url).rstrip("/")
        self._timeout = timeout_seconds or settings.request_timeout_seconds
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    def _get_json(self, url: str) -> dict:
        response = self._session.get(url, timeout=self._timeout)
        response.raise_for_status()
        return response.json()

    def fetch_latest(self, base_currency: str = "USD") -> dict[str, float]:
        """
        Get the latest rates for `base_currency`.

        Returns:
            {currency_code: rate} where 1 base = rate target

        Raises:
            RateFetchError: Missing API key, transport failure or provider error
        """
        if not self._api_key:
            raise RateFetchError("EXCHANGE_RATE_API_KEY is not configured")

        base = base_currency.strip().upper()
        url = f"{self._base_url}/{self._api_key}/latest/{base}"

        try:
            data = self._get_json(url)
        except requests.RequestException as e:
            raise RateFetchError(f"API request failed: {e}") from e
        except ValueError as e:
            raise RateFetchError(f"API returned invalid JSON: {e}") from e

        if data.get("result") != "success":
            raise RateFetchError(f"API returned error: {data.get('error-type', 'unknown')}")

        rates = data.get("conversion_rates") or {}
        return {code.upper(): float(rate) for code, rate in rates.items()}
