"""
Exchange-rate refresh.

Pulls the latest rates for one base currency from the provider and stores
the tracked target currencies, stamped at noon of the current day so the
resolver treats them as today's rates.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from subtrack.audit import AuditLogger
from subtrack.config import get_settings
from subtrack.currency.resolver import normalize_code
from subtrack.models.exchange_rate import ExchangeRate, RateRefreshResult
from subtrack.services.rates import ExchangeRateApiClient, RateFetchError
from subtrack.services.storage import ExchangeRateStoreInterface, StorageError


async def refresh_exchange_rates(
    store: ExchangeRateStoreInterface,
    client: Optional[ExchangeRateApiClient] = None,
    base_currency: str = "USD",
    target_currencies: Optional[list[str]] = None,
    audit_logger: Optional[AuditLogger] = None,
    now: Callable[[], datetime] = datetime.now,
) -> RateRefreshResult:
    """
    Fetch and store the latest rates for `base_currency`.

    Never raises: provider and store failures come back as
    `RateRefreshResult(success=False, error=...)`.
    """
    base = normalize_code(base_currency)
    client = client or ExchangeRateApiClient()
    audit = audit_logger or AuditLogger()
    targets = target_currencies or get_settings().exchange_rate_api.tracked_currencies_list

    try:
        # The HTTP client is blocking; keep it off the event loop
        rates = await asyncio.to_thread(client.fetch_latest, base)
    except RateFetchError as e:
        await audit.log_rate_refresh_failed(base, str(e))
        return RateRefreshResult(success=False, base_currency=base, error=str(e))

    stamp = now().replace(hour=12, minute=0, second=0, microsecond=0)
    stored: list[str] = []

    try:
        for target in targets:
            target_code = normalize_code(target)
            if target_code == base:
                continue
            rate = rates.get(target_code)
            if not rate:
                continue
            await store.upsert_rate(ExchangeRate(
                base_currency=base,
                target_currency=target_code,
                rate=Decimal(str(rate)),
                date=stamp,
                updated_at=now(),
            ))
            stored.append(target_code)
    except StorageError as e:
        await audit.log_rate_refresh_failed(base, str(e))
        return RateRefreshResult(
            success=False,
            base_currency=base,
            rates=rates,
            stored=stored,
            error=str(e),
        )

    await audit.log_rates_refreshed(base, stored)
    return RateRefreshResult(success=True, base_currency=base, rates=rates, stored=stored)
