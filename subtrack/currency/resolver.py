"""
Exchange Rate Resolver

Looks up the rate between two currencies from the exchange-rate store.

Resolution order:
1. Exact pair dated today or later (most recent first)
2. Reciprocal of the reverse pair, same freshness rule
3. Most recent exact pair of any date (stale fallback, logged as warning)
4. None (logged as warning)

CRITICAL: get_rate() never raises. Store failures are logged and turned
into None, which callers must read as "no conversion possible".
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subtrack.audit import AuditLogger
from subtrack.config import get_settings
from subtrack.currency.cache import ExpiringCache
from subtrack.models.exchange_rate import ExchangeRate
from subtrack.services.storage import ConnectionError, ExchangeRateStoreInterface


def normalize_code(code: str) -> str:
    return code.strip().upper()


class ExchangeRateResolver:
    """
    Resolves same-day exchange rates with reverse-pair and stale fallbacks.

    Resolved rates (including "not found") are cached per pair for a short
    window. Lookups that failed because the store errored are not cached.
    Concurrent requests for a pair that is still being looked up share
    that lookup instead of querying the store again.
    """

    def __init__(
        self,
        store: ExchangeRateStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        cache_ttl_seconds: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        now: Callable[[], datetime] = datetime.now,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize resolver.

        Args:
            store: Exchange-rate store to query
            audit_logger: Where fallbacks are recorded (local log only if None)
            cache_ttl_seconds: Override of the configured cache window
            retry_attempts: Override of the configured store read attempts
            now: Wall clock used to decide what "today" is
            clock: Monotonic clock for cache expiry
        """
        settings = get_settings().billing
        ttl = settings.rate_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds

        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._retry_attempts = retry_attempts or settings.store_retry_attempts
        self._now = now
        self._cache: ExpiringCache[Optional[float]] = (
            ExpiringCache(ttl, clock) if clock else ExpiringCache(ttl)
        )
        self._pending: dict[tuple[str, str], asyncio.Future] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_rate(self, from_currency: str, to_currency: str) -> Optional[float]:
        """
        Get the rate converting `from_currency` into `to_currency`.

        Returns 1.0 for identical currencies without touching the store.
        """
        from_code = normalize_code(from_currency)
        to_code = normalize_code(to_currency)

        if from_code == to_code:
            return 1.0

        key = (from_code, to_code)
        entry = self._cache.get_entry(key)
        if entry is not None:
            return entry.value

        # Concurrent callers for the same pair await one shared lookup
        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(key))
            self._pending[key] = pending
        return await asyncio.shield(pending)

    async def _lookup(self, key: tuple[str, str]) -> Optional[float]:
        from_code, to_code = key
        try:
            rate = await self._resolve(from_code, to_code)
        except Exception as e:
            await self._audit.log_rate_lookup_failed(from_code, to_code, str(e))
            return None
        finally:
            self._pending.pop(key, None)

        self._cache.set(key, rate)
        return rate

    def _start_of_today(self) -> datetime:
        return self._now().replace(hour=0, minute=0, second=0, microsecond=0)

    async def _resolve(self, from_code: str, to_code: str) -> Optional[float]:
        today = self._start_of_today()

        current = await self._find(from_code, to_code, since=today)
        if current is not None:
            rate = float(current.rate)
            await self._audit.log_rate_resolved(from_code, to_code, rate)
            return rate

        reverse = await self._find(to_code, from_code, since=today)
        if reverse is not None:
            stored = float(reverse.rate)
            await self._audit.log_rate_inverted(from_code, to_code, stored)
            return 1 / stored

        latest = await self._find(from_code, to_code)
        if latest is not None:
            rate = float(latest.rate)
            await self._audit.log_stale_rate(from_code, to_code, rate, latest.date)
            return rate

        await self._audit.log_rate_not_found(from_code, to_code)
        return None

    async def _find(
        self,
        base: str,
        target: str,
        since: Optional[datetime] = None,
    ) -> Optional[ExchangeRate]:
        """Store read, retried on connection errors only."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(ConnectionError),
            reraise=True,
        ):
            with attempt:
                return await self._store.find_latest(base, target, since=since)
        return None
