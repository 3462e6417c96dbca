"""
Currency Converter

Applies resolved exchange rates to amounts.

DESIGN DECISION: Conversion is fail-soft. When no rate can be resolved the
ORIGINAL amount is returned and a warning is logged. A missing rate must
never crash a dashboard render; a slightly wrong number is preferred over
an error state.

Two ways to convert:
- convert() / convert_with_result(): one amount, one async lookup
- build_rate_table(): resolve every distinct pair once (concurrently),
  then convert any number of records synchronously with RateTable.apply()
"""

import asyncio
from typing import Iterable, Optional

from subtrack.audit import AuditLogger, get_logger
from subtrack.currency.resolver import ExchangeRateResolver, normalize_code
from subtrack.models.exchange_rate import ConversionResult


class RateTable:
    """
    Pre-resolved rates for a fixed set of currency pairs.

    Pairs whose rate could not be resolved map to None and convert
    fail-soft, like CurrencyConverter.convert().
    """

    def __init__(self, rates: Optional[dict[tuple[str, str], Optional[float]]] = None):
        self._rates = dict(rates or {})
        self._logger = get_logger("subtrack.currency")
        self.fallback_count = 0

    @property
    def pairs(self) -> list[tuple[str, str]]:
        return list(self._rates)

    def rate_for(self, from_currency: str, to_currency: str) -> Optional[float]:
        from_code = normalize_code(from_currency)
        to_code = normalize_code(to_currency)
        if from_code == to_code:
            return 1.0
        return self._rates.get((from_code, to_code))

    def apply(self, amount: float, from_currency: str, to_currency: str) -> ConversionResult:
        """Convert synchronously using the pre-resolved rate."""
        from_code = normalize_code(from_currency)
        to_code = normalize_code(to_currency)
        value = float(amount)

        rate = self.rate_for(from_code, to_code)
        if rate is None:
            self.fallback_count += 1
            self._logger.warning(
                "conversion_fallback",
                amount=value,
                from_currency=from_code,
                to_currency=to_code,
            )
            return ConversionResult(
                value=value,
                original_amount=value,
                from_currency=from_code,
                to_currency=to_code,
                converted=False,
            )

        return ConversionResult(
            value=value * rate,
            original_amount=value,
            from_currency=from_code,
            to_currency=to_code,
            rate=rate,
            converted=True,
        )

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        return self.apply(amount, from_currency, to_currency).value


class CurrencyConverter:
    """
    Converts amounts between currencies via an ExchangeRateResolver.
    """

    def __init__(
        self,
        resolver: ExchangeRateResolver,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = resolver
        self._audit = audit_logger or AuditLogger()
        self._logger = get_logger("subtrack.currency")

    @property
    def resolver(self) -> ExchangeRateResolver:
        return self._resolver

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        """
        Convert `amount`, returning the original amount if no rate resolves.
        """
        result = await self.convert_with_result(amount, from_currency, to_currency)
        return result.value

    async def convert_with_result(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
    ) -> ConversionResult:
        """Like convert(), but reports whether a rate was actually applied."""
        from_code = normalize_code(from_currency)
        to_code = normalize_code(to_currency)
        value = float(amount)

        if from_code == to_code:
            return ConversionResult(
                value=value,
                original_amount=value,
                from_currency=from_code,
                to_currency=to_code,
                rate=1.0,
                converted=True,
            )

        rate = await self._resolver.get_rate(from_code, to_code)

        if rate is None:
            await self._audit.log_conversion_fallback(value, from_code, to_code)
            return ConversionResult(
                value=value,
                original_amount=value,
                from_currency=from_code,
                to_currency=to_code,
                converted=False,
            )

        converted = value * rate
        self._logger.debug(
            "currency_converted",
            amount=value,
            from_currency=from_code,
            to_currency=to_code,
            converted=round(converted, 2),
            rate=rate,
        )
        return ConversionResult(
            value=converted,
            original_amount=value,
            from_currency=from_code,
            to_currency=to_code,
            rate=rate,
            converted=True,
        )

    async def build_rate_table(self, pairs: Iterable[tuple[str, str]]) -> RateTable:
        """
        Resolve every distinct (from, to) pair once.

        Identical-currency pairs are skipped; lookups run concurrently.
        """
        distinct: list[tuple[str, str]] = []
        for from_currency, to_currency in pairs:
            key = (normalize_code(from_currency), normalize_code(to_currency))
            if key[0] != key[1] and key not in distinct:
                distinct.append(key)

        rates = await asyncio.gather(
            *(self._resolver.get_rate(from_code, to_code) for from_code, to_code in distinct)
        )
        return RateTable(dict(zip(distinct, rates)))
