"""
Spending Aggregation Engine

Per-tenant dashboard numbers: monthly/annual totals, averages, category
and member breakdowns, and savings estimates.

HOW A SUBSCRIPTION IS COUNTED:
1. Filter by status (only ACTIVE unless include_inactive=True)
2. Normalize its amount to a monthly (or annual) equivalent
3. Convert into the display currency (fail-soft), if one is requested
4. Reduce

DESIGN DECISION: Rates are resolved once per call for every distinct
currency pair (RateTable), then the reduction runs synchronously.
Grouped rows are sorted after aggregation, so equal totals keep their
first-seen order.

Money is rounded to 2 decimals only when a value is returned, never
inside the reduction.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

from subtrack.analytics.rounding import percentage, round_money
from subtrack.audit import get_logger
from subtrack.config import get_settings
from subtrack.currency.converter import CurrencyConverter, RateTable
from subtrack.models.analytics import (
    BillingCycleTotal,
    CategoryTotal,
    MemberTotal,
    SpendingSummary,
    SpendingTrendPoint,
    TopService,
)
from subtrack.models.subscription import BillingCadence, Subscription
from subtrack.normalization.cadence import add_months, to_annual, to_monthly


logger = get_logger("subtrack.analytics")

UNCATEGORIZED = "Uncategorized"
UNASSIGNED = "Unassigned"


def _today() -> date:
    """Return today's date (isolated for easier testing)."""
    return date.today()


class SpendingAggregator:
    """
    Reduces a tenant's subscriptions into dashboard aggregates.

    Every public method is a pure function of its arguments; nothing is
    remembered between calls except what the rate resolver caches.
    """

    def __init__(
        self,
        converter: Optional[CurrencyConverter] = None,
        base_currency: Optional[str] = None,
    ):
        """
        Args:
            converter: Used when a display currency is requested.
                       Without one, every cross-currency amount falls back
                       to its original value.
            base_currency: Currency of subscriptions that carry none.
                           Defaults to the configured tenant base currency.
        """
        self._converter = converter
        self._base_currency = (
            base_currency or get_settings().billing.tenant_base_currency
        ).upper()

    @property
    def base_currency(self) -> str:
        return self._base_currency

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _select(
        subscriptions: Iterable[Subscription],
        include_inactive: bool,
    ) -> list[Subscription]:
        return [s for s in subscriptions if include_inactive or s.is_active]

    async def _rate_table(
        self,
        subscriptions: list[Subscription],
        display_currency: Optional[str],
    ) -> RateTable:
        if not display_currency or self._converter is None:
            return RateTable()
        target = display_currency.upper()
        pairs = [
            (sub.currency_or(self._base_currency), target)
            for sub in subscriptions
        ]
        return await self._converter.build_rate_table(pairs)

    def _in_display_currency(
        self,
        amount: float,
        subscription: Subscription,
        table: RateTable,
        display_currency: Optional[str],
    ) -> float:
        if not display_currency:
            return amount
        source = subscription.currency_or(self._base_currency)
        if source == display_currency.upper():
            return amount
        return table.convert(amount, source, display_currency)

    async def monthly_equivalents(
        self,
        subscriptions: list[Subscription],
        display_currency: Optional[str] = None,
    ) -> list[float]:
        """Converted monthly equivalent of each subscription, in input order."""
        table = await self._rate_table(subscriptions, display_currency)
        values = [
            self._in_display_currency(
                to_monthly(sub.amount, sub.billing_frequency), sub, table, display_currency
            )
            for sub in subscriptions
        ]
        if table.fallback_count:
            logger.warning(
                "display_conversion_incomplete",
                display_currency=display_currency,
                fallbacks=table.fallback_count,
                pairs=len(table.pairs),
            )
        return values

    # -------------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------------

    async def monthly_total(
        self,
        subscriptions: Iterable[Subscription],
        include_inactive: bool = False,
        display_currency: Optional[str] = None,
    ) -> float:
        """Sum of monthly equivalents. Empty input gives 0."""
        selected = self._select(subscriptions, include_inactive)
        values = await self.monthly_equivalents(selected, display_currency)
        return round_money(sum(values))

    async def annual_total(
        self,
        subscriptions: Iterable[Subscription],
        include_inactive: bool = False,
        display_currency: Optional[str] = None,
    ) -> float:
        """Sum of annual equivalents. Empty input gives 0."""
        selected = self._select(subscriptions, include_inactive)
        table = await self._rate_table(selected, display_currency)
        total = sum(
            self._in_display_currency(
                to_annual(sub.amount, sub.billing_frequency), sub, table, display_currency
            )
            for sub in selected
        )
        return round_money(total)

    async def average_cost(
        self,
        subscriptions: Iterable[Subscription],
        include_inactive: bool = False,
        display_currency: Optional[str] = None,
    ) -> float:
        """Average monthly cost of the selected subscriptions; 0 when there are none."""
        selected = self._select(subscriptions, include_inactive)
        if len(selected) == 0:
            return 0.0
        values = await self.monthly_equivalents(selected, display_currency)
        return round_money(sum(values) / len(selected))

    # -------------------------------------------------------------------------
    # Breakdowns
    # -------------------------------------------------------------------------

    @staticmethod
    def _group(
        keyed_values: Iterable[tuple[Optional[str], float]],
    ) -> tuple[list[tuple[Optional[str], float, int]], float]:
        """
        Sum values per key (first-seen order) and sort by total, descending.

        Returns (rows, grand_total) with rows as (key, total, count).
        """
        groups: dict[Optional[str], list] = {}
        for key, value in keyed_values:
            if key not in groups:
                groups[key] = [0.0, 0]
            groups[key][0] += value
            groups[key][1] += 1

        grand_total = sum(total for total, _ in groups.values())
        rows = [(key, total, count) for key, (total, count) in groups.items()]
        # sorted() is stable, so equal totals keep first-seen order
        rows = sorted(rows, key=lambda row: row[1], reverse=True)
        return rows, grand_total

    async def category_totals(
        self,
        subscriptions: Iterable[Subscription],
        categories: Optional[Mapping[str, str]] = None,
        display_currency: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[CategoryTotal]:
        """
        Monthly-equivalent spend per category, largest first.

        Subscriptions without a category, or whose category is not in
        `categories`, are labelled "Uncategorized".
        """
        categories = categories or {}
        selected = self._select(subscriptions, include_inactive)
        values = await self.monthly_equivalents(selected, display_currency)

        rows, grand_total = self._group(
            (sub.category_id, value) for sub, value in zip(selected, values)
        )
        return [
            CategoryTotal(
                category_id=key,
                category_name=categories.get(key, UNCATEGORIZED) if key else UNCATEGORIZED,
                total=round_money(total),
                count=count,
                percentage=percentage(total, grand_total),
            )
            for key, total, count in rows
        ]

    async def member_totals(
        self,
        subscriptions: Iterable[Subscription],
        members: Optional[Mapping[str, str]] = None,
        display_currency: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[MemberTotal]:
        """
        Monthly-equivalent spend per household member, largest first.

        Missing or unknown members are labelled "Unassigned".
        """
        members = members or {}
        selected = self._select(subscriptions, include_inactive)
        values = await self.monthly_equivalents(selected, display_currency)

        rows, grand_total = self._group(
            (sub.member_id, value) for sub, value in zip(selected, values)
        )
        return [
            MemberTotal(
                member_id=key,
                member_name=members.get(key, UNASSIGNED) if key else UNASSIGNED,
                total=round_money(total),
                count=count,
                percentage=percentage(total, grand_total),
            )
            for key, total, count in rows
        ]

    async def billing_cycle_distribution(
        self,
        subscriptions: Iterable[Subscription],
        display_currency: Optional[str] = None,
    ) -> list[BillingCycleTotal]:
        """Count and monthly-equivalent cost per cadence, as entered."""
        active = self._select(subscriptions, include_inactive=False)
        values = await self.monthly_equivalents(active, display_currency)

        distribution: dict[str, list] = {}
        for sub, value in zip(active, values):
            bucket = distribution.setdefault(sub.billing_frequency, [0, 0.0])
            bucket[0] += 1
            bucket[1] += value

        return [
            BillingCycleTotal(frequency=freq, count=count, total_cost=round_money(total))
            for freq, (count, total) in distribution.items()
        ]

    async def top_services(
        self,
        subscriptions: Iterable[Subscription],
        limit: int = 10,
        display_currency: Optional[str] = None,
    ) -> list[TopService]:
        """Active subscriptions ranked by converted monthly equivalent."""
        active = self._select(subscriptions, include_inactive=False)
        values = await self.monthly_equivalents(active, display_currency)

        ranked = sorted(zip(active, values), key=lambda pair: pair[1], reverse=True)
        return [
            TopService(
                id=sub.id,
                service_name=sub.service_name,
                amount=float(sub.amount),
                currency=sub.currency_or(self._base_currency),
                billing_frequency=sub.billing_frequency,
                monthly_equivalent=round_money(value),
            )
            for sub, value in ranked[:max(limit, 0)]
        ]

    # -------------------------------------------------------------------------
    # Savings, trend, summary
    # -------------------------------------------------------------------------

    async def annual_savings_estimate(
        self,
        subscriptions: Iterable[Subscription],
        savings_percent: Optional[float] = None,
        display_currency: Optional[str] = None,
    ) -> float:
        """
        Estimated yearly savings from switching monthly plans to yearly.

        Only ACTIVE subscriptions billed exactly "monthly" are considered;
        quarterly and yearly plans are already discounted.
        """
        if savings_percent is None:
            savings_percent = get_settings().billing.default_savings_percent

        monthly_plans = [
            sub for sub in subscriptions
            if sub.is_active and sub.cadence == BillingCadence.MONTHLY.value
        ]
        values = await self.monthly_equivalents(monthly_plans, display_currency)
        annual_cost = sum(values) * 12
        return round_money(annual_cost * savings_percent / 100)

    async def monthly_spending_trend(
        self,
        subscriptions: Iterable[Subscription],
        months: int = 12,
        display_currency: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[SpendingTrendPoint]:
        """
        Monthly spend for the last `months` months, oldest first.

        A subscription counts toward a month if it started on or before
        the first day of that month. Current status applies to every month.
        """
        active = self._select(subscriptions, include_inactive=False)
        values = await self.monthly_equivalents(active, display_currency)
        current_month = (today or _today()).replace(day=1)

        trend = []
        for offset in range(months - 1, -1, -1):
            month_start = add_months(current_month, -offset)
            total = sum(
                value
                for sub, value in zip(active, values)
                if sub.effective_start <= month_start
            )
            trend.append(SpendingTrendPoint(
                month=month_start.strftime("%b %Y"),
                month_start=month_start,
                total=round_money(total),
            ))
        return trend

    async def spending_summary(
        self,
        subscriptions: Iterable[Subscription],
        display_currency: Optional[str] = None,
    ) -> SpendingSummary:
        """Headline totals of the tenant dashboard."""
        active = self._select(subscriptions, include_inactive=False)
        return SpendingSummary(
            currency=display_currency.upper() if display_currency else None,
            total_monthly=await self.monthly_total(active, display_currency=display_currency),
            total_annual=await self.annual_total(active, display_currency=display_currency),
            active_count=len(active),
            average_cost=await self.average_cost(active, display_currency=display_currency),
        )
