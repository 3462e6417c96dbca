"""
Main Orchestrator for Subtrack

This module ties together all the components and defines the
end-to-end flows for:
1. Tenant dashboard (records → normalize → convert → aggregate)
2. Admin analytics (records → revenue metrics → overview)
3. Rate refresh (provider → exchange-rate store)

DESIGN DECISION: The orchestrator owns the wiring only.
- One resolver (and so one rate cache) is shared by every aggregation
- Settings supply every default (base currency, cache window, savings)
- Every currency fallback is audited through the same AuditLogger

Records come from the caller; nothing here reads or writes them.
"""

import asyncio
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Optional, Union

from subtrack.analytics import SpendingAggregator, build_overview, generate_insights
from subtrack.audit import AuditLogger, get_logger
from subtrack.config import get_settings
from subtrack.currency import CurrencyConverter, ExchangeRateResolver, refresh_exchange_rates
from subtrack.models.analytics import (
    AnalyticsOverview,
    DashboardSnapshot,
    SpendingSummary,
    TimeGroup,
    TimePeriod,
)
from subtrack.models.exchange_rate import RateRefreshResult
from subtrack.models.subscription import Subscription, UserRecord
from subtrack.services.rates import ExchangeRateApiClient
from subtrack.services.storage import (
    AuditStorageInterface,
    ExchangeRateStoreInterface,
    InMemoryExchangeRateStore,
)


logger = get_logger("subtrack.orchestrator")


class SpendingDashboard:
    """
    Per-tenant spending dashboard.

    Flow:
    1. Resolve every currency pair once (RateTable)
    2. Normalize each subscription to its monthly equivalent
    3. Reduce into totals, breakdowns, trend and insights

    Conversion failures never surface: the dashboard always renders
    a number.
    """

    def __init__(
        self,
        converter: Optional[CurrencyConverter] = None,
        rate_store: Optional[ExchangeRateStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        base_currency: Optional[str] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        if converter is None:
            resolver = ExchangeRateResolver(
                rate_store or InMemoryExchangeRateStore(),
                audit_logger=self._audit_logger,
            )
            converter = CurrencyConverter(resolver, audit_logger=self._audit_logger)
        self._converter = converter
        self._aggregator = SpendingAggregator(converter, base_currency=base_currency)

    @property
    def aggregator(self) -> SpendingAggregator:
        return self._aggregator

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    async def get_summary(
        self,
        subscriptions: Sequence[Subscription],
        display_currency: Optional[str] = None,
    ) -> SpendingSummary:
        """Headline totals in the display currency."""
        return await self._aggregator.spending_summary(subscriptions, display_currency)

    async def get_snapshot(
        self,
        subscriptions: Sequence[Subscription],
        categories: Optional[Mapping[str, str]] = None,
        members: Optional[Mapping[str, str]] = None,
        display_currency: Optional[str] = None,
        trend_months: int = 12,
        today: Optional[date] = None,
    ) -> DashboardSnapshot:
        """
        Compute every dashboard panel.

        Args:
            subscriptions: The tenant's subscriptions (any status)
            categories: category_id → name
            members: member_id → name
            display_currency: Currency of every returned amount;
                              amounts stay in their own currency when None
            trend_months: Length of the spending trend
            today: Reference date for the trend

        Returns:
            DashboardSnapshot
        """
        aggregator = self._aggregator
        display = display_currency

        (
            summary,
            category_rows,
            member_rows,
            billing_cycles,
            top_services,
            trend,
            savings,
            insights,
        ) = await asyncio.gather(
            aggregator.spending_summary(subscriptions, display),
            aggregator.category_totals(subscriptions, categories, display),
            aggregator.member_totals(subscriptions, members, display),
            aggregator.billing_cycle_distribution(subscriptions, display),
            aggregator.top_services(subscriptions, display_currency=display),
            aggregator.monthly_spending_trend(
                subscriptions, months=trend_months, display_currency=display, today=today
            ),
            aggregator.annual_savings_estimate(subscriptions, display_currency=display),
            generate_insights(aggregator, subscriptions, categories, display, today=today),
        )

        logger.info(
            "dashboard_snapshot_built",
            subscriptions=len(subscriptions),
            active=summary.active_count,
            display_currency=display,
        )

        return DashboardSnapshot(
            summary=summary,
            categories=category_rows,
            members=member_rows,
            billing_cycles=billing_cycles,
            top_services=top_services,
            trend=trend,
            annual_savings=savings,
            insights=insights,
        )


class AdminAnalytics:
    """
    Cross-tenant revenue analytics for administrators.

    Thin wrapper over build_overview() that applies the configured
    CLV lifespan.
    """

    def __init__(self, lifespan_months: Optional[int] = None):
        self._lifespan_months = (
            lifespan_months or get_settings().billing.clv_lifespan_months
        )

    def get_overview(
        self,
        subscriptions: Sequence[Subscription],
        users: Sequence[UserRecord],
        period: Union[TimePeriod, str] = TimePeriod.LAST_30_DAYS,
        group_by: Union[TimeGroup, str] = TimeGroup.DAY,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
        forecast_months: int = 3,
    ) -> AnalyticsOverview:
        return build_overview(
            subscriptions,
            users,
            period=period,
            group_by=group_by,
            start=start,
            end=end,
            now=now,
            forecast_months=forecast_months,
            lifespan_months=self._lifespan_months,
        )


class RateRefreshFlow:
    """
    Pulls fresh rates from the provider into the exchange-rate store.

    After a successful refresh the resolver cache is cleared so the new
    rates are visible immediately.
    """

    def __init__(
        self,
        store: ExchangeRateStoreInterface,
        client: Optional[ExchangeRateApiClient] = None,
        resolver: Optional[ExchangeRateResolver] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._client = client or ExchangeRateApiClient()
        self._resolver = resolver
        self._audit_logger = audit_logger or AuditLogger()

    async def refresh(
        self,
        base_currency: str = "USD",
        target_currencies: Optional[list[str]] = None,
    ) -> RateRefreshResult:
        result = await refresh_exchange_rates(
            self._store,
            client=self._client,
            base_currency=base_currency,
            target_currencies=target_currencies,
            audit_logger=self._audit_logger,
        )
        if result.success and self._resolver is not None:
            self._resolver.clear_cache()
        return result


def create_app_components(
    rate_store: Optional[ExchangeRateStoreInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[SpendingDashboard, AdminAnalytics, RateRefreshFlow]:
    """
    Factory function to create all application components.

    Args:
        rate_store: Exchange-rate store; in-memory when None
        audit_storage: Where audit events are appended; local log only when None

    Returns:
        (spending_dashboard, admin_analytics, rate_refresh_flow)
    """
    store = rate_store or InMemoryExchangeRateStore()
    audit_logger = AuditLogger(audit_storage)

    resolver = ExchangeRateResolver(store, audit_logger=audit_logger)
    converter = CurrencyConverter(resolver, audit_logger=audit_logger)

    dashboard = SpendingDashboard(converter=converter, audit_logger=audit_logger)
    admin = AdminAnalytics()
    refresh_flow = RateRefreshFlow(store, resolver=resolver, audit_logger=audit_logger)

    return dashboard, admin, refresh_flow
