"""
Integration tests for the dashboard and admin flows.

Everything runs against in-memory stores.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal

from subtrack.audit import AuditLogger
from subtrack.currency import CurrencyConverter, ExchangeRateResolver
from subtrack.models.audit import AuditEventType
from subtrack.models.exchange_rate import ExchangeRate
from subtrack.models.subscription import Subscription, UserRecord
from subtrack.orchestrator import (
    AdminAnalytics,
    SpendingDashboard,
    create_app_components,
)
from subtrack.services.storage import InMemoryAuditStorage, InMemoryExchangeRateStore


def todays_rate(base: str, target: str, rate: str) -> ExchangeRate:
    return ExchangeRate(
        base_currency=base,
        target_currency=target,
        rate=Decimal(rate),
        date=datetime.now().replace(hour=0, minute=0, second=0, microsecond=0),
    )


class YieldingStore(InMemoryExchangeRateStore):
    """In-memory store whose reads suspend, like a network-backed store."""

    async def find_latest(self, base_currency, target_currency, since=None):
        await asyncio.sleep(0)
        return await super().find_latest(base_currency, target_currency, since=since)


SUBSCRIPTIONS = [
    Subscription(service_name="Video", amount=Decimal("10"), currency="USD",
                 category_id="ent", start_date=date(2023, 1, 1)),
    Subscription(service_name="Cloud", amount=Decimal("1200000"), billing_frequency="yearly",
                 category_id="work", member_id="m1", start_date=date(2023, 1, 1)),
    Subscription(service_name="Music", amount=Decimal("50000"),
                 category_id="ent", start_date=date(2023, 1, 1)),
    Subscription(service_name="Old", amount=Decimal("99"), currency="USD", status="canceled"),
]


class TestSpendingDashboard:
    """Tests for the tenant dashboard flow."""

    def test_snapshot_in_display_currency(self):
        """Test that every panel is converted into the display currency."""
        store = InMemoryExchangeRateStore([todays_rate("USD", "IDR", "16000")])
        dashboard = SpendingDashboard(rate_store=store, base_currency="IDR")

        snapshot = asyncio.run(dashboard.get_snapshot(
            SUBSCRIPTIONS,
            categories={"ent": "Entertainment", "work": "Work"},
            members={"m1": "Sam"},
            display_currency="IDR",
            trend_months=2,
        ))

        # 10 USD = 160000 IDR; 1.2M yearly = 100000 a month; 50000 IDR
        assert snapshot.summary.total_monthly == 310000.0
        assert snapshot.summary.active_count == 3
        assert snapshot.categories[0].category_name == "Entertainment"
        assert snapshot.categories[0].total == 210000.0
        assert snapshot.members[0].member_name == "Unassigned"
        assert snapshot.top_services[0].service_name == "Video"
        assert len(snapshot.trend) == 2
        assert snapshot.annual_savings == 378000.0

    def test_snapshot_resolves_each_pair_once(self):
        """Test that concurrent panels share one lookup per currency pair."""
        store = YieldingStore([ExchangeRate(
            base_currency="USD",
            target_currency="IDR",
            rate=Decimal("16000"),
            date=datetime(2020, 1, 1),
        )])
        audit = InMemoryAuditStorage()
        audit_logger = AuditLogger(audit)
        resolver = ExchangeRateResolver(store, audit_logger=audit_logger, cache_ttl_seconds=60)
        dashboard = SpendingDashboard(
            converter=CurrencyConverter(resolver, audit_logger=audit_logger),
            audit_logger=audit_logger,
            base_currency="IDR",
        )
        subs = [Subscription(service_name="Video", amount=Decimal("10"), currency="USD")]

        snapshot = asyncio.run(dashboard.get_snapshot(subs, display_currency="IDR"))

        assert snapshot.summary.total_monthly == 160000.0
        assert store.query_count == 3
        stale = asyncio.run(audit.get_events_by_type(AuditEventType.RATE_STALE_FALLBACK))
        assert len(stale) == 1

    def test_summary_without_rates_is_fail_soft(self):
        """Test that a missing rate still renders a number."""
        dashboard = SpendingDashboard(base_currency="IDR")
        summary = asyncio.run(dashboard.get_summary(SUBSCRIPTIONS, display_currency="IDR"))

        assert summary.total_monthly == 150010.0


class TestAppComponents:
    """Tests for the component factory."""

    def test_shared_audit_trail(self):
        """Test that conversion fallbacks reach the configured audit store."""
        audit = InMemoryAuditStorage()
        dashboard, admin, refresh_flow = create_app_components(audit_storage=audit)

        asyncio.run(dashboard.converter.convert(10, "USD", "EUR"))

        events = asyncio.run(audit.get_events_by_type(AuditEventType.CONVERSION_FALLBACK))
        assert len(events) == 1
        assert isinstance(admin, AdminAnalytics)
        assert refresh_flow is not None


class TestAdminAnalytics:
    """Tests for the admin analytics facade."""

    def test_overview(self):
        """Test that the facade composes the overview."""
        now = datetime(2024, 6, 15, 12, 0)
        subs = [Subscription(amount=Decimal("30"), created_at=datetime(2024, 1, 1))]
        users = [UserRecord(created_at=datetime(2024, 1, 1), subscription_status="active")]

        overview = AdminAnalytics(lifespan_months=12).get_overview(
            subs, users, period="30d", group_by="week", now=now
        )

        assert overview.mrr == 30.0
        assert overview.arpu == 30.0
        assert overview.clv == 360.0
        assert overview.revenue_data[0].date.startswith("May")
