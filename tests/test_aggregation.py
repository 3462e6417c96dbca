"""
Tests for the per-tenant spending aggregation engine.
"""

import asyncio
import math
from datetime import date, datetime
from decimal import Decimal

import pytest

from subtrack.analytics import UNASSIGNED, UNCATEGORIZED, SpendingAggregator, generate_insights
from subtrack.audit import AuditLogger
from subtrack.currency import CurrencyConverter, ExchangeRateResolver
from subtrack.models.analytics import InsightType
from subtrack.models.exchange_rate import ExchangeRate
from subtrack.models.subscription import Subscription
from subtrack.services.storage import InMemoryExchangeRateStore


NOW = datetime(2024, 6, 15, 9, 30)


def sub(amount, cadence="monthly", status="active", **kwargs) -> Subscription:
    return Subscription(
        amount=Decimal(str(amount)),
        billing_frequency=cadence,
        status=status,
        **kwargs,
    )


def make_aggregator(rates=None) -> SpendingAggregator:
    store = InMemoryExchangeRateStore([
        ExchangeRate(
            base_currency=base,
            target_currency=target,
            rate=Decimal(rate),
            date=datetime(2024, 6, 15, 12, 0),
        )
        for base, target, rate in (rates or [])
    ])
    resolver = ExchangeRateResolver(store, audit_logger=AuditLogger(), now=lambda: NOW)
    return SpendingAggregator(CurrencyConverter(resolver), base_currency="IDR")


MIXED = [
    sub(10, "monthly"),
    sub(120, "yearly"),
    sub(30, "quarterly"),
]


class TestTotals:
    """Tests for monthly/annual totals and averages."""

    def test_mixed_cadences(self):
        """Test that 10 monthly + 120 yearly + 30 quarterly is 30 a month."""
        aggregator = make_aggregator()
        assert asyncio.run(aggregator.monthly_total(MIXED)) == 30.0
        assert asyncio.run(aggregator.annual_total(MIXED)) == 360.0

    def test_empty_input(self):
        """Test the explicit zero results."""
        aggregator = make_aggregator()
        assert asyncio.run(aggregator.monthly_total([])) == 0
        assert asyncio.run(aggregator.annual_total([])) == 0
        assert asyncio.run(aggregator.average_cost([])) == 0
        assert asyncio.run(aggregator.category_totals([])) == []

    def test_inactive_excluded_by_default(self):
        """Test that only ACTIVE subscriptions count unless asked."""
        aggregator = make_aggregator()
        subs = [sub(10), sub(20, status="canceled"), sub(5, status="trial")]

        assert asyncio.run(aggregator.monthly_total(subs)) == 10.0
        assert asyncio.run(aggregator.monthly_total(subs, include_inactive=True)) == 35.0

    def test_average_cost(self):
        """Test the average over active subscriptions."""
        aggregator = make_aggregator()
        assert asyncio.run(aggregator.average_cost(MIXED)) == 10.0
        assert asyncio.run(aggregator.average_cost([sub(10, status="paused")])) == 0

    def test_average_cost_include_inactive(self):
        """Test that the inactive flag widens the average."""
        aggregator = make_aggregator()
        subs = [sub(10), sub(30, status="paused")]

        assert asyncio.run(aggregator.average_cost(subs)) == 10.0
        assert asyncio.run(aggregator.average_cost(subs, include_inactive=True)) == 20.0

    def test_amount_beyond_float_range(self):
        """Test that an amount too large for a float still yields a number."""
        aggregator = make_aggregator()
        total = asyncio.run(aggregator.monthly_total([sub("1e400")]))
        assert math.isinf(total)

    def test_rounded_at_return(self):
        """Test that only the final total is rounded."""
        aggregator = make_aggregator()
        subs = [sub(10, "yearly")] * 3
        assert asyncio.run(aggregator.monthly_total(subs)) == 2.5

    def test_display_currency_conversion(self):
        """Test that amounts are converted into the display currency."""
        aggregator = make_aggregator([("USD", "IDR", "16000")])
        subs = [sub(10, currency="USD"), sub(50000)]

        assert asyncio.run(aggregator.monthly_total(subs, display_currency="IDR")) == 210000.0

    def test_missing_rate_falls_back_to_original(self):
        """Test that an unresolvable pair contributes its raw amount."""
        aggregator = make_aggregator()
        subs = [sub(10, currency="EUR"), sub(50000)]

        assert asyncio.run(aggregator.monthly_total(subs, display_currency="IDR")) == 50010.0

    def test_no_display_currency_means_no_conversion(self):
        """Test that amounts are summed as-is without a display currency."""
        aggregator = make_aggregator([("USD", "IDR", "16000")])
        subs = [sub(10, currency="USD"), sub(5)]

        assert asyncio.run(aggregator.monthly_total(subs)) == 15.0


class TestBreakdowns:
    """Tests for category and member breakdowns."""

    def test_category_totals_sorted_descending(self):
        """Test the A 30 / B 70 scenario."""
        aggregator = make_aggregator()
        subs = [sub(30, category_id="A"), sub(70, category_id="B")]
        rows = asyncio.run(aggregator.category_totals(subs, {"A": "Music", "B": "Video"}))

        assert [r.category_id for r in rows] == ["B", "A"]
        assert rows[0].total == 70.0
        assert rows[0].percentage == 70.0
        assert rows[0].category_name == "Video"
        assert rows[1].total == 30.0
        assert rows[1].percentage == 30.0

    def test_uncategorized_sentinel(self):
        """Test that missing and unknown categories are labelled."""
        aggregator = make_aggregator()
        subs = [sub(10), sub(5, category_id="ghost")]
        rows = asyncio.run(aggregator.category_totals(subs, {}))

        assert [r.category_name for r in rows] == [UNCATEGORIZED, UNCATEGORIZED]
        assert rows[0].category_id is None

    def test_ties_keep_first_seen_order(self):
        """Test that equal totals are not reordered."""
        aggregator = make_aggregator()
        subs = [sub(10, category_id="X"), sub(10, category_id="Y"), sub(10, category_id="Z")]
        rows = asyncio.run(aggregator.category_totals(subs))

        assert [r.category_id for r in rows] == ["X", "Y", "Z"]

    def test_percentages_sum_to_hundred(self):
        """Test that shares add up within rounding tolerance."""
        aggregator = make_aggregator()
        subs = [sub(10, category_id="X"), sub(10, category_id="Y"), sub(10, category_id="Z")]
        rows = asyncio.run(aggregator.category_totals(subs))

        assert sum(r.percentage for r in rows) == pytest.approx(100, abs=0.05)
        assert sum(r.count for r in rows) == 3

    def test_zero_grand_total(self):
        """Test that free subscriptions give 0%, not a division error."""
        aggregator = make_aggregator()
        rows = asyncio.run(aggregator.category_totals([sub(0, category_id="A")]))
        assert rows[0].percentage == 0

    def test_member_totals(self):
        """Test member grouping and the Unassigned sentinel."""
        aggregator = make_aggregator()
        subs = [sub(20, member_id="m1"), sub(5), sub(15, member_id="m1")]
        rows = asyncio.run(aggregator.member_totals(subs, {"m1": "Alex"}))

        assert rows[0].member_name == "Alex"
        assert rows[0].total == 35.0
        assert rows[0].count == 2
        assert rows[1].member_name == UNASSIGNED

    def test_billing_cycle_distribution(self):
        """Test counts and monthly cost per raw cadence."""
        aggregator = make_aggregator()
        rows = asyncio.run(aggregator.billing_cycle_distribution(
            [sub(10), sub(20), sub(120, "yearly")]
        ))

        by_freq = {r.frequency: r for r in rows}
        assert by_freq["monthly"].count == 2
        assert by_freq["monthly"].total_cost == 30.0
        assert by_freq["yearly"].total_cost == 10.0

    def test_top_services(self):
        """Test ranking by monthly equivalent."""
        aggregator = make_aggregator()
        subs = [
            sub(10, service_name="Music"),
            sub(600, "yearly", service_name="Cloud"),
            sub(30, service_name="Video"),
        ]
        top = asyncio.run(aggregator.top_services(subs, limit=2))

        assert [t.service_name for t in top] == ["Cloud", "Video"]
        assert top[0].monthly_equivalent == 50.0
        assert top[0].currency == "IDR"


class TestSavingsAndTrend:
    """Tests for savings estimate, trend and summary."""

    def test_annual_savings(self):
        """Test 100 monthly at 20% saves 240 a year."""
        aggregator = make_aggregator()
        assert asyncio.run(aggregator.annual_savings_estimate([sub(100)], 20)) == 240.0

    def test_annual_savings_canceled(self):
        """Test that canceled subscriptions save nothing."""
        aggregator = make_aggregator()
        assert asyncio.run(
            aggregator.annual_savings_estimate([sub(100, status="canceled")], 20)
        ) == 0

    def test_annual_savings_only_monthly_plans(self):
        """Test that quarterly and yearly plans are excluded."""
        aggregator = make_aggregator()
        subs = [sub(100, "Monthly"), sub(300, "quarterly"), sub(1200, "yearly")]
        assert asyncio.run(aggregator.annual_savings_estimate(subs, 10)) == 120.0

    def test_annual_savings_default_percent(self):
        """Test the configured default discount."""
        aggregator = make_aggregator()
        assert asyncio.run(aggregator.annual_savings_estimate([sub(100)])) == 180.0

    def test_monthly_spending_trend(self):
        """Test that subscriptions count from their start month."""
        aggregator = make_aggregator()
        subs = [
            sub(10, start_date=date(2024, 1, 1)),
            sub(20, start_date=date(2024, 5, 20)),
        ]
        trend = asyncio.run(aggregator.monthly_spending_trend(
            subs, months=3, today=date(2024, 6, 15)
        ))

        assert [p.month for p in trend] == ["Apr 2024", "May 2024", "Jun 2024"]
        assert [p.total for p in trend] == [10.0, 10.0, 30.0]

    def test_spending_summary(self):
        """Test the headline numbers."""
        aggregator = make_aggregator()
        summary = asyncio.run(aggregator.spending_summary(MIXED + [sub(99, status="canceled")]))

        assert summary.total_monthly == 30.0
        assert summary.total_annual == 360.0
        assert summary.active_count == 3
        assert summary.average_cost == 10.0


class TestInsights:
    """Tests for rule-based insights."""

    def test_no_active_subscriptions(self):
        """Test that there is nothing to say without active subscriptions."""
        aggregator = make_aggregator()
        assert asyncio.run(generate_insights(aggregator, [sub(10, status="canceled")])) == []

    def test_high_cost_and_concentration(self):
        """Test the high-cost and category rules."""
        aggregator = make_aggregator()
        subs = [
            sub(10, category_id="a", start_date=date(2023, 1, 1)),
            sub(10, category_id="b", start_date=date(2023, 1, 1)),
            sub(100, category_id="c", start_date=date(2023, 1, 1)),
        ]
        insights = asyncio.run(generate_insights(
            aggregator, subs, {"c": "Software"}, today=date(2024, 6, 15)
        ))
        ids = [i.id for i in insights]

        assert "high-cost-alert" in ids
        assert "category-concentration-c" in ids
        concentration = insights[ids.index("category-concentration-c")]
        assert concentration.type == InsightType.INFO
        assert "Software accounts for 83%" in concentration.description

    def test_annual_plan_opportunity(self):
        """Test the 3-monthly-plans rule."""
        aggregator = make_aggregator()
        subs = [sub(100, start_date=date(2023, 1, 1)) for _ in range(3)]
        insights = asyncio.run(generate_insights(aggregator, subs, today=date(2024, 6, 15)))

        savings = [i for i in insights if i.id == "annual-savings"]
        assert len(savings) == 1
        assert "540" in savings[0].description

    def test_spending_increase(self):
        """Test the month-over-month trend rule."""
        aggregator = make_aggregator()
        subs = [
            sub(10, start_date=date(2023, 1, 1)),
            sub(10, start_date=date(2024, 6, 1)),
        ]
        insights = asyncio.run(generate_insights(aggregator, subs, today=date(2024, 6, 15)))

        increase = [i for i in insights if i.id == "spending-increase"]
        assert len(increase) == 1
        assert "100%" in increase[0].description
