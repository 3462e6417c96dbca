"""
Tests for cross-tenant revenue analytics.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from subtrack.analytics import (
    active_users_rate,
    build_overview,
    calculate_arpu,
    calculate_arr,
    calculate_clv,
    calculate_mrr,
    churn_rate,
    compare_periods,
    forecast_revenue,
    forecast_series,
    forecast_user_growth,
    get_date_range,
    iter_buckets,
    plan_distribution,
    previous_date_range,
    retention_rate,
    revenue_by_period,
    subscription_distribution,
    user_growth_rate,
    users_by_period,
)
from subtrack.models.analytics import (
    DateRange,
    RevenuePoint,
    TimeGroup,
    TimePeriod,
    Trend,
    UserGrowthPoint,
)
from subtrack.models.subscription import Subscription, UserRecord


NOW = datetime(2024, 6, 15, 10, 0)


def sub(amount, cadence="monthly", status="active", created=None, updated=None) -> Subscription:
    return Subscription(
        amount=Decimal(str(amount)),
        billing_frequency=cadence,
        status=status,
        created_at=created or datetime(2024, 1, 1),
        updated_at=updated,
    )


def user(created, status=None, plan=None) -> UserRecord:
    return UserRecord(created_at=created, subscription_status=status, subscription_plan=plan)


class TestRecurringRevenue:
    """Tests for MRR/ARR."""

    def test_mrr_prorates_cadences(self):
        """Test monthly, yearly and quarterly proration."""
        subs = [sub(10), sub(120, "yearly"), sub(30, "Quarterly")]
        assert calculate_mrr(subs) == pytest.approx(30)
        assert calculate_arr(calculate_mrr(subs)) == pytest.approx(360)

    def test_mrr_counts_trial(self):
        """Test that TRIAL counts as revenue but CANCELED does not."""
        subs = [sub(10), sub(10, status="trial"), sub(10, status="canceled")]
        assert calculate_mrr(subs) == 20

    def test_mrr_prorates_annual_like_yearly(self):
        """Test that "annual" is an alias of yearly for MRR."""
        assert calculate_mrr([sub(1200, "annual")]) == pytest.approx(100)
        assert calculate_mrr([sub(1200, "Annual")]) == calculate_mrr([sub(1200, "yearly")])

    def test_mrr_other_cadences_taken_as_monthly(self):
        """Test the monthly default for everything else."""
        assert calculate_mrr([sub(7, "weekly")]) == 7

    def test_mrr_empty(self):
        """Test empty input."""
        assert calculate_mrr([]) == 0


class TestPeriods:
    """Tests for reporting windows and buckets."""

    @pytest.mark.parametrize("period,days", [("7d", 7), ("30d", 30), ("90d", 90)])
    def test_fixed_periods(self, period, days):
        """Test that fixed periods end now."""
        window = get_date_range(period, now=NOW)
        assert window.end == NOW
        assert window.start == NOW - timedelta(days=days)

    def test_one_year(self):
        """Test the calendar-year window."""
        window = get_date_range(TimePeriod.LAST_YEAR, now=NOW)
        assert window.start == datetime(2023, 6, 15, 10, 0)

    def test_custom_period_whole_days(self):
        """Test that custom windows span full days."""
        window = get_date_range(
            "custom", start=datetime(2024, 3, 1, 15, 0), end=datetime(2024, 3, 3, 8, 0), now=NOW
        )
        assert window.start == datetime(2024, 3, 1)
        assert window.end.date() == datetime(2024, 3, 3).date()
        assert window.end.hour == 23

    def test_custom_without_bounds_falls_back(self):
        """Test the 30-day default."""
        window = get_date_range("custom", now=NOW)
        assert window.start == NOW - timedelta(days=30)

    def test_unknown_period_falls_back(self):
        """Test that unknown identifiers are the last 30 days."""
        assert get_date_range("2w", now=NOW).start == NOW - timedelta(days=30)

    def test_previous_range(self):
        """Test the equally long preceding window."""
        window = get_date_range("7d", now=NOW)
        previous = previous_date_range(window)
        assert previous.end == window.start
        assert previous.start == NOW - timedelta(days=14)

    def test_day_buckets(self):
        """Test one bucket per day including both ends."""
        window = DateRange(start=datetime(2024, 6, 10, 10), end=datetime(2024, 6, 12, 9))
        buckets = iter_buckets(window, TimeGroup.DAY)

        assert [b.label for b in buckets] == ["Jun 10", "Jun 11", "Jun 12"]
        assert buckets[0].start == datetime(2024, 6, 10)
        assert buckets[0].end.date() == datetime(2024, 6, 10).date()

    def test_week_buckets_start_on_sunday(self):
        """Test Sunday-based weeks."""
        # 2024-06-12 is a Wednesday
        window = DateRange(start=datetime(2024, 6, 12), end=datetime(2024, 6, 20))
        buckets = iter_buckets(window, "week")

        assert buckets[0].start == datetime(2024, 6, 9)
        assert buckets[0].end == datetime(2024, 6, 16)
        assert [b.label for b in buckets] == ["Jun 09", "Jun 16"]

    def test_month_buckets(self):
        """Test month buckets and labels."""
        window = DateRange(start=datetime(2024, 1, 20), end=datetime(2024, 3, 5))
        buckets = iter_buckets(window, TimeGroup.MONTH)

        assert [b.label for b in buckets] == ["Jan 2024", "Feb 2024", "Mar 2024"]
        assert buckets[0].end == datetime(2024, 2, 1)


class TestTimeSeries:
    """Tests for bucketed revenue and user series."""

    def test_revenue_by_period(self):
        """Test point-in-time revenue per bucket."""
        window = DateRange(start=datetime(2024, 1, 1), end=datetime(2024, 3, 31))
        subs = [
            sub(10, created=datetime(2023, 12, 1)),
            sub(120, "yearly", created=datetime(2024, 2, 10)),
            sub(50, status="canceled", created=datetime(2023, 12, 1)),
        ]
        points = revenue_by_period(subs, window, TimeGroup.MONTH)

        assert [p.amount for p in points] == [10.0, 20.0, 20.0]
        assert [p.subscription_count for p in points] == [1, 2, 2]

    def test_users_by_period(self):
        """Test cumulative, new and active users per bucket."""
        window = DateRange(start=datetime(2024, 1, 1), end=datetime(2024, 2, 28))
        users = [
            user(datetime(2023, 12, 5), "active"),
            user(datetime(2024, 1, 10)),
            user(datetime(2024, 2, 3), "trial"),
        ]
        points = users_by_period(users, window, TimeGroup.MONTH)

        assert [p.total_users for p in points] == [2, 3]
        assert [p.new_users for p in points] == [1, 1]
        assert [p.active_users for p in points] == [1, 2]


class TestUsersAndChurn:
    """Tests for growth, activity, churn and retention."""

    def test_user_growth_rate(self):
        """Test growth from the users existing at the window start."""
        window = DateRange(start=datetime(2024, 6, 1), end=datetime(2024, 6, 30))
        users = [
            user(datetime(2024, 5, 1)),
            user(datetime(2024, 5, 2)),
            user(datetime(2024, 6, 10)),
        ]
        assert user_growth_rate(users, window) == 50.0

    def test_user_growth_without_base(self):
        """Test that growth from nothing is 100%."""
        window = DateRange(start=datetime(2024, 6, 1), end=datetime(2024, 6, 30))
        assert user_growth_rate([user(datetime(2024, 6, 3))], window) == 100.0

    def test_active_users_rate(self):
        """Test the active share."""
        users = [user(NOW, "active"), user(NOW, "canceled"), user(NOW, "trial"), user(NOW)]
        assert active_users_rate(users) == 50.0
        assert active_users_rate([]) == 0

    def test_churn_rate(self):
        """Test canceled-in-window over active-at-start."""
        window = DateRange(start=datetime(2024, 6, 1), end=datetime(2024, 6, 30))
        subs = [
            sub(10, created=datetime(2024, 1, 1)),
            sub(10, created=datetime(2024, 1, 1)),
            sub(10, created=datetime(2024, 1, 1), status="trial"),
            sub(10, created=datetime(2024, 1, 1), status="active"),
            sub(10, created=datetime(2024, 1, 1), status="canceled",
                updated=datetime(2024, 6, 5)),
            sub(10, created=datetime(2024, 1, 1), status="canceled",
                updated=datetime(2024, 5, 5)),
        ]
        assert churn_rate(subs, window) == 25.0
        assert retention_rate(25.0) == 75.0

    def test_churn_without_base(self):
        """Test 0 when nothing was active at the start."""
        window = DateRange(start=datetime(2024, 6, 1), end=datetime(2024, 6, 30))
        assert churn_rate([], window) == 0


class TestDistributions:
    """Tests for status and plan distributions."""

    def test_subscription_distribution(self):
        """Test capitalized names and rounded shares."""
        subs = [sub(1), sub(1), sub(1, status="canceled")]
        slices = subscription_distribution(subs)

        assert [(s.name, s.value) for s in slices] == [("Active", 2), ("Canceled", 1)]
        assert slices[0].percentage == 66.67
        assert slices[1].percentage == 33.33

    def test_plan_distribution_defaults_to_free(self):
        """Test that users without a plan are on 'free'."""
        slices = plan_distribution([user(NOW), user(NOW, plan="pro")])
        assert [s.name for s in slices] == ["Free", "Pro"]
        assert [s.percentage for s in slices] == [50.0, 50.0]

    def test_empty_distributions(self):
        """Test empty input."""
        assert subscription_distribution([]) == []
        assert plan_distribution([]) == []


class TestPerUserValue:
    """Tests for ARPU and CLV."""

    def test_arpu(self):
        """Test ARPU and the zero-user guard."""
        assert calculate_arpu(1000, 4) == 250
        assert calculate_arpu(1000, 0) == 0

    def test_clv(self):
        """Test CLV with explicit and default lifespans."""
        assert calculate_clv(10, 12) == 120
        assert calculate_clv(10) == 240


class TestComparePeriods:
    """Tests for period-over-period comparison."""

    def test_increase(self):
        """Test 120 vs 100."""
        result = compare_periods(120, 100)
        assert result.change == 20
        assert result.change_percent == 20
        assert result.trend == Trend.UP

    def test_from_zero(self):
        """Test that growth from zero reports 100%."""
        result = compare_periods(5, 0)
        assert result.change_percent == 100
        assert result.trend == Trend.UP

    def test_decrease(self):
        """Test a drop."""
        result = compare_periods(80, 100)
        assert result.change_percent == -20
        assert result.trend == Trend.DOWN

    def test_stable(self):
        """Test that moves under 1% are stable."""
        assert compare_periods(100.5, 100).trend == Trend.STABLE
        assert compare_periods(99.2, 100).trend == Trend.STABLE

    def test_change_percent_rounded(self):
        """Test 2-decimal rounding of the percentage."""
        assert compare_periods(1, 3).change_percent == -66.67


class TestForecast:
    """Tests for the linear-trend forecast."""

    def test_needs_two_points(self):
        """Test that a single point yields nothing."""
        assert forecast_series([10], NOW, 3) == []
        assert forecast_revenue([], 3) == []

    def test_perfect_line(self):
        """Test extrapolation of an exact trend."""
        points = forecast_series([10, 20, 30], datetime(2024, 3, 1), 2)

        assert [p.predicted for p in points] == [40.0, 50.0]
        assert [p.lower for p in points] == [40.0, 50.0]
        assert [p.upper for p in points] == [40.0, 50.0]
        assert [p.date for p in points] == ["Apr 2024", "May 2024"]

    def test_confidence_band(self):
        """Test the +/- 2 sigma band around the fit."""
        # Fit is y = 2x + 2; residuals -2, 6, -6, 2 give sigma = sqrt(20)
        points = forecast_series([0, 10, 0, 10], datetime(2024, 1, 1), 1)

        assert points[0].predicted == 10.0
        assert points[0].lower == 1.06
        assert points[0].upper == 18.94

    def test_negative_predictions_clamped(self):
        """Test that predicted and lower never go below 0."""
        points = forecast_series([30, 20, 10], datetime(2024, 3, 1), 3)

        assert [p.predicted for p in points] == [0.0, 0.0, 0.0]
        assert all(p.lower == 0 for p in points)
        assert points[-1].upper < 0

    def test_forecast_revenue_uses_last_bucket(self):
        """Test that dates continue from the last bucket."""
        history = [
            RevenuePoint(date="Jan 2024", period_start=datetime(2024, 1, 1), amount=100, subscription_count=1),
            RevenuePoint(date="Feb 2024", period_start=datetime(2024, 2, 1), amount=110, subscription_count=1),
        ]
        points = forecast_revenue(history, 1)

        assert points[0].date == "Mar 2024"
        assert points[0].predicted == 120.0

    def test_forecast_user_growth(self):
        """Test that user totals are projected."""
        history = [
            UserGrowthPoint(date="Jan 2024", period_start=datetime(2024, 1, 1),
                            total_users=10, new_users=10, active_users=5),
            UserGrowthPoint(date="Feb 2024", period_start=datetime(2024, 2, 1),
                            total_users=14, new_users=4, active_users=6),
        ]
        points = forecast_user_growth(history, 2)
        assert [p.predicted for p in points] == [18.0, 22.0]


class TestOverview:
    """Tests for the composed admin overview."""

    def test_build_overview(self):
        """Test that every metric is composed for the window."""
        subs = [
            sub(100, created=datetime(2024, 1, 1)),
            sub(1200, "yearly", created=datetime(2024, 6, 10)),
            sub(50, status="canceled", created=datetime(2024, 1, 1),
                updated=datetime(2024, 6, 12)),
            sub(999, created=datetime(2024, 7, 1)),
        ]
        users = [
            user(datetime(2024, 1, 1), "active", "pro"),
            user(datetime(2024, 6, 10), "trial"),
        ]
        overview = build_overview(
            subs, users, period="7d", group_by="day", now=NOW, lifespan_months=24
        )

        assert overview.period == TimePeriod.LAST_7_DAYS
        assert overview.mrr == 200.0
        assert overview.arr == 2400.0
        assert overview.total_users == 2
        assert overview.active_users == 2
        assert overview.active_subscriptions == 2
        assert overview.churn_rate == 100.0
        assert overview.retention_rate == 0.0
        assert overview.arpu == 100.0
        assert overview.clv == 2400.0
        assert overview.user_growth_rate == 100.0
        assert len(overview.revenue_data) == 8
        assert overview.revenue_data[-1].amount == 200.0
        assert len(overview.revenue_forecast) == 3
        assert set(overview.comparisons) == {"mrr", "total_users", "active_subscriptions"}
        assert overview.comparisons["mrr"].previous == 0
        assert overview.comparisons["mrr"].trend == Trend.UP

    def test_overview_empty(self):
        """Test that an empty system renders zeros."""
        overview = build_overview([], [], period="30d", now=NOW)

        assert overview.mrr == 0
        assert overview.arpu == 0
        assert overview.churn_rate == 0
        assert overview.subscription_distribution == []
        assert overview.revenue_forecast[0].predicted == 0
