"""
Revenue Analytics Engine

Cross-tenant metrics for the admin dashboard: MRR/ARR, bucketed revenue
and user-growth series, churn and retention, status/plan distributions,
ARPU/CLV, period comparisons and a linear-trend forecast.

Every function is a pure reducer over the records it is given.

KNOWN LIMITATION: Historical buckets and churn use each record's CURRENT
status. A subscription canceled last week still counts as revenue in a
bucket from last year, and vice versa. This is a point-in-time snapshot,
not a historical reconstruction, and forecasts inherit the error.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Optional, Union

from subtrack.analytics.forecast import forecast_series
from subtrack.analytics.periods import (
    get_date_range,
    iter_buckets,
    previous_date_range,
    resolve_period,
)
from subtrack.analytics.rounding import percentage, round_money
from subtrack.audit import get_logger
from subtrack.config import get_settings
from subtrack.models.analytics import (
    AnalyticsOverview,
    DateRange,
    DistributionSlice,
    ForecastPoint,
    PeriodComparison,
    RevenuePoint,
    TimeGroup,
    TimePeriod,
    Trend,
    UserGrowthPoint,
)
from subtrack.models.subscription import (
    BillingCadence,
    Subscription,
    SubscriptionStatus,
    UserRecord,
)
from subtrack.normalization.cadence import MONTHS_PER_QUARTER, MONTHS_PER_YEAR


logger = get_logger("subtrack.analytics")

DEFAULT_PLAN = "free"
STABLE_THRESHOLD_PERCENT = 1


# =============================================================================
# RECURRING REVENUE
# =============================================================================

def _mrr_contribution(subscription: Subscription) -> float:
    """
    Monthly revenue of one subscription.

    Yearly (or annual) and quarterly amounts are prorated; every other
    cadence, weekly and daily included, is taken as already monthly.
    """
    amount = float(subscription.amount)
    cadence = subscription.cadence

    if cadence in (BillingCadence.YEARLY.value, BillingCadence.ANNUAL.value):
        return amount / MONTHS_PER_YEAR
    if cadence == BillingCadence.QUARTERLY.value:
        return amount / MONTHS_PER_QUARTER
    return amount


def calculate_mrr(subscriptions: Iterable[Subscription]) -> float:
    """Monthly Recurring Revenue of ACTIVE and TRIAL subscriptions."""
    return sum(
        _mrr_contribution(sub)
        for sub in subscriptions
        if sub.is_revenue_generating
    )


def calculate_arr(mrr: float) -> float:
    """Annual Recurring Revenue."""
    return mrr * MONTHS_PER_YEAR


# =============================================================================
# TIME SERIES
# =============================================================================

def revenue_by_period(
    subscriptions: Sequence[Subscription],
    date_range: DateRange,
    group_by: Union[TimeGroup, str] = TimeGroup.DAY,
) -> list[RevenuePoint]:
    """
    MRR snapshot per bucket.

    A subscription counts toward a bucket when it was created on or before
    the bucket's end and its current status is revenue generating.
    """
    revenue_subs = [sub for sub in subscriptions if sub.is_revenue_generating]
    points = []

    for bucket in iter_buckets(date_range, group_by):
        in_bucket = [sub for sub in revenue_subs if sub.created_at <= bucket.end]
        points.append(RevenuePoint(
            date=bucket.label,
            period_start=bucket.start,
            amount=round_money(sum(_mrr_contribution(sub) for sub in in_bucket)),
            subscription_count=len(in_bucket),
        ))
    return points


def users_by_period(
    users: Sequence[UserRecord],
    date_range: DateRange,
    group_by: Union[TimeGroup, str] = TimeGroup.DAY,
) -> list[UserGrowthPoint]:
    """Cumulative, new and active user counts per bucket."""
    points = []

    for bucket in iter_buckets(date_range, group_by):
        existing = [user for user in users if user.created_at <= bucket.end]
        points.append(UserGrowthPoint(
            date=bucket.label,
            period_start=bucket.start,
            total_users=len(existing),
            new_users=sum(1 for user in existing if user.created_at >= bucket.start),
            active_users=sum(1 for user in existing if user.is_active),
        ))
    return points


# =============================================================================
# USERS
# =============================================================================

def user_growth_rate(users: Sequence[UserRecord], date_range: DateRange) -> float:
    """
    Percentage growth of the user base over the window.

    Returns 100 when there were no users before the window started.
    """
    at_start = sum(1 for user in users if user.created_at < date_range.start)
    at_end = sum(1 for user in users if user.created_at <= date_range.end)

    if at_start == 0:
        return 100.0
    return (at_end - at_start) / at_start * 100


def active_users_rate(users: Sequence[UserRecord]) -> float:
    """Share of users whose own plan is active or trialing."""
    if len(users) == 0:
        return 0.0
    active = sum(1 for user in users if user.is_active)
    return active / len(users) * 100


# =============================================================================
# CHURN & RETENTION
# =============================================================================

def churn_rate(subscriptions: Sequence[Subscription], date_range: DateRange) -> float:
    """
    Canceled-in-window / active-at-window-start x 100.

    "Active at start" means created before the window and currently
    revenue generating; "canceled in window" means currently CANCELED with
    its last change inside the window. Returns 0 with no active base.
    """
    active_at_start = sum(
        1 for sub in subscriptions
        if sub.created_at < date_range.start and sub.is_revenue_generating
    )
    churned = sum(
        1 for sub in subscriptions
        if sub.status == SubscriptionStatus.CANCELED
        and date_range.start <= sub.last_changed_at <= date_range.end
    )

    if active_at_start == 0:
        return 0.0
    return churned / active_at_start * 100


def retention_rate(churn: float) -> float:
    return 100 - churn


# =============================================================================
# DISTRIBUTIONS
# =============================================================================

def _capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def _distribution(names: list[str]) -> list[DistributionSlice]:
    total = len(names)
    if total == 0:
        return []

    counts: dict[str, int] = {}
    for name in names:
        counts[name] = counts.get(name, 0) + 1

    return [
        DistributionSlice(
            name=_capitalize(name),
            value=count,
            percentage=percentage(count, total),
        )
        for name, count in counts.items()
    ]


def subscription_distribution(subscriptions: Sequence[Subscription]) -> list[DistributionSlice]:
    """Subscriptions per status, in first-seen order."""
    return _distribution([sub.status.value for sub in subscriptions])


def plan_distribution(users: Sequence[UserRecord]) -> list[DistributionSlice]:
    """Users per plan; users without a plan count as 'free'."""
    return _distribution([user.subscription_plan or DEFAULT_PLAN for user in users])


# =============================================================================
# PER-USER VALUE
# =============================================================================

def calculate_arpu(total_revenue: float, total_users: int) -> float:
    """Average Revenue Per User; 0 when there are no users."""
    if total_users == 0:
        return 0.0
    return total_revenue / total_users


def calculate_clv(arpu: float, lifespan_months: Optional[int] = None) -> float:
    """Customer Lifetime Value = ARPU x assumed lifespan in months."""
    if lifespan_months is None:
        lifespan_months = get_settings().billing.clv_lifespan_months
    return arpu * lifespan_months


# =============================================================================
# COMPARISON & FORECAST
# =============================================================================

def compare_periods(current: float, previous: float) -> PeriodComparison:
    """
    Period-over-period change.

    A previous value of 0 reports +100%. Changes under 1% either way are
    "stable".
    """
    change = current - previous
    change_percent = 100.0 if previous == 0 else change / previous * 100

    if abs(change_percent) < STABLE_THRESHOLD_PERCENT:
        trend = Trend.STABLE
    elif change_percent > 0:
        trend = Trend.UP
    else:
        trend = Trend.DOWN

    return PeriodComparison(
        current=current,
        previous=previous,
        change=change,
        change_percent=round_money(change_percent),
        trend=trend,
    )


def forecast_revenue(history: Sequence[RevenuePoint], months: int) -> list[ForecastPoint]:
    """Linear-trend forecast of a revenue series; empty below two points."""
    if len(history) < 2:
        return []
    return forecast_series(
        [point.amount for point in history],
        last_date=history[-1].period_start,
        horizon=months,
    )


def forecast_user_growth(history: Sequence[UserGrowthPoint], months: int) -> list[ForecastPoint]:
    """Linear-trend forecast of the total user count."""
    if len(history) < 2:
        return []
    return forecast_series(
        [float(point.total_users) for point in history],
        last_date=history[-1].period_start,
        horizon=months,
    )


# =============================================================================
# OVERVIEW
# =============================================================================

def build_overview(
    subscriptions: Iterable[Subscription],
    users: Iterable[UserRecord],
    period: Union[TimePeriod, str] = TimePeriod.LAST_30_DAYS,
    group_by: Union[TimeGroup, str] = TimeGroup.DAY,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
    forecast_months: int = 3,
    lifespan_months: Optional[int] = None,
) -> AnalyticsOverview:
    """
    Compose every admin metric for one reporting window.

    Only records created on or before the window's end are considered.
    The "comparisons" entry sets current totals against the records
    created in the equally long window just before this one.

    Args:
        subscriptions: All subscriptions across tenants
        users: All tenant accounts
        period: Reporting window ("custom" needs start and end)
        group_by: Bucket size of the time series
        now: Reference time for fixed windows
        forecast_months: Months of revenue forecast to append

    Returns:
        AnalyticsOverview with metrics rounded to 2 decimals
    """
    group = TimeGroup(group_by)
    date_range = get_date_range(period, start=start, end=end, now=now)
    period_value = resolve_period(period)

    all_subs = [sub for sub in subscriptions if sub.created_at <= date_range.end]
    all_users = [user for user in users if user.created_at <= date_range.end]

    mrr = calculate_mrr(all_subs)
    arr = calculate_arr(mrr)
    total_users = len(all_users)
    active_rate = active_users_rate(all_users)
    active_users = sum(1 for user in all_users if user.is_active)
    active_subscriptions = sum(1 for sub in all_subs if sub.is_revenue_generating)
    churn = churn_rate(all_subs, date_range)
    arpu = calculate_arpu(mrr, total_users)

    revenue_data = revenue_by_period(all_subs, date_range, group)
    user_growth_data = users_by_period(all_users, date_range, group)

    previous = previous_date_range(date_range)
    previous_subs = [
        sub for sub in all_subs
        if previous.start <= sub.created_at < previous.end
    ]
    previous_users = [
        user for user in all_users
        if previous.start <= user.created_at < previous.end
    ]
    comparisons = {
        "mrr": compare_periods(
            round_money(mrr), round_money(calculate_mrr(previous_subs))
        ),
        "total_users": compare_periods(total_users, len(previous_users)),
        "active_subscriptions": compare_periods(
            active_subscriptions,
            sum(1 for sub in previous_subs if sub.is_revenue_generating),
        ),
    }

    logger.info(
        "analytics_overview_built",
        period=period_value.value,
        group_by=group.value,
        subscriptions=len(all_subs),
        users=total_users,
        buckets=len(revenue_data),
    )

    return AnalyticsOverview(
        period=period_value,
        group_by=group,
        date_range=date_range,
        mrr=round_money(mrr),
        arr=round_money(arr),
        total_users=total_users,
        active_users=active_users,
        active_users_rate=round_money(active_rate),
        active_subscriptions=active_subscriptions,
        churn_rate=round_money(churn),
        retention_rate=round_money(retention_rate(churn)),
        arpu=round_money(arpu),
        clv=round_money(calculate_clv(arpu, lifespan_months)),
        user_growth_rate=round_money(user_growth_rate(all_users, date_range)),
        revenue_data=revenue_data,
        user_growth_data=user_growth_data,
        subscription_distribution=subscription_distribution(all_subs),
        plan_distribution=plan_distribution(all_users),
        revenue_forecast=forecast_revenue(revenue_data, forecast_months),
        comparisons=comparisons,
    )
