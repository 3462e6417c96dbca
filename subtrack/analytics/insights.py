"""
Spending insights.

Rule-based recommendations shown next to a tenant's spending charts.
Each rule looks at ACTIVE subscriptions only:

1. High cost      - subscriptions above 2x the average monthly cost
2. Concentration  - any category above 30% of monthly spend
3. Annual plans   - 3 or more monthly plans; estimate savings of switching
4. Trend          - month-over-month spend change beyond +/-10%
"""

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

from subtrack.analytics.aggregation import SpendingAggregator
from subtrack.models.analytics import Insight, InsightType
from subtrack.models.subscription import BillingCadence, Subscription


HIGH_COST_MULTIPLIER = 2
CATEGORY_SHARE_THRESHOLD = 30
MIN_MONTHLY_PLANS = 3
TREND_THRESHOLD_PERCENT = 10


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


async def generate_insights(
    aggregator: SpendingAggregator,
    subscriptions: Iterable[Subscription],
    categories: Optional[Mapping[str, str]] = None,
    display_currency: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Insight]:
    """
    Build the insight list for one tenant.

    Amounts are compared in `display_currency` when one is given.
    Returns an empty list when there are no active subscriptions.
    """
    categories = categories or {}
    active = [sub for sub in subscriptions if sub.is_active]
    if not active:
        return []

    insights: list[Insight] = []
    values = await aggregator.monthly_equivalents(active, display_currency)
    total_monthly = sum(values)
    average = total_monthly / len(active)

    # 1. High-cost subscriptions
    expensive = [v for v in values if v > average * HIGH_COST_MULTIPLIER]
    if expensive:
        count = len(expensive)
        insights.append(Insight(
            id="high-cost-alert",
            type=InsightType.WARNING,
            title="High-Cost Subscriptions Detected",
            description=(
                f"You have {count} {_plural(count, 'subscription')} that cost more than "
                f"twice your average. Consider reviewing "
                f"{'this service' if count == 1 else 'these services'} for potential savings."
            ),
            action_label="View Details",
            action_url="/subscriptions",
        ))

    # 2. Category concentration (uncategorized spend is not a category)
    category_totals: dict[str, float] = {}
    for sub, value in zip(active, values):
        if sub.category_id:
            category_totals[sub.category_id] = category_totals.get(sub.category_id, 0.0) + value

    for category_id, total in category_totals.items():
        share = total / total_monthly * 100 if total_monthly else 0.0
        if share > CATEGORY_SHARE_THRESHOLD:
            name = categories.get(category_id, "One category")
            insights.append(Insight(
                id=f"category-concentration-{category_id}",
                type=InsightType.INFO,
                title="Category Spending Alert",
                description=(
                    f"{name} accounts for {round(share)}% of your total spending. "
                    "Consider diversifying or reviewing subscriptions in this category."
                ),
                action_label="View Category",
                action_url="/subscriptions",
            ))

    # 3. Annual plan savings
    monthly_plans = [
        sub for sub in active
        if sub.cadence == BillingCadence.MONTHLY.value
    ]
    if len(monthly_plans) >= MIN_MONTHLY_PLANS:
        savings = await aggregator.annual_savings_estimate(
            monthly_plans, display_currency=display_currency
        )
        insights.append(Insight(
            id="annual-savings",
            type=InsightType.SUCCESS,
            title="Annual Plan Savings Opportunity",
            description=(
                f"You have {len(monthly_plans)} monthly subscriptions. Switching to annual "
                f"plans could save you approximately {savings:,.0f} per year."
            ),
            action_label="Review Subscriptions",
            action_url="/subscriptions",
        ))

    # 4. Month-over-month trend
    trend = await aggregator.monthly_spending_trend(
        active, months=3, display_currency=display_currency, today=today
    )
    if len(trend) >= 2:
        current, previous = trend[-1].total, trend[-2].total
        change = (current - previous) / previous * 100 if previous > 0 else 0.0

        if change > TREND_THRESHOLD_PERCENT:
            insights.append(Insight(
                id="spending-increase",
                type=InsightType.WARNING,
                title="Spending Increase Detected",
                description=(
                    f"Your subscription spending has increased by {round(change)}% "
                    "compared to last month."
                ),
                action_label="View Trend",
                action_url="/analytics",
            ))
        elif change < -TREND_THRESHOLD_PERCENT:
            insights.append(Insight(
                id="spending-decrease",
                type=InsightType.SUCCESS,
                title="Great Progress!",
                description=(
                    f"Your subscription spending has decreased by {abs(round(change))}% "
                    "compared to last month."
                ),
            ))

    return insights
