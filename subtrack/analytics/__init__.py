"""
Analytics Package

Per-tenant spending aggregation and cross-tenant revenue analytics.
"""

from subtrack.analytics.aggregation import (
    UNASSIGNED,
    UNCATEGORIZED,
    SpendingAggregator,
)
from subtrack.analytics.forecast import forecast_series
from subtrack.analytics.insights import generate_insights
from subtrack.analytics.periods import (
    Bucket,
    get_date_range,
    iter_buckets,
    previous_date_range,
    resolve_period,
)
from subtrack.analytics.revenue import (
    active_users_rate,
    build_overview,
    calculate_arpu,
    calculate_arr,
    calculate_clv,
    calculate_mrr,
    churn_rate,
    compare_periods,
    forecast_revenue,
    forecast_user_growth,
    plan_distribution,
    retention_rate,
    revenue_by_period,
    subscription_distribution,
    user_growth_rate,
    users_by_period,
)
from subtrack.analytics.rounding import percentage, round_money

__all__ = [
    # Spending
    "SpendingAggregator",
    "UNASSIGNED",
    "UNCATEGORIZED",
    "generate_insights",
    # Periods
    "Bucket",
    "get_date_range",
    "iter_buckets",
    "previous_date_range",
    "resolve_period",
    # Revenue
    "active_users_rate",
    "build_overview",
    "calculate_arpu",
    "calculate_arr",
    "calculate_clv",
    "calculate_mrr",
    "churn_rate",
    "compare_periods",
    "forecast_revenue",
    "forecast_series",
    "forecast_user_growth",
    "plan_distribution",
    "retention_rate",
    "revenue_by_period",
    "subscription_distribution",
    "user_growth_rate",
    "users_by_period",
    # Rounding
    "percentage",
    "round_money",
]
