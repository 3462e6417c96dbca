"""
Analytics Output Models

Everything the engine hands to the presentation layer. These objects are
recomputed on every call and carry no identity beyond the call that
produced them. Monetary fields are already rounded to 2 decimals.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================

class TimePeriod(str, Enum):
    """Reporting windows for cross-tenant analytics."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"
    CUSTOM = "custom"


class TimeGroup(str, Enum):
    """Bucket granularity of a time series."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class InsightType(str, Enum):
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


# =============================================================================
# PER-TENANT SPENDING
# =============================================================================

class CategoryTotal(BaseModel):
    """Monthly-equivalent spend of one category."""

    category_id: Optional[str] = None
    category_name: str
    total: float = Field(ge=0)
    count: int = Field(ge=0)
    percentage: float = Field(
        ge=0,
        description="Share of the grand total, 0-100"
    )


class MemberTotal(BaseModel):
    """Monthly-equivalent spend assigned to one household member."""

    member_id: Optional[str] = None
    member_name: str
    total: float = Field(ge=0)
    count: int = Field(ge=0)
    percentage: float = Field(ge=0)


class BillingCycleTotal(BaseModel):
    """Subscriptions sharing a billing cadence."""

    frequency: str
    count: int = Field(ge=0)
    total_cost: float = Field(
        ge=0,
        description="Monthly-equivalent cost of the cadence group"
    )


class TopService(BaseModel):
    """A subscription ranked by its monthly-equivalent cost."""

    id: str
    service_name: str
    amount: float
    currency: str
    billing_frequency: str
    monthly_equivalent: float


class SpendingTrendPoint(BaseModel):
    month: str = Field(..., description="Label, e.g. 'Jan 2025'")
    month_start: date
    total: float


class SpendingSummary(BaseModel):
    """Headline numbers of a tenant dashboard."""

    currency: Optional[str] = None
    total_monthly: float
    total_annual: float
    active_count: int
    average_cost: float


class Insight(BaseModel):
    """A recommendation shown next to the spending charts."""

    id: str
    type: InsightType
    title: str
    description: str
    action_label: Optional[str] = None
    action_url: Optional[str] = None


# =============================================================================
# CROSS-TENANT REVENUE
# =============================================================================

class DateRange(BaseModel):
    start: datetime
    end: datetime


class RevenuePoint(BaseModel):
    date: str = Field(..., description="Bucket label")
    period_start: datetime
    amount: float
    subscription_count: int


class UserGrowthPoint(BaseModel):
    date: str
    period_start: datetime
    total_users: int
    new_users: int
    active_users: int


class DistributionSlice(BaseModel):
    name: str
    value: int
    percentage: float


class PeriodComparison(BaseModel):
    current: float
    previous: float
    change: float
    change_percent: float
    trend: Trend


class ForecastPoint(BaseModel):
    date: str
    predicted: float = Field(ge=0)
    lower: float = Field(ge=0)
    upper: float


class AnalyticsOverview(BaseModel):
    """Everything the admin analytics page renders."""

    period: TimePeriod
    group_by: TimeGroup
    date_range: DateRange

    mrr: float
    arr: float
    total_users: int
    active_users: int
    active_users_rate: float
    active_subscriptions: int
    churn_rate: float
    retention_rate: float
    arpu: float
    clv: float
    user_growth_rate: float

    revenue_data: list[RevenuePoint] = Field(default_factory=list)
    user_growth_data: list[UserGrowthPoint] = Field(default_factory=list)
    subscription_distribution: list[DistributionSlice] = Field(default_factory=list)
    plan_distribution: list[DistributionSlice] = Field(default_factory=list)
    revenue_forecast: list[ForecastPoint] = Field(default_factory=list)

    comparisons: dict[str, PeriodComparison] = Field(
        default_factory=dict,
        description="Current vs previous period, keyed by metric name"
    )


class DashboardSnapshot(BaseModel):
    """Everything a tenant's spending dashboard renders."""

    summary: SpendingSummary
    categories: list[CategoryTotal] = Field(default_factory=list)
    members: list[MemberTotal] = Field(default_factory=list)
    billing_cycles: list[BillingCycleTotal] = Field(default_factory=list)
    top_services: list[TopService] = Field(default_factory=list)
    trend: list[SpendingTrendPoint] = Field(default_factory=list)
    annual_savings: float = 0.0
    insights: list[Insight] = Field(default_factory=list)
