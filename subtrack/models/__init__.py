"""
Data Models Package

This package contains all Pydantic models used by Subtrack.
Input records, exchange rates, analytics outputs and audit events.
"""

from subtrack.models.subscription import (
    REVENUE_STATUSES,
    BillingCadence,
    Subscription,
    SubscriptionStatus,
    UserRecord,
    normalize_currency_code,
)
from subtrack.models.exchange_rate import (
    ConversionResult,
    ExchangeRate,
    RateRefreshResult,
)
from subtrack.models.analytics import (
    AnalyticsOverview,
    BillingCycleTotal,
    CategoryTotal,
    DashboardSnapshot,
    DateRange,
    DistributionSlice,
    ForecastPoint,
    Insight,
    InsightType,
    MemberTotal,
    PeriodComparison,
    RevenuePoint,
    SpendingSummary,
    SpendingTrendPoint,
    TimeGroup,
    TimePeriod,
    TopService,
    Trend,
    UserGrowthPoint,
)
from subtrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Input models
    "REVENUE_STATUSES",
    "BillingCadence",
    "Subscription",
    "SubscriptionStatus",
    "UserRecord",
    "normalize_currency_code",
    # Exchange rates
    "ConversionResult",
    "ExchangeRate",
    "RateRefreshResult",
    # Analytics outputs
    "AnalyticsOverview",
    "BillingCycleTotal",
    "CategoryTotal",
    "DashboardSnapshot",
    "DateRange",
    "DistributionSlice",
    "ForecastPoint",
    "Insight",
    "InsightType",
    "MemberTotal",
    "PeriodComparison",
    "RevenuePoint",
    "SpendingSummary",
    "SpendingTrendPoint",
    "TimeGroup",
    "TimePeriod",
    "TopService",
    "Trend",
    "UserGrowthPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
