"""Cadence normalization package."""

from subtrack.normalization.cadence import (
    add_months,
    fold_cadence,
    get_days_until,
    get_next_billing_date,
    get_relative_time_string,
    get_urgency_level,
    is_due_today,
    is_known_cadence,
    is_overdue,
    is_within_days,
    to_annual,
    to_monthly,
)

__all__ = [
    "add_months",
    "fold_cadence",
    "get_days_until",
    "get_next_billing_date",
    "get_relative_time_string",
    "get_urgency_level",
    "is_due_today",
    "is_known_cadence",
    "is_overdue",
    "is_within_days",
    "to_annual",
    "to_monthly",
]
