"""
Cadence Normalizer

Converts an amount billed at some cadence into its monthly or annual
equivalent so that subscriptions can be compared and summed.

IMPORTANT: The ratios are fixed approximations, not calendar-exact:
- weekly uses 4.33 weeks per month (and 52 per year)
- daily uses 30 days per month (and 365 per year)
Because of this, to_annual() is NOT always 12 * to_monthly() for weekly
and daily cadences. Expected outputs depend on these exact constants.

Unknown cadence strings are not errors. to_monthly() treats them as
already monthly (identity) and to_annual() multiplies them by 12.
"""

import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from subtrack.models.subscription import BillingCadence


Amount = Union[int, float, Decimal]

WEEKS_PER_MONTH = 4.33
DAYS_PER_MONTH = 30
WEEKS_PER_YEAR = 52
DAYS_PER_YEAR = 365
MONTHS_PER_YEAR = 12
MONTHS_PER_QUARTER = 3
QUARTERS_PER_YEAR = 4

_YEARLY = (BillingCadence.YEARLY.value, BillingCadence.ANNUAL.value)


def fold_cadence(cadence: str) -> str:
    """Case-fold a cadence string before interpretation."""
    return str(cadence).strip().lower()


def is_known_cadence(cadence: str) -> bool:
    return fold_cadence(cadence) in {c.value for c in BillingCadence}


def to_monthly(amount: Amount, cadence: str) -> float:
    """
    Monthly equivalent of `amount` billed every `cadence`.

    >>> to_monthly(120, "Yearly")
    10.0
    """
    value = float(amount)
    key = fold_cadence(cadence)

    if key == BillingCadence.MONTHLY.value:
        return value
    if key in _YEARLY:
        return value / MONTHS_PER_YEAR
    if key == BillingCadence.QUARTERLY.value:
        return value / MONTHS_PER_QUARTER
    if key == BillingCadence.WEEKLY.value:
        return value * WEEKS_PER_MONTH
    if key == BillingCadence.DAILY.value:
        return value * DAYS_PER_MONTH
    # Unknown cadence: assume the amount is already monthly
    return value


def to_annual(amount: Amount, cadence: str) -> float:
    """
    Annual equivalent of `amount` billed every `cadence`.

    >>> to_annual(30, "quarterly")
    120.0
    """
    value = float(amount)
    key = fold_cadence(cadence)

    if key == BillingCadence.MONTHLY.value:
        return value * MONTHS_PER_YEAR
    if key in _YEARLY:
        return value
    if key == BillingCadence.QUARTERLY.value:
        return value * QUARTERS_PER_YEAR
    if key == BillingCadence.WEEKLY.value:
        return value * WEEKS_PER_YEAR
    if key == BillingCadence.DAILY.value:
        return value * DAYS_PER_YEAR
    # Unknown cadence: assume monthly billing
    return value * MONTHS_PER_YEAR


# =============================================================================
# BILLING DATES
# =============================================================================

def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def _today() -> date:
    """Return today's date (isolated for easier testing)."""
    return date.today()


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return start.replace(year=year, month=month, day=min(start.day, last_day))


def get_next_billing_date(start: Union[date, datetime], cadence: str) -> date:
    """
    Next billing date after `start` for the given cadence.

    Unknown cadences advance by one month.
    """
    start_date = _as_date(start)
    key = fold_cadence(cadence)

    if key in _YEARLY:
        return add_months(start_date, MONTHS_PER_YEAR)
    if key == BillingCadence.QUARTERLY.value:
        return add_months(start_date, MONTHS_PER_QUARTER)
    if key == BillingCadence.WEEKLY.value:
        return start_date + timedelta(days=7)
    if key == BillingCadence.DAILY.value:
        return start_date + timedelta(days=1)
    return add_months(start_date, 1)


def get_days_until(target: Union[date, datetime], today: Optional[date] = None) -> int:
    """Whole days from today until `target` (negative when in the past)."""
    today = today or _today()
    return (_as_date(target) - today).days


def is_overdue(target: Union[date, datetime], today: Optional[date] = None) -> bool:
    return get_days_until(target, today) < 0


def is_due_today(target: Union[date, datetime], today: Optional[date] = None) -> bool:
    return get_days_until(target, today) == 0


def is_within_days(
    target: Union[date, datetime],
    days: int,
    today: Optional[date] = None,
) -> bool:
    """True if `target` falls between today and `days` days from now."""
    days_until = get_days_until(target, today)
    return 0 <= days_until <= days


def get_urgency_level(target: Union[date, datetime], today: Optional[date] = None) -> str:
    """
    Urgency bucket of an upcoming payment.

    Returns one of: overdue, high (<= 3 days), medium (<= 7 days), low.
    """
    days_until = get_days_until(target, today)

    if days_until < 0:
        return "overdue"
    elif days_until <= 3:
        return "high"
    elif days_until <= 7:
        return "medium"
    return "low"


def get_relative_time_string(target: Union[date, datetime], today: Optional[date] = None) -> str:
    """E.g. "Due in 3 days", "Overdue by 1 day"."""
    days_until = get_days_until(target, today)

    if days_until == 0:
        return "Due today"
    elif days_until == 1:
        return "Due tomorrow"
    elif days_until > 1:
        return f"Due in {days_until} days"
    elif days_until == -1:
        return "Overdue by 1 day"
    return f"Overdue by {abs(days_until)} days"
