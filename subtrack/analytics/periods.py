"""
Reporting windows and time buckets for cross-tenant analytics.

A reporting window is resolved from a TimePeriod ("7d", "30d", "90d",
"1y" or "custom") and then cut into buckets of one day, one week
(weeks start on Sunday) or one month.

Bucket ends:
- day   -> last instant of that day
- week  -> midnight of the following Sunday
- month -> midnight of the first day of the next month

Week and month ends include that first instant of the next bucket.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional, Union

from subtrack.models.analytics import DateRange, TimeGroup, TimePeriod
from subtrack.models.subscription import to_naive
from subtrack.normalization.cadence import add_months


_PERIOD_DAYS = {
    TimePeriod.LAST_7_DAYS: 7,
    TimePeriod.LAST_30_DAYS: 30,
    TimePeriod.LAST_90_DAYS: 90,
}

DEFAULT_PERIOD_DAYS = 30


@dataclass(frozen=True)
class Bucket:
    """One slot of a time series."""
    start: datetime
    end: datetime
    label: str


def _now() -> datetime:
    """Return the current time (isolated for easier testing)."""
    return datetime.now()


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def start_of_week(value: datetime) -> datetime:
    """Midnight of the Sunday on or before `value`."""
    days_since_sunday = (value.weekday() + 1) % 7
    return start_of_day(value) - timedelta(days=days_since_sunday)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def resolve_period(period: Union[TimePeriod, str]) -> TimePeriod:
    """Parse a period, falling back to the last 30 days when unrecognized."""
    value = period.value if isinstance(period, TimePeriod) else str(period)
    for known in TimePeriod:
        if known.value == value:
            return known
    return TimePeriod.LAST_30_DAYS


def get_date_range(
    period: Union[TimePeriod, str] = TimePeriod.LAST_30_DAYS,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve a reporting window.

    Fixed periods end at `now`. A custom period spans whole days from
    `start` to `end`; without both bounds it falls back to the last 30 days,
    as does an unrecognized period.
    """
    now = to_naive(now) if now else _now()
    resolved = resolve_period(period)

    if resolved == TimePeriod.CUSTOM and start and end:
        return DateRange(start=start_of_day(to_naive(start)), end=end_of_day(to_naive(end)))

    if resolved == TimePeriod.LAST_YEAR:
        return DateRange(start=add_months(now, -12), end=now)

    days = _PERIOD_DAYS.get(resolved, DEFAULT_PERIOD_DAYS)
    return DateRange(start=now - timedelta(days=days), end=now)


def previous_date_range(date_range: DateRange) -> DateRange:
    """The window of the same length that ends where `date_range` starts."""
    length = date_range.end - date_range.start
    return DateRange(start=date_range.start - length, end=date_range.start)


def iter_buckets(date_range: DateRange, group_by: Union[TimeGroup, str] = TimeGroup.DAY) -> list[Bucket]:
    """
    Cut a window into buckets, oldest first.

    Every bucket whose start falls inside the window is returned, so the
    first bucket may begin before `date_range.start`.
    """
    group = TimeGroup(group_by)
    start, end = date_range.start, date_range.end
    buckets: list[Bucket] = []

    if group == TimeGroup.MONTH:
        cursor = start_of_month(start)
        while cursor <= end:
            next_month = add_months(cursor, 1)
            buckets.append(Bucket(start=cursor, end=next_month, label=cursor.strftime("%b %Y")))
            cursor = next_month
        return buckets

    if group == TimeGroup.WEEK:
        cursor = start_of_week(start)
        while cursor <= end:
            next_week = cursor + timedelta(days=7)
            buckets.append(Bucket(start=cursor, end=next_week, label=cursor.strftime("%b %d")))
            cursor = next_week
        return buckets

    cursor = start_of_day(start)
    while cursor <= end:
        buckets.append(Bucket(start=cursor, end=end_of_day(cursor), label=cursor.strftime("%b %d")))
        cursor = cursor + timedelta(days=1)
    return buckets
