"""
Linear-trend forecasting.

Ordinary least squares over the series index (0..n-1) against the value,
projected forward one step per month. The confidence band is
predicted +/- 2 standard deviations of the in-sample residuals
(population variance, divided by n).

Predicted and lower values are floored at 0 after rounding; the upper
bound is left as computed.
"""

import math
from datetime import datetime
from typing import Sequence

from subtrack.analytics.rounding import round_money
from subtrack.models.analytics import ForecastPoint
from subtrack.normalization.cadence import add_months


MIN_POINTS = 2
BAND_WIDTH = 2


def _mean(values: Sequence[float]) -> float:
    """Arithmetic mean of a list of values."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def _linear_regression(x: Sequence[float], y: Sequence[float]) -> tuple[float, float]:
    """Compute slope and intercept of OLS linear regression.

    Args:
        x: Independent variable values (time indices 0, 1, 2, ...).
        y: Dependent variable values.

    Returns:
        (slope, intercept)
    """
    n = len(x)
    if n < 2 or n != len(y):
        return 0.0, _mean(y)

    mean_x = sum(x) / n
    mean_y = sum(y) / n

    ss_xy = sum((xi - mean_x) * (yi - mean_y) for xi, yi in zip(x, y))
    ss_xx = sum((xi - mean_x) ** 2 for xi in x)

    if ss_xx == 0:
        return 0.0, mean_y

    slope = ss_xy / ss_xx
    intercept = mean_y - slope * mean_x
    return slope, intercept


def _residual_std_dev(x: Sequence[float], y: Sequence[float], slope: float, intercept: float) -> float:
    """Population standard deviation of the fit's residuals."""
    if not y:
        return 0.0
    squared = sum((yi - (slope * xi + intercept)) ** 2 for xi, yi in zip(x, y))
    return math.sqrt(squared / len(y))


def forecast_series(
    values: Sequence[float],
    last_date: datetime,
    horizon: int,
) -> list[ForecastPoint]:
    """
    Project `values` `horizon` months past `last_date`.

    Returns an empty list for fewer than two data points.
    """
    if len(values) < MIN_POINTS or horizon <= 0:
        return []

    n = len(values)
    x = [float(i) for i in range(n)]
    y = [float(v) for v in values]

    slope, intercept = _linear_regression(x, y)
    std_dev = _residual_std_dev(x, y, slope, intercept)

    points = []
    for step in range(1, horizon + 1):
        predicted = slope * (n + step - 1) + intercept
        points.append(ForecastPoint(
            date=add_months(last_date, step).strftime("%b %Y"),
            predicted=max(0.0, round_money(predicted)),
            lower=max(0.0, round_money(predicted - BAND_WIDTH * std_dev)),
            upper=round_money(predicted + BAND_WIDTH * std_dev),
        ))
    return points
