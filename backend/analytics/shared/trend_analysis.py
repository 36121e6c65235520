"""
Rolling trend classification, window statistics and linear forecasts.

Trend classification compares the mean of the first half of a rolling window
against the mean of the second half, ignoring changes inside a +/-2% deadband.
Forecasts fit an ordinary least squares line over the sample index and
extrapolate it at a fixed cadence after the last observation.
"""

import math
import os
from typing import List, Optional, Sequence, Tuple, Any
from aws_lambda_powertools import Logger
from .models import (
    SensorReading,
    TrendDirection,
    MetricStats,
    TrendSummary,
    ForecastPoint,
    ForecastResult,
    METRICS
)
from .time_utils import get_trailing_window, is_within_window, get_forecast_timestamps

logger = Logger(child=True)

TREND_WINDOW_MINUTES = int(os.environ.get("TREND_WINDOW_MINUTES", "60"))
TREND_MIN_POINTS = 6
TREND_DEADBAND = 0.02
FORECAST_COUNT = int(os.environ.get("FORECAST_COUNT", "5"))
FORECAST_INTERVAL_SECONDS = int(os.environ.get("FORECAST_INTERVAL_SECONDS", "600"))


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def filter_window(
    readings: Sequence[SensorReading],
    now: int,
    window_minutes: int = TREND_WINDOW_MINUTES
) -> List[SensorReading]:
    """Keep readings with now - window <= timestamp <= now."""
    window_start, window_end = get_trailing_window(now, window_minutes)
    return [r for r in readings if is_within_window(r.timestamp, window_start, window_end)]


def _window_values(
    readings: Sequence[SensorReading],
    metric: str,
    now: int,
    window_minutes: int
) -> List[float]:
    return [
        float(r.value_of(metric))
        for r in filter_window(readings, now, window_minutes)
        if _is_number(r.value_of(metric))
    ]


def classify_trend(values: Sequence[float], deadband: float = TREND_DEADBAND) -> TrendDirection:
    """
    Classify a time-ordered series by comparing its halves.

    Args:
        values: Metric values, oldest first
        deadband: Relative change ignored as noise

    Returns:
        TrendDirection, STABLE when there are fewer than TREND_MIN_POINTS values
    """
    if len(values) < TREND_MIN_POINTS:
        return TrendDirection.STABLE

    mid = len(values) // 2
    early_avg = sum(values[:mid]) / mid
    late_avg = sum(values[mid:]) / (len(values) - mid)

    if late_avg > early_avg * (1 + deadband):
        return TrendDirection.UP
    if late_avg < early_avg * (1 - deadband):
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def calculate_trend(
    readings: Sequence[SensorReading],
    metric: str,
    now: int,
    window_minutes: int = TREND_WINDOW_MINUTES
) -> TrendDirection:
    """Classify the trend of a metric over the window ending at now."""
    return classify_trend(_window_values(readings, metric, now, window_minutes))


def get_metric_stats(
    readings: Sequence[SensorReading],
    metric: str,
    now: int,
    window_minutes: int = TREND_WINDOW_MINUTES
) -> MetricStats:
    """
    Compute average, minimum and maximum of a metric over the window ending at now.

    Returns:
        MetricStats rounded to 2 decimals, all None when the window is empty
    """
    values = _window_values(readings, metric, now, window_minutes)

    if not values:
        return MetricStats()

    return MetricStats(
        avg=round(sum(values) / len(values), 2),
        min=round(min(values), 2),
        max=round(max(values), 2)
    )


def summarize_trends(
    readings: Sequence[SensorReading],
    now: int,
    window_minutes: int = TREND_WINDOW_MINUTES,
    metrics: Sequence[str] = METRICS
) -> List[TrendSummary]:
    """Trend direction and statistics for each metric."""
    summaries = []

    for metric in metrics:
        values = _window_values(readings, metric, now, window_minutes)
        summaries.append(TrendSummary(
            metric=metric,
            direction=classify_trend(values),
            stats=get_metric_stats(readings, metric, now, window_minutes),
            point_count=len(values)
        ))

    return summaries


def fit_linear_regression(points: Sequence[Tuple[float, float]]) -> Optional[Tuple[float, float]]:
    """
    Fit y = a * x + b with ordinary least squares.

    Distinct consecutive sample indices never produce a zero denominator; a
    zero denominator (all x equal) is still reported as insufficient data.

    Args:
        points: (x, y) pairs

    Returns:
        Tuple of (slope, intercept), or None when the fit is undefined
    """
    n = len(points)
    if n < 2:
        return None

    sum_x = sum(x for x, _ in points)
    sum_y = sum(y for _, y in points)
    sum_xy = sum(x * y for x, y in points)
    sum_x2 = sum(x * x for x, _ in points)

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def calculate_linear_forecast(
    readings: Sequence[SensorReading],
    metric: str,
    forecast_count: int = FORECAST_COUNT,
    interval_seconds: int = FORECAST_INTERVAL_SECONDS
) -> ForecastResult:
    """
    Fit a line over the readings of a metric and extrapolate future points.

    Points are (index, value) with the index taken from the full sequence;
    readings with a missing or NaN value are left out. The forecast value at
    step j is slope * (n + j) + intercept, n being the number of valid points,
    stamped interval_seconds * (j + 1) after the last valid observation.

    Args:
        readings: Readings ascending by timestamp
        metric: Metric name
        forecast_count: Number of future points
        interval_seconds: Cadence of the future points

    Returns:
        ForecastResult, empty when fewer than two valid points remain
    """
    if forecast_count < 0:
        raise ValueError(f"Forecast count must not be negative, got {forecast_count}")
    if interval_seconds <= 0:
        raise ValueError(f"Forecast interval must be positive, got {interval_seconds}")

    observed = [
        (index, float(reading.value_of(metric)), reading.timestamp)
        for index, reading in enumerate(readings)
        if _is_number(reading.value_of(metric))
    ]

    fit = fit_linear_regression([(x, y) for x, y, _ in observed])
    if fit is None:
        logger.debug("Not enough data for forecast", extra={"metric": metric, "valid_points": len(observed)})
        return ForecastResult()

    slope, intercept = fit
    n = len(observed)
    last_timestamp = observed[-1][2]

    forecast = [
        ForecastPoint(timestamp=timestamp, value=round(slope * (n + step) + intercept, 2))
        for step, timestamp in enumerate(get_forecast_timestamps(last_timestamp, forecast_count, interval_seconds))
    ]

    return ForecastResult(
        actual=[ForecastPoint(timestamp=timestamp, value=round(y, 2)) for _, y, timestamp in observed],
        forecast=forecast,
        slope=slope,
        intercept=intercept
    )
