"""
Trend Reporter Lambda Handler

Builds per-metric trend summaries and linear forecasts for one sensor's
readings over a rolling window.
"""

import time
from typing import Dict, Any, Sequence
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from shared.models import SensorReading, METRICS
from shared.normalization import parse_readings
from shared.trend_analysis import (
    TREND_WINDOW_MINUTES,
    FORECAST_COUNT,
    FORECAST_INTERVAL_SECONDS,
    filter_window,
    summarize_trends,
    calculate_linear_forecast
)

logger = Logger()


@logger.inject_lambda_context
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Lambda handler for Trend Reporter.

    Args:
        event: Payload with "sensor_id", "readings" and optional "now",
            "window_minutes", "forecast_count" and "metrics"
        context: Lambda context

    Returns:
        Trend report for the sensor
    """
    sensor_id = event.get("sensor_id")
    metrics = event.get("metrics") or list(METRICS)

    unknown_metrics = [m for m in metrics if m not in METRICS]
    if unknown_metrics:
        logger.error("Unknown metrics requested", extra={"sensor_id": sensor_id, "metrics": unknown_metrics})
        raise ValueError(f"Unknown metrics: {', '.join(unknown_metrics)}")

    # The wall clock is only read when the caller does not supply "now"
    now = int(event["now"]) if event.get("now") is not None else int(time.time())

    readings = parse_readings(event.get("readings"), sensor_id)

    logger.info("Trend Reporter Lambda invoked", extra={
        "sensor_id": sensor_id,
        "reading_count": len(readings),
        "now": now
    })

    return build_trend_report(
        sensor_id=sensor_id,
        readings=readings,
        now=now,
        window_minutes=int(event.get("window_minutes", TREND_WINDOW_MINUTES)),
        forecast_count=int(event.get("forecast_count", FORECAST_COUNT)),
        metrics=metrics
    )


def build_trend_report(
    sensor_id: str,
    readings: Sequence[SensorReading],
    now: int,
    window_minutes: int = TREND_WINDOW_MINUTES,
    forecast_count: int = FORECAST_COUNT,
    metrics: Sequence[str] = METRICS
) -> Dict[str, Any]:
    """
    Build trend summaries and forecasts over the window ending at now.

    The forecast is fitted over the readings inside the window only.
    """
    window_readings = filter_window(readings, now, window_minutes)

    trends = {
        summary.metric: summary.to_dict()
        for summary in summarize_trends(readings, now, window_minutes, metrics)
    }
    forecasts = {
        metric: calculate_linear_forecast(
            window_readings,
            metric,
            forecast_count=forecast_count,
            interval_seconds=FORECAST_INTERVAL_SECONDS
        ).to_dict()
        for metric in metrics
    }

    return {
        "sensor_id": sensor_id,
        "now": now,
        "window_minutes": window_minutes,
        "reading_count": len(window_readings),
        "trends": trends,
        "forecasts": forecasts
    }
