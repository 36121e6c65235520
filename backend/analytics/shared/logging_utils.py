"""
Logging utilities for structured logging across the analytics engine and handlers.

Provides helper functions for consistent structured logging with AWS Lambda Powertools.
"""

from typing import Optional
from aws_lambda_powertools import Logger


def log_detection_skipped(
    logger: Logger,
    sensor_id: str,
    reason: str,
    reading_count: int,
    span_seconds: Optional[int] = None
) -> None:
    """
    Log when threshold detection is not evaluated for a batch.

    Args:
        logger: Logger instance
        sensor_id: Sensor ID
        reason: Why evaluation was skipped (insufficient_data, no_threshold, window_gap)
        reading_count: Number of readings in the batch
        span_seconds: Optional timestamp span of the evaluated readings
    """
    extra_data = {
        "sensor_id": sensor_id,
        "reason": reason,
        "reading_count": reading_count,
        "event_category": "detection_skipped"
    }

    if span_seconds is not None:
        extra_data["span_seconds"] = span_seconds

    logger.debug(
        f"Threshold detection skipped: {reason}",
        extra=extra_data
    )


def log_alert_emitted(
    logger: Logger,
    sensor_id: str,
    alert_type: str,
    timestamp: int,
    committed: bool = True
) -> None:
    """
    Log an alert that passed the cooldown check.

    Args:
        logger: Logger instance
        sensor_id: Sensor ID
        alert_type: Type of alert emitted
        timestamp: Timestamp of the triggering reading
        committed: Whether the cooldown state was recorded on emit
    """
    logger.info(
        f"Alert emitted: {alert_type}",
        extra={
            "sensor_id": sensor_id,
            "alert_type": alert_type,
            "reading_timestamp": timestamp,
            "committed": committed,
            "event_category": "alert_emitted"
        }
    )


def log_alert_suppressed(
    logger: Logger,
    sensor_id: str,
    alert_type: str,
    timestamp: int,
    last_emitted: int,
    cooldown_seconds: int
) -> None:
    """
    Log when an alert is suppressed due to cooldown.

    Args:
        logger: Logger instance
        sensor_id: Sensor ID
        alert_type: Type of alert
        timestamp: Timestamp of the candidate alert
        last_emitted: Timestamp of the last emitted alert with the same key
        cooldown_seconds: Cooldown period in seconds
    """
    logger.debug(
        f"Alert suppressed due to cooldown: {alert_type}",
        extra={
            "sensor_id": sensor_id,
            "alert_type": alert_type,
            "reading_timestamp": timestamp,
            "last_emitted": last_emitted,
            "elapsed_seconds": timestamp - last_emitted,
            "cooldown_seconds": cooldown_seconds,
            "event_category": "alert_cooldown"
        }
    )


def log_batch_item_error(
    logger: Logger,
    item_identifier: Optional[str],
    error_message: str,
    error_type: str
) -> None:
    """
    Log a failure while processing one item of a batch.

    Args:
        logger: Logger instance
        item_identifier: Identifier of the failed item, if known
        error_message: Error message
        error_type: Type of error
    """
    logger.error(
        "Batch item processing failed",
        extra={
            "item_identifier": item_identifier,
            "error_message": error_message[:256],
            "error_type": error_type,
            "event_category": "batch_item_error"
        }
    )
