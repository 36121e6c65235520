"""Trailing moving average smoothing for sensor readings."""
import os
from typing import List, Optional, Sequence
from aws_lambda_powertools import Logger
from .models import SensorReading, SmoothedReading

logger = Logger(child=True)

SMOOTHING_WINDOW = int(os.environ.get("SMOOTHING_WINDOW", "5"))


def moving_average(values: Sequence[Optional[float]], window: int = SMOOTHING_WINDOW) -> List[Optional[float]]:
    """
    Compute a trailing moving average for every position.

    The window shrinks at the start of the sequence, so there are no leading
    gaps. Missing values are skipped inside a window; a window holding no
    values at all yields None.

    Args:
        values: Ordered metric values
        window: Number of samples per window, including the current one

    Returns:
        List of averages rounded to 2 decimals, same length as values
    """
    if window < 1:
        raise ValueError(f"Smoothing window must be at least 1, got {window}")

    averages = []
    for i in range(len(values)):
        start = max(0, i - window + 1)
        present = [v for v in values[start:i + 1] if v is not None]
        if present:
            averages.append(round(sum(present) / len(present), 2))
        else:
            averages.append(None)

    return averages


def smooth_readings(readings: Sequence[SensorReading], window: int = SMOOTHING_WINDOW) -> List[SmoothedReading]:
    """Attach the trailing moisture average to each reading."""
    smoothed_moisture = moving_average([r.moisture for r in readings], window)

    smoothed = [
        SmoothedReading(
            sensor_id=reading.sensor_id,
            timestamp=reading.timestamp,
            temperature=reading.temperature,
            moisture=reading.moisture,
            ph=reading.ph,
            moisture_smooth=average
        )
        for reading, average in zip(readings, smoothed_moisture)
    ]

    logger.debug("Readings smoothed", extra={"reading_count": len(smoothed), "window": window})
    return smoothed
