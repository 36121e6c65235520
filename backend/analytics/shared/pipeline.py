"""
Alert pipeline for a single sensor tick.

Runs smoothing, threshold detection, cooldown deduplication and the
stability check over one freshly fetched batch of readings. The pipeline is
synchronous and holds no timers; the caller decides when to invoke it and
what to do with the emitted alert.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from aws_lambda_powertools import Logger
from .models import AlertEvent, SensorReading, SmoothedReading, Threshold
from .smoothing import SMOOTHING_WINDOW, smooth_readings
from .alert_detection import (
    DETECTION_WINDOW_SECONDS,
    AlertDeduplicator,
    detect_threshold_alert,
    is_sensor_stable
)

logger = Logger(child=True)


@dataclass
class PipelineResult:
    """Outcome of one pipeline evaluation."""
    smoothed: List[SmoothedReading] = field(default_factory=list)
    candidate: Optional[AlertEvent] = None  # detector output before cooldown
    alert: Optional[AlertEvent] = None
    stable: bool = True


class AlertPipeline:
    """
    Per-tick alert evaluation for one or more sensors.

    The pipeline owns (or is given) an AlertDeduplicator; cooldown state is
    keyed by sensor and alert type so sensors never share it.
    """

    def __init__(
        self,
        deduplicator: Optional[AlertDeduplicator] = None,
        smoothing_window: int = SMOOTHING_WINDOW,
        detection_window_seconds: int = DETECTION_WINDOW_SECONDS
    ):
        self.deduplicator = deduplicator if deduplicator is not None else AlertDeduplicator()
        self.smoothing_window = smoothing_window
        self.detection_window_seconds = detection_window_seconds

    def evaluate(
        self,
        sensor_id: str,
        readings: Sequence[SensorReading],
        threshold: Optional[Threshold]
    ) -> PipelineResult:
        """
        Evaluate one batch of readings for a sensor.

        Detection runs on the raw values; the smoothed series is returned for
        display.

        Args:
            sensor_id: Sensor the readings belong to
            readings: Readings ascending by timestamp
            threshold: Sensor thresholds, or None when unconfigured

        Returns:
            PipelineResult with the emitted alert, if any
        """
        smoothed = smooth_readings(readings, self.smoothing_window)
        candidate = detect_threshold_alert(readings, sensor_id, threshold, self.detection_window_seconds)
        alert = self.deduplicator.filter(candidate) if candidate is not None else None
        stable = is_sensor_stable(readings, threshold)

        logger.debug(
            "Pipeline evaluated",
            extra={
                "sensor_id": sensor_id,
                "reading_count": len(readings),
                "candidate": candidate.alert_type.value if candidate else None,
                "emitted": alert is not None,
                "stable": stable
            }
        )

        return PipelineResult(smoothed=smoothed, candidate=candidate, alert=alert, stable=stable)
