"""Threshold alert detection, cooldown deduplication and stability checks."""
import os
import threading
from typing import Dict, Any, Optional, Sequence, Tuple
from aws_lambda_powertools import Logger
from .models import AlertEvent, AlertType, SensorReading, Threshold, METRICS
from .logging_utils import log_alert_emitted, log_alert_suppressed, log_detection_skipped

logger = Logger(child=True)

DEBOUNCE_SAMPLES = 3
DETECTION_WINDOW_SECONDS = int(os.environ.get("DETECTION_WINDOW_SECONDS", "60"))
ALERT_COOLDOWN_SECONDS = int(os.environ.get("ALERT_COOLDOWN_SECONDS", "300"))
ALERT_COMMIT_ON_EMIT = os.environ.get("ALERT_COMMIT_ON_EMIT", "true").lower() == "true"

DEDUP_KEY_SEPARATOR = "#"

# Evaluated in order, first match wins.
ALERT_PRIORITY = (
    (AlertType.HIGH_TEMPERATURE, "temperature", "high"),
    (AlertType.LOW_TEMPERATURE, "temperature", "low"),
    (AlertType.HIGH_PH, "ph", "high"),
    (AlertType.LOW_PH, "ph", "low"),
    (AlertType.HIGH_MOISTURE, "moisture", "high"),
    (AlertType.LOW_MOISTURE, "moisture", "low"),
)


def _has_usable_threshold(threshold: Optional[Threshold]) -> bool:
    return threshold is not None and threshold.is_complete()


def _breaches(value: Optional[float], bound: float, polarity: str) -> bool:
    if value is None:
        return False
    if polarity == "high":
        return value > bound
    return value < bound


def detect_threshold_alert(
    readings: Sequence[SensorReading],
    sensor_id: str,
    threshold: Optional[Threshold],
    window_seconds: int = DETECTION_WINDOW_SECONDS
) -> Optional[AlertEvent]:
    """
    Detect a sustained threshold breach in the most recent readings.

    A breach alert fires only when all of the last three readings are past the
    same bound. When several metrics qualify at once, ALERT_PRIORITY decides.
    Evaluation is skipped when there are fewer than three readings, when the
    threshold is absent or incomplete, or when the last three readings span
    more than window_seconds.

    Args:
        readings: Readings for one sensor, ascending by timestamp
        sensor_id: Sensor the readings belong to
        threshold: Sensor thresholds, or None when unconfigured
        window_seconds: Maximum timestamp span of the evaluated readings

    Returns:
        AlertEvent built from the most recent reading, or None
    """
    if len(readings) < DEBOUNCE_SAMPLES:
        log_detection_skipped(logger, sensor_id, "insufficient_data", len(readings))
        return None

    if not _has_usable_threshold(threshold):
        log_detection_skipped(logger, sensor_id, "no_threshold", len(readings))
        return None

    last_readings = list(readings[-DEBOUNCE_SAMPLES:])
    timestamps = [r.timestamp for r in last_readings]
    span_seconds = max(timestamps) - min(timestamps)

    if span_seconds > window_seconds:
        log_detection_skipped(logger, sensor_id, "window_gap", len(readings), span_seconds)
        return None

    for alert_type, metric, polarity in ALERT_PRIORITY:
        bound_min, bound_max = threshold.bounds(metric)
        bound = bound_max if polarity == "high" else bound_min

        if all(_breaches(r.value_of(metric), bound, polarity) for r in last_readings):
            latest = last_readings[-1]
            return AlertEvent(
                sensor_id=sensor_id,
                alert_type=alert_type,
                timestamp=latest.timestamp,
                temperature=latest.temperature,
                ph=latest.ph,
                moisture=latest.moisture
            )

    return None


def is_sensor_stable(readings: Sequence[SensorReading], threshold: Optional[Threshold]) -> bool:
    """
    Check whether the last three readings are fully within thresholds.

    Vacuously true with fewer than three readings or without a usable
    threshold. A missing metric value counts as out of range.
    """
    if len(readings) < DEBOUNCE_SAMPLES or not _has_usable_threshold(threshold):
        return True

    for reading in readings[-DEBOUNCE_SAMPLES:]:
        for metric in METRICS:
            value = reading.value_of(metric)
            bound_min, bound_max = threshold.bounds(metric)
            if value is None or not bound_min <= value <= bound_max:
                return False

    return True


class AlertDeduplicator:
    """
    Cooldown bookkeeping for emitted alerts.

    Owns a map of (sensor_id, alert_type) to the timestamp of the last emitted
    alert. Each instance is independent; state lives as long as the instance.
    The map is guarded by a lock so one instance can serve sensors evaluated
    from several threads.

    With commit_on_emit enabled an emitted alert is recorded immediately, so a
    later persistence failure still counts as emitted. With it disabled the
    caller records the alert through confirm() once it has been stored.
    """

    def __init__(
        self,
        cooldown_seconds: int = ALERT_COOLDOWN_SECONDS,
        commit_on_emit: bool = ALERT_COMMIT_ON_EMIT
    ):
        if cooldown_seconds < 0:
            raise ValueError(f"Cooldown must not be negative, got {cooldown_seconds}")

        self.cooldown_seconds = cooldown_seconds
        self.commit_on_emit = commit_on_emit
        self._last_emitted: Dict[Tuple[str, AlertType], int] = {}
        self._lock = threading.Lock()

    def filter(self, event: AlertEvent) -> Optional[AlertEvent]:
        """
        Pass an alert through the cooldown check.

        Args:
            event: Candidate alert

        Returns:
            The event when it may be emitted, None when suppressed
        """
        key = event.dedup_key()

        with self._lock:
            last_emitted = self._last_emitted.get(key)
            if last_emitted is not None and event.timestamp - last_emitted < self.cooldown_seconds:
                log_alert_suppressed(
                    logger,
                    event.sensor_id,
                    event.alert_type.value,
                    event.timestamp,
                    last_emitted,
                    self.cooldown_seconds
                )
                return None

            if self.commit_on_emit:
                self._last_emitted[key] = event.timestamp

        log_alert_emitted(logger, event.sensor_id, event.alert_type.value, event.timestamp, self.commit_on_emit)
        return event

    def confirm(self, event: AlertEvent) -> None:
        """Record an alert as emitted."""
        with self._lock:
            self._last_emitted[event.dedup_key()] = event.timestamp

    def last_emitted(self, sensor_id: str, alert_type: AlertType) -> Optional[int]:
        with self._lock:
            return self._last_emitted.get((sensor_id, alert_type))

    def reset(self) -> None:
        with self._lock:
            self._last_emitted.clear()

    def snapshot(self) -> Dict[str, int]:
        """
        Export the cooldown map in serializable form.

        Returns:
            Dict keyed by "<sensor_id>#<alert type>" with last emitted timestamps
        """
        with self._lock:
            return {
                f"{sensor_id}{DEDUP_KEY_SEPARATOR}{alert_type.value}": timestamp
                for (sensor_id, alert_type), timestamp in self._last_emitted.items()
            }

    @classmethod
    def from_snapshot(
        cls,
        state: Optional[Dict[str, Any]],
        cooldown_seconds: int = ALERT_COOLDOWN_SECONDS,
        commit_on_emit: bool = ALERT_COMMIT_ON_EMIT
    ) -> "AlertDeduplicator":
        """
        Rebuild a deduplicator from a snapshot() export.

        Entries with an unknown alert type or a non-numeric or non-finite
        timestamp are dropped with a warning.
        """
        deduplicator = cls(cooldown_seconds=cooldown_seconds, commit_on_emit=commit_on_emit)

        for key, timestamp in (state or {}).items():
            sensor_id, _, alert_type_value = key.rpartition(DEDUP_KEY_SEPARATOR)
            try:
                if not sensor_id:
                    raise ValueError("missing sensor id")
                alert_type = AlertType(alert_type_value)
                deduplicator._last_emitted[(sensor_id, alert_type)] = int(timestamp)
            except (ValueError, TypeError, OverflowError) as e:
                logger.warning("Dropping invalid dedup state entry", extra={"key": key, "error": str(e)})

        return deduplicator
