"""
Alert Evaluator Lambda Handler

Evaluates freshly fetched reading batches against per-sensor thresholds and
returns the alerts the caller should persist and display.

Cooldown state is carried in the payload (dedup_state) and returned updated,
so nothing is kept in module globals between invocations. With the deferred
commit policy the caller passes the alerts it has persisted back as
confirmed_alerts on its next call.
"""

import os
from typing import Dict, Any, Iterable, Optional
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from shared.alert_detection import AlertDeduplicator, ALERT_COOLDOWN_SECONDS, ALERT_COMMIT_ON_EMIT
from shared.alert_history import format_alert_message
from shared.batch_utils import process_batch_with_isolation
from shared.models import AlertEvent
from shared.normalization import normalize_threshold, parse_readings
from shared.pipeline import AlertPipeline

logger = Logger()

ALERT_CLEAR_HOLD_SECONDS = int(os.environ.get("ALERT_CLEAR_HOLD_SECONDS", "10"))


def get_sensor_id(item: Dict[str, Any]) -> Optional[str]:
    """Read the sensor ID of a batch entry."""
    return item.get("sensor_id") or item.get("sensorId")


@logger.inject_lambda_context
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Lambda handler for Alert Evaluator.

    Args:
        event: Payload with "sensors" (list of {"sensor_id", "readings",
            "threshold"}), optional "dedup_state", "cooldown_seconds",
            "commit_on_emit" and "confirmed_alerts" (alerts persisted since
            the previous call under the deferred commit policy)
        context: Lambda context

    Returns:
        Emitted alerts, per-sensor stability, updated dedup_state and the
        identifiers of sensors that failed to evaluate
    """
    sensors = event.get("sensors", [])

    logger.info("Alert Evaluator Lambda invoked", extra={
        "sensor_count": len(sensors)
    })

    commit_on_emit = event.get("commit_on_emit", ALERT_COMMIT_ON_EMIT)
    if isinstance(commit_on_emit, str):
        commit_on_emit = commit_on_emit.lower() == "true"

    deduplicator = AlertDeduplicator.from_snapshot(
        event.get("dedup_state"),
        cooldown_seconds=int(event.get("cooldown_seconds", ALERT_COOLDOWN_SECONDS)),
        commit_on_emit=bool(commit_on_emit)
    )
    confirm_alerts(deduplicator, event.get("confirmed_alerts"))
    pipeline = AlertPipeline(deduplicator=deduplicator)

    alerts = []
    stability = {}

    def process_sensor(item: Dict[str, Any]) -> None:
        outcome = evaluate_sensor(pipeline, item)
        stability[outcome["sensor_id"]] = outcome["stable"]
        if outcome["alert"] is not None:
            alerts.append(outcome["alert"])

    # Process sensors with error isolation
    failures = process_batch_with_isolation(
        items=sensors,
        process_func=process_sensor,
        identifier_func=get_sensor_id,
        logger_instance=logger
    )

    logger.info("Alert Evaluator processing complete", extra={
        "total_sensors": len(sensors),
        "alerts_emitted": len(alerts),
        "failed_sensors": len(failures)
    })

    return {
        "alerts": alerts,
        "stability": stability,
        "clear_after_seconds": ALERT_CLEAR_HOLD_SECONDS,
        "dedup_state": deduplicator.snapshot(),
        "failures": failures
    }


def evaluate_sensor(pipeline: AlertPipeline, item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate one sensor entry of the batch.

    Args:
        pipeline: Pipeline shared by all sensors of the invocation
        item: Batch entry with "sensor_id", "readings" and "threshold"

    Returns:
        Dict with sensor_id, the emitted alert payload (or None) and stability
    """
    sensor_id = get_sensor_id(item)
    if not sensor_id:
        raise ValueError("Sensor entry is missing sensor_id")

    readings = parse_readings(item.get("readings"), sensor_id)
    threshold = normalize_threshold(item.get("threshold"), sensor_id)

    result = pipeline.evaluate(sensor_id, readings, threshold)

    alert = None
    if result.alert is not None:
        alert = result.alert.to_dict()
        alert["message"] = format_alert_message(result.alert)

    return {
        "sensor_id": sensor_id,
        "alert": alert,
        "stable": result.stable
    }


def confirm_alerts(deduplicator: AlertDeduplicator, confirmed: Optional[Iterable[Dict[str, Any]]]) -> int:
    """
    Record alerts the caller has persisted since the previous invocation.

    Under the deferred commit policy this is how emitted alerts enter the
    cooldown map. Malformed entries are dropped with a warning.

    Returns:
        Number of alerts recorded
    """
    recorded = 0

    for item in confirmed or []:
        try:
            deduplicator.confirm(AlertEvent.from_dict(item))
            recorded += 1
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            logger.warning("Dropping invalid confirmed alert", extra={
                "error": str(e),
                "error_type": type(e).__name__
            })

    return recorded
