"""
Boundary normalization for threshold and reading records.

Upstream records use several field casings: PascalCase from the threshold
store (SensorID, TemperatureMin, ...), camelCase from the dashboard
(sensorId, temperatureMin, ...) and snake_case. Records may also arrive in
DynamoDB attribute-value form. Everything past this module only sees the
typed models.
"""

import math
from typing import Dict, Any, Iterable, List, Optional
from aws_lambda_powertools import Logger
from .dynamodb_helpers import to_plain_item
from .models import SensorReading, Threshold, METRICS

logger = Logger(child=True)

THRESHOLD_FIELD_ALIASES = {
    "sensor_id": ("SensorID", "SensorId", "sensorId", "sensor_id"),
    "sensor_name": ("SensorName", "sensorName", "sensor_name"),
    "temperature_min": ("TemperatureMin", "temperatureMin", "temperature_min"),
    "temperature_max": ("TemperatureMax", "temperatureMax", "temperature_max"),
    "moisture_min": ("MoistureMin", "moistureMin", "moisture_min"),
    "moisture_max": ("MoistureMax", "moistureMax", "moisture_max"),
    "ph_min": ("PhMin", "PHMin", "phMin", "ph_min"),
    "ph_max": ("PhMax", "PHMax", "phMax", "ph_max"),
}

THRESHOLD_BOUND_FIELDS = tuple(f"{metric}_{side}" for metric in METRICS for side in ("min", "max"))

READING_FIELD_ALIASES = {
    "sensor_id": ("sensorId", "SensorID", "SensorId", "sensor_id"),
    "timestamp": ("timestamp", "ts", "Timestamp"),
    "temperature": ("temperature", "Temperature"),
    "moisture": ("moisture", "Moisture"),
    "ph": ("ph", "pH", "Ph", "PH"),
}


def _first_present(item: Dict[str, Any], aliases: Iterable[str]) -> Any:
    for alias in aliases:
        if item.get(alias) is not None:
            return item[alias]
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def validate_threshold(threshold: Threshold) -> List[str]:
    """
    Find metrics whose bounds are inverted.

    Args:
        threshold: Threshold to check

    Returns:
        Names of metrics where min >= max, empty when the bounds are consistent
    """
    inverted = []
    for metric in METRICS:
        bound_min, bound_max = threshold.bounds(metric)
        if bound_min is not None and bound_max is not None and bound_min >= bound_max:
            inverted.append(metric)
    return inverted


def normalize_threshold(raw: Optional[Dict[str, Any]], sensor_id: Optional[str] = None) -> Optional[Threshold]:
    """
    Normalize a raw threshold record into a Threshold.

    Args:
        raw: Threshold record in any supported casing, or DynamoDB form
        sensor_id: Sensor ID to use when the record does not carry one

    Returns:
        Threshold, or None when the record is empty or any bound is missing
        or non-numeric
    """
    if not raw:
        logger.info("No threshold configured", extra={"sensor_id": sensor_id})
        return None

    item = to_plain_item(raw)
    record_sensor_id = _first_present(item, THRESHOLD_FIELD_ALIASES["sensor_id"]) or sensor_id
    bounds = {
        field_name: _to_float(_first_present(item, THRESHOLD_FIELD_ALIASES[field_name]))
        for field_name in THRESHOLD_BOUND_FIELDS
    }
    missing_fields = [field_name for field_name, value in bounds.items() if value is None]

    if record_sensor_id is None or missing_fields:
        logger.warning(
            "Malformed threshold record",
            extra={"sensor_id": record_sensor_id, "missing_fields": missing_fields}
        )
        return None

    sensor_name = _first_present(item, THRESHOLD_FIELD_ALIASES["sensor_name"])
    threshold = Threshold(
        sensor_id=str(record_sensor_id),
        sensor_name=str(sensor_name) if sensor_name is not None else None,
        **bounds
    )

    inverted = validate_threshold(threshold)
    if inverted:
        logger.warning(
            "Threshold has inverted bounds",
            extra={"sensor_id": threshold.sensor_id, "metrics": inverted}
        )

    return threshold


def parse_reading(item: Optional[Dict[str, Any]], sensor_id: Optional[str] = None) -> Optional[SensorReading]:
    """
    Parse a raw reading record into a SensorReading.

    Metric values that are missing or non-numeric become None.

    Args:
        item: Reading record in any supported casing, or DynamoDB form
        sensor_id: Sensor ID to use when the record does not carry one

    Returns:
        SensorReading, or None when the sensor ID or timestamp is missing
    """
    if not item:
        return None

    plain = to_plain_item(item)
    record_sensor_id = _first_present(plain, READING_FIELD_ALIASES["sensor_id"]) or sensor_id
    timestamp = _to_float(_first_present(plain, READING_FIELD_ALIASES["timestamp"]))

    if record_sensor_id is None or timestamp is None or math.isinf(timestamp):
        logger.warning(
            "Skipping reading without sensor id or timestamp",
            extra={"sensor_id": record_sensor_id, "fields": sorted(plain.keys())}
        )
        return None

    return SensorReading(
        sensor_id=str(record_sensor_id),
        timestamp=int(timestamp),
        temperature=_to_float(_first_present(plain, READING_FIELD_ALIASES["temperature"])),
        moisture=_to_float(_first_present(plain, READING_FIELD_ALIASES["moisture"])),
        ph=_to_float(_first_present(plain, READING_FIELD_ALIASES["ph"]))
    )


def parse_readings(items: Optional[Iterable[Dict[str, Any]]], sensor_id: Optional[str] = None) -> List[SensorReading]:
    """
    Parse raw reading records into an ordered, deduplicated batch.

    Unparseable items are dropped. When several items share a timestamp the
    last one wins.

    Returns:
        Readings ascending by timestamp
    """
    by_timestamp: Dict[int, SensorReading] = {}

    for item in items or []:
        reading = parse_reading(item, sensor_id)
        if reading is not None:
            by_timestamp[reading.timestamp] = reading

    return [by_timestamp[timestamp] for timestamp in sorted(by_timestamp)]
