"""
Pytest configuration and shared fixtures for Sensor Alert Analytics tests.
"""

import os

import pytest

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "sensor-alert-analytics")

from shared.models import SensorReading, Threshold


@pytest.fixture
def rice_threshold():
    """Fixture providing the default rice crop thresholds."""
    return Threshold(
        sensor_id="Sensor-001",
        sensor_name="Rice Paddy",
        temperature_min=25.0,
        temperature_max=35.0,
        moisture_min=60.0,
        moisture_max=100.0,
        ph_min=5.5,
        ph_max=6.5,
    )


@pytest.fixture
def make_reading():
    """Fixture providing a factory for in-range readings with overrides."""
    def _make(timestamp, sensor_id="Sensor-001", **overrides):
        values = {"temperature": 30.0, "moisture": 75.0, "ph": 6.0}
        values.update(overrides)
        return SensorReading(sensor_id=sensor_id, timestamp=timestamp, **values)
    return _make


@pytest.fixture
def raw_threshold_record():
    """Fixture providing a threshold record as stored upstream (PascalCase)."""
    return {
        "SensorID": "Sensor-001",
        "SensorName": "Rice Paddy",
        "TemperatureMin": 25,
        "TemperatureMax": 35,
        "MoistureMin": 60,
        "MoistureMax": 100,
        "PhMin": 5.5,
        "PhMax": 6.5,
    }


@pytest.fixture
def lambda_context():
    """Fixture providing a minimal Lambda context."""
    class LambdaContext:
        function_name = "sensor-alert-analytics-test"
        memory_limit_in_mb = 128
        invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:sensor-alert-analytics-test"
        aws_request_id = "52fdfc07-2182-154f-163f-5f0f9a621d72"

    return LambdaContext()
