"""
Unit tests for Alert Evaluator Lambda handler.
"""

import os
from unittest.mock import patch

import pytest

# Set environment variable to disable tracing for tests
os.environ["POWERTOOLS_TRACE_DISABLED"] = "true"

from functions.alert_evaluator import lambda_handler, evaluate_sensor, get_sensor_id, confirm_alerts
from shared.alert_detection import AlertDeduplicator
from shared.pipeline import AlertPipeline


def breach_readings(start=1000, temperature=38.0):
    return [
        {"sensorId": "Sensor-001", "timestamp": start + i * 10, "temperature": temperature, "moisture": 75, "ph": 6.0}
        for i in range(3)
    ]


class TestAlertEvaluatorHandler:
    """Tests for Alert Evaluator Lambda handler."""

    def test_empty_batch(self, lambda_context):
        """Test handler with no sensors."""
        result = lambda_handler({"sensors": []}, lambda_context)

        assert result["alerts"] == []
        assert result["stability"] == {}
        assert result["dedup_state"] == {}
        assert result["failures"] == []
        assert result["clear_after_seconds"] == 10

    def test_emits_alert_with_message(self, lambda_context, raw_threshold_record):
        """Test a sustained breach is returned with its display message."""
        event = {
            "sensors": [
                {"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record}
            ]
        }

        result = lambda_handler(event, lambda_context)

        assert len(result["alerts"]) == 1
        alert = result["alerts"][0]
        assert alert["sensorId"] == "Sensor-001"
        assert alert["alertType"] == "High Temperature"
        assert alert["timestamp"] == 1020
        assert alert["temperature"] == 38.0
        assert alert["message"].startswith("High Temperature detected at ")
        assert result["stability"] == {"Sensor-001": False}
        assert result["dedup_state"] == {"Sensor-001#High Temperature": 1020}

    def test_dedup_state_round_trip(self, lambda_context, raw_threshold_record):
        """Test returned dedup state suppresses the next invocation."""
        sensors = [{"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record}]

        first = lambda_handler({"sensors": sensors}, lambda_context)
        second = lambda_handler({"sensors": sensors, "dedup_state": first["dedup_state"]}, lambda_context)

        assert len(first["alerts"]) == 1
        assert second["alerts"] == []
        assert second["dedup_state"] == first["dedup_state"]

    def test_cooldown_from_payload(self, lambda_context, raw_threshold_record):
        """Test the payload cooldown overrides the default."""
        event = {
            "sensors": [{"sensor_id": "Sensor-001", "readings": breach_readings(start=1100), "threshold": raw_threshold_record}],
            "dedup_state": {"Sensor-001#High Temperature": 1000},
            "cooldown_seconds": 60,
        }

        result = lambda_handler(event, lambda_context)

        assert len(result["alerts"]) == 1

    def test_deferred_commit_leaves_state_untouched(self, lambda_context, raw_threshold_record):
        """Test commit_on_emit false emits without recording state."""
        event = {
            "sensors": [{"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record}],
            "commit_on_emit": False,
        }

        result = lambda_handler(event, lambda_context)

        assert len(result["alerts"]) == 1
        assert result["dedup_state"] == {}

    def test_string_commit_flag(self, lambda_context, raw_threshold_record):
        """Test a "false" string commit flag is honoured."""
        event = {
            "sensors": [{"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record}],
            "commit_on_emit": "false",
        }

        result = lambda_handler(event, lambda_context)

        assert len(result["alerts"]) == 1
        assert result["dedup_state"] == {}

    def test_confirmed_alert_suppresses_next_call(self, lambda_context, raw_threshold_record):
        """Test a persisted alert passed back as confirmed starts the cooldown."""
        first = lambda_handler({
            "sensors": [{"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record}],
            "commit_on_emit": False,
        }, lambda_context)

        second = lambda_handler({
            "sensors": [{"sensor_id": "Sensor-001", "readings": breach_readings(start=1030), "threshold": raw_threshold_record}],
            "commit_on_emit": False,
            "dedup_state": first["dedup_state"],
            "confirmed_alerts": first["alerts"],
        }, lambda_context)

        assert len(first["alerts"]) == 1
        assert second["alerts"] == []
        assert second["dedup_state"] == {"Sensor-001#High Temperature": 1020}

    def test_unconfirmed_deferred_alert_repeats(self, lambda_context, raw_threshold_record):
        """Test a deferred alert that was never confirmed is emitted again."""
        sensors = [{"sensor_id": "Sensor-001", "readings": breach_readings(start=1030), "threshold": raw_threshold_record}]

        result = lambda_handler({"sensors": sensors, "commit_on_emit": False, "dedup_state": {}}, lambda_context)

        assert len(result["alerts"]) == 1

    def test_sensor_without_threshold_is_stable(self, lambda_context):
        """Test a sensor without thresholds is evaluated as a no-op."""
        event = {"sensors": [{"sensor_id": "Sensor-002", "readings": breach_readings(temperature=90.0)}]}

        result = lambda_handler(event, lambda_context)

        assert result["alerts"] == []
        assert result["stability"] == {"Sensor-002": True}
        assert result["failures"] == []

    def test_bad_entry_is_isolated(self, lambda_context, raw_threshold_record):
        """Test a malformed sensor entry does not fail the batch."""
        event = {
            "sensors": [
                {"readings": breach_readings()},
                {"sensor_id": "Sensor-001", "readings": breach_readings(), "threshold": raw_threshold_record},
            ]
        }

        result = lambda_handler(event, lambda_context)

        assert result["failures"] == [{"itemIdentifier": "0"}]
        assert len(result["alerts"]) == 1

    @patch("functions.alert_evaluator.evaluate_sensor")
    def test_failure_reports_sensor_id(self, mock_evaluate, lambda_context):
        """Test failures are identified by sensor ID."""
        mock_evaluate.side_effect = RuntimeError("boom")

        result = lambda_handler({"sensors": [{"sensor_id": "Sensor-007"}]}, lambda_context)

        assert result["failures"] == [{"itemIdentifier": "Sensor-007"}]


class TestEvaluateSensor:
    """Tests for single sensor evaluation."""

    def test_missing_sensor_id_raises(self):
        """Test entries without a sensor ID are rejected."""
        with pytest.raises(ValueError):
            evaluate_sensor(AlertPipeline(), {"readings": []})

    def test_unsorted_readings_are_ordered(self, raw_threshold_record):
        """Test readings are sorted before detection."""
        readings = list(reversed(breach_readings()))
        pipeline = AlertPipeline(deduplicator=AlertDeduplicator(cooldown_seconds=300))

        outcome = evaluate_sensor(pipeline, {"sensor_id": "Sensor-001", "readings": readings, "threshold": raw_threshold_record})

        assert outcome["alert"]["timestamp"] == 1020

    def test_get_sensor_id_aliases(self):
        """Test both sensor ID spellings are recognised."""
        assert get_sensor_id({"sensor_id": "a"}) == "a"
        assert get_sensor_id({"sensorId": "b"}) == "b"
        assert get_sensor_id({}) is None


class TestConfirmAlerts:
    """Tests for recording persisted alerts."""

    def test_records_valid_alerts(self):
        """Test confirmed alerts enter the cooldown map."""
        deduplicator = AlertDeduplicator(cooldown_seconds=300, commit_on_emit=False)

        recorded = confirm_alerts(deduplicator, [
            {"sensorId": "Sensor-001", "alertType": "Low pH", "timestamp": 1000, "message": "Low pH detected at 00:16:40"},
        ])

        assert recorded == 1
        assert deduplicator.snapshot() == {"Sensor-001#Low pH": 1000}

    def test_malformed_entries_are_dropped(self):
        """Test malformed confirmed alerts are skipped without failing."""
        deduplicator = AlertDeduplicator(cooldown_seconds=300, commit_on_emit=False)

        recorded = confirm_alerts(deduplicator, [
            {"alertType": "Low pH", "timestamp": 1000},
            {"sensorId": "Sensor-001", "alertType": "Frost", "timestamp": 1000},
            {"sensorId": "Sensor-001", "alertType": "Low pH", "timestamp": float("inf")},
            "not-an-alert",
            {"sensorId": "Sensor-002", "alertType": "High pH", "timestamp": 1200},
        ])

        assert recorded == 1
        assert deduplicator.snapshot() == {"Sensor-002#High pH": 1200}

    def test_none_is_a_no_op(self):
        """Test a missing confirmed list records nothing."""
        assert confirm_alerts(AlertDeduplicator(), None) == 0
