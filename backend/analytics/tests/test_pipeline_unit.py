"""
Unit tests for the single-sensor alert pipeline.
"""

from unittest.mock import patch

from shared.alert_detection import AlertDeduplicator
from shared.models import AlertType
from shared.pipeline import AlertPipeline


class TestAlertPipeline:
    """Tests for one pipeline tick."""

    def test_emits_alert_and_smooths(self, make_reading, rice_threshold):
        """Test a sustained breach is emitted and smoothing is returned."""
        readings = [make_reading(1000 + i * 10, temperature=38.0, moisture=70.0 + i) for i in range(3)]
        pipeline = AlertPipeline(deduplicator=AlertDeduplicator(cooldown_seconds=300))

        result = pipeline.evaluate("Sensor-001", readings, rice_threshold)

        assert result.alert is not None
        assert result.alert.alert_type == AlertType.HIGH_TEMPERATURE
        assert result.candidate == result.alert
        assert result.stable is False
        assert [r.moisture_smooth for r in result.smoothed] == [70.0, 70.5, 71.0]

    def test_rerun_same_batch_does_not_double_emit(self, make_reading, rice_threshold):
        """Test re-running the same batch against the same state emits once."""
        readings = [make_reading(1000 + i * 10, temperature=38.0) for i in range(3)]
        pipeline = AlertPipeline(deduplicator=AlertDeduplicator(cooldown_seconds=300))

        first = pipeline.evaluate("Sensor-001", readings, rice_threshold)
        second = pipeline.evaluate("Sensor-001", readings, rice_threshold)

        assert first.alert is not None
        assert second.candidate is not None
        assert second.alert is None

    def test_same_input_and_state_gives_same_decision(self, make_reading, rice_threshold):
        """Test two pipelines restored from the same state agree."""
        readings = [make_reading(1000 + i * 10, temperature=38.0) for i in range(3)]
        state = {"Sensor-001#High Temperature": 900}

        decisions = [
            AlertPipeline(deduplicator=AlertDeduplicator.from_snapshot(state, cooldown_seconds=300))
            .evaluate("Sensor-001", readings, rice_threshold).alert
            for _ in range(2)
        ]

        assert decisions[0] is None
        assert decisions[1] is None

    def test_sensors_do_not_share_cooldown(self, make_reading, rice_threshold):
        """Test one pipeline evaluates several sensors independently."""
        pipeline = AlertPipeline(deduplicator=AlertDeduplicator(cooldown_seconds=300))
        first = [make_reading(1000 + i * 10, sensor_id="Sensor-001", temperature=38.0) for i in range(3)]
        second = [make_reading(1000 + i * 10, sensor_id="Sensor-002", temperature=38.0) for i in range(3)]

        assert pipeline.evaluate("Sensor-001", first, rice_threshold).alert is not None
        assert pipeline.evaluate("Sensor-002", second, rice_threshold).alert is not None

    def test_no_threshold(self, make_reading):
        """Test missing thresholds give no alert and vacuous stability."""
        readings = [make_reading(1000 + i * 10, temperature=80.0) for i in range(3)]

        result = AlertPipeline().evaluate("Sensor-001", readings, None)

        assert result.candidate is None
        assert result.alert is None
        assert result.stable is True
        assert len(result.smoothed) == 3

    def test_deduplicator_not_called_without_candidate(self, make_reading, rice_threshold):
        """Test in-range readings never reach the deduplicator."""
        deduplicator = AlertDeduplicator()
        readings = [make_reading(1000 + i * 10) for i in range(3)]

        with patch.object(deduplicator, "filter") as mock_filter:
            result = AlertPipeline(deduplicator=deduplicator).evaluate("Sensor-001", readings, rice_threshold)

        mock_filter.assert_not_called()
        assert result.stable is True

    def test_custom_detection_window(self, make_reading, rice_threshold):
        """Test the pipeline passes its detection window through."""
        readings = [make_reading(1000 + i * 100, temperature=38.0) for i in range(3)]

        assert AlertPipeline().evaluate("Sensor-001", readings, rice_threshold).candidate is None
        assert AlertPipeline(detection_window_seconds=300).evaluate(
            "Sensor-001", readings, rice_threshold
        ).candidate is not None
