"""
Data models for Sensor Alert Analytics.

Contains the domain models shared by the analytics engine and handlers:
- SensorReading / SmoothedReading
- Threshold
- AlertType / AlertEvent
- TrendDirection / MetricStats / TrendSummary
- ForecastPoint / ForecastResult
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum


METRICS = ("temperature", "moisture", "ph")


@dataclass(frozen=True)
class SensorReading:
    """Single periodic reading reported by a sensor."""
    sensor_id: str
    timestamp: int  # epoch seconds
    temperature: Optional[float] = None
    moisture: Optional[float] = None
    ph: Optional[float] = None

    def value_of(self, metric: str) -> Optional[float]:
        """Return the value of a metric by name."""
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric}")
        return getattr(self, metric)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase shape used on the wire."""
        return {
            "sensorId": self.sensor_id,
            "timestamp": self.timestamp,
            "temperature": self.temperature,
            "moisture": self.moisture,
            "ph": self.ph
        }


@dataclass(frozen=True)
class SmoothedReading(SensorReading):
    """Sensor reading with its trailing moisture moving average."""
    moisture_smooth: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        item = super().to_dict()
        item["moisture_smooth"] = self.moisture_smooth
        return item


@dataclass(frozen=True)
class Threshold:
    """
    Per-sensor alerting bounds.

    min < max is expected for every metric but is only checked by
    normalization.validate_threshold, never enforced here.
    """
    sensor_id: str
    sensor_name: Optional[str] = None
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    moisture_min: Optional[float] = None
    moisture_max: Optional[float] = None
    ph_min: Optional[float] = None
    ph_max: Optional[float] = None

    def bounds(self, metric: str) -> Tuple[Optional[float], Optional[float]]:
        """Return (min, max) for a metric."""
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric}")
        return getattr(self, f"{metric}_min"), getattr(self, f"{metric}_max")

    def is_complete(self) -> bool:
        """True when every bound is a number."""
        for metric in METRICS:
            for bound in self.bounds(metric):
                if not isinstance(bound, (int, float)) or isinstance(bound, bool):
                    return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the normalized camelCase shape."""
        return {
            "sensorId": self.sensor_id,
            "sensorName": self.sensor_name,
            "temperatureMin": self.temperature_min,
            "temperatureMax": self.temperature_max,
            "moistureMin": self.moisture_min,
            "moistureMax": self.moisture_max,
            "phMin": self.ph_min,
            "phMax": self.ph_max
        }


class AlertType(str, Enum):
    """Threshold breach alert types."""
    HIGH_TEMPERATURE = "High Temperature"
    LOW_TEMPERATURE = "Low Temperature"
    HIGH_PH = "High pH"
    LOW_PH = "Low pH"
    HIGH_MOISTURE = "High Moisture"
    LOW_MOISTURE = "Low Moisture"


@dataclass(frozen=True)
class AlertEvent:
    """Alert raised for a sustained threshold breach."""
    sensor_id: str
    alert_type: AlertType
    timestamp: int
    temperature: Optional[float] = None
    ph: Optional[float] = None
    moisture: Optional[float] = None

    def dedup_key(self) -> Tuple[str, AlertType]:
        """Key used for cooldown bookkeeping."""
        return self.sensor_id, self.alert_type

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the payload persisted by the alert store."""
        return {
            "sensorId": self.sensor_id,
            "alertType": self.alert_type.value,
            "timestamp": self.timestamp,
            "temperature": self.temperature,
            "ph": self.ph,
            "moisture": self.moisture
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertEvent":
        """
        Rebuild an alert from its to_dict() payload.

        Raises:
            KeyError: If sensorId, alertType or timestamp is missing
            ValueError: If the alert type is unknown or the sensor ID is empty
        """
        sensor_id = data["sensorId"]
        if not sensor_id:
            raise ValueError("Alert is missing sensorId")

        return cls(
            sensor_id=sensor_id,
            alert_type=AlertType(data["alertType"]),
            timestamp=int(data["timestamp"]),
            temperature=data.get("temperature"),
            ph=data.get("ph"),
            moisture=data.get("moisture")
        )


class TrendDirection(str, Enum):
    """Qualitative trend over a rolling window."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass
class MetricStats:
    """Average, minimum and maximum of a metric over a window."""
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"avg": self.avg, "min": self.min, "max": self.max}


@dataclass
class TrendSummary:
    """Trend classification and statistics for one metric."""
    metric: str
    direction: TrendDirection = TrendDirection.STABLE
    stats: MetricStats = field(default_factory=MetricStats)
    point_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "metric": self.metric,
            "direction": self.direction.value,
            "point_count": self.point_count
        }
        result.update(self.stats.to_dict())
        return result


@dataclass(frozen=True)
class ForecastPoint:
    """A timestamped value, observed or extrapolated."""
    timestamp: int
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass
class ForecastResult:
    """Observed points and the linear forecast that continues them."""
    actual: List[ForecastPoint] = field(default_factory=list)
    forecast: List[ForecastPoint] = field(default_factory=list)
    slope: Optional[float] = None
    intercept: Optional[float] = None

    def is_empty(self) -> bool:
        return not self.actual and not self.forecast

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for output; fit coefficients are rounded to 2 decimals."""
        return {
            "actual": [point.to_dict() for point in self.actual],
            "forecast": [point.to_dict() for point in self.forecast],
            "slope": round(self.slope, 2) if self.slope is not None else None,
            "intercept": round(self.intercept, 2) if self.intercept is not None else None
        }
