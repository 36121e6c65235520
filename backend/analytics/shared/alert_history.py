"""Alert history helpers: display messages, search and per-type counts."""
from datetime import tzinfo
from typing import Dict, Any, List, Optional, Sequence, Union
from .models import AlertEvent
from .time_utils import format_local_time

AlertRecord = Union[AlertEvent, Dict[str, Any]]


def _alert_type_of(alert: AlertRecord) -> str:
    if isinstance(alert, AlertEvent):
        return alert.alert_type.value
    return str(alert.get("alertType") or alert.get("alert_type") or "")


def format_alert_message(event: AlertEvent, tz: Optional[tzinfo] = None) -> str:
    """Render the banner text shown for an emitted alert."""
    return f"{event.alert_type.value} detected at {format_local_time(event.timestamp, tz)}"


def filter_alerts(alerts: Sequence[AlertRecord], search_term: str = "") -> List[AlertRecord]:
    """Keep alerts whose type contains search_term, case-insensitively."""
    needle = (search_term or "").lower()
    return [alert for alert in alerts if needle in _alert_type_of(alert).lower()]


def count_alerts_by_type(alerts: Sequence[AlertRecord]) -> Dict[str, int]:
    """
    Count alerts per alert type.

    Accepts AlertEvent objects or stored alert dicts (alertType or alert_type
    key). Keys keep first-seen order.
    """
    counts: Dict[str, int] = {}
    for alert in alerts:
        alert_type = _alert_type_of(alert)
        counts[alert_type] = counts.get(alert_type, 0) + 1
    return counts
