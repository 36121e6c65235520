"""
Time utilities for Sensor Alert Analytics.

Provides functions for:
- Rolling window boundaries relative to a caller-supplied "now"
- Window membership checks
- Forecast timestamp cadence
- Localized display time for alert messages

All timestamps are integer epoch seconds.
"""

from datetime import datetime, tzinfo
from typing import List, Optional, Tuple


def get_trailing_window(now: int, window_minutes: int) -> Tuple[int, int]:
    """
    Get the boundaries of a rolling window ending at now.

    Args:
        now: Reference timestamp in epoch seconds
        window_minutes: Window length in minutes

    Returns:
        Tuple of (window_start, window_end), both inclusive
    """
    if window_minutes < 0:
        raise ValueError(f"Window must not be negative, got {window_minutes}")
    return now - window_minutes * 60, now


def is_within_window(timestamp: int, window_start: int, window_end: int) -> bool:
    """Check if a timestamp falls inside an inclusive window."""
    return window_start <= timestamp <= window_end


def get_forecast_timestamps(last_timestamp: int, count: int, interval_seconds: int) -> List[int]:
    """
    Timestamps of future points at a fixed cadence after last_timestamp.

    Args:
        last_timestamp: Timestamp of the last observation
        count: Number of future points
        interval_seconds: Spacing between points

    Returns:
        List of count timestamps, the first one interval_seconds after last_timestamp
    """
    return [last_timestamp + (step + 1) * interval_seconds for step in range(count)]


def format_local_time(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    """
    Format a timestamp as a wall-clock time for display.

    Args:
        timestamp: Timestamp in epoch seconds
        tz: Time zone to render in, local time zone when None

    Returns:
        Time formatted as HH:MM:SS
    """
    return datetime.fromtimestamp(timestamp, tz=tz).strftime("%H:%M:%S")
