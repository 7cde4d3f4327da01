"""Utility helper functions."""

import uuid
from datetime import UTC, datetime, timedelta


def generate_uuid() -> str:
    """Generate a unique identifier (uuid4 hex)."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def format_duration(delta: timedelta) -> str:
    """Format a duration as whole hours and remaining minutes, e.g. ``2h 15m``.

    Both parts are floored; negative durations are reported as ``0h 0m``.
    """
    total_minutes = max(int(delta.total_seconds() // 60), 0)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"
