"""
UTC DateTime Utilities for LexFlow.

Provides consistent UTC datetime handling across the workflow engine.
Task timestamps, case-history entries and deadline arithmetic are all
handled in UTC with timezone awareness.
"""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    This is the standard function for all timestamps in LexFlow.
    Always returns a datetime with tzinfo=timezone.utc.

    Example:
        from lexflow.core.utc import utc_now

        created_at = utc_now()  # 2025-12-08 03:00:00+00:00
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Current calendar date in UTC (used for deadline arithmetic)."""
    return utc_now().date()


def to_iso(dt: datetime) -> str:
    """Serialize a datetime as ISO 8601 UTC with Z suffix."""
    return to_utc(dt).isoformat().replace("+00:00", "Z")


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch, for human-readable identifiers."""
    return int((dt or utc_now()).timestamp() * 1000)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC timezone-aware datetime.

    - If naive: assumes UTC and adds timezone
    - If aware: converts to UTC
    """
    if dt.tzinfo is None:
        # Naive datetime - assume it's UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to timezone-aware UTC datetime.

    Handles:
    - "2025-12-08T03:00:00Z"
    - "2025-12-08T03:00:00+00:00"
    - "2025-12-08T03:00:00" (assumes UTC)
    - "2025-12-08" (midnight UTC)

    Raises:
        ValueError: if the string is not ISO 8601
    """
    cleaned = iso_string.strip().replace("Z", "+00:00")
    return to_utc(datetime.fromisoformat(cleaned))
