"""
타임존 유틸리티

All persisted times are UTC. SQLite hands timestamps back without tzinfo, so
naive values are treated as UTC before they are compared or serialized.
"""

from datetime import datetime, timezone
from typing import Optional


def get_utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """naive datetime은 UTC로 가정"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_millis(dt: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix, e.g. 2025-01-15T09:30:00.123Z"""
    dt = to_utc(dt or get_utc_now())
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return to_utc(dt).isoformat()
