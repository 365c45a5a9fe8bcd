from __future__ import annotations
from datetime import datetime, timezone, date
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values (SQLite hands timestamps back without tzinfo)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return as_utc(dt).isoformat().replace('+00:00', 'Z')
    if isinstance(dt, date):
        return dt.isoformat()
    return str(dt)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse ISO 8601 (``Z`` suffix allowed) or ``YYYY-MM-DD``; returns UTC-aware or None."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))
    except ValueError:
        return None
