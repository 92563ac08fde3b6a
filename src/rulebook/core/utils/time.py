"""UTC time helpers for changelog dates and sync timestamps."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 timestamp with a ``Z`` suffix and second precision."""
    value = (moment or utc_now()).astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def utc_date(moment: Optional[datetime] = None) -> str:
    """Calendar date (``YYYY-MM-DD``) in UTC."""
    return (moment or utc_now()).astimezone(timezone.utc).date().isoformat()


def parse_date(value: str) -> Optional[date]:
    """Parse a date or timestamp string, returning None when malformed."""
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


__all__ = ["utc_now", "utc_timestamp", "utc_date", "parse_date"]
