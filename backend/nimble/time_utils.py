# backend/nimble/time_utils.py
"""
Timestamps are stored UTC-naive and rendered with a trailing "Z".

Order dates come from date pickers ("2024-03-15") as often as from full
ISO-8601 timestamps; both land on the same UTC-naive datetime.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string to a UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight UTC that day
    - naive "YYYY-MM-DDTHH:MM[:SS]" is taken as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC

    Raises ValueError on anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if len(s) == 10:
        return datetime.combine(date.fromisoformat(s), time.min)

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return _to_utc_naive(datetime.fromisoformat(s))


def coerce_datetime(value) -> Optional[datetime]:
    """Accept a datetime, a date or an ISO-8601 string (see parse_iso_datetime)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        return parse_iso_datetime(value)
    raise ValueError(f"Not a datetime: {value!r}")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Naive values are UTC; output drops microseconds: 2024-03-15T10:30:00Z."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
