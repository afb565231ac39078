# Overview: UTC clock and business-date helpers for sold dates, stock-in dates and archive stamps.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a client-sent ISO-8601 datetime (e.g. a transaction's sold_date)
    into a UTC-naive datetime.

    - None / "" -> None
    - naive input is taken as UTC
    - "...Z" or "...+/-HH:MM" is shifted to UTC, then tzinfo is dropped

    Raises ValueError on malformed input; callers turn that into a
    ValidationError.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def date_string(value: Optional[datetime | date] = None) -> str:
    """Calendar day as 'YYYY-MM-DD' (today in UTC when omitted)."""
    if value is None:
        value = utcnow()
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()
