"""
Calendar helpers for date-keyed usage data.

All dates are plain `YYYY-MM-DD` strings; they compare lexicographically
in calendar order.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidDateRangeError(ValueError):
    """Raised when a date range ends before it starts."""


def is_valid_date(value: str) -> bool:
    """Check that a string is a real calendar date in `YYYY-MM-DD` form."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def get_date_range(start: str, end: str) -> List[str]:
    """List every date from start to end inclusive.

    Raises:
        InvalidDateRangeError: If start is after end
    """
    if start > end:
        raise InvalidDateRangeError(f"Invalid date range: {start} is after {end}")

    current = date.fromisoformat(start)
    last = date.fromisoformat(end)
    dates = []
    while current <= last:
        dates.append(current.isoformat())
        current += timedelta(days=1)
    return dates


def get_iso_week_string(value: str) -> str:
    """ISO-8601 week label (`YYYY-Www`) for a date.

    Weeks start on Monday and belong to the year holding their Thursday,
    so 2025-12-29 is in 2026-W01.
    """
    iso_year, iso_week, _ = date.fromisoformat(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def get_month_string(value: str) -> str:
    return value[:7]


def subtract_days(value: str, days: int) -> str:
    return (date.fromisoformat(value) - timedelta(days=days)).isoformat()


def to_local_date(iso_timestamp: str, tz_name: str = "UTC") -> str:
    """Calendar date of an ISO-8601 timestamp in the given IANA timezone."""
    moment = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).date().isoformat()


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision (`...Z`)."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
