"""
utils/time_utils.py

Purpose: Time and due-date helpers

- Day-granularity comparisons for fee cycles
- Monotonic log timestamps
- Display formatting
"""

from datetime import datetime, timedelta
from typing import Optional


def utcnow() -> datetime:
    return datetime.utcnow()


def start_of_day(dt: datetime) -> datetime:
    """
    Truncates a datetime to midnight (same day).
    """
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def days_between(earlier: datetime, later: datetime) -> int:
    """
    Whole calendar days from `earlier` to `later` (negative if later < earlier).
    """
    return (start_of_day(later) - start_of_day(earlier)).days


def add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)


def next_log_timestamp(previous: Optional[datetime], now: Optional[datetime] = None) -> datetime:
    """
    Returns a timestamp that is never earlier than `previous`.

    Wall clocks can step backwards; log entries on a user must stay ordered.
    """
    now = now or utcnow()
    if previous and now < previous:
        return previous
    return now


def format_date(dt: Optional[datetime], format_str: str = "%d/%m/%Y") -> str:
    """
    Formats a datetime for messages (day/month/year).
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)


def format_timestamp(dt: Optional[datetime], format_str: str = "%d/%m/%Y %H:%M") -> str:
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
