"""
Datetime utility functions.
Month arithmetic and timezone helpers shared by billing and payment code.
"""

import calendar
import os
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

import pytz
from dotenv import load_dotenv

load_dotenv()

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def get_app_timezone():
    """Timezone used for "local" month boundaries (APP_TIMEZONE, default UTC)."""
    return pytz.timezone(APP_TIMEZONE)


def now_local() -> datetime:
    """Current time in the application timezone."""
    return utcnow().astimezone(get_app_timezone())


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite hands timestamps back without tzinfo; everything stored is UTC,
    so a naive value is interpreted as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value


def add_months(value: Union[date, datetime], months: int) -> Union[date, datetime]:
    """
    Shift a date/datetime by whole calendar months.

    The day is clamped to the length of the target month, so Jan 31 + 1 month
    is Feb 28 (or 29).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_month(value: datetime) -> datetime:
    """
    First instant of the month containing value, in value's timezone.

    The offset is resolved for the first of the month itself, so a DST switch
    between then and value does not move the boundary.
    """
    first = datetime(value.year, value.month, 1)
    tz = value.tzinfo
    if tz is None:
        return first
    if hasattr(tz, "localize"):
        return tz.localize(first)
    return first.replace(tzinfo=tz)


def end_of_month(year: int, month: int, tz=None) -> datetime:
    """
    Last instant of a month (23:59:59.999) in the given timezone.

    Args:
        year: Calendar year
        month: 1-12
        tz: pytz timezone; defaults to the application timezone
    """
    tz = tz or get_app_timezone()
    last_day = calendar.monthrange(year, month)[1]
    naive = datetime(year, month, last_day, 23, 59, 59, 999000)
    return tz.localize(naive)


def format_month(year: int, month: int) -> str:
    """Format as YYYY-MM."""
    return f"{year:04d}-{month:02d}"


def current_year_month(now: Optional[datetime] = None) -> Tuple[int, int]:
    now = now or now_local()
    return now.year, now.month


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end (floor)."""
    return (end - start) // timedelta(days=1)


def isoformat_or_none(value: Optional[Union[date, datetime]]) -> Optional[str]:
    """ISO string for dates/datetimes (naive datetimes treated as UTC), None passthrough."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).isoformat()
    return value.isoformat()


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to an aware UTC datetime (naive input is taken as UTC)."""
    if value is None:
        return None
    return ensure_aware(value).astimezone(pytz.UTC)
