"""
Time helpers.

Timestamps are stored as naive UTC; calendar logic (quest days/weeks, the
monthly expenditure rollover) runs in the configured TIMEZONE.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from hearth.config import get_settings


def utcnow() -> datetime:
    """Current time as naive UTC (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_tz(tz_name: str | None = None) -> ZoneInfo:
    return ZoneInfo(tz_name or get_settings().TIMEZONE)


def local_date(dt: datetime, tz: ZoneInfo | None = None) -> date:
    """Calendar date of a stored (naive UTC) timestamp in the app timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz or local_tz()).date()


def week_start(day: date, start_weekday: int = 1) -> date:
    """
    First day of the week containing `day`.

    Args:
        day: any calendar date
        start_weekday: ISO weekday the week begins on (1 = Monday ... 7 = Sunday)
    """
    offset = (day.isoweekday() - start_weekday) % 7
    return day - timedelta(days=offset)


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)
