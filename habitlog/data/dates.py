"""Calendar-day helpers. Dates travel as local YYYY-MM-DD strings."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from habitlog.core.config import Settings, settings

DATE_FORMAT = "%Y-%m-%d"


def format_date(d: date) -> str:
    """Truncate a date or datetime to its local calendar day."""
    return d.strftime(DATE_FORMAT)


def parse_date(date_string: str) -> datetime:
    """Parse YYYY-MM-DD into a naive datetime at local midnight."""
    return datetime.strptime(date_string, DATE_FORMAT)


def add_days(d: datetime, days: int) -> datetime:
    """Calendar addition; negative days subtract."""
    return d + timedelta(days=days)


def subtract_days(d: datetime, days: int) -> datetime:
    return add_days(d, -days)


def is_same_day(d1: date, d2: date) -> bool:
    return format_date(d1) == format_date(d2)


def local_now(config: Settings | None = None) -> datetime:
    """Naive wall-clock time in the configured timezone."""
    cfg = config or settings
    return datetime.now(ZoneInfo(cfg.timezone)).replace(tzinfo=None)


def local_today(config: Settings | None = None) -> date:
    return local_now(config).date()


def today_string(config: Settings | None = None) -> str:
    return format_date(local_today(config))


def is_today(date_string: str, config: Settings | None = None) -> bool:
    return date_string == today_string(config)


def days_in_range(start: str, end: str) -> list[str]:
    """Return every day from start to end inclusive; empty if start > end."""
    cursor = parse_date(start)
    last = parse_date(end)
    days: list[str] = []
    while cursor <= last:
        days.append(format_date(cursor))
        cursor = add_days(cursor, 1)
    return days


def format_display_date(d: date) -> str:
    """Long form, e.g. 'Monday, January 15, 2024'."""
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"
