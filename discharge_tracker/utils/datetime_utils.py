"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All dates are stored in UTC in the database
Display: Step and notification timestamps are rendered in the configured
display time zone (DISPLAY_TIMEZONE, Asia/Kolkata by default)

SLA arithmetic always runs on UTC values so that naive values coming back
from drivers without timezone support (SQLite) compare correctly.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from discharge_tracker.core.config import get_settings

DISPLAY_FORMAT = "%d-%m-%Y %H:%M:%S"


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (consistent with existing behavior).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def add_minutes(dt: datetime, minutes: int | None) -> datetime:
    """Return dt (as UTC) shifted by a whole number of minutes. None counts as 0."""
    return as_utc(dt) + timedelta(minutes=minutes or 0)


def minutes_between(start: datetime, end: datetime) -> int:
    """
    Whole minutes elapsed from start to end (floored).

    SLA checks only ever ask "more than N minutes", so partial minutes
    never count as a breach.
    """
    delta = as_utc(end) - as_utc(start)
    return int(delta.total_seconds() // 60)


def format_local(dt: datetime | None, tz_name: str | None = None) -> str | None:
    """
    Render dt in the display time zone as DD-MM-YYYY HH:MM:SS.

    Args:
        dt: datetime (naive values are treated as UTC) or None
        tz_name: IANA zone name; defaults to settings.display_timezone

    Returns:
        Formatted string, or None when dt is None
    """
    if dt is None:
        return None
    zone = ZoneInfo(tz_name or get_settings().display_timezone)
    return as_utc(dt).astimezone(zone).strftime(DISPLAY_FORMAT)


def local_day_bounds(
    now: datetime | None = None, tz_name: str | None = None
) -> tuple[datetime, datetime]:
    """
    UTC start/end of the display-zone calendar day containing `now`.

    Used for "today's" notification listings.
    """
    zone = ZoneInfo(tz_name or get_settings().display_timezone)
    local_now = as_utc(now or utc_now()).astimezone(zone)
    start_local = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_local = start_local + timedelta(days=1)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)
