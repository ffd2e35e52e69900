"""
Timezone utilities for Weekwise.

All event times are stored in UTC and converted to local time for display.
Naive datetimes are always interpreted as wall-clock time in the configured
local timezone.
"""

from datetime import date, datetime, time as dt_time, timedelta
from typing import Optional
import time as _time
import pytz


# None means "use the system timezone"; can be overridden by config
_local_timezone_name: Optional[str] = None


def set_timezone(timezone_name: Optional[str]) -> None:
    """Set the local timezone for the application."""
    global _local_timezone_name
    _local_timezone_name = timezone_name or None


def get_local_timezone():
    """
    Get the local timezone as a pytz timezone object.

    Returns:
        pytz timezone object for the configured local timezone, or for the
        system timezone when none is configured.
    """
    if _local_timezone_name:
        try:
            return pytz.timezone(_local_timezone_name)
        except pytz.UnknownTimeZoneError:
            pass
    try:
        return pytz.timezone(_time.tzname[0])
    except pytz.UnknownTimeZoneError:
        # Last resort: calculate offset and use fixed offset timezone
        if _time.localtime().tm_isdst:
            offset_seconds = -_time.altzone
        else:
            offset_seconds = -_time.timezone
        return pytz.FixedOffset(offset_seconds // 60)


def localize(dt: datetime) -> datetime:
    """Attach the local timezone to a naive wall-clock datetime."""
    if dt.tzinfo is not None:
        return dt.astimezone(get_local_timezone())
    return get_local_timezone().localize(dt)


def to_local_datetime(dt: datetime) -> datetime:
    """
    Convert an aware datetime to the local timezone.

    Naive input is returned unchanged (it is already local wall-clock time).
    """
    if dt.tzinfo is not None:
        return dt.astimezone(get_local_timezone())
    return dt


def to_utc_datetime(dt: datetime) -> datetime:
    """
    Convert a datetime to an aware UTC datetime.

    Naive input is assumed to be local wall-clock time.
    """
    if dt.tzinfo is None:
        return get_local_timezone().localize(dt).astimezone(pytz.UTC)
    return dt.astimezone(pytz.UTC)


def utc_to_local_naive(dt: datetime) -> datetime:
    """
    Convert a datetime to naive local wall-clock time.

    Used by the calendar cursor, which works in local wall-clock time.
    """
    if dt.tzinfo is not None:
        return to_local_datetime(dt).replace(tzinfo=None)
    return dt


def now_local_naive() -> datetime:
    """Current local wall-clock time without tzinfo."""
    return datetime.now(pytz.UTC).astimezone(get_local_timezone()).replace(tzinfo=None)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the UTC instants bounding a local calendar day as [start, end)."""
    start = datetime.combine(day, dt_time.min)
    end = start + timedelta(days=1)
    return to_utc_datetime(start), to_utc_datetime(end)


def local_month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Return the UTC instants bounding a local calendar month as [start, end)."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return to_utc_datetime(start), to_utc_datetime(end)
