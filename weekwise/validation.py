"""
Input validation for event authoring.

Boolean validators check raw text from a form or the command line; the
parse_* helpers turn accepted text into values and raise ValidationError
otherwise.
"""

import re
from datetime import date, datetime, time as dt_time
from typing import Optional

from .errors import ValidationError
from .event import MAX_DURATION_HOURS, WEEKDAYS
from .timezone_utils import now_local_naive


TODAY_TOKENS = ("t", "today")

_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")
_EVENT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_COMPACT_DATE_RE = re.compile(r"^\d{8}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def validate_name(value: str) -> bool:
    return bool(value and value.strip())


def validate_number(value: str) -> bool:
    """A positive integer, e.g. an occurrence count."""
    try:
        return int(value) > 0
    except ValueError:
        return False


def validate_duration(value: str) -> bool:
    """Hours in (0, 24], in steps of 0.5."""
    try:
        duration = float(value)
    except ValueError:
        return False
    if duration <= 0.0 or duration > MAX_DURATION_HOURS:
        return False
    return (duration * 2) % 1 == 0


def validate_frequency(value: str) -> bool:
    """A positive number of days, or 'w' for weekdays."""
    value = value.strip()
    if value.lower() == "w":
        return True
    return validate_number(value)


def validate_event_time(value: str) -> bool:
    """'HH:MM' on a half-hour boundary."""
    if not _TIME_RE.match(value):
        return False
    hours, minutes = (int(p) for p in value.split(":"))
    return 0 <= hours <= 23 and minutes in (0, 30)


def validate_event_date(value: str) -> bool:
    """'YYYY-MM-DD' between 1900 and 2100."""
    if not _EVENT_DATE_RE.match(value):
        return False
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return 1900 <= parsed.year <= 2100


def validate_date(value: str) -> bool:
    """'YYYYMMDD' between 1900 and 2100."""
    if not _COMPACT_DATE_RE.match(value):
        return False
    try:
        parsed = datetime.strptime(value, "%Y%m%d")
    except ValueError:
        return False
    return 1900 <= parsed.year <= 2100


def validate_time(value: str) -> bool:
    """'YYYY-MM-DD HH:MM' with minutes on a half-hour boundary."""
    if not _DATETIME_RE.match(value):
        return False
    date_part, time_part = value.split(" ")
    return validate_event_date(date_part) and validate_event_time(time_part)


def validate_optional_date(value: str) -> bool:
    """Empty, a today token, 'YYYY-MM-DD' or 'YYYYMMDD'."""
    value = value.strip()
    if not value or value.lower() in TODAY_TOKENS:
        return True
    return validate_event_date(value) or validate_date(value)


def validate_flexible_hour(value: str) -> bool:
    """An hour as an integer (14) or with a half (14.5)."""
    value = value.strip()
    try:
        hour = float(value)
    except ValueError:
        return False
    return 0 <= hour < 24 and (hour * 2) % 1 == 0


# ==================== Parsers ====================

def parse_frequency(value: str) -> int:
    if not validate_frequency(value):
        raise ValidationError("frequency_days", f"Invalid frequency: {value!r}")
    value = value.strip()
    return WEEKDAYS if value.lower() == "w" else int(value)


def parse_duration(value: str) -> float:
    if not validate_duration(value):
        raise ValidationError("duration_hours", f"Invalid duration: {value!r}")
    return float(value)


def parse_date_token(value: str, today: Optional[date] = None) -> Optional[date]:
    """
    Parse a date field that may be empty, 't'/'today', 'YYYY-MM-DD' or 'YYYYMMDD'.

    Returns None for an empty field.
    """
    value = value.strip()
    if not value:
        return None
    if value.lower() in TODAY_TOKENS:
        return today or now_local_naive().date()
    if validate_event_date(value):
        return datetime.strptime(value, "%Y-%m-%d").date()
    if validate_date(value):
        return datetime.strptime(value, "%Y%m%d").date()
    raise ValidationError("date", f"Invalid date: {value!r}")


def parse_time_token(value: str) -> Optional[dt_time]:
    """Parse an optional 'HH:MM' field. Returns None for an empty field."""
    value = value.strip()
    if not value:
        return None
    if not _TIME_RE.match(value):
        raise ValidationError("time", f"Invalid time: {value!r}")
    hours, minutes = (int(p) for p in value.split(":"))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError("time", f"Invalid time: {value!r}")
    return dt_time(hours, minutes)


def parse_event_datetime(value: str) -> datetime:
    """Parse 'YYYY-MM-DD HH:MM' into a naive local datetime."""
    if not validate_time(value):
        raise ValidationError("time", f"Invalid date/time: {value!r}")
    return datetime.strptime(value, "%Y-%m-%d %H:%M")
