"""
Recurrence expansion for Weekwise.

Turns one authored event into independent event instances. Expansion is a
pure function: nothing is stored here, and no link between the instances is
kept. Callers persist each instance (see EventManager.add_events).
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
import pytz

from .event import Event, WEEKDAYS
from .timezone_utils import localize, to_local_datetime


def _shift_days(t: datetime, days: int) -> datetime:
    """
    Move a datetime by whole days on the local wall clock.

    The local hour is kept across DST changes; naive input stays naive and
    UTC input comes back in UTC.
    """
    if t.tzinfo is None:
        return t + timedelta(days=days)
    shifted = localize(to_local_datetime(t).replace(tzinfo=None) + timedelta(days=days))
    if t.tzinfo in (pytz.UTC, timezone.utc):
        return shifted.astimezone(pytz.UTC)
    return shifted


def _is_weekday(t: datetime) -> bool:
    return to_local_datetime(t).weekday() < 5


def _expand_weekdays(event: Event) -> list[Event]:
    """`occurrence_count` instances on Monday-Friday, skipping weekends."""
    instances = []
    current = event.time
    offset = 0
    while len(instances) < event.occurrence_count:
        candidate = _shift_days(current, offset)
        if _is_weekday(candidate):
            instances.append(replace(event, time=candidate))
        offset += 1
    return instances


def expand_recurrence(event: Event) -> list[Event]:
    """
    Expand an authored event into `occurrence_count` instances.

    Instance i starts `i * frequency_days` days after the original; every
    other field, color included, is copied. A count of 1 (or less) yields
    just the original and the frequency is ignored. The special frequency
    WEEKDAYS places instances on consecutive weekdays instead.
    """
    count = event.occurrence_count
    if count <= 1:
        return [event]
    if event.frequency_days == WEEKDAYS:
        return _expand_weekdays(event)
    return [
        replace(event, time=_shift_days(event.time, i * event.frequency_days))
        for i in range(count)
    ]
