"""
iCalendar export for Weekwise events.

Instances expanded from one recurring event are stored independently, so
the exporter folds each series back into its earliest instance plus an
RRULE. A series is recognized by (name, frequency, occurrence count).
"""

from datetime import datetime
from pathlib import Path
from typing import Iterable

import pytz
from icalendar import Calendar as ICalCalendar, Event as ICalEvent

from .debug_log import debug_print
from .event import Event, WEEKDAYS
from .timezone_utils import to_utc_datetime


PRODID = '-//Weekwise//Weekwise Calendar//EN'
WEEKDAY_CODES = ['MO', 'TU', 'WE', 'TH', 'FR']


def _debug_print(msg: str) -> None:
    debug_print("ICS", msg)


def _is_series_instance(event: Event) -> bool:
    return event.occurrence_count > 1 and (event.frequency_days > 0 or event.frequency_days == WEEKDAYS)


def collapse_series(events: Iterable[Event]) -> list[Event]:
    """Keep single events as-is and only the earliest instance of each series."""
    singles: list[Event] = []
    earliest: dict[tuple, Event] = {}
    for event in events:
        if not _is_series_instance(event):
            singles.append(event)
            continue
        key = (event.name, event.frequency_days, event.occurrence_count)
        current = earliest.get(key)
        if current is None or to_utc_datetime(event.time) < to_utc_datetime(current.time):
            earliest[key] = event
    return sorted(singles + list(earliest.values()), key=lambda e: to_utc_datetime(e.time))


def _build_rrule(event: Event) -> dict:
    if event.frequency_days == WEEKDAYS:
        return {'freq': 'WEEKLY', 'byday': WEEKDAY_CODES, 'count': event.occurrence_count}
    return {'freq': 'DAILY', 'interval': event.frequency_days, 'count': event.occurrence_count}


def _to_ical_event(event: Event, stamp: datetime) -> ICalEvent:
    vevent = ICalEvent()
    vevent.add('uid', f'weekwise-event-{event.id}@weekwise.local')
    vevent.add('dtstamp', stamp)
    vevent.add('created', stamp)
    vevent.add('dtstart', to_utc_datetime(event.time))
    vevent.add('dtend', to_utc_datetime(event.end_time))
    vevent.add('summary', event.name)
    if event.description:
        vevent.add('description', event.description)
    if event.location:
        vevent.add('location', event.location)
    if _is_series_instance(event):
        vevent.add('rrule', _build_rrule(event))
    vevent.add('categories', [event.resolved_color.display_name])
    return vevent


def export_events(events: Iterable[Event]) -> str:
    """Render events as an iCalendar (RFC 5545) document."""
    vcal = ICalCalendar()
    vcal.add('prodid', PRODID)
    vcal.add('version', '2.0')
    vcal.add('calscale', 'GREGORIAN')
    vcal.add('method', 'PUBLISH')

    stamp = datetime.now(pytz.UTC)
    exported = collapse_series(events)
    for event in exported:
        vcal.add_component(_to_ical_event(event, stamp))
    _debug_print(f"exported {len(exported)} component(s)")
    return vcal.to_ical().decode('utf-8')


def export_to_file(events: Iterable[Event], path: Path) -> int:
    """Write the export to `path`; returns the number of VEVENTs written."""
    events = list(events)
    content = export_events(events)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(content)
    return len(collapse_series(events))
