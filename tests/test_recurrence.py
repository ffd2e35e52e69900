from dataclasses import replace
from datetime import datetime, timedelta

import pytz

from weekwise.event import WEEKDAYS, Color, Event
from weekwise.recurrence import expand_recurrence
from weekwise.timezone_utils import to_local_datetime, to_utc_datetime


def _event(**fields) -> Event:
    fields.setdefault("name", "Standup")
    fields.setdefault("time", datetime(2024, 1, 8, 9, 0))
    return Event(**fields)


def test_weekly_series_spaces_instances_by_frequency():
    event = _event(frequency_days=7, occurrence_count=3, color=Color.BLUE, location="Room 2")

    instances = expand_recurrence(event)

    t = event.time
    assert [i.time for i in instances] == [t, t + timedelta(days=7), t + timedelta(days=14)]
    assert all(replace(i, time=t) == event for i in instances)


def test_single_occurrence_ignores_frequency():
    event = _event(frequency_days=3, occurrence_count=1)
    assert expand_recurrence(event) == [event]


def test_expansion_keeps_local_hour_across_dst():
    # US clocks spring forward on 2024-03-10
    start = to_utc_datetime(datetime(2024, 3, 8, 9, 0))
    instances = expand_recurrence(_event(time=start, frequency_days=1, occurrence_count=3))

    assert [to_local_datetime(i.time).hour for i in instances] == [9, 9, 9]
    assert [i.time.hour for i in instances] == [14, 14, 13]
    assert all(i.time.tzinfo == pytz.UTC for i in instances)


def test_weekday_series_skips_weekends():
    friday = datetime(2024, 1, 12, 9, 0)
    instances = expand_recurrence(_event(time=friday, frequency_days=WEEKDAYS, occurrence_count=3))
    assert [i.time.day for i in instances] == [12, 15, 16]


def test_weekday_series_starting_on_weekend_begins_monday():
    saturday = datetime(2024, 1, 13, 9, 0)
    instances = expand_recurrence(_event(time=saturday, frequency_days=WEEKDAYS, occurrence_count=2))
    assert [i.time.date().isoformat() for i in instances] == ["2024-01-15", "2024-01-16"]
