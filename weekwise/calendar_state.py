"""
Calendar cursor and week window for Weekwise.

The Calendar holds the "current day" cursor (a naive local datetime, always
on a half-hour boundary) and the Sunday-to-Saturday week containing it. Every
navigation call moves the cursor and recomputes the week. Nothing here touches
storage; `load_events` pulls the visible days' events from any source with a
`get_events_by_date` method.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Protocol, Union

from .errors import ValidationError
from .event import Event
from .timezone_utils import now_local_naive, to_local_datetime, utc_to_local_naive


DAYS_PER_WEEK = 7
TIME_STEP = timedelta(minutes=30)


class EventSource(Protocol):
    def get_events_by_date(self, day: date) -> list[Event]:
        ...


@dataclass
class Day:
    """A calendar day and the events starting on it. `date` None is the empty Day."""
    date: Optional[date] = None
    events: list[Event] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.date is None


@dataclass
class Week:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: list[Day] = field(default_factory=lambda: [Day() for _ in range(DAYS_PER_WEEK)])


def round_to_half_hour(dt: datetime) -> datetime:
    """
    Snap to :00 or :30. Minutes 0-14 round down, 15-44 go to :30 and 45-59
    round up to the next hour. Seconds are dropped.
    """
    dt = dt.replace(second=0, microsecond=0)
    minute = dt.minute
    if minute <= 14:
        return dt - timedelta(minutes=minute)
    if minute <= 44:
        return dt + timedelta(minutes=30 - minute)
    return dt + timedelta(minutes=60 - minute)


def _first_of_adjacent_month(dt: datetime, step: int) -> datetime:
    month_index = dt.year * 12 + (dt.month - 1) + step
    year, month = divmod(month_index, 12)
    return dt.replace(year=year, month=month + 1, day=1)


class Calendar:
    """Time cursor plus the derived 7-day week window."""

    def __init__(self, current_day: Optional[datetime] = None):
        if current_day is None:
            current_day = now_local_naive()
        self.current_day: datetime = utc_to_local_naive(current_day)
        self.current_week = Week()
        self.update_week()

    # ==================== Window ====================

    def round_time(self) -> None:
        self.current_day = round_to_half_hour(self.current_day)

    def update_week(self) -> None:
        """Round the cursor, then rebuild the Sunday-to-Saturday window."""
        self.round_time()
        current = self.current_day.date()
        days_since_sunday = (current.weekday() + 1) % 7
        start = current - timedelta(days=days_since_sunday)

        self.current_week.start_date = start
        self.current_week.end_date = start + timedelta(days=DAYS_PER_WEEK - 1)
        for offset, day in enumerate(self.current_week.days):
            day.date = start + timedelta(days=offset)
            day.events = []

    def format_week_body(self) -> str:
        """e.g. 'January 7 to 13', named after the month of the last day."""
        start = self.current_week.start_date
        end = self.current_week.end_date
        return f"{end:%B} {start.day} to {end.day}"

    def get_day_from_time(self, t: Union[date, datetime]) -> Day:
        """The window's Day for `t`, or an empty Day if `t` is outside it."""
        if isinstance(t, datetime):
            if t.tzinfo is not None:
                t = to_local_datetime(t)
            t = t.date()
        for day in self.current_week.days:
            if day.date == t:
                return day
        return Day()

    def load_events(self, source: EventSource) -> None:
        for day in self.current_week.days:
            day.events = source.get_events_by_date(day.date)

    # ==================== Navigation ====================

    def _move(self, delta: timedelta) -> None:
        self.current_day = self.current_day + delta
        self.update_week()

    def update_to_next_day(self) -> None:
        self._move(timedelta(days=1))

    def update_to_prev_day(self) -> None:
        self._move(timedelta(days=-1))

    def update_to_next_week(self) -> None:
        self._move(timedelta(days=7))

    def update_to_prev_week(self) -> None:
        self._move(timedelta(days=-7))

    def update_to_next_time(self) -> None:
        self._move(TIME_STEP)

    def update_to_prev_time(self) -> None:
        self._move(-TIME_STEP)

    def update_to_next_month(self) -> None:
        self.current_day = _first_of_adjacent_month(self.current_day, 1)
        self.update_week()

    def update_to_prev_month(self) -> None:
        self.current_day = _first_of_adjacent_month(self.current_day, -1)
        self.update_week()

    def jump_to_today(self, now: Optional[datetime] = None) -> None:
        """
        Move the cursor to the current local time, rounded to a half hour.

        Rounding up at 23:45 or later lands on 00:00 of the next day.
        """
        if now is None:
            now = now_local_naive()
        self.current_day = round_to_half_hour(utc_to_local_naive(now))
        self.update_week()

    def goto_date(self, year: int, month: int, day: int) -> None:
        """
        Move to a date, keeping the cursor's time of day.

        Out-of-range months and days carry over, so February 30 is March 1
        or 2 and month 13 is January of the next year.
        """
        try:
            january = self.current_day.replace(year=year, month=1, day=1)
        except ValueError as e:
            raise ValidationError("date", f"Invalid year: {year}") from e
        first = _first_of_adjacent_month(january, month - 1)
        self.current_day = first + timedelta(days=day - 1)
        self.update_week()

    def goto_time(self, hour: int, minute: int) -> None:
        """
        Move to a time of day on the cursor's date (rounded to a half hour).
        Hour 24 or minute 60 carry over into the next day or hour.
        """
        midnight = self.current_day.replace(hour=0, minute=0, second=0, microsecond=0)
        self.current_day = midnight + timedelta(hours=hour, minutes=minute)
        self.update_week()
