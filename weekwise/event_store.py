"""
Event Store for Weekwise.

Durable CRUD and queries over Event records. Converts between Event objects
and storage rows, turns local date bounds into UTC bounds, and resolves
unset colors from event names on every read.
"""

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, Union
import pytz

from .debug_log import debug_print
from .errors import NotFoundError, PersistenceError
from .event import Color, Event, color_from_name
from .event_storage import (
    DB_TIME_FORMAT, EventStorageBackend, create_storage_backend,
)
from .search import SearchCriteria
from .timezone_utils import (
    local_day_bounds, local_month_bounds, to_local_datetime, to_utc_datetime,
)


def _debug_print(msg: str) -> None:
    debug_print("STORE", msg)


DateOrDatetime = Union[date, datetime]


def format_db_time(dt: datetime) -> str:
    return to_utc_datetime(dt).strftime(DB_TIME_FORMAT)


def parse_db_time(value: str) -> datetime:
    return pytz.UTC.localize(datetime.strptime(value, DB_TIME_FORMAT))


class EventStore:
    """
    Store for Event objects on top of a storage backend.

    All list queries return events ordered by time ascending.
    """

    def __init__(self, path: Optional[Path] = None, backend: Optional[EventStorageBackend] = None):
        self._backend = backend or create_storage_backend(path)

    # ==================== Conversion ====================

    def _event_to_row(self, event: Event) -> dict:
        """Convert Event to a storage row (validates first)."""
        event.validate()
        return {
            "id": event.id,
            "name": event.name,
            "description": event.description or "",
            "location": event.location or "",
            "time": format_db_time(event.time),
            "duration": float(event.duration_hours),
            "frequency": int(event.frequency_days),
            "occurrence": int(event.occurrence_count),
            "color": int(event.stored_color),
        }

    def _row_to_event(self, row: dict) -> Event:
        """Convert a storage row to Event, deriving the color when unset."""
        stored_color = Color(row["color"] or 0)
        auto_color = stored_color == Color.UNSET
        return Event(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            location=row["location"] or "",
            time=parse_db_time(row["time"]),
            duration_hours=row["duration"],
            frequency_days=row["frequency"] or 0,
            occurrence_count=row["occurrence"] or 1,
            color=color_from_name(row["name"]) if auto_color else stored_color,
            auto_color=auto_color,
        )

    def _rows_to_events(self, rows: list[dict]) -> list[Event]:
        return [self._row_to_event(row) for row in rows]

    # ==================== Mutations ====================

    def insert(self, event: Event) -> int:
        """Insert a new event; returns the store-assigned id."""
        event_id = self._backend.insert(self._event_to_row(event))
        _debug_print(f"insert({event.name!r}) -> id={event_id}")
        return event_id

    def restore(self, event: Event) -> None:
        """Re-insert a previously stored event with its original id."""
        if not event.is_persisted:
            raise PersistenceError(f"Cannot restore event {event.name!r} without an id")
        self._backend.restore(self._event_to_row(event))
        _debug_print(f"restore(id={event.id})")

    def update(self, event_id: int, event: Event) -> None:
        """Replace every field of the row with this id."""
        if not self._backend.update(event_id, self._event_to_row(event.with_id(event_id))):
            raise NotFoundError(event_id)
        _debug_print(f"update(id={event_id})")

    def delete(self, event_id: int) -> bool:
        """Delete one event; returns False if it did not exist."""
        deleted = self._backend.delete(event_id)
        _debug_print(f"delete(id={event_id}) -> {deleted}")
        return deleted

    def delete_by_name(self, name: str) -> int:
        """Delete every event whose name matches exactly; returns the count."""
        count = self._backend.delete_by_name(name)
        _debug_print(f"delete_by_name({name!r}) -> {count}")
        return count

    # ==================== Queries ====================

    def find_by_id(self, event_id: int) -> Optional[Event]:
        row = self._backend.fetch(event_id)
        return self._row_to_event(row) if row else None

    def get_by_id(self, event_id: int) -> Event:
        event = self.find_by_id(event_id)
        if event is None:
            raise NotFoundError(event_id)
        return event

    def get_by_date(self, day: DateOrDatetime) -> list[Event]:
        """Events whose time falls within the local calendar day."""
        if isinstance(day, datetime):
            day = to_local_datetime(day).date()
        start, end = local_day_bounds(day)
        return self._rows_to_events(
            self._backend.fetch_between(format_db_time(start), format_db_time(end))
        )

    def get_by_month(self, year: int, month: int) -> list[Event]:
        start, end = local_month_bounds(year, month)
        return self._rows_to_events(
            self._backend.fetch_between(format_db_time(start), format_db_time(end))
        )

    def get_by_date_range(self, start: DateOrDatetime, end: DateOrDatetime) -> list[Event]:
        """
        Events between two bounds.

        Datetime bounds are inclusive instants. Date bounds cover whole local
        days, from the start of `start` to the end of `end`.
        """
        if not isinstance(start, datetime):
            start = local_day_bounds(start)[0]
        if isinstance(end, datetime):
            include_end = True
        else:
            end = local_day_bounds(end)[1]
            include_end = False
        return self._rows_to_events(
            self._backend.fetch_between(format_db_time(start), format_db_time(end), include_end)
        )

    def get_by_name(self, name: str) -> list[Event]:
        return self._rows_to_events(self._backend.fetch_by_name(name))

    def get_all(self) -> list[Event]:
        return self._rows_to_events(self._backend.fetch_all())

    def search(
        self,
        query: str = "",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Event]:
        """
        Case-insensitive substring search over name, description and location,
        optionally limited to an inclusive time range.

        With neither text nor range the result is empty, not everything.
        """
        needle = (query or "").strip().lower()
        if not needle and start is None and end is None:
            return []
        rows = self._backend.search(
            needle,
            format_db_time(start) if start is not None else None,
            format_db_time(end) if end is not None else None,
        )
        return self._rows_to_events(rows)

    def search_with_filters(self, criteria: SearchCriteria, today: Optional[date] = None) -> list[Event]:
        if criteria.is_empty():
            return []
        start, end = criteria.resolve_range(today)
        return self.search(criteria.query, start, end)

    def check_overlap(self, event: Event, exclude_id: Optional[int] = None) -> bool:
        """
        True if the event's [start, end) interval intersects a stored event.

        Adjacent events (one ends exactly when the other starts) do not overlap.
        """
        new_start = to_utc_datetime(event.time)
        new_end = new_start + timedelta(hours=event.duration_hours)
        # Durations are at most 24h, so earlier starts cannot reach further
        window_start = new_start - timedelta(hours=24)
        candidates = self._backend.fetch_between(format_db_time(window_start), format_db_time(new_end))
        for existing in self._rows_to_events(candidates):
            if exclude_id is not None and existing.id == exclude_id:
                continue
            if new_start < existing.end_time and new_end > existing.time:
                _debug_print(f"overlap: {event.name!r} with {existing.name!r} (id={existing.id})")
                return True
        return False

    # ==================== Notes ====================

    def save_note(self, content: str) -> None:
        """Replace the single freeform note (last write wins)."""
        self._backend.save_note(content, datetime.now(pytz.UTC).strftime(DB_TIME_FORMAT))

    def get_latest_note(self) -> str:
        return self._backend.load_note() or ""

    # ==================== Lifecycle ====================

    def close(self) -> None:
        self._backend.close()

    def __enter__(self) -> 'EventStore':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
