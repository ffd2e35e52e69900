"""
Weekwise Core Module

This module provides the event data and command layer of the calendar:
- Event entity and color palette (event.py)
- Storage backends, SQLite and JSON (event_storage.py)
- Event store with date/range/search queries (event_store.py)
- Event manager with bounded undo/redo history (event_manager.py)
- Recurrence expansion (recurrence.py)
- Calendar cursor and week window (calendar_state.py)
- Configuration parsing (config.py)
- Desktop notifications and ICS export (notifications.py, ics_export.py)
"""

from .config import Config
from .errors import (
    WeekwiseError, ValidationError, OverlapError, NotFoundError,
    PersistenceError, UndoError, UndoErrorKind,
)
from .event import Color, Event, WEEKDAYS, color_from_name
from .event_store import EventStore
from .event_manager import EventManager
from .recurrence import expand_recurrence
from .calendar_state import Calendar, Day, Week
from .search import SearchCriteria

__version__ = "0.1.0"

__all__ = [
    'Config',
    'Color',
    'Event',
    'WEEKDAYS',
    'color_from_name',
    'EventStore',
    'EventManager',
    'expand_recurrence',
    'Calendar',
    'Day',
    'Week',
    'SearchCriteria',
    # Errors
    'WeekwiseError',
    'ValidationError',
    'OverlapError',
    'NotFoundError',
    'PersistenceError',
    'UndoError',
    'UndoErrorKind',
]
