"""
Event Manager for Weekwise.

Wraps the EventStore so that every mutation is reversible. Each successful
mutation records an undo action in a bounded history; undo and redo replay
those actions without recording new ones. Read methods pass straight through
to the store.
"""

from collections import deque
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Union

from .debug_log import debug_print
from .errors import OverlapError, UndoError, UndoErrorKind
from .event import Event
from .event_store import DateOrDatetime, EventStore
from .recurrence import expand_recurrence
from .search import SearchCriteria


def _debug_print(msg: str) -> None:
    debug_print("MANAGER", msg)


# ==================== Undo actions ====================

@dataclass(frozen=True)
class AddAction:
    after: Event


@dataclass(frozen=True)
class DeleteAction:
    before: Event


@dataclass(frozen=True)
class EditAction:
    before: Event
    after: Event


@dataclass(frozen=True)
class BulkDeleteAction:
    """
    Deletion of every event with one name.

    `events` holds full snapshots of the deleted rows; when it is None only
    the ids were captured and the action cannot be replayed.
    """
    name: str
    ids: tuple[int, ...]
    events: Optional[tuple[Event, ...]] = None

    @property
    def reversible(self) -> bool:
        return self.events is not None


UndoAction = Union[AddAction, DeleteAction, EditAction, BulkDeleteAction]


def describe_action(action: UndoAction, verb: str) -> str:
    """Human-readable summary such as 'Undo add: Standup'."""
    if isinstance(action, AddAction):
        return f"{verb} add: {action.after.name}"
    if isinstance(action, DeleteAction):
        return f"{verb} delete: {action.before.name}"
    if isinstance(action, EditAction):
        name = action.before.name if verb == "Undo" else action.after.name
        return f"{verb} edit: {name}"
    return f"{verb} bulk delete: {action.name} ({len(action.ids)} events)"


# ==================== Manager ====================

class EventManager:
    """
    Reversible mutation surface over an EventStore.

    Assumes a single writer: mutations and undo/redo are not locked here.
    """

    MAX_HISTORY = 50

    def __init__(
        self,
        store: EventStore,
        max_history: int = MAX_HISTORY,
        prevent_overlap: bool = False,
        snapshot_bulk_deletes: bool = True,
    ):
        self._store = store
        self._undo_stack: deque[UndoAction] = deque(maxlen=max_history)
        self._redo_stack: deque[UndoAction] = deque(maxlen=max_history)
        self.prevent_overlap = prevent_overlap
        self.snapshot_bulk_deletes = snapshot_bulk_deletes

    @property
    def store(self) -> EventStore:
        return self._store

    def _push_undo_action(self, action: UndoAction) -> None:
        """Record a new action; a new branch of history invalidates redo."""
        self._undo_stack.append(action)
        self._redo_stack.clear()

    # ==================== Mutations ====================

    def add_event(self, event: Event) -> Event:
        """Insert an event and return it as persisted (with its new id)."""
        event.validate()
        utc_event = event.to_utc().with_id(0)
        if self.prevent_overlap and self._store.check_overlap(utc_event):
            raise OverlapError(event.name)

        new_id = self._store.insert(utc_event)
        persisted = self._store.get_by_id(new_id)
        self._push_undo_action(AddAction(after=persisted))
        return persisted

    def delete_event(self, event_id: int) -> bool:
        """
        Delete an event. Returns False, and records nothing, if the id is
        not stored.
        """
        before = self._store.find_by_id(event_id)
        if before is None:
            _debug_print(f"delete_event({event_id}): not found, nothing recorded")
            return False
        self._store.delete(event_id)
        self._push_undo_action(DeleteAction(before=before))
        return True

    def update_event(self, event_id: int, new_event: Event) -> Event:
        """Overwrite the event with this id; returns the stored version."""
        before = self._store.get_by_id(event_id)
        new_event.validate()
        after = new_event.to_utc().with_id(event_id)
        if self.prevent_overlap and self._store.check_overlap(after, exclude_id=event_id):
            raise OverlapError(after.name)

        self._store.update(event_id, after)
        self._push_undo_action(EditAction(before=before, after=after))
        # Reload so a color derived from the new name is what callers see
        return self._store.get_by_id(event_id)

    def delete_events_by_name(self, name: str) -> int:
        """Delete all events with this exact name as one history entry."""
        events = self._store.get_by_name(name)
        if not events:
            return 0
        count = self._store.delete_by_name(name)
        self._push_undo_action(BulkDeleteAction(
            name=name,
            ids=tuple(e.id for e in events),
            events=tuple(events) if self.snapshot_bulk_deletes else None,
        ))
        return count

    def add_events(self, events: Iterable[Event]) -> list[Event]:
        """
        Add several events all-or-nothing.

        If any insert fails, the instances already added are deleted again,
        the history is put back as it was, and the error is re-raised.
        """
        saved_undo = list(self._undo_stack)
        saved_redo = list(self._redo_stack)
        added: list[Event] = []
        try:
            for event in events:
                added.append(self.add_event(event))
        except Exception:
            _debug_print(f"add_events: rolling back {len(added)} instance(s)")
            self._undo_stack.clear()
            self._undo_stack.extend(saved_undo)
            self._redo_stack.clear()
            self._redo_stack.extend(saved_redo)
            # a failing delete keeps the insert error as its __context__
            for persisted in reversed(added):
                self._store.delete(persisted.id)
            raise
        return added

    def add_recurring_event(self, event: Event) -> list[Event]:
        """Expand an authored event and add every instance."""
        return self.add_events(expand_recurrence(event))

    # ==================== Undo / Redo ====================

    def undo(self) -> None:
        """
        Revert the most recent action.

        Raises UndoError(NOTHING_TO_UNDO) on empty history. If the store
        fails, the action stays on the undo stack.
        """
        if not self._undo_stack:
            raise UndoError(UndoErrorKind.NOTHING_TO_UNDO)
        action = self._undo_stack[-1]
        try:
            self._revert(action)
        except UndoError:
            self._redo_stack.append(self._undo_stack.pop())
            raise
        self._redo_stack.append(self._undo_stack.pop())
        _debug_print(describe_action(action, "Undo"))

    def redo(self) -> None:
        """Re-apply the most recently undone action."""
        if not self._redo_stack:
            raise UndoError(UndoErrorKind.NOTHING_TO_REDO)
        action = self._redo_stack[-1]
        try:
            self._reapply(action)
        except UndoError:
            self._undo_stack.append(self._redo_stack.pop())
            raise
        self._undo_stack.append(self._redo_stack.pop())
        _debug_print(describe_action(action, "Redo"))

    def _revert(self, action: UndoAction) -> None:
        if isinstance(action, AddAction):
            self._store.delete(action.after.id)
        elif isinstance(action, DeleteAction):
            self._store.restore(action.before)
        elif isinstance(action, EditAction):
            self._store.update(action.before.id, action.before)
        elif isinstance(action, BulkDeleteAction):
            if not action.reversible:
                raise UndoError(UndoErrorKind.UNSUPPORTED_BULK_OPERATION)
            for event in action.events:
                self._store.restore(event)
        else:
            raise TypeError(f"Unknown undo action: {action!r}")

    def _reapply(self, action: UndoAction) -> None:
        if isinstance(action, AddAction):
            self._store.restore(action.after)
        elif isinstance(action, DeleteAction):
            self._store.delete(action.before.id)
        elif isinstance(action, EditAction):
            self._store.update(action.after.id, action.after)
        elif isinstance(action, BulkDeleteAction):
            if not action.reversible:
                raise UndoError(UndoErrorKind.UNSUPPORTED_BULK_OPERATION)
            for event_id in action.ids:
                self._store.delete(event_id)
        else:
            raise TypeError(f"Unknown undo action: {action!r}")

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def get_undo_description(self) -> str:
        if not self._undo_stack:
            return "Nothing to undo"
        return describe_action(self._undo_stack[-1], "Undo")

    def get_redo_description(self) -> str:
        if not self._redo_stack:
            return "Nothing to redo"
        return describe_action(self._redo_stack[-1], "Redo")

    # ==================== Pass-through reads ====================

    def get_event_by_id(self, event_id: int) -> Event:
        return self._store.get_by_id(event_id)

    def find_event(self, event_id: int) -> Optional[Event]:
        return self._store.find_by_id(event_id)

    def get_events_by_date(self, day: DateOrDatetime) -> list[Event]:
        return self._store.get_by_date(day)

    def get_events_by_month(self, year: int, month: int) -> list[Event]:
        return self._store.get_by_month(year, month)

    def get_events_by_date_range(self, start: DateOrDatetime, end: DateOrDatetime) -> list[Event]:
        return self._store.get_by_date_range(start, end)

    def get_events_by_name(self, name: str) -> list[Event]:
        return self._store.get_by_name(name)

    def get_all_events(self) -> list[Event]:
        return self._store.get_all()

    def search_events(
        self,
        query: str = "",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Event]:
        return self._store.search(query, start, end)

    def search_events_with_filters(self, criteria: SearchCriteria, today: Optional[date] = None) -> list[Event]:
        return self._store.search_with_filters(criteria, today)

    def check_overlap(self, event: Event, exclude_id: Optional[int] = None) -> bool:
        return self._store.check_overlap(event, exclude_id)

    def save_note(self, content: str) -> None:
        self._store.save_note(content)

    def get_latest_note(self) -> str:
        return self._store.get_latest_note()
