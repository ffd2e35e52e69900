from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from weekwise.errors import NotFoundError, OverlapError, PersistenceError, UndoError, UndoErrorKind, ValidationError
from weekwise.event import Color, Event, color_from_name
from weekwise.event_manager import BulkDeleteAction, EventManager
from weekwise.timezone_utils import to_local_datetime


def _event(name: str = "Meeting", time: datetime = datetime(2024, 1, 8, 9, 0), **fields) -> Event:
    return Event(name=name, time=time, **fields)


def _local(event: Event) -> datetime:
    return to_local_datetime(event.time).replace(tzinfo=None)


def _undo_kind(callable_) -> UndoErrorKind:
    with pytest.raises(UndoError) as exc_info:
        callable_()
    return exc_info.value.kind


def test_add_returns_persisted_event(manager):
    added = manager.add_event(_event(description="notes"))

    assert added.is_persisted
    assert manager.get_event_by_id(added.id) == added
    assert manager.can_undo()
    assert manager.get_undo_description() == "Undo add: Meeting"


def test_undo_add_then_redo_restores_same_fields(manager):
    added = manager.add_event(_event())

    manager.undo()
    assert manager.find_event(added.id) is None
    assert manager.get_redo_description() == "Redo add: Meeting"

    manager.redo()
    matches = [e for e in manager.get_events_by_name("Meeting") if e.time == added.time]
    assert len(matches) == 1
    assert replace(matches[0], id=added.id) == added


def test_undo_delete_restores_row_with_same_id(manager):
    added = manager.add_event(_event(color=Color.YELLOW))

    assert manager.delete_event(added.id) is True
    assert manager.find_event(added.id) is None

    manager.undo()
    assert manager.get_event_by_id(added.id) == added

    manager.redo()
    assert manager.find_event(added.id) is None


def test_delete_missing_id_records_nothing(manager):
    assert manager.delete_event(12345) is False
    assert not manager.can_undo()


def test_update_missing_id_raises(manager):
    with pytest.raises(NotFoundError):
        manager.update_event(12345, _event())
    assert not manager.can_undo()


def test_undo_edit_restores_before_and_redo_restores_after(manager):
    before = manager.add_event(_event(description="v1", location="Room 1"))
    after = manager.update_event(
        before.id, _event(name="Renamed", time=datetime(2024, 1, 9, 11, 30), duration_hours=2)
    )
    assert manager.get_undo_description() == "Undo edit: Meeting"

    manager.undo()
    assert manager.get_event_by_id(before.id) == before
    assert manager.get_redo_description() == "Redo edit: Renamed"

    manager.redo()
    restored = manager.get_event_by_id(before.id)
    assert (restored.name, _local(restored), restored.duration_hours) == (
        after.name, datetime(2024, 1, 9, 11, 30), 2
    )
    assert restored.description == ""


def test_undo_and_redo_on_empty_history(manager):
    assert manager.get_undo_description() == "Nothing to undo"
    assert manager.get_redo_description() == "Nothing to redo"

    with pytest.raises(UndoError) as exc_info:
        manager.undo()
    assert exc_info.value.kind is UndoErrorKind.NOTHING_TO_UNDO
    assert exc_info.value.is_ignorable()
    assert _undo_kind(manager.redo) is UndoErrorKind.NOTHING_TO_REDO


def test_new_mutation_clears_redo(manager):
    manager.add_event(_event(name="A"))
    manager.add_event(_event(name="B"))
    manager.undo()
    assert manager.can_redo()

    manager.add_event(_event(name="C"))

    assert not manager.can_redo()
    assert _undo_kind(manager.redo) is UndoErrorKind.NOTHING_TO_REDO


def test_undo_history_is_capped(store):
    manager = EventManager(store, max_history=50)
    start = datetime(2024, 1, 1, 8, 0)
    for i in range(51):
        manager.add_event(_event(name=f"E{i}", time=start + timedelta(hours=i)))

    assert manager.undo_depth == 50
    for _ in range(50):
        manager.undo()
    assert _undo_kind(manager.undo) is UndoErrorKind.NOTHING_TO_UNDO
    # the oldest add was evicted, so it can no longer be undone
    assert [e.name for e in manager.get_all_events()] == ["E0"]
    assert manager.redo_depth == 50


def test_standup_series_bulk_delete_is_reversible(manager):
    added = manager.add_recurring_event(_event(
        name="Standup", time=datetime(2024, 1, 8, 9, 0), duration_hours=0.5,
        frequency_days=7, occurrence_count=4,
    ))
    ids = [e.id for e in added]
    mondays = [datetime(2024, 1, d, 9, 0) for d in (8, 15, 22, 29)]
    assert [_local(e) for e in manager.get_events_by_name("Standup")] == mondays

    assert manager.delete_events_by_name("Standup") == 4
    assert manager.get_events_by_name("Standup") == []
    assert manager.get_undo_description() == "Undo bulk delete: Standup (4 events)"

    manager.undo()
    restored = manager.get_events_by_name("Standup")
    assert [e.id for e in restored] == ids
    assert [_local(e) for e in restored] == mondays

    manager.redo()
    assert manager.get_events_by_name("Standup") == []


def test_standup_series_bulk_delete_without_snapshots_is_unsupported(store):
    manager = EventManager(store, snapshot_bulk_deletes=False)
    manager.add_recurring_event(_event(
        name="Standup", time=datetime(2024, 1, 8, 9, 0), duration_hours=0.5,
        frequency_days=7, occurrence_count=4,
    ))
    assert manager.delete_events_by_name("Standup") == 4

    with pytest.raises(UndoError) as exc_info:
        manager.undo()
    assert exc_info.value.kind is UndoErrorKind.UNSUPPORTED_BULK_OPERATION
    assert not exc_info.value.is_ignorable()
    assert manager.get_events_by_name("Standup") == []
    # the action still moved to the redo stack
    assert manager.can_redo()
    assert _undo_kind(manager.redo) is UndoErrorKind.UNSUPPORTED_BULK_OPERATION
    assert manager.can_undo()


def test_bulk_delete_of_unknown_name_records_nothing(manager):
    assert manager.delete_events_by_name("Nobody") == 0
    assert not manager.can_undo()


def test_bulk_delete_action_reversible_flag():
    assert BulkDeleteAction(name="A", ids=(1, 2), events=()).reversible
    assert not BulkDeleteAction(name="A", ids=(1, 2)).reversible


def test_failed_series_rolls_back_everything(manager):
    manager.add_event(_event(name="Existing", time=datetime(2024, 1, 1, 9, 0)))
    manager.add_event(_event(name="Undone", time=datetime(2024, 1, 2, 9, 0)))
    manager.undo()

    series = [
        _event(name="Series", time=datetime(2024, 1, 8, 9, 0)),
        _event(name="Series", time=datetime(2024, 1, 9, 9, 0)),
        _event(name="Series", time=datetime(2024, 1, 10, 9, 0), duration_hours=0.75),
    ]
    with pytest.raises(ValidationError):
        manager.add_events(series)

    assert manager.get_events_by_name("Series") == []
    assert manager.undo_depth == 1
    assert manager.get_undo_description() == "Undo add: Existing"
    assert manager.get_redo_description() == "Redo add: Undone"


def test_prevent_overlap_rejects_without_recording(store):
    manager = EventManager(store, prevent_overlap=True)
    first = manager.add_event(_event(time=datetime(2024, 1, 8, 9, 0), duration_hours=1))

    with pytest.raises(OverlapError):
        manager.add_event(_event(name="Clash", time=datetime(2024, 1, 8, 9, 30)))
    assert manager.undo_depth == 1

    # moving an event within its own slot is not an overlap
    manager.update_event(first.id, _event(time=datetime(2024, 1, 8, 9, 30)))
    manager.add_event(_event(name="After", time=datetime(2024, 1, 8, 10, 30)))
    assert manager.undo_depth == 3


def test_store_failure_keeps_action_on_its_stack(manager):
    added = manager.add_event(_event())
    manager.undo()
    # occupy the id so that re-inserting it fails
    manager.store.restore(added)

    with pytest.raises(PersistenceError):
        manager.redo()
    assert manager.can_redo()
    assert not manager.can_undo()


def test_events_are_normalized_to_utc(manager):
    added = manager.add_event(_event())
    assert added.time.utcoffset() == timedelta(0)
    assert _local(added) == datetime(2024, 1, 8, 9, 0)


def test_pass_through_reads(manager):
    manager.add_event(_event(name="Dentist", time=datetime(2024, 1, 8, 9, 0), location="Main St"))
    manager.add_event(_event(name="Gym", time=datetime(2024, 1, 20, 18, 0)))
    manager.save_note("buy milk")

    assert [e.name for e in manager.get_events_by_month(2024, 1)] == ["Dentist", "Gym"]
    assert [e.name for e in manager.search_events("main st")] == ["Dentist"]
    assert manager.get_latest_note() == "buy milk"
    assert manager.undo_depth == 2


def test_update_returns_stored_event_with_color_of_new_name(manager):
    added = manager.add_event(_event(name="Alpha"))
    assert added.auto_color

    updated = manager.update_event(added.id, replace(added, name="Beta"))

    assert updated == manager.get_event_by_id(added.id)
    assert updated.color == color_from_name("Beta")


def test_series_rollback_restores_history_even_if_delete_fails(manager, monkeypatch):
    manager.add_event(_event(name="Existing", time=datetime(2024, 1, 1, 9, 0)))

    def failing_delete(event_id):
        raise PersistenceError("disk gone")

    monkeypatch.setattr(manager.store, "delete", failing_delete)
    series = [
        _event(name="Series", time=datetime(2024, 1, 8, 9, 0)),
        _event(name="Series", time=datetime(2024, 1, 9, 9, 0), duration_hours=0.75),
    ]
    with pytest.raises(PersistenceError) as exc_info:
        manager.add_events(series)

    assert isinstance(exc_info.value.__context__, ValidationError)
    assert manager.undo_depth == 1
    assert manager.get_undo_description() == "Undo add: Existing"
    assert not manager.can_redo()
