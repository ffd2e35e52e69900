from datetime import datetime, timedelta

import pytz

from weekwise.config import NotificationsConfig
from weekwise.event import Event
from weekwise.notifications import NotificationManager, NotificationScheduler


NOW = datetime(2024, 1, 8, 14, 45, tzinfo=pytz.UTC)  # 09:45 in New York


def _event(event_id: int = 1, minutes_ahead: int = 15, **fields) -> Event:
    fields.setdefault("name", "Standup")
    return Event(id=event_id, time=NOW + timedelta(minutes=minutes_ahead), **fields)


class _Recorder:
    def __init__(self):
        self.sent = []

    def __call__(self, title, message):
        self.sent.append((title, message))


class _FakeSource:
    def __init__(self, events=None, error=None):
        self.events = events or []
        self.error = error
        self.queries = []

    def get_events_by_date_range(self, start, end):
        self.queries.append((start, end))
        if self.error:
            raise self.error
        return list(self.events)


def _manager(enabled: bool = True, minutes: int = 15):
    sender = _Recorder()
    return NotificationManager(NotificationsConfig(enabled=enabled, minutes=minutes), sender), sender


def test_should_notify_within_thirty_seconds():
    manager, _ = _manager(minutes=15)
    assert manager.should_notify(_event(minutes_ahead=15), NOW)
    assert manager.should_notify(_event(), NOW + timedelta(seconds=29))
    assert not manager.should_notify(_event(), NOW + timedelta(seconds=30))
    assert not manager.should_notify(_event(minutes_ahead=20), NOW)


def test_disabled_manager_never_notifies():
    manager, sender = _manager(enabled=False)
    assert not manager.should_notify(_event(), NOW)
    assert manager.send_event_notification(_event()) is False
    assert sender.sent == []


def test_format_message():
    manager, _ = _manager()
    title, message = manager.format_message(_event(location="Room 4", description="d" * 150, duration_hours=0.5))

    assert title == "Upcoming Event"
    lines = message.splitlines()
    assert lines[:3] == ["Standup", "10:00 - 10:30", "Location: Room 4"]
    assert len(lines[3]) == 100
    assert lines[3].endswith("...")


def test_scheduler_sends_once_per_event():
    manager, sender = _manager()
    source = _FakeSource([_event(1), _event(2, minutes_ahead=60)])
    clock_now = [NOW]
    scheduler = NotificationScheduler(manager, source, interval=0.01, clock=lambda: clock_now[0])

    assert scheduler.check_upcoming_events() == 1
    assert scheduler.check_upcoming_events() == 0
    assert [m.splitlines()[0] for _, m in sender.sent] == ["Standup"]
    assert source.queries[0] == (NOW, NOW + timedelta(hours=24))


def test_scheduler_survives_query_errors():
    manager, sender = _manager()
    scheduler = NotificationScheduler(manager, _FakeSource(error=RuntimeError("db locked")), clock=lambda: NOW)
    assert scheduler.check_upcoming_events() == 0
    assert sender.sent == []


def test_scheduler_does_not_start_when_disabled():
    manager, _ = _manager(enabled=False)
    scheduler = NotificationScheduler(manager, _FakeSource())
    assert scheduler.start() is False
    assert not scheduler.is_running()


def test_scheduler_start_and_stop_are_idempotent():
    manager, _ = _manager()
    source = _FakeSource()
    scheduler = NotificationScheduler(manager, source, interval=0.01)

    assert scheduler.start() is True
    assert scheduler.start() is True
    assert scheduler.is_running()

    scheduler.stop(timeout=2)
    scheduler.stop(timeout=2)
    assert not scheduler.is_running()


def test_send_event_and_test_notifications_use_sender():
    manager, sender = _manager()
    assert manager.send_event_notification(_event()) is True
    manager.send_test_notification()
    assert [title for title, _ in sender.sent] == ["Upcoming Event", "Weekwise Test Notification"]
