"""
Desktop notifications for upcoming events.

NotificationManager decides whether an event is due for a reminder and
formats the message. NotificationScheduler polls an event source on a
background thread; it only ever reads.
"""

import subprocess
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

import pytz

from .config import NotificationsConfig
from .debug_log import debug_print
from .event import Event
from .timezone_utils import to_local_datetime, to_utc_datetime


def _debug_print(msg: str) -> None:
    debug_print("NOTIFY", msg)


NOTIFY_WINDOW = timedelta(seconds=30)
LOOKAHEAD = timedelta(hours=24)
RENOTIFY_AFTER = timedelta(hours=1)
FORGET_AFTER = timedelta(hours=24)
DESCRIPTION_LIMIT = 100

# sender(title, message)
Sender = Callable[[str, str], None]


def notify_send(title: str, message: str, timeout: int = 10) -> None:
    """Show a desktop notification with the notify-send program."""
    try:
        result = subprocess.run(
            ["notify-send", "--app-name=Weekwise", title, message],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        raise RuntimeError("notify-send timed out")
    except FileNotFoundError:
        raise RuntimeError("notify-send not found")
    if result.returncode != 0:
        raise RuntimeError(f"notify-send failed: {result.stderr.strip()}")


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class NotificationManager:
    """Decides when to remind about an event and sends the reminder."""

    def __init__(self, config: NotificationsConfig, sender: Optional[Sender] = None):
        self.config = config
        self._sender = sender or notify_send

    def is_enabled(self) -> bool:
        return bool(self.config.enabled)

    def get_notification_minutes(self) -> int:
        return self.config.get_minutes()

    def notification_time(self, event: Event) -> datetime:
        return to_utc_datetime(event.time) - timedelta(minutes=self.get_notification_minutes())

    def should_notify(self, event: Event, now: Optional[datetime] = None) -> bool:
        """True if the reminder time is within 30 seconds either side of now."""
        if not self.is_enabled():
            return False
        now = to_utc_datetime(now) if now is not None else _utc_now()
        notify_at = self.notification_time(event)
        return now - NOTIFY_WINDOW < notify_at < now + NOTIFY_WINDOW

    def format_message(self, event: Event) -> tuple[str, str]:
        start = to_local_datetime(event.time)
        end = to_local_datetime(event.end_time)
        lines = [event.name, f"{start:%H:%M} - {end:%H:%M}"]
        if event.location:
            lines.append(f"Location: {event.location}")
        if event.description:
            description = event.description
            if len(description) > DESCRIPTION_LIMIT:
                description = description[:DESCRIPTION_LIMIT - 3] + "..."
            lines.append(description)
        return "Upcoming Event", "\n".join(lines)

    def send_event_notification(self, event: Event) -> bool:
        """Send a reminder; returns False when notifications are disabled."""
        if not self.is_enabled():
            return False
        title, message = self.format_message(event)
        self._sender(title, message)
        return True

    def send_test_notification(self) -> None:
        self._sender("Weekwise Test Notification", "Desktop notifications are working correctly!")


class EventRangeSource(Protocol):
    def get_events_by_date_range(self, start: datetime, end: datetime) -> list[Event]:
        ...


class NotificationScheduler:
    """
    Background poller that sends reminders for events in the next 24 hours.

    Each event id is notified at most once per hour; ids are forgotten a day
    after their last reminder.
    """

    def __init__(
        self,
        manager: NotificationManager,
        source: EventRangeSource,
        interval: Optional[float] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.manager = manager
        self.source = source
        self.interval = interval if interval is not None else manager.config.get_poll_interval()
        self._clock = clock
        self._notified: dict[int, datetime] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        """Start polling. Returns False if notifications are disabled."""
        if not self.manager.is_enabled():
            _debug_print("notifications disabled, scheduler not started")
            return False
        if self._thread is not None and self._thread.is_alive():
            return True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="weekwise-notify", daemon=True)
        self._thread.start()
        _debug_print(f"scheduler started (interval={self.interval}s)")
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the poller to stop and wait for it. Safe to call twice."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self) -> None:
        """Block until the scheduler is stopped."""
        while self.is_running():
            self._stop_event.wait(1.0)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.check_upcoming_events()

    def check_upcoming_events(self) -> int:
        """One poll: send due reminders and return how many were sent."""
        now = self._clock()
        try:
            events = self.source.get_events_by_date_range(now, now + LOOKAHEAD)
        except Exception as e:
            _debug_print(f"query failed: {e}")
            return 0

        self._forget_old(now)
        sent = 0
        for event in events:
            if not self._should_notify_now(event, now):
                continue
            try:
                self.manager.send_event_notification(event)
            except RuntimeError as e:
                _debug_print(f"sending reminder for {event.name!r} failed: {e}")
                continue
            self._notified[event.id] = now
            sent += 1
        return sent

    def _should_notify_now(self, event: Event, now: datetime) -> bool:
        last = self._notified.get(event.id)
        if last is not None and now - last < RENOTIFY_AFTER:
            return False
        return self.manager.should_notify(event, now)

    def _forget_old(self, now: datetime) -> None:
        for event_id in [i for i, t in self._notified.items() if now - t > FORGET_AFTER]:
            del self._notified[event_id]
