#!/usr/bin/env python3
"""
Weekwise - a personal week calendar with undoable editing.

This is the command-line entry point: quick queries against the event
database, backups, ICS export and the notification poller.
"""

import sys
import shutil
import argparse
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import pytz

from weekwise.config import Config
from weekwise.debug_log import set_debug, debug_print
from weekwise.errors import WeekwiseError
from weekwise.event import MAX_DURATION_HOURS
from weekwise.event_manager import EventManager
from weekwise.event_store import EventStore
from weekwise.ics_export import export_to_file
from weekwise.notifications import NotificationManager, NotificationScheduler
from weekwise.search import SearchCriteria
from weekwise.timezone_utils import now_local_naive, set_timezone, to_local_datetime
from weekwise.validation import parse_date_token


def format_agenda_date(day: date) -> str:
    return f"{day:%A, %B} {day.day}, {day.year}"


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="weekwise",
        description="Weekwise - a personal calendar with undoable editing"
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to configuration file (default: auto-detect)"
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Custom database file path (default: ~/.local/share/weekwise/events.db)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output"
    )
    parser.add_argument(
        "--backup",
        type=Path,
        metavar="PATH",
        help="Back up the database to PATH"
    )
    parser.add_argument(
        "--next",
        action="store_true",
        help="Print the next upcoming event"
    )
    parser.add_argument(
        "--current",
        action="store_true",
        help="Print the event happening now, if any"
    )
    parser.add_argument(
        "--agenda",
        nargs="?",
        const="today",
        metavar="YYYYMMDD",
        help="Print the agenda for today or the given date"
    )
    parser.add_argument(
        "--search",
        metavar="QUERY",
        help="Search event names, descriptions and locations"
    )
    parser.add_argument(
        "--export-ics",
        type=Path,
        metavar="PATH",
        help="Export all events to an iCalendar file"
    )
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Run the notification poller until interrupted"
    )
    return parser.parse_args(argv)


def _print_details(event, indent: str = "") -> None:
    if event.description:
        print(f"{indent}Description: {event.description}")
    if event.location:
        print(f"{indent}Location: {event.location}")


def backup_database(src_path: Path, dest_path: Path) -> None:
    if not src_path.exists():
        raise FileNotFoundError(f"Database not found: {src_path}")
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src_path, dest_path)


def handle_next_event(manager: EventManager, now: Optional[datetime] = None) -> None:
    now = now or datetime.now(pytz.UTC)
    upcoming = [e for e in manager.get_all_events() if e.time > now]
    if not upcoming:
        print("No upcoming events found")
        return
    event = min(upcoming, key=lambda e: e.time)
    print(f"{event.name} at {to_local_datetime(event.time):%Y-%m-%d %H:%M}")
    _print_details(event)


def handle_current_event(manager: EventManager, now: Optional[datetime] = None) -> None:
    now = now or datetime.now(pytz.UTC)
    # Events last at most MAX_DURATION_HOURS
    window_start = now - timedelta(hours=MAX_DURATION_HOURS)
    for event in manager.get_events_by_date_range(window_start, now):
        if event.time <= now < event.end_time:
            print(f"{event.name} (until {to_local_datetime(event.end_time):%H:%M})")
            _print_details(event)
            return
    print("No current event")


def handle_agenda(manager: EventManager, date_str: str, today: Optional[date] = None) -> None:
    today = today or now_local_naive().date()
    is_today = date_str.strip().lower() in ("", "t", "today")
    target = parse_date_token(date_str, today) or today

    events = manager.get_events_by_date(target)
    if not events:
        if is_today:
            print("No events today")
        else:
            print(f"No events on {format_agenda_date(target)}")
        return

    if is_today:
        print(f"Today's Agenda - {format_agenda_date(target)}")
    else:
        print(f"Agenda for {format_agenda_date(target)}")
    print("=" * 50)
    for event in events:
        start = to_local_datetime(event.time)
        end = to_local_datetime(event.end_time)
        print(f"{start:%H:%M} - {end:%H:%M}: {event.name}")
        _print_details(event, indent="  ")


def handle_search(manager: EventManager, query: str) -> None:
    events = manager.search_events_with_filters(SearchCriteria(query=query))
    if not events:
        print(f"No events matching '{query}'")
        return
    for event in events:
        print(f"{to_local_datetime(event.time):%Y-%m-%d %H:%M}  {event.name}")


def run_notifier(manager: EventManager, config: Config) -> int:
    notifications = NotificationManager(config.notifications)
    if not notifications.is_enabled():
        print("Notifications are disabled; set enabled = true in [Notifications]")
        return 1
    scheduler = NotificationScheduler(notifications, manager)
    scheduler.start()
    print(f"Watching for events ({notifications.get_notification_minutes()} minutes ahead). Press Ctrl+C to stop.")
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = Config.load(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print(f"\nThe default location is {Config.get_default_config_path()}")
        print("\nExample configuration:")
        print("""
[General]
timezone = "Europe/Berlin"

[Events]
default_color = "Blue"
default_event_length = 1.0

[Notifications]
enabled = true
minutes = 15
""")
        return 1
    except Exception as e:
        print(f"Error loading configuration: {e}")
        return 1

    set_debug(args.debug or config.debug)
    set_timezone(config.timezone)
    db_path = args.db or config.database_path
    debug_print("MAIN", f"database: {db_path}")

    if args.backup:
        try:
            backup_database(db_path, args.backup)
        except OSError as e:
            print(f"Error backing up database: {e}")
            return 1
        print(f"Database backed up to: {args.backup}")
        return 0

    try:
        with EventStore(db_path) as store:
            manager = EventManager(
                store,
                prevent_overlap=config.events.prevent_overlap,
                snapshot_bulk_deletes=config.events.snapshot_bulk_deletes,
            )
            if args.next:
                handle_next_event(manager)
            elif args.current:
                handle_current_event(manager)
            elif args.agenda is not None:
                handle_agenda(manager, args.agenda)
            elif args.search is not None:
                handle_search(manager, args.search)
            elif args.export_ics:
                count = export_to_file(manager.get_all_events(), args.export_ics)
                print(f"Exported {count} events to {args.export_ics}")
            elif args.notify:
                return run_notifier(manager, config)
            else:
                handle_agenda(manager, "today")
    except WeekwiseError as e:
        print(f"Error: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
