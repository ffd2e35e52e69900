"""
Configuration parser for Weekwise.

Reads an optional TOML file into dataclasses. Accessor methods sanitize
values so that a bad setting falls back to its default instead of failing.
"""

import tomllib
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

from .event import Color, MAX_DURATION_HOURS, parse_color_name
from .event_storage import get_default_storage_path


DEFAULT_NOTIFICATION_MINUTES = 15
DEFAULT_EVENT_LENGTH = 1.0


@dataclass
class EventsConfig:
    """Defaults applied when authoring events."""
    default_color: str = ""  # empty = derive from the event name
    default_event_length: float = DEFAULT_EVENT_LENGTH
    prevent_overlap: bool = False
    snapshot_bulk_deletes: bool = True

    def get_default_color(self) -> Color:
        """Palette color for new events; UNSET (automatic) if blank or unknown."""
        if not self.default_color:
            return Color.UNSET
        return parse_color_name(self.default_color)

    def get_default_event_length(self) -> float:
        try:
            length = float(self.default_event_length)
        except (TypeError, ValueError):
            return DEFAULT_EVENT_LENGTH
        if length <= 0 or length > MAX_DURATION_HOURS or (length * 2) % 1 != 0:
            return DEFAULT_EVENT_LENGTH
        return length


@dataclass
class NotificationsConfig:
    """Desktop notification settings."""
    enabled: bool = False
    minutes: int = DEFAULT_NOTIFICATION_MINUTES  # how long before the event
    poll_interval: int = 30  # seconds between checks

    def get_minutes(self) -> int:
        """Lead time in minutes (0-60); out-of-range values give the default."""
        if not isinstance(self.minutes, int) or not 0 <= self.minutes <= 60:
            return DEFAULT_NOTIFICATION_MINUTES
        return self.minutes

    def get_poll_interval(self) -> int:
        if not isinstance(self.poll_interval, (int, float)) or self.poll_interval <= 0:
            return 30
        return self.poll_interval


@dataclass
class Config:
    """Main configuration container for Weekwise."""

    database_path: Path = field(default_factory=get_default_storage_path)
    timezone: Optional[str] = None  # None = system time zone
    debug: bool = False
    events: EventsConfig = field(default_factory=EventsConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default configuration file path."""
        xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(xdg_config) / 'weekwise' / 'weekwise.toml'

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a TOML file.

        Without an explicit path the default location is tried, and a missing
        file there simply yields the defaults. An explicit path must exist.
        """
        if config_path is None:
            config_path = cls.get_default_config_path()
            if not config_path.exists():
                return cls()
        elif not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        # Parse General section
        general = data.get('General', {})
        db_path_str = general.get('database_path', '')
        database_path = (
            Path(os.path.expanduser(db_path_str)) if db_path_str else get_default_storage_path()
        )

        # Parse Events section
        events_data = data.get('Events', {})
        events = EventsConfig(
            default_color=events_data.get('default_color', EventsConfig.default_color),
            default_event_length=events_data.get('default_event_length', EventsConfig.default_event_length),
            prevent_overlap=events_data.get('prevent_overlap', EventsConfig.prevent_overlap),
            snapshot_bulk_deletes=events_data.get('snapshot_bulk_deletes', EventsConfig.snapshot_bulk_deletes),
        )

        # Parse Notifications section
        notifications_data = data.get('Notifications', {})
        notifications = NotificationsConfig(
            enabled=notifications_data.get('enabled', NotificationsConfig.enabled),
            minutes=notifications_data.get('minutes', NotificationsConfig.minutes),
            poll_interval=notifications_data.get('poll_interval', NotificationsConfig.poll_interval),
        )

        return cls(
            database_path=database_path,
            timezone=general.get('timezone') or None,
            debug=bool(general.get('debug', False)),
            events=events,
            notifications=notifications,
        )
