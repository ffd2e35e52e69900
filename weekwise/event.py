"""
Event entity for Weekwise.

An Event is a single scheduled occurrence with a start time and a duration.
Colors come from a small fixed palette; an event without an explicit color
gets one derived from its name, so events sharing a name always look alike.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Optional

from .errors import ValidationError
from .timezone_utils import to_local_datetime, to_utc_datetime


class Color(IntEnum):
    """Display color of an event. UNSET means derive it from the name."""
    UNSET = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    WHITE = 7

    @property
    def display_name(self) -> str:
        if self is Color.UNSET:
            return "Default"
        return self.name.capitalize()


# Palette order is part of the stored format: the name hash indexes into it
PALETTE: tuple[Color, ...] = (
    Color.RED,
    Color.GREEN,
    Color.YELLOW,
    Color.BLUE,
    Color.MAGENTA,
    Color.CYAN,
    Color.WHITE,
)

MAX_DURATION_HOURS = 24.0

# frequency_days value meaning "every weekday (Mon-Fri)"
WEEKDAYS = -1

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


def _fnv1a_32(data: bytes) -> int:
    h = _FNV32_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h


def color_from_name(name: str) -> Color:
    """Derive a palette color from an event name (stable across runs)."""
    return PALETTE[_fnv1a_32(name.encode("utf-8")) % len(PALETTE)]


def color_names() -> list[str]:
    return [color.display_name for color in PALETTE]


def parse_color_name(color_name: str) -> Color:
    """
    Look up a palette color by its display name (case-insensitive).

    Unknown names give Color.UNSET, i.e. automatic color.
    """
    wanted = color_name.strip().lower()
    for color in PALETTE:
        if color.display_name.lower() == wanted:
            return color
    return Color.UNSET


@dataclass
class Event:
    """
    A scheduled event.

    `time` is an absolute instant. Events read back from the store carry
    UTC-aware times; naive times are local wall-clock time.
    """
    name: str
    time: datetime
    description: str = ""
    location: str = ""
    duration_hours: float = 1.0
    frequency_days: int = 0
    occurrence_count: int = 1
    color: Color = Color.UNSET
    id: int = 0  # 0 = not yet persisted
    # True when `color` was derived from the name on read; such a color is
    # written back as UNSET so it keeps following the name
    auto_color: bool = field(default=False, compare=False, repr=False)

    @property
    def is_persisted(self) -> bool:
        return self.id > 0

    @property
    def end_time(self) -> datetime:
        return self.time + timedelta(hours=self.duration_hours)

    @property
    def resolved_color(self) -> Color:
        """The explicit color, or the name-derived one when unset."""
        if self.color == Color.UNSET:
            return color_from_name(self.name)
        return Color(self.color)

    @property
    def is_recurring(self) -> bool:
        return self.frequency_days != 0 and self.occurrence_count > 1

    def with_id(self, event_id: int) -> 'Event':
        return replace(self, id=event_id)

    def with_color(self, color: Color) -> 'Event':
        """Pin an explicit color (or go back to automatic with UNSET)."""
        return replace(self, color=Color(color), auto_color=False)

    @property
    def stored_color(self) -> Color:
        """The color value to persist."""
        if self.auto_color:
            return Color.UNSET
        return Color(self.color)

    def to_utc(self) -> 'Event':
        """Copy of this event with its time converted to aware UTC."""
        return replace(self, time=to_utc_datetime(self.time))

    def validate(self) -> None:
        """Raise ValidationError if any field is out of range."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("name", "Event name must not be empty")
        if not isinstance(self.time, datetime):
            raise ValidationError("time", f"Event time must be a datetime, got {self.time!r}")
        try:
            duration = float(self.duration_hours)
        except (TypeError, ValueError):
            raise ValidationError("duration_hours", f"Invalid duration: {self.duration_hours!r}")
        if duration <= 0 or duration > MAX_DURATION_HOURS:
            raise ValidationError("duration_hours", f"Duration must be in (0, 24] hours, got {duration}")
        if (duration * 2) % 1 != 0:
            raise ValidationError("duration_hours", f"Duration must be a multiple of 0.5 hours, got {duration}")
        if self.frequency_days < 0 and self.frequency_days != WEEKDAYS:
            raise ValidationError("frequency_days", f"Invalid frequency: {self.frequency_days}")
        if self.occurrence_count < 1:
            raise ValidationError("occurrence_count", f"Occurrence count must be >= 1, got {self.occurrence_count}")
        if int(self.color) not in Color._value2member_map_:
            raise ValidationError("color", f"Unknown color: {self.color!r}")

    # ==================== Formatting ====================

    def format_duration_time(self) -> str:
        """Local start and end as 'HH:MM-HH:MM'."""
        start = to_local_datetime(self.time)
        end = to_local_datetime(self.end_time)
        return f"{start:%H:%M}-{end:%H:%M}"

    def format_time_and_name(self) -> str:
        return f"{self.format_duration_time()} | {self.name}"

    def format_body(self, description_limit: Optional[int] = None) -> str:
        lines = [f"{self.format_duration_time()} | {self.location}"]
        description = self.description
        if description_limit is not None and len(description) > description_limit:
            description = description[:description_limit - 3] + "..."
        if description:
            lines.append("Description:")
            lines.append(description)
        return "\n".join(lines)
