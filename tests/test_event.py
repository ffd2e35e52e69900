from datetime import datetime

import pytest

from weekwise.errors import ValidationError
from weekwise.event import (
    PALETTE, WEEKDAYS, Color, Event, _fnv1a_32, color_from_name, color_names, parse_color_name,
)


def _event(**fields) -> Event:
    fields.setdefault("name", "Standup")
    fields.setdefault("time", datetime(2024, 1, 8, 9, 0))
    return Event(**fields)


def test_fnv1a_known_vectors():
    assert _fnv1a_32(b"") == 0x811C9DC5
    assert _fnv1a_32(b"a") == 0xE40C292C


def test_color_from_name_is_stable_and_in_palette():
    color = color_from_name("Standup")
    assert color in PALETTE
    assert color_from_name("Standup") == color
    assert color == PALETTE[_fnv1a_32("Standup".encode("utf-8")) % len(PALETTE)]


def test_parse_color_name_is_case_insensitive_and_unknown_means_auto():
    assert parse_color_name("blue") == Color.BLUE
    assert parse_color_name(" Magenta ") == Color.MAGENTA
    assert parse_color_name("chartreuse") == Color.UNSET
    assert color_names() == ["Red", "Green", "Yellow", "Blue", "Magenta", "Cyan", "White"]


def test_resolved_color_derives_from_name_when_unset():
    assert _event().resolved_color == color_from_name("Standup")
    assert _event(color=Color.CYAN).resolved_color == Color.CYAN


def test_with_color_pins_explicit_color():
    event = Event(name="A", time=datetime(2024, 1, 8, 9, 0), auto_color=True)
    pinned = event.with_color(Color.RED)
    assert pinned.color == Color.RED
    assert pinned.stored_color == Color.RED
    assert event.stored_color == Color.UNSET


def test_end_time_and_recurring_flag():
    event = _event(duration_hours=1.5, frequency_days=7, occurrence_count=4)
    assert event.end_time == datetime(2024, 1, 8, 10, 30)
    assert event.is_recurring
    assert not _event(frequency_days=7).is_recurring


@pytest.mark.parametrize("fields, field_name", [
    ({"name": "  "}, "name"),
    ({"duration_hours": 0}, "duration_hours"),
    ({"duration_hours": 24.5}, "duration_hours"),
    ({"duration_hours": 0.75}, "duration_hours"),
    ({"frequency_days": -3}, "frequency_days"),
    ({"occurrence_count": 0}, "occurrence_count"),
])
def test_validate_rejects_out_of_range_fields(fields, field_name):
    with pytest.raises(ValidationError) as exc_info:
        _event(**fields).validate()
    assert exc_info.value.field == field_name


def test_validate_accepts_weekday_frequency_and_full_day():
    _event(frequency_days=WEEKDAYS, occurrence_count=5, duration_hours=24).validate()


def test_to_utc_converts_naive_local_time():
    utc_event = _event().to_utc()
    # America/New_York is UTC-5 in January
    assert utc_event.time.utcoffset().total_seconds() == 0
    assert (utc_event.time.hour, utc_event.time.minute) == (14, 0)


def test_formatting():
    event = _event(duration_hours=1.5, location="Room 4", description="x" * 30)
    assert event.format_duration_time() == "09:00-10:30"
    assert event.format_time_and_name() == "09:00-10:30 | Standup"
    body = event.format_body(description_limit=10)
    assert body.splitlines() == ["09:00-10:30 | Room 4", "Description:", "xxxxxxx..."]
    assert "Description:" not in _event().format_body()
