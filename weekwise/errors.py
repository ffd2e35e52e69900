"""
Error taxonomy for Weekwise.

Every error raised by the event layer derives from WeekwiseError, so callers
can catch the whole family or a single kind.
"""

from enum import Enum
from typing import Optional


class WeekwiseError(Exception):
    """Base exception for all calendar errors."""
    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(WeekwiseError):
    """Raised when an event field is out of range."""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message=message, detail=f"field: {field}")


class OverlapError(ValidationError):
    """Raised when an event would overlap an existing one."""
    def __init__(self, name: str):
        super().__init__(
            field="time",
            message=f"Event '{name}' overlaps with an existing event",
        )


class NotFoundError(WeekwiseError):
    """Raised when operating on an event id that is not stored."""
    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(message=f"Event not found: {event_id}")


class PersistenceError(WeekwiseError):
    """Raised when the underlying storage fails."""


class UndoErrorKind(Enum):
    NOTHING_TO_UNDO = "nothing_to_undo"
    NOTHING_TO_REDO = "nothing_to_redo"
    UNSUPPORTED_BULK_OPERATION = "unsupported_bulk_operation"


_UNDO_MESSAGES = {
    UndoErrorKind.NOTHING_TO_UNDO: "Nothing to undo",
    UndoErrorKind.NOTHING_TO_REDO: "Nothing to redo",
    UndoErrorKind.UNSUPPORTED_BULK_OPERATION: "Bulk delete cannot be undone or redone",
}


class UndoError(WeekwiseError):
    """Raised by undo/redo when the history cannot be replayed."""
    def __init__(self, kind: UndoErrorKind):
        self.kind = kind
        super().__init__(message=_UNDO_MESSAGES[kind])

    def is_ignorable(self) -> bool:
        """Empty history is not a failure worth showing to the user."""
        return self.kind in (UndoErrorKind.NOTHING_TO_UNDO, UndoErrorKind.NOTHING_TO_REDO)
